"""ASGI application factory.

Run with ``mosaic serve`` or ``uvicorn --factory mosaic.asgi:create_app``.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from mosaic import __version__
from mosaic.config import Settings, get_settings
from mosaic.controllers import collections, content_types, pages, section_types
from mosaic.db.services.section_registry import SectionTypeRegistry, section_registry
from mosaic.db.session import build_engine, build_session_maker, create_all
from mosaic.lib import observability
from mosaic.lib.exceptions import register_exception_handlers

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    registry: SectionTypeRegistry | None = None,
) -> FastAPI:
    """Create and configure the API application."""
    settings = settings or get_settings()
    registry = registry or section_registry
    observability.configure(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(settings)
        observability.instrument_sqlalchemy(engine)
        app.state.engine = engine
        app.state.session_maker = build_session_maker(engine)

        if settings.db.create_all:
            await create_all(engine)
        if settings.sync_sections:
            async with app.state.session_maker() as db_session:
                synced = await registry.sync_section_types(db_session)
            logger.info("Synced %d section types", len(synced))

        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(title="Mosaic", version=__version__, debug=settings.debug, lifespan=lifespan)
    app.state.settings = settings
    app.state.section_registry = registry

    register_exception_handlers(app)
    for module in (content_types, collections, pages, section_types):
        app.include_router(module.router)

    observability.instrument_app(app)
    return app
