"""Shared pytest fixtures."""

import pytest
import yaml
from sqlalchemy.ext.asyncio import create_async_engine

from mosaic.auth import ALLOW_ALL
from mosaic.config import I18nConfig, PaginationConfig, Settings
from mosaic.db.base import Base
from mosaic.db.services import schema_service
from mosaic.db.services.content_service import ContentStore
from mosaic.db.services.section_registry import build_default_registry
from mosaic.db.session import build_session_maker
from mosaic.lib.hooks import hooks

TREATMENT_FIELDS = [
    {"name": "title", "display_name": "Title", "type": "text", "translatable": True, "required": True},
    {"name": "slug", "display_name": "Slug", "type": "slug", "required": True},
    {"name": "price", "display_name": "Price", "type": "decimal", "min_value": 0},
]


@pytest.fixture
def temp_app_yaml(tmp_path):
    """Create a temporary app.yaml file for testing."""
    config_path = tmp_path / "app.yaml"

    def _create_config(config: dict):
        with open(config_path, "w") as f:
            yaml.safe_dump(config, f)
        return config_path

    return _create_config


@pytest.fixture
def clean_hooks():
    """Save and restore hooks state around a test."""
    original_filters = hooks._filters.copy()
    original_actions = hooks._actions.copy()
    yield
    hooks._filters = original_filters
    hooks._actions = original_actions


@pytest.fixture
def settings():
    return Settings(
        i18n=I18nConfig(default_locale="pt", locales=["pt", "en"]),
        pagination=PaginationConfig(default_page_size=25, max_page_size=100),
    )


@pytest.fixture
async def engine():
    """A fresh in-memory database with every table created."""
    import mosaic.db.models  # noqa: F401 - register all models on Base

    engine = create_async_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(engine):
    async with build_session_maker(engine)() as session:
        yield session


@pytest.fixture
async def registry(db_session):
    """Default section registry with its catalog rows synced."""
    registry = build_default_registry()
    await registry.sync_section_types(db_session)
    return registry


@pytest.fixture
def treatment_fields():
    return [dict(field) for field in TREATMENT_FIELDS]


@pytest.fixture
async def treatment_type(db_session, treatment_fields):
    return await schema_service.create_content_type(
        db_session,
        "treatment",
        "Treatment",
        authorizer=ALLOW_ALL,
        plural_name="Treatments",
        fields=treatment_fields,
    )


@pytest.fixture
def treatment_store(db_session, treatment_type, settings):
    return ContentStore(db_session, treatment_type, authorizer=ALLOW_ALL, settings=settings)
