"""Request-scoped dependencies shared by the API routers."""

from collections.abc import AsyncIterator
from typing import Any

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from mosaic.auth import Authorizer, authorizer_for_api_key
from mosaic.config import Settings
from mosaic.db.services.section_registry import SectionTypeRegistry
from mosaic.lib.exceptions import PermissionDeniedError


async def get_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    """One session per request, closed when the response is done."""
    async with request.app.state.session_maker() as session:
        yield session


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> SectionTypeRegistry:
    return request.app.state.section_registry


async def get_authorizer(
    x_api_key: str | None = Header(default=None),
    settings: Settings = Depends(get_app_settings),
) -> Authorizer:
    """Authorizer for the ``X-API-Key`` presented with the request."""
    return authorizer_for_api_key(x_api_key, settings)


async def can(authorizer: Authorizer, permission: str) -> bool:
    try:
        await authorizer.require(permission)
    except PermissionDeniedError:
        return False
    return True


def query_dict(request: Request) -> dict[str, Any]:
    """Query string as a dict, keeping every value of repeated keys."""
    params = request.query_params
    result: dict[str, Any] = {}
    for key in params.keys():
        values = params.getlist(key)
        result[key] = values if len(values) > 1 or key.endswith("[]") else values[0]
    return result
