"""Entry endpoints for every content type, addressed by content type name.

Callers without ``manage-content`` only ever see published entries.
"""

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from mosaic.auth import MANAGE_CONTENT, Authorizer
from mosaic.config import Settings
from mosaic.controllers.helpers import can, get_app_settings, get_authorizer, get_db_session, query_dict
from mosaic.controllers.schemas import ActionIn, EntryIn
from mosaic.db.services.content_service import ContentStore, get_content_store
from mosaic.lib.publication import LIVE
from mosaic.lib.query import QueryParams, parse_query_string

router = APIRouter(prefix="/api/collections", tags=["Collections"])


async def _store(
    name: str,
    db_session: AsyncSession,
    authorizer: Authorizer,
    settings: Settings,
) -> ContentStore:
    return await get_content_store(db_session, name, authorizer=authorizer, settings=settings)


@router.get("/{name}")
async def find_entries(
    name: str,
    request: Request,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    """List entries.

    Supports ``filters[field][$op]``, ``sort``, ``pagination[page]``,
    ``pagination[pageSize]``, ``locale`` and ``publicationState``.
    """
    store = await _store(name, db_session, authorizer, settings)
    query = parse_query_string(
        query_dict(request), default_page_size=settings.pagination.default_page_size
    )
    if not await can(authorizer, MANAGE_CONTENT):
        query.publication_state = LIVE
    result = await store.find(query)
    return result.to_dict()


@router.get("/{name}/{entry_id}")
async def find_entry(
    name: str,
    entry_id: str,
    locale: str | None = Query(default=None),
    publication_state: str | None = Query(default=None, alias="publicationState"),
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    store = await _store(name, db_session, authorizer, settings)
    if not await can(authorizer, MANAGE_CONTENT):
        publication_state = LIVE
    entry = await store.find_one(
        entry_id, QueryParams(locale=locale, publication_state=publication_state)
    )
    return {"data": entry}


@router.post("/{name}", status_code=status.HTTP_201_CREATED)
async def create_entry(
    name: str,
    body: EntryIn,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    store = await _store(name, db_session, authorizer, settings)
    return {"data": await store.create(body.data, body.translations)}


@router.put("/{name}/{entry_id}")
async def update_entry(
    name: str,
    entry_id: str,
    body: EntryIn,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    store = await _store(name, db_session, authorizer, settings)
    return {"data": await store.update(entry_id, body.data, body.translations)}


@router.delete("/{name}/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    name: str,
    entry_id: str,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    store = await _store(name, db_session, authorizer, settings)
    await store.delete(entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{name}/{entry_id}/actions")
async def perform_action(
    name: str,
    entry_id: str,
    body: ActionIn,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    """Run ``publish``, ``unpublish`` or ``archive`` on an entry."""
    store = await _store(name, db_session, authorizer, settings)
    return {"data": await store.perform_action(entry_id, body.action)}
