"""Page endpoints, including the sections placed on each page.

Callers without ``manage-pages`` only see published pages.
"""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from mosaic.auth import MANAGE_PAGES, Authorizer
from mosaic.config import Settings
from mosaic.controllers.helpers import can, get_app_settings, get_authorizer, get_db_session, get_registry
from mosaic.controllers.schemas import PageIn, PageUpdateIn, ReorderIn, SectionIn, SectionUpdateIn
from mosaic.db.models import DEFAULT_SECTION_FIELD
from mosaic.db.services import page_service
from mosaic.db.services.section_registry import SectionTypeRegistry
from mosaic.lib.publication import Status
from mosaic.lib.query import Pagination

router = APIRouter(prefix="/api/pages", tags=["Pages"])


@router.get("")
async def list_pages(
    page_status: str | None = Query(default=None, alias="status"),
    locale: str | None = Query(default=None),
    page: int = Query(default=1, alias="pagination[page]"),
    page_size: int | None = Query(default=None, alias="pagination[pageSize]"),
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    if not await can(authorizer, MANAGE_PAGES):
        page_status = Status.PUBLISHED.value
    pagination = Pagination(
        page=page, page_size=page_size or settings.pagination.default_page_size
    )
    result = await page_service.find_pages(
        db_session, status=page_status, locale=locale, pagination=pagination, settings=settings
    )
    return result.to_dict()


@router.get("/{identifier}")
async def get_page(
    identifier: str,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
    registry: SectionTypeRegistry = Depends(get_registry),
) -> dict:
    """Get a page by id or slug, with its sections in display order."""
    published_only = not await can(authorizer, MANAGE_PAGES)
    page = await page_service.find_page(
        db_session, identifier, published_only=published_only, registry=registry
    )
    return {"data": page}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_page(
    body: PageIn,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    page = await page_service.create_page(
        db_session,
        body.slug,
        body.title,
        authorizer=authorizer,
        short_name=body.short_name,
        metadata=body.metadata,
        locale=body.locale,
        settings=settings,
    )
    return {"data": page_service.page_to_dict(page)}


@router.put("/{page_id}")
async def update_page(
    page_id: str,
    body: PageUpdateIn,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    # Only fields present in the body are changed
    optional = {
        key: getattr(body, key)
        for key in ("short_name", "metadata")
        if key in body.model_fields_set
    }
    page = await page_service.update_page(
        db_session,
        page_id,
        authorizer=authorizer,
        slug=body.slug,
        title=body.title,
        locale=body.locale,
        settings=settings,
        **optional,
    )
    return {"data": page_service.page_to_dict(page)}


@router.delete("/{page_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_page(
    page_id: str,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
    registry: SectionTypeRegistry = Depends(get_registry),
) -> Response:
    await page_service.delete_page(db_session, page_id, authorizer=authorizer, registry=registry)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{page_id}/publish")
async def publish_page(
    page_id: str,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
) -> dict:
    page = await page_service.publish_page(db_session, page_id, authorizer=authorizer)
    return {"data": page_service.page_to_dict(page)}


@router.post("/{page_id}/unpublish")
async def unpublish_page(
    page_id: str,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
) -> dict:
    page = await page_service.unpublish_page(db_session, page_id, authorizer=authorizer)
    return {"data": page_service.page_to_dict(page)}


@router.post("/{page_id}/sections", status_code=status.HTTP_201_CREATED)
async def add_section(
    page_id: str,
    body: SectionIn,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
    registry: SectionTypeRegistry = Depends(get_registry),
) -> dict:
    section = await page_service.add_section(
        db_session,
        page_id,
        body.section_type,
        body.data,
        authorizer=authorizer,
        order=body.order,
        field=body.field or DEFAULT_SECTION_FIELD,
        registry=registry,
    )
    return {"data": section}


@router.post("/{page_id}/sections/reorder")
async def reorder_sections(
    page_id: str,
    body: ReorderIn,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
) -> dict:
    updated = await page_service.reorder_sections(
        db_session,
        page_id,
        [item.model_dump() for item in body.orders],
        authorizer=authorizer,
    )
    return {"data": {"updated": updated}}


@router.put("/{page_id}/sections/{section_id}")
async def update_section(
    page_id: str,
    section_id: str,
    body: SectionUpdateIn,
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
    registry: SectionTypeRegistry = Depends(get_registry),
) -> dict:
    section = await page_service.update_section(
        db_session,
        section_id,
        body.section_type,
        body.data,
        authorizer=authorizer,
        registry=registry,
        page_id=page_id,
    )
    return {"data": section}


@router.delete("/{page_id}/sections/{section_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_section(
    page_id: str,
    section_id: str,
    section_type: str = Query(...),
    db_session: AsyncSession = Depends(get_db_session),
    authorizer: Authorizer = Depends(get_authorizer),
    registry: SectionTypeRegistry = Depends(get_registry),
) -> Response:
    await page_service.delete_section(
        db_session, section_id, section_type, authorizer=authorizer, registry=registry, page_id=page_id
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
