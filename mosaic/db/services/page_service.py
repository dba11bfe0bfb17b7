"""Page composition service: pages and the ordered sections placed on them."""

import logging
import re
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mosaic.auth import MANAGE_PAGES, PUBLISH, Authorizer
from mosaic.config import Settings, get_settings
from mosaic.db.base import utcnow
from mosaic.db.models import DEFAULT_SECTION_FIELD, Page, PageSectionLink
from mosaic.db.services.section_registry import SectionStorage, SectionTypeRegistry, section_registry
from mosaic.db.session import commit_or_raise, execute_or_raise, unit_of_work
from mosaic.lib.exceptions import NotFoundError, ValidationError
from mosaic.lib.hooks import (
    AFTER_PAGE_DELETE,
    AFTER_PAGE_SAVE,
    AFTER_SECTIONS_CHANGE,
    BEFORE_PAGE_DELETE,
    BEFORE_PAGE_SAVE,
    PAGE_VIEW,
    REVALIDATE,
    SCOPE_PAGE,
    SCOPE_SECTION,
    hooks,
)
from mosaic.lib.publication import Status, apply_transition, parse_status
from mosaic.lib.query import Pagination, QueryResult
from mosaic.lib.values import SLUG_PATTERN

logger = logging.getLogger(__name__)

# Ids have a fixed lexical shape; anything else is looked up as a slug
UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

_UNSET = object()  # Sentinel for distinguishing None from "not provided"


def _parse_id(value: UUID | str, entity: str) -> UUID:
    if isinstance(value, UUID):
        return value
    if isinstance(value, str) and UUID_PATTERN.match(value):
        return UUID(value)
    raise NotFoundError(entity, value)


def _isoformat(value) -> str | None:
    return value.isoformat() if value else None


def page_to_dict(page: Page) -> dict[str, Any]:
    return {
        "id": str(page.id),
        "slug": page.slug,
        "title": page.title,
        "short_name": page.short_name,
        "status": page.status,
        "metadata": dict(page.page_metadata or {}),
        "locale": page.locale,
        "published_at": _isoformat(page.published_at),
        "created_at": _isoformat(page.created_at),
        "updated_at": _isoformat(page.updated_at),
    }


def section_to_dict(link: PageSectionLink, data: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": str(link.section_id),
        "section_type": link.section_type,
        "link_id": str(link.id),
        "field": link.field,
        "display_order": link.display_order,
        "data": data,
    }


async def _revalidate_page(page: Page) -> None:
    await hooks.do_action(REVALIDATE, SCOPE_PAGE, page.slug)


async def find_pages(
    db_session: AsyncSession,
    status: str | None = None,
    locale: str | None = None,
    pagination: Pagination | None = None,
    settings: Settings | None = None,
) -> QueryResult:
    """List pages, newest first.

    Args:
        db_session: Database session
        status: Only pages with this status
        locale: Only pages written in this locale
        pagination: Page window; defaults come from settings

    Returns:
        QueryResult whose data holds serialized pages without sections
    """
    settings = settings or get_settings()
    pagination = (
        pagination or Pagination(page_size=settings.pagination.default_page_size)
    ).capped(settings.pagination.max_page_size)

    query = select(Page)
    if status is not None:
        query = query.where(Page.status == parse_status(status).value)
    if locale is not None:
        query = query.where(Page.locale == locale)

    total_result = await execute_or_raise(
        db_session, "page", select(func.count()).select_from(query.subquery())
    )
    total = total_result.scalar_one()

    query = query.order_by(Page.created_at.desc(), Page.id.asc())
    query = query.offset(pagination.offset).limit(pagination.page_size)
    result = await execute_or_raise(db_session, "page", query)

    data = [page_to_dict(page) for page in result.scalars().all()]
    return QueryResult(data=data, pagination=pagination, total=total)


async def get_page(
    db_session: AsyncSession,
    identifier: UUID | str,
    published_only: bool = False,
) -> Page:
    """Get a page by id or slug.

    Raises:
        NotFoundError: no such page, or it is not published and
            ``published_only`` is set
    """
    if isinstance(identifier, UUID) or UUID_PATTERN.match(str(identifier)):
        query = select(Page).where(Page.id == _parse_id(identifier, "Page"))
    else:
        query = select(Page).where(Page.slug == identifier)

    if published_only:
        query = query.where(Page.status == Status.PUBLISHED.value)

    result = await execute_or_raise(db_session, "page", query)
    page = result.scalar_one_or_none()
    if page is None:
        raise NotFoundError("Page", identifier)
    return page


async def get_page_sections(
    db_session: AsyncSession,
    page: Page,
    registry: SectionTypeRegistry | None = None,
) -> list[dict[str, Any]]:
    """Resolve the page's section links into populated sections.

    Links are read in ``display_order``; equal orders fall back to link
    creation time. A link whose instance cannot be fetched is logged and
    skipped so the rest of the page still renders.
    """
    registry = registry or section_registry
    result = await execute_or_raise(
        db_session,
        "page section",
        select(PageSectionLink)
        .where(PageSectionLink.page_id == page.id)
        .order_by(
            PageSectionLink.display_order.asc(),
            PageSectionLink.created_at.asc(),
            PageSectionLink.id.asc(),
        )
    )
    links = list(result.scalars().all())

    sections = []
    for link in links:
        try:
            storage = registry.resolve_storage(link.section_type)
            instance = await storage.get(db_session, link.section_id)
        except (NotFoundError, SQLAlchemyError) as exc:
            logger.warning(
                "Skipping section link %s (%s) on page %s: %s",
                link.id,
                link.section_type,
                page.slug,
                exc,
            )
            continue
        if instance is None:
            logger.warning(
                "Skipping section link %s (%s) on page %s: instance %s is missing",
                link.id,
                link.section_type,
                page.slug,
                link.section_id,
            )
            continue
        sections.append(section_to_dict(link, storage.to_dict(instance)))
    return sections


async def find_page(
    db_session: AsyncSession,
    identifier: UUID | str,
    published_only: bool = False,
    registry: SectionTypeRegistry | None = None,
) -> dict[str, Any]:
    """Get a page by id or slug with its sections populated in order."""
    page = await get_page(db_session, identifier, published_only=published_only)
    view = page_to_dict(page)
    view["sections"] = await get_page_sections(db_session, page, registry)
    return await hooks.apply_filters(PAGE_VIEW, view)


def _check_slug(slug: Any) -> str:
    if not isinstance(slug, str) or not SLUG_PATTERN.match(slug):
        raise ValidationError(
            "slug must be lowercase letters, numbers and hyphens", field="slug"
        )
    if UUID_PATTERN.match(slug):
        raise ValidationError("slug must not have the shape of a page id", field="slug")
    return slug


def _check_locale(locale: str, settings: Settings) -> str:
    if locale not in settings.i18n.locales:
        raise ValidationError(f"Unsupported locale {locale!r}", field="locale")
    return locale


async def _ensure_unique_slug(
    db_session: AsyncSession,
    slug: str,
    exclude_id: UUID | None = None,
) -> None:
    query = select(Page.id).where(Page.slug == slug)
    if exclude_id is not None:
        query = query.where(Page.id != exclude_id)
    result = await db_session.execute(query)
    if result.first() is not None:
        raise ValidationError(f"A page with slug {slug!r} already exists", field="slug")


async def create_page(
    db_session: AsyncSession,
    slug: str,
    title: str,
    *,
    authorizer: Authorizer,
    short_name: str | None = None,
    metadata: dict[str, Any] | None = None,
    locale: str | None = None,
    settings: Settings | None = None,
) -> Page:
    """Create a draft page with no sections.

    Args:
        db_session: Database session
        slug: Unique page slug
        title: Page title
        authorizer: Must grant ``manage-pages``
        short_name: Optional label for navigation
        metadata: Free-form document (SEO fields and the like)
        locale: Defaults to ``i18n.default_locale``

    Returns:
        The created Page
    """
    await authorizer.require(MANAGE_PAGES)
    settings = settings or get_settings()

    _check_slug(slug)
    if not title:
        raise ValidationError("title is required", field="title")
    if metadata is not None and not isinstance(metadata, dict):
        raise ValidationError("metadata must be an object", field="metadata")
    locale = _check_locale(locale or settings.i18n.default_locale, settings)
    await _ensure_unique_slug(db_session, slug)

    page = Page(
        slug=slug,
        title=title,
        short_name=short_name,
        status=Status.DRAFT.value,
        page_metadata=dict(metadata or {}),
        locale=locale,
    )

    await hooks.do_action(BEFORE_PAGE_SAVE, page, is_new=True)
    async with unit_of_work(db_session, "page"):
        db_session.add(page)

    logger.info("Created page %s", slug)
    await hooks.do_action(AFTER_PAGE_SAVE, page, is_new=True)
    await _revalidate_page(page)
    return page


async def update_page(
    db_session: AsyncSession,
    page_id: UUID | str,
    *,
    authorizer: Authorizer,
    slug: str | None = None,
    title: str | None = None,
    short_name: str | None | object = _UNSET,
    metadata: dict[str, Any] | None | object = _UNSET,
    locale: str | None = None,
    settings: Settings | None = None,
) -> Page:
    """Update page attributes; arguments left out are not touched."""
    await authorizer.require(MANAGE_PAGES)
    settings = settings or get_settings()

    page = await get_page(db_session, _parse_id(page_id, "Page"))
    previous_slug = page.slug

    if slug is not None:
        _check_slug(slug)
        await _ensure_unique_slug(db_session, slug, exclude_id=page.id)
    if title is not None and not title:
        raise ValidationError("title must not be empty", field="title")
    if metadata is not _UNSET and metadata is not None and not isinstance(metadata, dict):
        raise ValidationError("metadata must be an object", field="metadata")
    if locale is not None:
        _check_locale(locale, settings)

    await hooks.do_action(BEFORE_PAGE_SAVE, page, is_new=False)

    if slug is not None:
        page.slug = slug
    if title is not None:
        page.title = title
    if short_name is not _UNSET:
        page.short_name = short_name
    if metadata is not _UNSET:
        page.page_metadata = dict(metadata or {})
    if locale is not None:
        page.locale = locale

    await commit_or_raise(db_session, "page")

    await hooks.do_action(AFTER_PAGE_SAVE, page, is_new=False)
    if previous_slug != page.slug:
        await hooks.do_action(REVALIDATE, SCOPE_PAGE, previous_slug)
    await _revalidate_page(page)
    return page


async def delete_page(
    db_session: AsyncSession,
    page_id: UUID | str,
    *,
    authorizer: Authorizer,
    registry: SectionTypeRegistry | None = None,
) -> None:
    """Delete a page, its section links and the section instances they point at.

    Everything goes in one transaction.
    """
    await authorizer.require(MANAGE_PAGES)
    registry = registry or section_registry

    page = await get_page(db_session, _parse_id(page_id, "Page"))
    result = await db_session.execute(
        select(PageSectionLink).where(PageSectionLink.page_id == page.id)
    )
    links = list(result.scalars().all())

    await hooks.do_action(BEFORE_PAGE_DELETE, page)

    async with unit_of_work(db_session, "page"):
        for link in links:
            if registry.is_registered(link.section_type):
                storage = registry.resolve_storage(link.section_type)
                instance = await storage.get(db_session, link.section_id)
                if instance is not None:
                    await db_session.delete(instance)
            else:
                logger.warning(
                    "Leaving instance %s of unregistered section type %s behind",
                    link.section_id,
                    link.section_type,
                )
            await db_session.delete(link)
        await db_session.flush()
        await db_session.delete(page)

    logger.info("Deleted page %s with %d sections", page.slug, len(links))
    await hooks.do_action(AFTER_PAGE_DELETE, page)
    await _revalidate_page(page)


async def _set_page_status(
    db_session: AsyncSession,
    page_id: UUID | str,
    target: Status,
    authorizer: Authorizer,
) -> Page:
    await authorizer.require(PUBLISH)

    page = await get_page(db_session, _parse_id(page_id, "Page"))
    if apply_transition(page, target):
        await commit_or_raise(db_session, "page")
        await _revalidate_page(page)
    return page


async def publish_page(db_session: AsyncSession, page_id: UUID | str, *, authorizer: Authorizer) -> Page:
    return await _set_page_status(db_session, page_id, Status.PUBLISHED, authorizer)


async def unpublish_page(db_session: AsyncSession, page_id: UUID | str, *, authorizer: Authorizer) -> Page:
    return await _set_page_status(db_session, page_id, Status.DRAFT, authorizer)


async def archive_page(db_session: AsyncSession, page_id: UUID | str, *, authorizer: Authorizer) -> Page:
    return await _set_page_status(db_session, page_id, Status.ARCHIVED, authorizer)


async def _section_changed(page: Page | None, section_type: str, section_id: UUID) -> None:
    await hooks.do_action(REVALIDATE, SCOPE_SECTION, f"{section_type}:{section_id}")
    if page is not None:
        await hooks.do_action(AFTER_SECTIONS_CHANGE, page)
        await _revalidate_page(page)


async def add_section(
    db_session: AsyncSession,
    page_id: UUID | str,
    section_type: str,
    data: dict[str, Any] | None = None,
    *,
    authorizer: Authorizer,
    order: int | None = None,
    field: str = DEFAULT_SECTION_FIELD,
    registry: SectionTypeRegistry | None = None,
) -> dict[str, Any]:
    """Create a section instance and link it to the page in one transaction.

    Without ``order`` the section goes after every existing section on
    the page (``max(display_order) + 1``).

    Raises:
        NotFoundError: unknown page, or unregistered/inactive section type
        ValidationError: payload keys that the section type does not define
    """
    await authorizer.require(MANAGE_PAGES)
    registry = registry or section_registry

    page = await get_page(db_session, _parse_id(page_id, "Page"))
    await registry.get_section_type(db_session, section_type)
    storage = registry.resolve_storage(section_type)
    payload = storage.clean(data)
    if order is not None and (isinstance(order, bool) or not isinstance(order, int)):
        raise ValidationError("order must be an integer", field="order")

    async with unit_of_work(db_session, "page section"):
        instance = await storage.create(db_session, payload)
        if order is None:
            result = await db_session.execute(
                select(func.max(PageSectionLink.display_order)).where(
                    PageSectionLink.page_id == page.id
                )
            )
            order = (result.scalar_one() or 0) + 1
        link = PageSectionLink(
            page_id=page.id,
            section_id=instance.id,
            section_type=section_type,
            field=field,
            display_order=order,
        )
        db_session.add(link)

    await _section_changed(page, section_type, instance.id)
    return section_to_dict(link, storage.to_dict(instance))


async def get_section(
    db_session: AsyncSession,
    section_id: UUID | str,
    section_type: str,
    registry: SectionTypeRegistry | None = None,
) -> dict[str, Any]:
    """Look a section instance up directly in its type's storage."""
    registry = registry or section_registry
    storage = registry.resolve_storage(section_type)
    instance = await storage.get(db_session, _parse_id(section_id, "Section"))
    if instance is None:
        raise NotFoundError("Section", section_id)
    return {"id": str(instance.id), "section_type": section_type, "data": storage.to_dict(instance)}


async def _find_link(
    db_session: AsyncSession,
    section_id: UUID,
    section_type: str,
) -> PageSectionLink | None:
    result = await db_session.execute(
        select(PageSectionLink).where(
            PageSectionLink.section_id == section_id,
            PageSectionLink.section_type == section_type,
        )
    )
    return result.scalars().first()


def _check_link_page(
    link: PageSectionLink | None,
    page_id: UUID | str | None,
    section_id: UUID | str,
) -> None:
    """Refuse a section that is not placed on ``page_id``, when one is given."""
    if page_id is None:
        return
    if link is None or link.page_id != _parse_id(page_id, "Page"):
        raise NotFoundError("Section", section_id)


async def update_section(
    db_session: AsyncSession,
    section_id: UUID | str,
    section_type: str,
    updates: dict[str, Any],
    *,
    authorizer: Authorizer,
    registry: SectionTypeRegistry | None = None,
    page_id: UUID | str | None = None,
) -> dict[str, Any]:
    """Update a section instance in place; links are not involved.

    With ``page_id`` the section must be placed on that page.
    """
    await authorizer.require(MANAGE_PAGES)
    registry = registry or section_registry

    storage: SectionStorage = registry.resolve_storage(section_type)
    payload = storage.clean(updates)
    parsed_id = _parse_id(section_id, "Section")
    link = await _find_link(db_session, parsed_id, section_type)
    _check_link_page(link, page_id, section_id)
    instance = await storage.get(db_session, parsed_id)
    if instance is None:
        raise NotFoundError("Section", section_id)

    async with unit_of_work(db_session, "page section"):
        await storage.update(db_session, instance, payload)

    page = await db_session.get(Page, link.page_id) if link is not None else None
    await _section_changed(page, section_type, parsed_id)
    return {"id": str(instance.id), "section_type": section_type, "data": storage.to_dict(instance)}


async def delete_section(
    db_session: AsyncSession,
    section_id: UUID | str,
    section_type: str,
    *,
    authorizer: Authorizer,
    registry: SectionTypeRegistry | None = None,
    page_id: UUID | str | None = None,
) -> None:
    """Remove a section's link and then its instance, in one transaction.

    Raises:
        NotFoundError: neither a link nor an instance exists, or the section is
            not placed on ``page_id``
    """
    await authorizer.require(MANAGE_PAGES)
    registry = registry or section_registry

    storage = registry.resolve_storage(section_type)
    parsed_id = _parse_id(section_id, "Section")
    link = await _find_link(db_session, parsed_id, section_type)
    _check_link_page(link, page_id, section_id)
    instance = await storage.get(db_session, parsed_id)
    if link is None and instance is None:
        raise NotFoundError("Section", section_id)

    page = await db_session.get(Page, link.page_id) if link is not None else None

    async with unit_of_work(db_session, "page section"):
        if link is not None:
            await db_session.delete(link)
            await db_session.flush()
        if instance is not None:
            await storage.delete(db_session, instance)

    await _section_changed(page, section_type, parsed_id)


def _parse_order_item(item: Any) -> tuple[UUID, int]:
    if not isinstance(item, dict):
        raise ValidationError("Each reorder item must be an object", field="orders")
    link_id = item.get("link_id", item.get("linkId"))
    order = item.get("order")
    if link_id is None or not isinstance(link_id, (str, UUID)):
        raise ValidationError("Each reorder item needs a link_id", field="link_id")
    if isinstance(order, bool) or not isinstance(order, int):
        raise ValidationError("order must be an integer", field="order")
    if isinstance(link_id, str):
        if not UUID_PATTERN.match(link_id):
            raise ValidationError(f"{link_id!r} is not a valid link id", field="link_id")
        link_id = UUID(link_id)
    return link_id, order


async def reorder_sections(
    db_session: AsyncSession,
    page_id: UUID | str,
    orders: list[dict[str, Any]],
    *,
    authorizer: Authorizer,
) -> int:
    """Set ``display_order`` for the given links of one page.

    Each update is also filtered by ``page_id``, so link ids belonging to
    another page are ignored. Orders are stored as given, without
    renumbering.

    Returns:
        Number of links actually updated
    """
    await authorizer.require(MANAGE_PAGES)

    page = await get_page(db_session, _parse_id(page_id, "Page"))
    if not isinstance(orders, list):
        raise ValidationError("orders must be a list", field="orders")
    items = [_parse_order_item(item) for item in orders]

    updated = 0
    async with unit_of_work(db_session, "page section"):
        for link_id, order in items:
            result = await db_session.execute(
                update(PageSectionLink)
                .where(PageSectionLink.id == link_id, PageSectionLink.page_id == page.id)
                .values(display_order=order, updated_at=utcnow())
            )
            updated += result.rowcount

    if updated != len(items):
        logger.info(
            "Reorder on page %s matched %d of %d links", page.slug, updated, len(items)
        )
    await hooks.do_action(AFTER_SECTIONS_CHANGE, page)
    await _revalidate_page(page)
    return updated
