"""Schema authoring: content types and their typed fields."""

import logging
import re
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mosaic.auth import MANAGE_SCHEMA, Authorizer
from mosaic.db.models import ContentEntry, ContentType, ContentTypeField, FieldType
from mosaic.db.models.content_type import NUMERIC_TYPES, TEXT_TYPES
from mosaic.db.session import unit_of_work
from mosaic.lib.exceptions import NotFoundError, ValidationError
from mosaic.lib.hooks import REVALIDATE, SCOPE_CONTENT, hooks

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")

# Columns every entry carries natively; fields may not shadow them
RESERVED_FIELD_NAMES = frozenset({"id", "status", "created_at", "updated_at", "published_at"})


def _check_name(value: str, field: str) -> str:
    if not isinstance(value, str) or not NAME_PATTERN.match(value):
        raise ValidationError(
            f"{field} must start with a lowercase letter and contain only "
            "lowercase letters, digits and underscores",
            field=field,
        )
    return value


async def get_content_type(db_session: AsyncSession, name: str) -> ContentType:
    """Get a content type by name.

    Raises:
        NotFoundError: no content type has that name
    """
    result = await db_session.execute(select(ContentType).where(ContentType.name == name))
    content_type = result.scalar_one_or_none()
    if content_type is None:
        raise NotFoundError("Content type", name)
    return content_type


def get_fields(content_type: ContentType) -> dict[str, ContentTypeField]:
    """Fields of ``content_type`` keyed by name, in display order."""
    return {field.name: field for field in content_type.fields}


async def list_content_types(db_session: AsyncSession) -> list[ContentType]:
    result = await db_session.execute(
        select(ContentType).order_by(ContentType.display_name.asc(), ContentType.name.asc())
    )
    return list(result.scalars().all())


async def count_entries(db_session: AsyncSession, content_type: ContentType) -> int:
    result = await db_session.execute(
        select(func.count(ContentEntry.id)).where(ContentEntry.content_type_id == content_type.id)
    )
    return result.scalar_one()


async def create_content_type(
    db_session: AsyncSession,
    name: str,
    display_name: str,
    *,
    authorizer: Authorizer,
    singular_name: str | None = None,
    plural_name: str | None = None,
    description: str | None = None,
    fields: list[dict[str, Any]] | None = None,
) -> ContentType:
    """Create a content type, optionally with its initial fields.

    Args:
        db_session: Database session
        name: Machine name, used in collection URLs
        display_name: Human readable name
        authorizer: Must grant ``manage-schema``
        singular_name: Defaults to ``display_name``
        plural_name: Optional plural label
        description: Optional free text
        fields: Field definitions accepted by :func:`add_field`

    Returns:
        The created ContentType with its fields loaded

    Raises:
        ValidationError: bad name, duplicate name or invalid field definition
    """
    await authorizer.require(MANAGE_SCHEMA)

    _check_name(name, "name")
    if not display_name:
        raise ValidationError("display_name is required", field="display_name")

    existing = await db_session.execute(select(ContentType.id).where(ContentType.name == name))
    if existing.scalar_one_or_none() is not None:
        raise ValidationError(f"Content type {name!r} already exists", field="name")

    content_type = ContentType(
        name=name,
        display_name=display_name,
        singular_name=singular_name or display_name,
        plural_name=plural_name,
        description=description,
    )
    content_type.fields = []

    seen: set[str] = set()
    for order, definition in enumerate(fields or []):
        field = _build_field(definition, order)
        if field.name in seen:
            raise ValidationError(f"Duplicate field {field.name!r}", field=field.name)
        seen.add(field.name)
        content_type.fields.append(field)

    async with unit_of_work(db_session, "content type"):
        db_session.add(content_type)

    logger.info("Created content type %s with %d fields", name, len(content_type.fields))
    await hooks.do_action(REVALIDATE, SCOPE_CONTENT, name)
    return content_type


def _build_field(definition: dict[str, Any], display_order: int) -> ContentTypeField:
    """Validate one field definition and build the (unsaved) row."""
    name = _check_name(definition.get("name"), "name")
    if name in RESERVED_FIELD_NAMES:
        raise ValidationError(f"{name!r} is a reserved field name", field="name")

    raw_type = definition.get("type", FieldType.TEXT.value)
    try:
        field_type = FieldType(raw_type)
    except ValueError:
        raise ValidationError(
            f"Unknown field type {raw_type!r}; expected one of "
            + ", ".join(t.value for t in FieldType),
            field="type",
        ) from None

    bounds = {
        key: definition.get(key)
        for key in ("min_length", "max_length", "min_value", "max_value")
    }
    if field_type not in TEXT_TYPES and (
        bounds["min_length"] is not None or bounds["max_length"] is not None
    ):
        raise ValidationError("Length bounds only apply to text fields", field=name)
    if field_type not in NUMERIC_TYPES and (
        bounds["min_value"] is not None or bounds["max_value"] is not None
    ):
        raise ValidationError("Value bounds only apply to numeric fields", field=name)

    for low, high in (("min_length", "max_length"), ("min_value", "max_value")):
        if bounds[low] is not None and bounds[high] is not None and bounds[low] > bounds[high]:
            raise ValidationError(f"{low} must not exceed {high}", field=name)
    for key in ("min_length", "max_length"):
        if bounds[key] is not None and (not isinstance(bounds[key], int) or bounds[key] < 0):
            raise ValidationError(f"{key} must be a non-negative integer", field=name)

    return ContentTypeField(
        name=name,
        display_name=definition.get("display_name") or name,
        type=field_type.value,
        translatable=bool(definition.get("translatable", False)),
        required=bool(definition.get("required", False)),
        display_order=definition.get("display_order", display_order),
        **bounds,
    )


async def add_field(
    db_session: AsyncSession,
    content_type_name: str,
    definition: dict[str, Any],
    *,
    authorizer: Authorizer,
) -> ContentTypeField:
    """Append a field to an existing content type.

    A required field cannot be added once entries exist, since those
    entries would immediately violate it.
    """
    await authorizer.require(MANAGE_SCHEMA)

    content_type = await get_content_type(db_session, content_type_name)
    existing = get_fields(content_type)
    field = _build_field(definition, len(existing))

    if field.name in existing:
        raise ValidationError(f"Field {field.name!r} already exists", field=field.name)
    if field.required and await count_entries(db_session, content_type):
        raise ValidationError(
            f"Cannot add required field {field.name!r} to a content type with entries",
            field=field.name,
        )

    async with unit_of_work(db_session, "content type field"):
        content_type.fields.append(field)

    await hooks.do_action(REVALIDATE, SCOPE_CONTENT, content_type.name)
    return field


async def remove_field(
    db_session: AsyncSession,
    content_type_name: str,
    field_name: str,
    *,
    authorizer: Authorizer,
) -> None:
    """Drop a field definition. Stored values stay in the documents but are
    no longer validated or addressable through filters."""
    await authorizer.require(MANAGE_SCHEMA)

    content_type = await get_content_type(db_session, content_type_name)
    field = get_fields(content_type).get(field_name)
    if field is None:
        raise NotFoundError("Field", field_name)

    async with unit_of_work(db_session, "content type field"):
        content_type.fields.remove(field)

    await hooks.do_action(REVALIDATE, SCOPE_CONTENT, content_type.name)


async def delete_content_type(
    db_session: AsyncSession,
    name: str,
    *,
    authorizer: Authorizer,
) -> None:
    """Delete a content type and its field definitions.

    Raises:
        ValidationError: the content type still has entries
    """
    await authorizer.require(MANAGE_SCHEMA)

    content_type = await get_content_type(db_session, name)
    remaining = await count_entries(db_session, content_type)
    if remaining:
        raise ValidationError(
            f"Content type {name!r} still has {remaining} entries", field="name"
        )

    async with unit_of_work(db_session, "content type"):
        await db_session.delete(content_type)

    logger.info("Deleted content type %s", name)
    await hooks.do_action(REVALIDATE, SCOPE_CONTENT, name)


def field_to_dict(field: ContentTypeField) -> dict[str, Any]:
    return {
        "id": str(field.id),
        "name": field.name,
        "display_name": field.display_name,
        "type": field.type,
        "translatable": field.translatable,
        "required": field.required,
        "min_length": field.min_length,
        "max_length": field.max_length,
        "min_value": field.min_value,
        "max_value": field.max_value,
        "display_order": field.display_order,
    }


def content_type_to_dict(content_type: ContentType) -> dict[str, Any]:
    return {
        "id": str(content_type.id),
        "name": content_type.name,
        "display_name": content_type.display_name,
        "singular_name": content_type.singular_name,
        "plural_name": content_type.plural_name,
        "description": content_type.description,
        "fields": [field_to_dict(field) for field in content_type.fields],
        "created_at": content_type.created_at.isoformat() if content_type.created_at else None,
        "updated_at": content_type.updated_at.isoformat() if content_type.updated_at else None,
    }
