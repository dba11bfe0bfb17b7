"""Generic content store: CRUD over entries of any content type.

Entries keep non-translatable values in ``base_data`` and one
``ContentTranslation`` row per locale for translatable values. The
store validates every write against the content type's fields and runs
each multi-row write as a single transaction.
"""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import ColumnElement, Select, and_, func, not_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from mosaic.auth import DENY_ALL, MANAGE_CONTENT, PUBLISH, Authorizer
from mosaic.config import Settings, get_settings
from mosaic.db.base import utcnow
from mosaic.db.models import ContentEntry, ContentTranslation, ContentType, ContentTypeField
from mosaic.db.models.content_type import TEXT_TYPES
from mosaic.db.services import schema_service
from mosaic.db.session import commit_or_raise, execute_or_raise, unit_of_work
from mosaic.lib import observability
from mosaic.lib.exceptions import NotFoundError, ValidationError
from mosaic.lib.hooks import (
    AFTER_ENTRY_DELETE,
    AFTER_ENTRY_SAVE,
    AFTER_ENTRY_STATUS_CHANGE,
    BEFORE_ENTRY_SAVE,
    ENTRY_VIEW,
    REVALIDATE,
    SCOPE_CONTENT,
    hooks,
)
from mosaic.lib.publication import (
    LIVE,
    Status,
    apply_transition,
    parse_status,
    status_for_action,
    validate_publication_state,
)
from mosaic.lib.query import (
    EQ,
    LIST_OPERATORS,
    NE,
    NEGATIONS,
    NULL,
    TEXT_OPERATORS,
    Pagination,
    QueryParams,
    QueryResult,
    build_condition,
    coerce_bool,
    document_path,
    normalize_filter,
    parse_sort,
    positive_condition,
)
from mosaic.lib.translations import merge
from mosaic.lib.values import coerce, validate

logger = logging.getLogger(__name__)

# Columns native to the entry row, addressed directly by filters and sort
NATIVE_COLUMNS = {
    "id": ContentEntry.id,
    "status": ContentEntry.status,
    "created_at": ContentEntry.created_at,
    "updated_at": ContentEntry.updated_at,
    "published_at": ContentEntry.published_at,
}

Translations = Mapping[str, Mapping[str, Any]] | list[Mapping[str, Any]] | None


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _parse_uuid(value: Any) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _parse_datetime(name: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 datetime", field=name) from None


def _translation_rows(entry: ContentEntry) -> list[dict[str, Any]]:
    return [
        {"language_code": row.language_code, "translated_data": dict(row.translated_data or {})}
        for row in sorted(entry.translations, key=lambda row: row.language_code)
    ]


def entry_to_record(entry: ContentEntry, content_type: ContentType) -> dict[str, Any]:
    """The stored shape of an entry: base document plus every translation row."""
    return {
        "id": str(entry.id),
        "content_type": content_type.name,
        "status": entry.status,
        "published_at": _isoformat(entry.published_at),
        "created_at": _isoformat(entry.created_at),
        "updated_at": _isoformat(entry.updated_at),
        "data": dict(entry.base_data or {}),
        "translations": [
            {"language_code": row["language_code"], "data": row["translated_data"]}
            for row in _translation_rows(entry)
        ],
    }


class ContentStore:
    """Reads and writes entries of one content type.

    Mutating methods call ``authorizer.require()`` before doing anything
    else. Reads need no permission.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        content_type: ContentType,
        authorizer: Authorizer = DENY_ALL,
        settings: Settings | None = None,
    ) -> None:
        self.db_session = db_session
        self.content_type = content_type
        self.authorizer = authorizer
        self.settings = settings or get_settings()
        self.fields = schema_service.get_fields(content_type)

    @property
    def entity(self) -> str:
        return self.content_type.singular_name or self.content_type.name

    # -- reads -------------------------------------------------------------

    async def find(self, query: QueryParams | None = None) -> QueryResult:
        """List entries matching ``query``.

        Each record is overlaid with the translation for ``query.locale``
        when one is given.
        """
        query = query or QueryParams()
        locale = self._check_locale(query.locale)
        publication_state = validate_publication_state(query.publication_state)
        pagination = (
            query.pagination or Pagination(page_size=self.settings.pagination.default_page_size)
        ).capped(self.settings.pagination.max_page_size)

        with observability.span("content.find", content_type=self.content_type.name):
            stmt = self._select(query.filters, locale, publication_state)
            total = await self._count(stmt)
            stmt = self._apply_sort(stmt, query.sort, locale)
            stmt = stmt.offset(pagination.offset).limit(pagination.page_size)
            result = await execute_or_raise(self.db_session, self.entity, stmt)
            entries = list(result.scalars().all())

        data = [await self._view(entry, locale) for entry in entries]
        return QueryResult(data=data, pagination=pagination, total=total)

    async def find_one(self, entry_id: UUID | str, query: QueryParams | None = None) -> dict[str, Any]:
        query = query or QueryParams()
        locale = self._check_locale(query.locale)
        publication_state = validate_publication_state(query.publication_state)

        entry = await self._get_entry(entry_id)
        if publication_state == LIVE and entry.status != Status.PUBLISHED.value:
            raise NotFoundError(self.entity, entry_id)
        return await self._view(entry, locale)

    async def count(
        self,
        filters: Mapping[str, Any] | None = None,
        locale: str | None = None,
        publication_state: str | None = None,
    ) -> int:
        locale = self._check_locale(locale)
        publication_state = validate_publication_state(publication_state)
        return await self._count(self._select(filters, locale, publication_state))

    # -- writes ------------------------------------------------------------

    async def create(self, data: Mapping[str, Any], translations: Translations = None) -> dict[str, Any]:
        """Create a draft entry with its translation rows in one transaction.

        Every required field must be present and non-null; a translatable
        field counts as present when any locale supplies it.

        Raises:
            ValidationError: missing required field, unknown field or bad value
            StorageError: the database rejected the write
        """
        await self.authorizer.require(MANAGE_CONTENT)

        base, translated = self._partition(data, translations)
        self._check_required(base, translated)

        entry = ContentEntry(
            content_type_id=self.content_type.id,
            status=Status.DRAFT.value,
            base_data=base,
        )
        entry.translations = [
            ContentTranslation(language_code=locale, translated_data=values)
            for locale, values in translated.items()
        ]

        await hooks.do_action(BEFORE_ENTRY_SAVE, entry, is_new=True)
        async with unit_of_work(self.db_session, self.entity):
            self.db_session.add(entry)

        logger.info("Created %s entry %s", self.content_type.name, entry.id)
        await hooks.do_action(AFTER_ENTRY_SAVE, entry, is_new=True)
        await self._revalidate(entry)
        return entry_to_record(entry, self.content_type)

    async def update(
        self,
        entry_id: UUID | str,
        data: Mapping[str, Any] | None = None,
        translations: Translations = None,
    ) -> dict[str, Any]:
        """Partially update an entry.

        Supplied base values are merged into the stored document and each
        supplied locale is upserted. Required fields are not re-checked.
        """
        await self.authorizer.require(MANAGE_CONTENT)

        entry = await self._get_entry(entry_id)
        base, translated = self._partition(data, translations)

        if base:
            entry.base_data = {**(entry.base_data or {}), **base}

        existing = {row.language_code: row for row in entry.translations}
        for locale, values in translated.items():
            row = existing.get(locale)
            if row is None:
                entry.translations.append(
                    ContentTranslation(language_code=locale, translated_data=values)
                )
            else:
                row.translated_data = {**(row.translated_data or {}), **values}
        entry.updated_at = utcnow()

        await hooks.do_action(BEFORE_ENTRY_SAVE, entry, is_new=False)
        async with unit_of_work(self.db_session, self.entity):
            await self.db_session.flush()

        await hooks.do_action(AFTER_ENTRY_SAVE, entry, is_new=False)
        await self._revalidate(entry)
        return entry_to_record(entry, self.content_type)

    async def delete(self, entry_id: UUID | str) -> None:
        """Delete an entry together with all of its translation rows."""
        await self.authorizer.require(MANAGE_CONTENT)

        entry = await self._get_entry(entry_id)
        async with unit_of_work(self.db_session, self.entity):
            await self.db_session.delete(entry)

        logger.info("Deleted %s entry %s", self.content_type.name, entry.id)
        await hooks.do_action(AFTER_ENTRY_DELETE, entry)
        await self._revalidate(entry)

    async def set_status(self, entry_id: UUID | str, status: str | Status) -> dict[str, Any]:
        """Move an entry through the draft/published/archived lifecycle.

        Raises:
            InvalidTransitionError: the move is not allowed from the current status
        """
        await self.authorizer.require(PUBLISH)
        return await self._transition(entry_id, parse_status(status))

    async def perform_action(self, entry_id: UUID | str, action: str) -> dict[str, Any]:
        """Apply a named document action: ``publish``, ``unpublish`` or ``archive``."""
        await self.authorizer.require(PUBLISH)
        return await self._transition(entry_id, status_for_action(action))

    async def _transition(self, entry_id: UUID | str, target: Status) -> dict[str, Any]:
        entry = await self._get_entry(entry_id)
        previous = entry.status

        if apply_transition(entry, target):
            await commit_or_raise(self.db_session, self.entity)
            await hooks.do_action(AFTER_ENTRY_STATUS_CHANGE, entry, previous, entry.status)
            await self._revalidate(entry)
        return entry_to_record(entry, self.content_type)

    # -- helpers -----------------------------------------------------------

    async def _get_entry(self, entry_id: UUID | str) -> ContentEntry:
        parsed = _parse_uuid(entry_id)
        if parsed is None:
            raise NotFoundError(self.entity, entry_id)

        result = await execute_or_raise(
            self.db_session,
            self.entity,
            select(ContentEntry).where(
                ContentEntry.id == parsed,
                ContentEntry.content_type_id == self.content_type.id,
            )
        )
        entry = result.scalar_one_or_none()
        if entry is None:
            raise NotFoundError(self.entity, entry_id)
        return entry

    async def _view(self, entry: ContentEntry, locale: str | None) -> dict[str, Any]:
        view: dict[str, Any] = {"id": str(entry.id)}
        view.update(merge(entry.base_data or {}, _translation_rows(entry), locale))
        view.update(
            status=entry.status,
            published_at=_isoformat(entry.published_at),
            created_at=_isoformat(entry.created_at),
            updated_at=_isoformat(entry.updated_at),
        )
        if locale:
            view["locale"] = locale
        else:
            view["translations"] = entry_to_record(entry, self.content_type)["translations"]
        return await hooks.apply_filters(ENTRY_VIEW, view, self.content_type.name, locale)

    async def _revalidate(self, entry: ContentEntry) -> None:
        await hooks.do_action(REVALIDATE, SCOPE_CONTENT, f"{self.content_type.name}:{entry.id}")

    def _field(self, name: str) -> ContentTypeField:
        field = self.fields.get(name)
        if field is None:
            raise ValidationError(
                f"Unknown field {name!r} for content type {self.content_type.name!r}", field=name
            )
        return field

    def _check_locale(self, locale: str | None, field: str = "locale") -> str | None:
        if locale is None:
            return None
        if locale not in self.settings.i18n.locales:
            raise ValidationError(
                f"Unsupported locale {locale!r}; expected one of "
                + ", ".join(self.settings.i18n.locales),
                field=field,
            )
        return locale

    def _normalize_translations(self, translations: Translations) -> dict[str, dict[str, Any]]:
        """Accept ``{locale: values}`` or ``[{"language_code", "data"}]``."""
        if not translations:
            return {}

        if isinstance(translations, Mapping):
            items = list(translations.items())
        else:
            items = []
            for row in translations:
                if not isinstance(row, Mapping) or not row.get("language_code"):
                    raise ValidationError(
                        "Each translation needs a language_code", field="translations"
                    )
                items.append((row["language_code"], row.get("data", row.get("translated_data", {}))))

        normalized: dict[str, dict[str, Any]] = {}
        for locale, values in items:
            self._check_locale(locale, field="translations")
            if not isinstance(values, Mapping):
                raise ValidationError(
                    f"Translation for {locale!r} must be an object", field="translations"
                )
            normalized.setdefault(locale, {}).update(values)
        return normalized

    def _partition(
        self,
        data: Mapping[str, Any] | None,
        translations: Translations,
    ) -> tuple[dict[str, Any], dict[str, dict[str, Any]]]:
        """Validate a write payload and split it into base and per-locale values.

        Translatable values given in ``data`` belong to the default locale;
        an explicit translation for that locale wins over them.
        """
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ValidationError("data must be an object", field="data")

        base: dict[str, Any] = {}
        translated: dict[str, dict[str, Any]] = {}
        default_locale = self.settings.i18n.default_locale

        for key, value in data.items():
            field = self._field(key)
            typed = validate(field, value)
            if field.translatable:
                translated.setdefault(default_locale, {})[key] = typed
            else:
                base[key] = typed

        for locale, values in self._normalize_translations(translations).items():
            target = translated.setdefault(locale, {})
            for key, value in values.items():
                field = self._field(key)
                if not field.translatable:
                    raise ValidationError(
                        f'"{field.display_name}" is not translatable', field=key
                    )
                target[key] = validate(field, value)

        return base, translated

    def _check_required(self, base: dict[str, Any], translated: dict[str, dict[str, Any]]) -> None:
        for field in self.content_type.fields:
            if not field.required:
                continue
            if field.translatable:
                present = any(values.get(field.name) is not None for values in translated.values())
            else:
                present = base.get(field.name) is not None
            if not present:
                raise ValidationError(
                    f'Required field "{field.display_name}" is missing', field=field.name
                )

    def _select(
        self,
        filters: Mapping[str, Any] | None,
        locale: str | None,
        publication_state: str | None,
    ) -> Select:
        stmt = select(ContentEntry).where(ContentEntry.content_type_id == self.content_type.id)
        if publication_state == LIVE:
            stmt = stmt.where(ContentEntry.status == Status.PUBLISHED.value)

        conditions: list[ColumnElement] = []
        for name, spec in (filters or {}).items():
            conditions.extend(self._filter_conditions(name, spec, locale))
        if conditions:
            stmt = stmt.where(*conditions)
        return stmt

    async def _count(self, stmt: Select) -> int:
        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        result = await execute_or_raise(self.db_session, self.entity, count_stmt)
        return result.scalar_one()

    def _filter_conditions(self, name: str, spec: Any, locale: str | None) -> list[ColumnElement]:
        operators = normalize_filter(spec)

        if name in NATIVE_COLUMNS:
            column = NATIVE_COLUMNS[name]
            return [
                build_condition(column, op, self._operand(name, op, value, self._native_converter(name)))
                for op, value in operators.items()
            ]

        field = self._field(name)
        convert = self._field_converter(field)
        typed = [(op, self._operand(name, op, value, convert)) for op, value in operators.items()]

        if not field.translatable:
            expr = document_path(ContentEntry.base_data, field)
            return [build_condition(expr, op, value) for op, value in typed]
        return [self._translation_condition(field, op, value, locale) for op, value in typed]

    def _translation_condition(
        self,
        field: ContentTypeField,
        op: str,
        value: Any,
        locale: str | None,
    ) -> ColumnElement:
        """Match translation rows of the locale, or of any locale when none is given.

        Negated operators become "no matching translation row", so entries
        without a translation for the locale satisfy them.
        """
        expr = document_path(ContentTranslation.translated_data, field)

        def translated(condition: ColumnElement) -> ColumnElement:
            subquery = select(ContentTranslation.id).where(
                ContentTranslation.entry_id == ContentEntry.id, condition
            )
            if locale is not None:
                subquery = subquery.where(ContentTranslation.language_code == locale)
            return subquery.exists()

        if op == EQ and value is None:
            op, value = NULL, True
        if op == NULL:
            present = translated(expr.is_not(None))
            return not_(present) if value else present
        if op == NE and value is None:
            return translated(expr.is_not(None))
        if op in NEGATIONS:
            return not_(translated(positive_condition(expr, NEGATIONS[op], value)))
        return translated(positive_condition(expr, op, value))

    @staticmethod
    def _operand(name: str, op: str, value: Any, convert: Callable[[Any], Any]) -> Any:
        if op == NULL:
            return coerce_bool(value)
        if op in LIST_OPERATORS:
            return [convert(item) for item in _as_list(value)]
        if op in TEXT_OPERATORS:
            if not isinstance(value, str):
                raise ValidationError(f"{op} expects a text value", field=name)
            return value
        return None if value is None else convert(value)

    @staticmethod
    def _field_converter(field: ContentTypeField) -> Callable[[Any], Any]:
        if field.field_type in TEXT_TYPES:
            return str
        return lambda value: coerce(field, value, lenient=True)

    @staticmethod
    def _native_converter(name: str) -> Callable[[Any], Any]:
        if name == "id":

            def convert_id(value: Any) -> UUID:
                parsed = _parse_uuid(value)
                if parsed is None:
                    raise ValidationError(f"{value!r} is not a valid id", field="id")
                return parsed

            return convert_id
        if name == "status":
            return lambda value: parse_status(value).value
        return lambda value: _parse_datetime(name, value)

    def _apply_sort(self, stmt: Select, sort: list[str] | str | None, locale: str | None) -> Select:
        order_by = []
        translation = None

        for name, descending in parse_sort(sort):
            if name in NATIVE_COLUMNS:
                expr = NATIVE_COLUMNS[name]
            else:
                field = self._field(name)
                if field.translatable:
                    if locale is None:
                        raise ValidationError(
                            f"Sorting on translatable field {name!r} requires a locale",
                            field="sort",
                        )
                    if translation is None:
                        translation = aliased(ContentTranslation)
                        stmt = stmt.outerjoin(
                            translation,
                            and_(
                                translation.entry_id == ContentEntry.id,
                                translation.language_code == locale,
                            ),
                        )
                    expr = document_path(translation.translated_data, field)
                else:
                    expr = document_path(ContentEntry.base_data, field)
            order_by.append(expr.desc() if descending else expr.asc())

        if not order_by:
            order_by.append(ContentEntry.created_at.desc())
        order_by.append(ContentEntry.id.asc())
        return stmt.order_by(*order_by)


async def get_content_store(
    db_session: AsyncSession,
    content_type_name: str,
    authorizer: Authorizer = DENY_ALL,
    settings: Settings | None = None,
) -> ContentStore:
    """Build a store for the named content type.

    Raises:
        NotFoundError: the content type does not exist
    """
    content_type = await schema_service.get_content_type(db_session, content_type_name)
    return ContentStore(db_session, content_type, authorizer=authorizer, settings=settings)
