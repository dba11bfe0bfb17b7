"""Section type registry: an explicit uid -> storage dispatch table.

Each section variant is registered once with the model that owns its
table. The page composition service never touches a section table
directly; it resolves a ``SectionStorage`` here and calls
``get/create/update/delete`` on it.

    registry = SectionTypeRegistry()
    registry.register("sections.quote", QuoteSection, "Quote", icon="quote")
    await registry.sync_section_types(db_session)
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from mosaic.db.base import Base
from mosaic.db.models import (
    BottomActionsSection,
    ContactSection,
    FeatureColumnsSection,
    FeatureRowsSection,
    HeroSection,
    LargeVideoSection,
    LeadFormSection,
    PricingSection,
    RichTextSection,
    SectionTypeDefinition,
    TeamSection,
    TechnologySection,
    TestimonialsSection,
)
from mosaic.db.session import commit_or_raise
from mosaic.lib.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Managed by the storage layer, never accepted from payloads
_MANAGED_COLUMNS = frozenset({"id", "created_at", "updated_at"})


class SectionStorage:
    """CRUD against the table of one section variant."""

    def __init__(self, uid: str, model: type[Base]) -> None:
        self.uid = uid
        self.model = model
        self.columns = frozenset(
            attr.key for attr in inspect(model).column_attrs if attr.key not in _MANAGED_COLUMNS
        )

    @property
    def table_name(self) -> str:
        return self.model.__tablename__

    def clean(self, data: dict[str, Any] | None) -> dict[str, Any]:
        """Reject keys that are not columns of this variant."""
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError("Section data must be an object", field="data")
        unknown = sorted(set(data) - self.columns)
        if unknown:
            raise ValidationError(
                f"Unknown field {unknown[0]!r} for section type {self.uid!r}", field=unknown[0]
            )
        return data

    async def get(self, db_session: AsyncSession, section_id: UUID) -> Base | None:
        return await db_session.get(self.model, section_id)

    async def create(self, db_session: AsyncSession, data: dict[str, Any]) -> Base:
        """Add a new instance to the session and flush it; the caller commits."""
        instance = self.model(**self.clean(data))
        db_session.add(instance)
        await db_session.flush()
        return instance

    async def update(self, db_session: AsyncSession, instance: Base, data: dict[str, Any]) -> Base:
        for key, value in self.clean(data).items():
            setattr(instance, key, value)
        await db_session.flush()
        return instance

    async def delete(self, db_session: AsyncSession, instance: Base) -> None:
        await db_session.delete(instance)
        await db_session.flush()

    def to_dict(self, instance: Base) -> dict[str, Any]:
        return {key: getattr(instance, key) for key in sorted(self.columns)}


@dataclass(frozen=True)
class SectionVariant:
    uid: str
    storage: SectionStorage
    display_name: str
    category: str = "sections"
    icon: str | None = None
    description: str | None = None


class SectionTypeRegistry:
    """Registered section variants keyed by uid."""

    def __init__(self) -> None:
        self._variants: dict[str, SectionVariant] = {}

    def register(
        self,
        uid: str,
        model: type[Base],
        display_name: str,
        category: str = "sections",
        icon: str | None = None,
        description: str | None = None,
    ) -> SectionVariant:
        if uid in self._variants:
            raise ValueError(f"Section type {uid!r} is already registered")
        variant = SectionVariant(
            uid=uid,
            storage=SectionStorage(uid, model),
            display_name=display_name,
            category=category,
            icon=icon,
            description=description,
        )
        self._variants[uid] = variant
        return variant

    def unregister(self, uid: str) -> None:
        self._variants.pop(uid, None)

    def is_registered(self, uid: str) -> bool:
        return uid in self._variants

    @property
    def variants(self) -> list[SectionVariant]:
        return list(self._variants.values())

    def resolve_storage(self, uid: str) -> SectionStorage:
        """Storage handle for ``uid``.

        Raises:
            NotFoundError: no variant is registered under ``uid``
        """
        variant = self._variants.get(uid)
        if variant is None:
            raise NotFoundError("Section type", uid)
        return variant.storage

    async def get_section_types(self, db_session: AsyncSession) -> list[SectionTypeDefinition]:
        """Active catalog rows that have registered storage, by category then name."""
        result = await db_session.execute(
            select(SectionTypeDefinition)
            .where(SectionTypeDefinition.active.is_(True))
            .order_by(SectionTypeDefinition.category.asc(), SectionTypeDefinition.display_name.asc())
        )
        return [row for row in result.scalars().all() if row.uid in self._variants]

    async def get_section_type(self, db_session: AsyncSession, uid: str) -> SectionTypeDefinition:
        """Catalog row for ``uid``.

        Raises:
            NotFoundError: ``uid`` is unregistered, missing from the catalog or inactive
        """
        if uid not in self._variants:
            raise NotFoundError("Section type", uid)
        result = await db_session.execute(
            select(SectionTypeDefinition).where(SectionTypeDefinition.uid == uid)
        )
        definition = result.scalar_one_or_none()
        if definition is None or not definition.active:
            raise NotFoundError("Section type", uid)
        return definition

    async def sync_section_types(self, db_session: AsyncSession) -> list[SectionTypeDefinition]:
        """Upsert a catalog row for every registered variant.

        Labels and table names are refreshed; an operator-set ``active``
        flag is left alone.
        """
        result = await db_session.execute(select(SectionTypeDefinition))
        existing = {row.uid: row for row in result.scalars().all()}

        synced = []
        for variant in self._variants.values():
            row = existing.get(variant.uid)
            if row is None:
                row = SectionTypeDefinition(uid=variant.uid, active=True)
                db_session.add(row)
                logger.info("Registered section type %s", variant.uid)
            row.display_name = variant.display_name
            row.category = variant.category
            row.icon = variant.icon
            row.description = variant.description
            row.table_name = variant.storage.table_name
            synced.append(row)

        await commit_or_raise(db_session, "section type")
        return synced

    def register_default_sections(self) -> None:
        """Register the built-in section variants."""
        for uid, model, display_name, icon in (
            ("sections.hero", HeroSection, "Hero", "landscape"),
            ("sections.feature_rows", FeatureRowsSection, "Feature Rows", "rows"),
            ("sections.feature_columns", FeatureColumnsSection, "Feature Columns", "columns"),
            ("sections.testimonials", TestimonialsSection, "Testimonials", "quote"),
            ("sections.rich_text", RichTextSection, "Rich Text", "paragraph"),
            ("sections.pricing", PricingSection, "Pricing", "tag"),
            ("sections.lead_form", LeadFormSection, "Lead Form", "envelope"),
            ("sections.large_video", LargeVideoSection, "Large Video", "play"),
            ("sections.bottom_actions", BottomActionsSection, "Bottom Actions", "cursor"),
            ("sections.team", TeamSection, "Team", "users"),
            ("sections.technology", TechnologySection, "Technology", "cpu"),
            ("sections.contact", ContactSection, "Contact", "phone"),
        ):
            self.register(uid, model, display_name, icon=icon)


def build_default_registry() -> SectionTypeRegistry:
    registry = SectionTypeRegistry()
    registry.register_default_sections()
    return registry


# Global registry used when callers do not pass their own
section_registry = build_default_registry()


def section_type_to_dict(definition: SectionTypeDefinition) -> dict[str, Any]:
    return {
        "uid": definition.uid,
        "display_name": definition.display_name,
        "category": definition.category,
        "icon": definition.icon,
        "description": definition.description,
        "active": definition.active,
    }
