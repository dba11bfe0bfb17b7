"""Entries of operator-defined content types and their per-locale rows."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mosaic.db.base import Base, JsonDocument


class ContentEntry(Base):
    """A content entry; ``base_data`` holds only non-translatable values."""

    __tablename__ = "content_entries"

    content_type_id: Mapped[UUID] = mapped_column(
        ForeignKey("content_types.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft", index=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    base_data: Mapped[dict] = mapped_column(JsonDocument, nullable=False, default=dict)

    translations: Mapped[list["ContentTranslation"]] = relationship(
        "ContentTranslation",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="ContentTranslation.language_code",
        lazy="selectin",
    )


class ContentTranslation(Base):
    """Translatable values of one entry in one language."""

    __tablename__ = "content_translations"
    __table_args__ = (
        UniqueConstraint("entry_id", "language_code", name="uq_content_translation_locale"),
    )

    entry_id: Mapped[UUID] = mapped_column(
        ForeignKey("content_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    entry: Mapped[ContentEntry] = relationship("ContentEntry", back_populates="translations")

    language_code: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    translated_data: Mapped[dict] = mapped_column(JsonDocument, nullable=False, default=dict)
