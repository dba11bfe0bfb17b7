"""Operator-defined content schemas: content types and their fields."""

from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mosaic.db.base import Base


class FieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    EMAIL = "email"
    SLUG = "slug"
    DATE = "date"


TEXT_TYPES = frozenset({FieldType.TEXT, FieldType.TEXTAREA, FieldType.EMAIL, FieldType.SLUG})
NUMERIC_TYPES = frozenset({FieldType.NUMBER, FieldType.DECIMAL})


class ContentType(Base):
    """A named entity schema whose entries the content store manages."""

    __tablename__ = "content_types"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    singular_name: Mapped[str] = mapped_column(String(255), nullable=False)
    plural_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    fields: Mapped[list["ContentTypeField"]] = relationship(
        "ContentTypeField",
        back_populates="content_type",
        cascade="all, delete-orphan",
        order_by="ContentTypeField.display_order",
        lazy="selectin",
    )


class ContentTypeField(Base):
    """One typed attribute of a content type."""

    __tablename__ = "content_type_fields"
    __table_args__ = (
        UniqueConstraint("content_type_id", "name", name="uq_content_type_field_name"),
    )

    content_type_id: Mapped[UUID] = mapped_column(
        ForeignKey("content_types.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content_type: Mapped[ContentType] = relationship("ContentType", back_populates="fields")

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=FieldType.TEXT.value)

    translatable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Bounds (inclusive); length for text types, value for numeric types
    min_length: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_length: Mapped[int | None] = mapped_column(Integer, nullable=True)
    min_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_value: Mapped[float | None] = mapped_column(Float, nullable=True)

    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def field_type(self) -> FieldType:
        return FieldType(self.type)
