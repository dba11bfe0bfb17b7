from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mosaic.db.base import Base


class SectionTypeDefinition(Base):
    """Catalog row for a section variant, e.g. ``sections.hero``."""

    __tablename__ = "section_types"

    uid: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="sections")
    icon: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    table_name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
