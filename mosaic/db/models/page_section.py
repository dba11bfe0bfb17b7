"""Junction rows placing polymorphic section instances on pages."""

from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from mosaic.db.base import Base

DEFAULT_SECTION_FIELD = "content_sections"


class PageSectionLink(Base):
    """Links a page to one section instance stored in its type's table.

    ``section_id`` is not a foreign key: it points into whichever table the
    section type registry maps ``section_type`` to.
    """

    __tablename__ = "pages_sections"
    __table_args__ = (
        Index("ix_pages_sections_page_order", "page_id", "display_order"),
        Index("ix_pages_sections_section", "section_type", "section_id", unique=True),
    )

    page_id: Mapped[UUID] = mapped_column(
        ForeignKey("pages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    section_id: Mapped[UUID] = mapped_column(nullable=False)
    section_type: Mapped[str] = mapped_column(String(100), nullable=False)
    field: Mapped[str] = mapped_column(String(100), nullable=False, default=DEFAULT_SECTION_FIELD)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
