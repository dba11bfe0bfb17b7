from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from mosaic.db.base import Base, JsonDocument


class Page(Base):
    """A composable page; its sections live in per-type tables."""

    __tablename__ = "pages"

    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    short_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft", index=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # "metadata" is reserved on declarative classes
    page_metadata: Mapped[dict] = mapped_column("metadata", JsonDocument, nullable=False, default=dict)
    locale: Mapped[str] = mapped_column(String(10), nullable=False, default="pt", index=True)
