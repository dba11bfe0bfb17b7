"""Storage tables for the built-in section variants.

Each variant owns its table; nothing here references ``pages``. Pages
reach these rows only through ``pages_sections``.
"""

from sqlalchemy import Boolean, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mosaic.db.base import Base, JsonDocument


class HeroSection(Base):
    __tablename__ = "components_sections_heroes"

    heading: Mapped[str | None] = mapped_column(String(500), nullable=True)
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    subtitle: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    buttons: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)
    picture_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    background_image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    small_text_with_link: Mapped[str | None] = mapped_column(Text, nullable=True)


class FeatureRowsSection(Base):
    __tablename__ = "components_sections_feature_rows"

    heading: Mapped[str | None] = mapped_column(String(500), nullable=True)
    subheading: Mapped[str | None] = mapped_column(Text, nullable=True)
    features: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)


class FeatureColumnsSection(Base):
    __tablename__ = "components_sections_feature_columns"

    heading: Mapped[str | None] = mapped_column(String(500), nullable=True)
    subheading: Mapped[str | None] = mapped_column(Text, nullable=True)
    columns: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)


class TestimonialsSection(Base):
    __tablename__ = "components_sections_testimonials"

    heading: Mapped[str | None] = mapped_column(String(500), nullable=True)
    subheading: Mapped[str | None] = mapped_column(Text, nullable=True)
    testimonials: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)
    logos: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)


class RichTextSection(Base):
    __tablename__ = "components_sections_rich_text"

    content: Mapped[str | None] = mapped_column(Text, nullable=True)


class PricingSection(Base):
    __tablename__ = "components_sections_pricing"

    heading: Mapped[str | None] = mapped_column(String(500), nullable=True)
    subheading: Mapped[str | None] = mapped_column(Text, nullable=True)
    plans: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)


class LeadFormSection(Base):
    __tablename__ = "components_sections_lead_form"

    heading: Mapped[str | None] = mapped_column(String(500), nullable=True)
    subheading: Mapped[str | None] = mapped_column(Text, nullable=True)
    submit_button_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    fields: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)


class LargeVideoSection(Base):
    __tablename__ = "components_sections_large_video"

    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    video_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)


class BottomActionsSection(Base):
    __tablename__ = "components_sections_bottom_actions"

    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    buttons: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)


class TeamSection(Base):
    __tablename__ = "components_sections_team"

    heading: Mapped[str | None] = mapped_column(String(500), nullable=True)
    subheading: Mapped[str | None] = mapped_column(Text, nullable=True)
    members: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)


class TechnologySection(Base):
    __tablename__ = "components_sections_technology"

    heading: Mapped[str | None] = mapped_column(String(500), nullable=True)
    subheading: Mapped[str | None] = mapped_column(Text, nullable=True)
    technologies: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)


class ContactSection(Base):
    __tablename__ = "components_sections_contact"

    heading: Mapped[str | None] = mapped_column(String(500), nullable=True)
    subheading: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    social_links: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)
    show_map: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    map_latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    map_longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
