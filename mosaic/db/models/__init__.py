from mosaic.db.models.content_entry import ContentEntry, ContentTranslation
from mosaic.db.models.content_type import ContentType, ContentTypeField, FieldType
from mosaic.db.models.page import Page
from mosaic.db.models.page_section import DEFAULT_SECTION_FIELD, PageSectionLink
from mosaic.db.models.section_type import SectionTypeDefinition
from mosaic.db.models.sections import (
    BottomActionsSection,
    ContactSection,
    FeatureColumnsSection,
    FeatureRowsSection,
    HeroSection,
    LargeVideoSection,
    LeadFormSection,
    PricingSection,
    RichTextSection,
    TeamSection,
    TechnologySection,
    TestimonialsSection,
)

__all__ = [
    "BottomActionsSection",
    "ContactSection",
    "ContentEntry",
    "ContentTranslation",
    "ContentType",
    "ContentTypeField",
    "DEFAULT_SECTION_FIELD",
    "FeatureColumnsSection",
    "FeatureRowsSection",
    "FieldType",
    "HeroSection",
    "LargeVideoSection",
    "LeadFormSection",
    "Page",
    "PageSectionLink",
    "PricingSection",
    "RichTextSection",
    "SectionTypeDefinition",
    "TeamSection",
    "TechnologySection",
    "TestimonialsSection",
]
