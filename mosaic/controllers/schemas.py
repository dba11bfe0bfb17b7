"""Request bodies accepted by the API routers."""

from typing import Any

from pydantic import BaseModel, Field


class FieldDefinitionIn(BaseModel):
    name: str
    display_name: str | None = None
    type: str = "text"
    translatable: bool = False
    required: bool = False
    min_length: int | None = None
    max_length: int | None = None
    min_value: float | None = None
    max_value: float | None = None
    display_order: int | None = None


class ContentTypeIn(BaseModel):
    name: str
    display_name: str
    singular_name: str | None = None
    plural_name: str | None = None
    description: str | None = None
    fields: list[FieldDefinitionIn] = Field(default_factory=list)


class EntryIn(BaseModel):
    """``translations`` is ``{locale: values}`` or ``[{language_code, data}]``."""

    data: dict[str, Any] = Field(default_factory=dict)
    translations: dict[str, dict[str, Any]] | list[dict[str, Any]] | None = None


class ActionIn(BaseModel):
    action: str


class PageIn(BaseModel):
    slug: str
    title: str
    short_name: str | None = None
    metadata: dict[str, Any] | None = None
    locale: str | None = None


class PageUpdateIn(BaseModel):
    slug: str | None = None
    title: str | None = None
    short_name: str | None = None
    metadata: dict[str, Any] | None = None
    locale: str | None = None


class SectionIn(BaseModel):
    section_type: str
    data: dict[str, Any] = Field(default_factory=dict)
    order: int | None = None
    field: str | None = None


class SectionUpdateIn(BaseModel):
    section_type: str
    data: dict[str, Any] = Field(default_factory=dict)


class ReorderItemIn(BaseModel):
    link_id: str
    order: int


class ReorderIn(BaseModel):
    orders: list[ReorderItemIn]
