"""Pydantic models describing the Webflow Data API payloads."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _none_to_empty(value: object) -> object:
    return "" if value is None else value


class WebflowBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class PageSeo(WebflowBaseModel):
    title: str = ""
    description: str = ""

    _normalize = field_validator("title", "description", mode="before")(_none_to_empty)


class PageOpenGraph(WebflowBaseModel):
    title: str = ""
    description: str = ""

    _normalize = field_validator("title", "description", mode="before")(_none_to_empty)


class Page(WebflowBaseModel):
    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    site_id: str | None = Field(default=None, validation_alias=AliasChoices("siteId", "site_id"))
    title: str = ""
    slug: str = ""
    seo: PageSeo = Field(default_factory=PageSeo)
    open_graph: PageOpenGraph | None = Field(
        default=None, validation_alias=AliasChoices("openGraph", "open_graph")
    )
    archived: bool = False
    draft: bool = False

    _normalize = field_validator("title", "slug", mode="before")(_none_to_empty)


class Collection(WebflowBaseModel):
    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    display_name: str | None = Field(
        default=None, validation_alias=AliasChoices("displayName", "name")
    )
    slug: str | None = None


class CollectionList(WebflowBaseModel):
    collections: list[Collection] = Field(default_factory=list)


class CollectionItem(WebflowBaseModel):
    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    field_data: dict[str, object] = Field(
        default_factory=dict, validation_alias=AliasChoices("fieldData", "field_data")
    )
    is_archived: bool = Field(default=False, validation_alias=AliasChoices("isArchived"))
    is_draft: bool = Field(default=False, validation_alias=AliasChoices("isDraft"))


class Pagination(WebflowBaseModel):
    limit: int = 100
    offset: int = 0
    total: int | None = None


class CollectionItemList(WebflowBaseModel):
    items: list[CollectionItem] = Field(default_factory=list)
    pagination: Pagination | None = None

    @property
    def total(self) -> int | None:
        return self.pagination.total if self.pagination is not None else None


class ErrorResponse(WebflowBaseModel):
    message: str = Field(
        default="", validation_alias=AliasChoices("message", "msg", "err")
    )
    code: str | None = None

    @field_validator("code", mode="before")
    @classmethod
    def _stringify_code(cls, value: object) -> object:
        return None if value is None else str(value)
