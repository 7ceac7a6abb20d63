"""Intermediate data models for the aggregate, compose, and publish stages"""

from dataclasses import dataclass
from datetime import date
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from epaper.crud.models import Article, ArchiveStatusEnum


class BrandingSettings(BaseModel):
    """Site identity printed in mastheads and footers."""
    site_name: str
    logo: Optional[str] = None
    description: Optional[str] = None


@dataclass
class Aggregation:
    """Selected articles (most recent first) and their primary-category groups; not persisted."""
    day: date
    articles: list[Article]
    by_category: dict[str, list[Article]]   # insertion order = first-seen order in articles


class ImageSlot(BaseModel):
    """An image position on a page; uri None renders the placeholder box."""
    uri: Optional[str] = None
    credit: Optional[str] = None
    placeholder: str = ""


class ArticleCard(BaseModel):
    article_id: str
    title: str
    text: str = ""
    image: Optional[ImageSlot] = None


class HeadlineItem(BaseModel):
    category: str
    title: str


# --- blocks ---

class MastheadBlock(BaseModel):
    kind: Literal["masthead"] = "masthead"
    site_name: str
    logo: Optional[str] = None
    description: Optional[str] = None
    date_label: str
    section_label: str = ""
    page_label: str
    compact: bool = False


class HeadlineStripBlock(BaseModel):
    kind: Literal["headline_strip"] = "headline_strip"
    items: list[HeadlineItem]


class LeadArticleBlock(BaseModel):
    kind: Literal["lead_article"] = "lead_article"
    card: ArticleCard


class SecondaryGridBlock(BaseModel):
    kind: Literal["secondary_grid"] = "secondary_grid"
    items: list[ArticleCard]


class SidebarBlock(BaseModel):
    kind: Literal["sidebar"] = "sidebar"
    title: str
    items: list[ArticleCard]


class CategoryHeaderBlock(BaseModel):
    kind: Literal["category_header"] = "category_header"
    name: str


class CategoryGridBlock(BaseModel):
    kind: Literal["category_grid"] = "category_grid"
    items: list[ArticleCard]


class AdSpaceBlock(BaseModel):
    kind: Literal["ad_space"] = "ad_space"
    label: str


class FooterBlock(BaseModel):
    kind: Literal["footer"] = "footer"
    site_name: str
    page_label: str
    date_label: str


class TextBlock(BaseModel):
    """One paragraph of reading-view body text (rich text, already sanitized)."""
    kind: Literal["text"] = "text"
    text: str


class MediaBlock(BaseModel):
    """One gallery image in the reading view; credit is optional."""
    kind: Literal["media"] = "media"
    uri: str
    credit: Optional[str] = None


Block = Annotated[
    Union[
        MastheadBlock, HeadlineStripBlock, LeadArticleBlock, SecondaryGridBlock,
        SidebarBlock, CategoryHeaderBlock, CategoryGridBlock, AdSpaceBlock,
        FooterBlock, TextBlock, MediaBlock,
    ],
    Field(discriminator="kind"),
]


class Page(BaseModel):
    """One fixed-size A4 page of the edition."""
    kind: Literal["front", "category", "article"]
    number: int
    title: str
    blocks: list[Block]


class DocumentModel(BaseModel):
    """The composed edition; lives for one generation request only."""
    day: date
    date_label: str
    site_name: str
    locale: str
    pages: list[Page]


class PublishMetadata(BaseModel):
    day: date
    title: str
    status: ArchiveStatusEnum = ArchiveStatusEnum.published
