"""Database table definitions for content-store inputs and archive entries"""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, DateTime, String, Text
from sqlmodel import Field, SQLModel


class ArticleStatusEnum(str, Enum):
    """Editorial states of an article; only published ones reach an edition"""
    draft = "draft"
    published = "published"
    archived = "archived"


class ArchiveStatusEnum(str, Enum):
    """States of a stored edition"""
    draft = "draft"
    published = "published"


class Category(SQLModel, table=True):
    """A content category used for grouping and labelling"""
    __tablename__ = "categories"
    id: str = Field(primary_key=True)
    name: str = Field(..., nullable=False)
    slug: str = Field(..., index=True, unique=True, nullable=False)
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))


class Article(SQLModel, table=True):
    """A news article; body is pre-sanitized rich text and never re-validated here"""
    __tablename__ = "articles"
    id: str = Field(primary_key=True)
    title: str = Field(..., nullable=False)
    content: str = Field(default="", sa_column=Column(Text, nullable=False))
    excerpt: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    slug: Optional[str] = Field(default=None, index=True)
    featured_image: Optional[str] = Field(default=None, description="Lead image URI")
    image_credit: Optional[str] = Field(default=None)
    gallery_images: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    gallery_credits: List[Optional[str]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    category_ids: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False),
                                    description="Ordered category ids; the first is the primary category")
    status: ArticleStatusEnum = Field(default=ArticleStatusEnum.draft, sa_column=Column(String(16), index=True, nullable=False))
    publish_date: datetime = Field(..., sa_column=Column(DateTime(timezone=False), index=True, nullable=False))
    views: int = Field(default=0, nullable=False)


class SiteSettings(SQLModel, table=True):
    """Branding used verbatim in edition headers and footers"""
    __tablename__ = "site_settings"
    id: int = Field(default=1, primary_key=True)
    site_name: str = Field(..., nullable=False)
    logo: Optional[str] = Field(default=None)
    site_description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))


class ArchiveEntry(SQLModel, table=True):
    """The durable record of one published edition"""
    __tablename__ = "epapers"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str = Field(..., nullable=False)
    publish_date: date = Field(..., index=True, nullable=False)
    pdf_url: str = Field(..., sa_column=Column(Text, nullable=False))
    thumbnail: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    status: ArchiveStatusEnum = Field(default=ArchiveStatusEnum.draft, sa_column=Column(String(16), index=True, nullable=False))
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
    updated_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
