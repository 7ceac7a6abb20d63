"""Shared fixtures for core unit tests"""

from datetime import date, datetime

import pytest
from PIL import Image

from epaper.core.compose import compose
from epaper.core.models import BrandingSettings
from epaper.core.raster import PageRenderer
from epaper.crud.models import Article, ArticleStatusEnum, Category


DAY = date(2026, 10, 18)


class SolidRenderer(PageRenderer):
    """Paints each page a flat colour keyed by page number and records the call order."""

    COLOURS = [(200, 30, 30), (30, 160, 30), (30, 30, 200), (220, 180, 20), (150, 40, 160)]

    def __init__(self):
        self.calls: list[int] = []

    @classmethod
    def colour_for(cls, number: int) -> tuple[int, int, int]:
        return cls.COLOURS[(number - 1) % len(cls.COLOURS)]

    def render_to_bitmap(self, page, size):
        self.calls.append(page.number)
        return Image.new("RGB", size, self.colour_for(page.number))


def _article(article_id: str, hour: int = 12, category_ids=None, **fields) -> Article:
    values = {
        "title": f"Title {article_id}",
        "content": f"<p>Body of {article_id}</p>",
        "status": ArticleStatusEnum.published,
        "category_ids": category_ids or [],
    }
    values.update(fields)
    return Article(id=article_id, publish_date=datetime(DAY.year, DAY.month, DAY.day, hour), **values)


@pytest.fixture(name="detached")
def detached_fixture():
    """Factory for Articles that are never added to a session."""
    return _article


@pytest.fixture(name="branding")
def branding_fixture():
    return BrandingSettings(site_name="The Morning Ledger", description="Daily edition")


@pytest.fixture(name="renderer")
def renderer_fixture():
    return SolidRenderer()


@pytest.fixture(name="edition")
def edition_fixture(branding):
    """Three-page English edition: front page plus two category pages."""
    articles = [
        _article("a1", 10, ["world"]),
        _article("a2", 9, ["sport"]),
        _article("a3", 8, ["world"]),
    ]
    groups = {"world": [articles[0], articles[2]], "sport": [articles[1]]}
    categories = [Category(id="world", name="World", slug="world"), Category(id="sport", name="Sport", slug="sport")]
    return compose(articles, groups, categories, branding, DAY, "en")
