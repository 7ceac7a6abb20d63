"""Unit tests for crud/content.py"""

from datetime import datetime, timedelta

from epaper.crud.content import get_article, get_published, get_site_settings, list_categories
from epaper.crud.models import ArticleStatusEnum


NOON = datetime(2026, 10, 18, 12)


def test_get_published_orders_newest_first_then_id(session, make_article):
    make_article("b", NOON)
    make_article("a", NOON)
    make_article("c", NOON + timedelta(minutes=1))
    assert [a.id for a in get_published(session)] == ["c", "a", "b"]


def test_get_published_window_is_half_open(session, make_article):
    make_article("start", NOON)
    make_article("end", NOON + timedelta(hours=1))
    result = get_published(session, NOON, NOON + timedelta(hours=1))
    assert [a.id for a in result] == ["start"]


def test_get_published_skips_drafts_and_archived(session, make_article):
    make_article("p", NOON)
    make_article("d", NOON, status=ArticleStatusEnum.draft)
    make_article("x", NOON, status=ArticleStatusEnum.archived)
    assert [a.id for a in get_published(session)] == ["p"]


def test_get_published_limit(session, make_article):
    for i in range(8):
        make_article(f"a{i}", NOON + timedelta(minutes=i))
    assert len(get_published(session, limit=5)) == 5


def test_get_published_category_filter_matches_any_category(session, make_article):
    make_article("primary", NOON, category_ids=["world"])
    make_article("secondary", NOON, category_ids=["sport", "world"])
    make_article("other", NOON, category_ids=["sport"])
    assert {a.id for a in get_published(session, category_ids={"world"})} == {"primary", "secondary"}


def test_get_article(session, make_article):
    make_article("a", NOON, gallery_images=["1.jpg"], category_ids=["world"])
    article = get_article(session, "a")
    assert article.gallery_images == ["1.jpg"]
    assert article.category_ids == ["world"]
    assert get_article(session, "missing") is None


def test_list_categories_by_name(session, make_category):
    make_category("z", "Alpha")
    make_category("a", "Zulu")
    assert [c.name for c in list_categories(session)] == ["Alpha", "Zulu"]


def test_get_site_settings(session, site):
    assert get_site_settings(session).site_name == "The Morning Ledger"


def test_get_site_settings_absent(session):
    assert get_site_settings(session) is None
