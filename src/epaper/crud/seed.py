"""Bulk loading of content-store fixtures (categories, articles, settings) from a mapping"""

from datetime import datetime

from sqlmodel import Session

from epaper.crud.models import Article, ArticleStatusEnum, Category, SiteSettings


def _parse_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise ValueError(f"Invalid publish_date: {value!r}")


def load_seed(session: Session, data: dict) -> dict[str, int]:
    """Upsert settings, categories, and articles by primary key and commit.

    Expected keys: 'settings' (mapping), 'categories' (list), 'articles' (list).
    Returns per-kind counts. Raises ValueError on malformed entries.
    """
    counts = {"settings": 0, "categories": 0, "articles": 0}

    if data.get("settings"):
        session.merge(SiteSettings(id=1, **data["settings"]))
        counts["settings"] = 1

    for raw in data.get("categories") or []:
        session.merge(Category(**raw))
        counts["categories"] += 1

    for raw in data.get("articles") or []:
        raw = dict(raw)
        try:
            raw["publish_date"] = _parse_datetime(raw["publish_date"])
            raw["status"] = ArticleStatusEnum(raw.get("status", "published"))
        except (KeyError, ValueError) as e:
            raise ValueError(f"Invalid article {raw.get('id')!r}: {e}") from e
        session.merge(Article(**raw))
        counts["articles"] += 1

    session.commit()
    return counts
