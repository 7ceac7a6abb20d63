"""Content selection: published articles for one day, grouped by primary category"""

import logging
from datetime import date, datetime, time, timedelta

from sqlmodel import Session

from epaper.core.errors import EmptySelectionError
from epaper.core.models import Aggregation
from epaper.crud.content import get_published
from epaper.crud.models import Article


logger = logging.getLogger(__name__)

UNCATEGORIZED = "uncategorized"
MIN_LIMIT, MAX_LIMIT = 5, 100


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open [start, end) window covering the calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def primary_category(article: Article) -> str:
    """First category id of the article, or the uncategorized sentinel."""
    return article.category_ids[0] if article.category_ids else UNCATEGORIZED


def group_by_category(articles: list[Article]) -> dict[str, list[Article]]:
    """Group articles under their primary category, keeping first-seen group order."""
    groups: dict[str, list[Article]] = {}
    for article in articles:
        groups.setdefault(primary_category(article), []).append(article)
    return groups


def aggregate(
    session: Session,
    day: date | datetime,
    category_ids: list[str] | set[str] | None = None,
    limit: int = 30,
    fallback_to_latest: bool = False,
    ) -> Aggregation:
    """Select up to limit published articles for day, most recent first.

    Empty or None category_ids means all categories. Raises EmptySelectionError
    when nothing qualifies (after the optional latest-articles fallback).
    """
    if not MIN_LIMIT <= limit <= MAX_LIMIT:
        raise ValueError(f"limit must be between {MIN_LIMIT} and {MAX_LIMIT}, got {limit}")
    if isinstance(day, datetime):
        day = day.date()
    wanted = set(category_ids) if category_ids else None

    start, end = day_bounds(day)
    articles = get_published(session, start, end, wanted, limit)
    if not articles and fallback_to_latest:
        logger.info("No articles on %s; falling back to the latest published", day.isoformat())
        articles = get_published(session, None, None, wanted, limit)

    if not articles:
        raise EmptySelectionError(f"No published articles found for {day.isoformat()}")

    by_category = group_by_category(articles)
    logger.info("Selected %d article(s) in %d category group(s) for %s",
                len(articles), len(by_category), day.isoformat())
    return Aggregation(day=day, articles=articles, by_category=by_category)
