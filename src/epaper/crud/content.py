"""Read-only queries against the content store: articles, categories, branding"""

from datetime import datetime

from sqlmodel import Session, select

from epaper.crud.models import Article, ArticleStatusEnum, Category, SiteSettings


def get_published(
    session: Session,
    start: datetime | None = None,
    end: datetime | None = None,
    category_ids: set[str] | None = None,
    limit: int = 30,
    ) -> list[Article]:
    """Published articles in [start, end), most recent first, capped at limit.

    The category filter keeps articles whose category_ids intersect it and is
    applied before the limit so a filtered edition is still filled up to limit.
    Category ids live in a JSON column, so that filter runs in Python.
    """
    stmt = select(Article).where(Article.status == ArticleStatusEnum.published)
    if start is not None:
        stmt = stmt.where(Article.publish_date >= start)
    if end is not None:
        stmt = stmt.where(Article.publish_date < end)
    stmt = stmt.order_by(Article.publish_date.desc(), Article.id.asc())

    if not category_ids:
        return list(session.exec(stmt.limit(limit)).all())

    selected = []
    for article in session.exec(stmt):
        if any(cid in category_ids for cid in article.category_ids or []):
            selected.append(article)
            if len(selected) == limit:
                break
    return selected


def get_article(session: Session, article_id: str) -> Article | None:
    return session.get(Article, article_id)


def list_categories(session: Session) -> list[Category]:
    """Return all categories ordered by name."""
    return list(session.exec(select(Category).order_by(Category.name)).all())


def get_site_settings(session: Session) -> SiteSettings | None:
    """Return the first settings row, or None when branding was never configured."""
    return session.exec(select(SiteSettings).order_by(SiteSettings.id)).first()
