"""Root test configuration: shared database fixtures, content factories, and artifact cleanup"""

import shutil
from datetime import datetime
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlmodel import SQLModel, Session

from epaper.crud.models import Article, ArticleStatusEnum, Category, SiteSettings


_PROJECT_ROOT = Path(__file__).parent.parent

_CLEANUP_FILES = ["epaper.db", "test.db"]
_CLEANUP_DIRS = ["storage", "dist"]


@pytest.fixture(scope="session", autouse=True)
def cleanup_artifacts():
    """Remove DB files and output directories created during the test session."""
    yield
    for name in _CLEANUP_FILES:
        p = _PROJECT_ROOT / name
        if p.exists():
            p.unlink()
    for name in _CLEANUP_DIRS:
        p = _PROJECT_ROOT / name
        if p.exists():
            shutil.rmtree(p)


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine with all tables created."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Fresh session per test; changes are not committed."""
    with Session(engine) as s:
        yield s


@pytest.fixture(name="make_article")
def make_article_fixture(session):
    """Factory persisting a published Article; keyword args override any field."""
    def _make(article_id: str, publish_date: datetime, **fields) -> Article:
        values = {
            "title": f"Title {article_id}",
            "content": f"<p>Body of {article_id}</p>",
            "slug": article_id,
            "status": ArticleStatusEnum.published,
        }
        values.update(fields)
        article = Article(id=article_id, publish_date=publish_date, **values)
        session.add(article)
        session.flush()
        return article
    return _make


@pytest.fixture(name="make_category")
def make_category_fixture(session):
    """Factory persisting a Category whose slug is its id."""
    def _make(category_id: str, name: str = None) -> Category:
        category = Category(id=category_id, name=name or category_id.title(), slug=category_id)
        session.add(category)
        session.flush()
        return category
    return _make


@pytest.fixture(name="site")
def site_fixture(session):
    """Branding row used for edition headers."""
    row = SiteSettings(id=1, site_name="The Morning Ledger", site_description="Daily edition")
    session.add(row)
    session.flush()
    return row
