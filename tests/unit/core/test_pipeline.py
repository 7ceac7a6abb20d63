"""Unit tests for core/pipeline.py"""

import io
from datetime import date, datetime, timedelta

import pytest
from PIL import Image
from pypdf import PdfReader
from sqlmodel import select

from epaper.config import Settings
from epaper.core.errors import (
    DuplicateEditionError, EmptySelectionError, GenerationInProgressError, PublishError,
)
from epaper.core.pipeline import run_article, run_download, run_generate, run_publish, run_render, single_flight
from epaper.core.publish import LocalObjectStore, ObjectStore
from epaper.core.raster import page_pixels
from epaper.crud.models import ArchiveEntry


DAY = date(2026, 10, 18)
NOON = datetime(2026, 10, 18, 12)


@pytest.fixture(name="settings")
def settings_fixture():
    return Settings(locale="en", thumbnail=True)


@pytest.fixture(name="content")
def content_fixture(make_article, make_category, site):
    make_category("world", "World")
    make_category("sport", "Sport")
    for i in range(6):
        make_article(f"w{i}", NOON - timedelta(minutes=i), category_ids=["world"])
    for i in range(3):
        make_article(f"s{i}", NOON - timedelta(hours=1, minutes=i), category_ids=["sport"])


@pytest.fixture(name="store")
def store_fixture(tmp_path):
    return LocalObjectStore(tmp_path / "storage")


# --- single_flight ---

def test_single_flight_rejects_concurrent_generation():
    with single_flight():
        with pytest.raises(GenerationInProgressError):
            with single_flight():
                pass
    with single_flight():
        pass


def test_single_flight_released_after_error():
    with pytest.raises(RuntimeError):
        with single_flight():
            raise RuntimeError("boom")
    with single_flight():
        pass


# --- run_generate ---

def test_run_generate_builds_preview(session, settings, content):
    generation = run_generate(session, settings, DAY)
    assert len(generation.aggregation.articles) == 9
    assert [p.title for p in generation.document.pages] == ["The Morning Ledger", "World", "Sport"]
    assert generation.markup.count('class="page page-') == 3


def test_run_generate_category_filter(session, settings, content):
    generation = run_generate(session, settings, DAY, category_ids=["sport"])
    assert {a.id for a in generation.aggregation.articles} == {"s0", "s1", "s2"}
    assert len(generation.document.pages) == 2


def test_run_generate_empty_day(session, settings, content):
    with pytest.raises(EmptySelectionError):
        run_generate(session, settings, DAY + timedelta(days=1))


# --- run_render ---

def test_run_render_pdf_and_thumbnail(session, settings, content, renderer):
    generation = run_generate(session, settings, DAY)
    pdf, thumb = run_render(generation.document, settings, renderer, thumbnail=True)
    reader = PdfReader(io.BytesIO(pdf))
    assert len(reader.pages) == 3
    assert reader.metadata.title == "The Morning Ledger - Sunday, 18 October 2026"
    assert thumb.startswith(b"\xff\xd8")
    assert renderer.calls == [1, 2, 3]


# --- run_publish ---

def test_run_publish_records_entry(session, settings, content, renderer, store):
    generation = run_generate(session, settings, DAY)
    entry = run_publish(session, store, settings, generation, renderer)
    assert entry.title == "The Morning Ledger - Sunday, 18 October 2026"
    assert entry.publish_date == DAY
    assert entry.thumbnail is not None
    assert store.path_for("epapers/epaper-2026-10-18.pdf").exists()


def test_run_publish_duplicate_checked_before_render(session, settings, content, renderer, store):
    generation = run_generate(session, settings, DAY)
    run_publish(session, store, settings, generation, renderer)
    renderer.calls.clear()
    with pytest.raises(DuplicateEditionError):
        run_publish(session, store, settings, generation, renderer)
    assert renderer.calls == []


def test_run_publish_upload_failure_keeps_pdf(session, settings, content, renderer):
    class _Down(ObjectStore):
        def put(self, key, data, content_type):
            raise OSError("offline")

        def delete(self, key):
            pass

    generation = run_generate(session, settings, DAY)
    with pytest.raises(PublishError) as exc:
        run_publish(session, _Down(), settings, generation, renderer)
    assert exc.value.pdf.startswith(b"%PDF")
    assert session.exec(select(ArchiveEntry)).all() == []


# --- run_download / run_article ---

def test_run_download_writes_pdf_only(session, settings, content, renderer, tmp_path):
    generation = run_generate(session, settings, DAY)
    path = run_download(settings, generation, tmp_path, renderer)
    assert path.name == "epaper-2026-10-18.pdf"
    assert path.read_bytes().startswith(b"%PDF")
    assert session.exec(select(ArchiveEntry)).all() == []


def test_run_article_single_page(session, settings, content, renderer, tmp_path):
    path = run_article(session, settings, "w0", tmp_path, renderer)
    assert path.name == "w0.pdf"
    assert len(PdfReader(path).pages) == 1


def test_run_article_png_snapshot(session, settings, content, renderer, tmp_path):
    path = run_article(session, settings, "w0", tmp_path, renderer, fmt="png")
    assert path.name == "w0.png"
    with Image.open(path) as image:
        assert image.format == "PNG"
        assert image.size == page_pixels(settings.raster_scale)


def test_run_article_rejects_unknown_format(session, settings, content, tmp_path):
    with pytest.raises(ValueError, match="Unsupported format"):
        run_article(session, settings, "w0", tmp_path, fmt="gif")


def test_run_article_missing(session, settings, tmp_path):
    with pytest.raises(ValueError, match="not found"):
        run_article(session, settings, "nope", tmp_path)
