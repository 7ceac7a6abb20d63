"""Pipeline step functions: generate, render, publish, and download orchestration"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from sqlmodel import Session

from epaper.config import Settings
from epaper.core.aggregate import aggregate, primary_category
from epaper.core.assemble import assemble
from epaper.core.compose import branding_from, compose, compose_article
from epaper.core.errors import DuplicateEditionError, GenerationInProgressError
from epaper.core.markup import render_markup
from epaper.core.models import Aggregation, DocumentModel, PublishMetadata
from epaper.core.publish import (
    ObjectStore, download_only, encode_png, make_thumbnail, pdf_filename, persist_and_publish,
)
from epaper.core.raster import (
    ImageLoader, PageRenderer, PillowPageRenderer, RasterPage, RenderSurface, rasterize_pages,
)
from epaper.crud.archive import get_by_date
from epaper.crud.content import get_article, get_site_settings, list_categories
from epaper.crud.models import ArchiveEntry


logger = logging.getLogger(__name__)

_generation_lock = threading.Lock()

ARTICLE_FORMATS = ("pdf", "png")


@contextmanager
def single_flight():
    """Hold the process-wide generation lock; a concurrent attempt fails instead of waiting."""
    if not _generation_lock.acquire(blocking=False):
        raise GenerationInProgressError("An edition is already being generated")
    try:
        yield
    finally:
        _generation_lock.release()


@dataclass
class Generation:
    """One previewable edition; discarded after render or cancel."""
    aggregation: Aggregation
    document: DocumentModel
    markup: str


def default_renderer(settings: Settings) -> PageRenderer:
    return PillowPageRenderer(settings.font_path, ImageLoader(timeout=settings.image_timeout))


def run_generate(
    session: Session,
    settings: Settings,
    day: date,
    category_ids: list[str] | None = None,
    limit: int | None = None,
    ) -> Generation:
    """Aggregate and compose the edition for day. Raises EmptySelectionError when nothing qualifies."""
    selection = aggregate(
        session, day, category_ids,
        limit=limit or settings.article_limit,
        fallback_to_latest=settings.fallback_to_latest,
    )
    branding = branding_from(get_site_settings(session), settings.locale)
    document = compose(
        selection.articles, selection.by_category, list_categories(session), branding,
        selection.day, settings.locale, settings.max_category_pages,
    )
    logger.info("Composed %d page(s) for %s", len(document.pages), document.day.isoformat())
    return Generation(aggregation=selection, document=document, markup=render_markup(document))


def _rasterize(document: DocumentModel, settings: Settings, renderer: PageRenderer | None) -> list[RasterPage]:
    with RenderSurface(document, renderer or default_renderer(settings), settings.raster_scale) as surface:
        return rasterize_pages(surface)


def run_render(
    document: DocumentModel,
    settings: Settings,
    renderer: PageRenderer | None = None,
    thumbnail: bool = False,
    ) -> tuple[bytes, bytes | None]:
    """Rasterize every page in order and assemble the PDF. Returns (pdf, thumbnail or None)."""
    rasters = _rasterize(document, settings, renderer)
    pdf = assemble(rasters, settings.jpeg_quality, title=f"{document.site_name} - {document.date_label}")
    thumb = make_thumbnail(rasters[0]) if thumbnail else None
    return pdf, thumb


def run_publish(
    session: Session,
    store: ObjectStore,
    settings: Settings,
    generation: Generation,
    renderer: PageRenderer | None = None,
    ) -> ArchiveEntry:
    """Render the generation and publish it as a new archive entry."""
    document = generation.document
    if settings.duplicate_policy == "reject" and get_by_date(session, document.day) is not None:
        raise DuplicateEditionError(f"A published edition already exists for {document.day.isoformat()}")

    pdf, thumb = run_render(document, settings, renderer, thumbnail=settings.thumbnail)
    metadata = PublishMetadata(day=document.day, title=f"{document.site_name} - {document.date_label}")
    return persist_and_publish(session, store, pdf, metadata, thumb, settings.duplicate_policy)


def run_download(
    settings: Settings,
    generation: Generation,
    dest_dir: Path,
    renderer: PageRenderer | None = None,
    ) -> Path:
    """Render the generation and write the PDF locally."""
    pdf, _ = run_render(generation.document, settings, renderer)
    return download_only(pdf, pdf_filename(generation.document.day), dest_dir)


def run_article(
    session: Session,
    settings: Settings,
    article_id: str,
    dest_dir: Path,
    renderer: PageRenderer | None = None,
    fmt: str = "pdf",
    ) -> Path:
    """Printable single-article page as a PDF or a PNG snapshot.

    Raises ValueError if the article does not exist or fmt is not 'pdf' or 'png'.
    """
    if fmt not in ARTICLE_FORMATS:
        raise ValueError(f"Unsupported format '{fmt}' (expected one of {', '.join(ARTICLE_FORMATS)})")
    article = get_article(session, article_id)
    if article is None:
        raise ValueError(f"Article {article_id} not found")
    names = {c.id: c.name for c in list_categories(session)}
    document = compose_article(
        article,
        names.get(primary_category(article)),
        branding_from(get_site_settings(session), settings.locale),
        settings.locale,
    )
    name = article.slug or article.id
    if fmt == "png":
        (raster,) = _rasterize(document, settings, renderer)
        return download_only(encode_png(raster), f"{name}.png", dest_dir)
    pdf, _ = run_render(document, settings, renderer)
    return download_only(pdf, f"{name}.pdf", dest_dir)
