"""CLI command implementations"""

from datetime import date, datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
import yaml
from sqlmodel import Session, SQLModel

from epaper.config import Settings, load_config
from epaper.core.errors import (
    DuplicateEditionError, EmptySelectionError, EpaperError, GenerationInProgressError, PublishError,
)
from epaper.core.pipeline import run_article, run_download, run_generate, run_publish, single_flight
from epaper.core.publish import LocalObjectStore, download_only, pdf_filename
from epaper.core.utils.log import setup_logging
from epaper.crud.archive import list_entries
from epaper.crud.database import init_db, make_engine
from epaper.crud.models import ArchiveStatusEnum
from epaper.crud.seed import load_seed


DateOption = Annotated[Optional[datetime], typer.Option("--date", formats=["%Y-%m-%d"], help="Edition date; defaults to today")]
CategoryOption = Annotated[Optional[list[str]], typer.Option("--category", help="Restrict to category id (repeatable)")]
LimitOption = Annotated[Optional[int], typer.Option("--limit", help="Max articles in the edition (5-100)")]


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config and logging with standard CLI error handling."""
    try:
        settings = load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))
    setup_logging(settings.log_level)
    return settings


def _day(value: datetime | None) -> date:
    return value.date() if value else date.today()


def _generate(session: Session, settings: Settings, day: date, categories, limit):
    """run_generate with the CLI's failure reporting."""
    try:
        return run_generate(session, settings, day, categories or None, limit)
    except EmptySelectionError as e:
        _fail(str(e))
    except (EpaperError, ValueError) as e:
        _fail("Generation failed", e)


def init_cmd(
    reset: Annotated[bool, typer.Option("--reset", help="Drop and recreate all tables")] = False,
    ):
    """Initialize database schema. Use --reset to clear existing data."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    if reset:
        SQLModel.metadata.drop_all(engine)
        typer.echo("Existing data cleared.")
    init_db(engine)
    typer.echo(f"Database initialized at: {settings.db_url}")


def load_cmd(
    path: Annotated[str, typer.Argument(help="YAML file with settings, categories and articles")],
    ):
    """Load content-store records from a YAML file (upsert by id)."""
    settings = _settings()
    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        _fail(f"Cannot read {path}", e)
    if not isinstance(data, dict):
        _fail(f"{path} must contain a mapping")

    engine = make_engine(settings.db_url)
    init_db(engine)
    try:
        with Session(engine) as session:
            counts = load_seed(session, data)
    except (ValueError, TypeError) as e:
        _fail("Load failed", e)
    typer.echo(
        f"Loaded {counts['categories']} categories, "
        f"{counts['articles']} articles, "
        f"{counts['settings']} settings"
    )


def preview_cmd(
    day: DateOption = None,
    categories: CategoryOption = None,
    limit: LimitOption = None,
    out: Annotated[Optional[str], typer.Option("--out", help="HTML output file")] = None,
    ):
    """Compose the edition and write its HTML preview."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    init_db(engine)
    edition_day = _day(day)
    with Session(engine) as session:
        generation = _generate(session, settings, edition_day, categories, limit)

    target = Path(out) if out else Path(settings.output_dir) / f"epaper-{edition_day.isoformat()}.html"
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(generation.markup, encoding="utf-8")
    typer.echo(f"{len(generation.document.pages)} page(s), {len(generation.aggregation.articles)} article(s) -> {target}")


def download_cmd(
    day: DateOption = None,
    categories: CategoryOption = None,
    limit: LimitOption = None,
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    ):
    """Generate the edition PDF and write it locally without publishing."""
    settings = _settings(overrides={"output_dir": out})
    engine = make_engine(settings.db_url)
    init_db(engine)
    try:
        with single_flight(), Session(engine) as session:
            generation = _generate(session, settings, _day(day), categories, limit)
            path = run_download(settings, generation, Path(settings.output_dir))
    except GenerationInProgressError as e:
        _fail(str(e))
    except EpaperError as e:
        _fail("PDF generation failed", e)
    typer.echo(f"Downloaded {path}")


def publish_cmd(
    day: DateOption = None,
    categories: CategoryOption = None,
    limit: LimitOption = None,
    ):
    """Generate the edition, upload it and record it in the archive."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    init_db(engine)
    store = LocalObjectStore(settings.storage_dir, settings.public_url)
    edition_day = _day(day)
    try:
        with single_flight(), Session(engine) as session:
            generation = _generate(session, settings, edition_day, categories, limit)
            entry = run_publish(session, store, settings, generation)
            typer.echo(f"Published '{entry.title}' -> {entry.pdf_url}")
    except PublishError as e:
        saved = download_only(e.pdf, pdf_filename(edition_day), settings.output_dir)
        typer.echo(f"PDF saved locally at {saved}", err=True)
        _fail("Publish failed", e)
    except (DuplicateEditionError, GenerationInProgressError) as e:
        _fail(str(e))
    except EpaperError as e:
        _fail("PDF generation failed", e)


def article_cmd(
    article_id: Annotated[str, typer.Argument(help="Article id")],
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    fmt: Annotated[str, typer.Option("--format", help="pdf or png")] = "pdf",
    ):
    """Write a printable single-article PDF or PNG."""
    settings = _settings(overrides={"output_dir": out})
    engine = make_engine(settings.db_url)
    init_db(engine)
    try:
        with Session(engine) as session:
            path = run_article(session, settings, article_id, Path(settings.output_dir), fmt=fmt)
    except ValueError as e:
        _fail(str(e))
    except EpaperError as e:
        _fail("PDF generation failed", e)
    typer.echo(f"Downloaded {path}")


def list_cmd(
    status: Annotated[Optional[str], typer.Option("--status", help="draft, published or all")] = None,
    ):
    """List archived editions, newest first."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    init_db(engine)
    with Session(engine) as session:
        entries = list_entries(session, status)
    if not entries:
        typer.echo("No editions found in archive.")
        raise typer.Exit(1)
    for e in entries:
        typer.echo(f"{e.publish_date.isoformat()}  {ArchiveStatusEnum(e.status).value}  {e.title}  {e.pdf_url}")
