"""Edition output: object-store upload plus archive record, or local download"""

import io
import logging
from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path
from uuid import uuid4

from PIL import Image
from sqlmodel import Session

from epaper.core.errors import DuplicateEditionError, PublishError
from epaper.core.models import PublishMetadata
from epaper.core.raster import RasterPage
from epaper.crud.archive import create_entry, get_by_date, has_entry_for_date
from epaper.crud.models import ArchiveEntry, ArchiveStatusEnum


logger = logging.getLogger(__name__)

STORAGE_PREFIX = "epapers"
THUMBNAIL_WIDTH = 400


class ObjectStore(ABC):
    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str) -> str:
        """Store data under key and return its public reference."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError


class LocalObjectStore(ObjectStore):
    """Directory-backed object store; keys map to relative paths under root."""

    def __init__(self, root: str | Path, public_url: str = ""):
        self.root = Path(root)
        self.public_url = public_url

    def path_for(self, key: str) -> Path:
        return self.root / key

    def url_for(self, key: str) -> str:
        if self.public_url:
            return f"{self.public_url.rstrip('/')}/{key}"
        return self.path_for(key).resolve().as_uri()

    def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.debug("Stored %s (%s, %d bytes)", key, content_type, len(data))
        return self.url_for(key)

    def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


def pdf_filename(day: date) -> str:
    return f"epaper-{day.isoformat()}.pdf"


def make_thumbnail(raster: RasterPage, width: int = THUMBNAIL_WIDTH, quality: int = 85) -> bytes:
    """JPEG preview of a page snapshot scaled to width, keeping its aspect ratio."""
    image = raster.image.convert("RGB")
    height = round(image.height * width / image.width)
    buffer = io.BytesIO()
    image.resize((width, height), Image.Resampling.LANCZOS).save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def encode_png(raster: RasterPage) -> bytes:
    """Lossless PNG of a page snapshot."""
    buffer = io.BytesIO()
    raster.image.save(buffer, format="PNG")
    return buffer.getvalue()


def _discard(store: ObjectStore, key: str) -> None:
    """Remove an object whose edition will not be recorded; log it as orphaned if that fails."""
    try:
        store.delete(key)
    except Exception as e:
        logger.warning("Could not delete %s after a failed publish; stored object is orphaned: %s", key, e)
    else:
        logger.info("Deleted %s after a failed publish", key)


def persist_and_publish(
    session: Session,
    store: ObjectStore,
    pdf: bytes,
    metadata: PublishMetadata,
    thumbnail: bytes | None = None,
    duplicate_policy: str = "reject",
    ) -> ArchiveEntry:
    """Upload the PDF (and thumbnail), then insert and commit exactly one ArchiveEntry.

    Objects are keyed epapers/epaper-<date>.pdf; when an entry already exists
    for the date the key gets a unique suffix so no stored edition is replaced.
    Upload failure: no record is written and a PDF stored before a failed
    thumbnail upload is deleted. Record failure: the transaction is rolled back
    and the already-stored object is left in place and logged. Both raise
    PublishError carrying the PDF for a local retry.
    """
    if duplicate_policy == "reject" and get_by_date(session, metadata.day) is not None:
        raise DuplicateEditionError(f"A published edition already exists for {metadata.day.isoformat()}")

    stem = pdf_filename(metadata.day).removesuffix(".pdf")
    if has_entry_for_date(session, metadata.day):
        stem = f"{stem}-{uuid4().hex[:8]}"
    key = f"{STORAGE_PREFIX}/{stem}.pdf"
    try:
        pdf_url = store.put(key, pdf, "application/pdf")
    except Exception as e:
        raise PublishError(f"Upload of {key} failed: {e}", pdf=pdf, key=key) from e

    thumb_url = None
    if thumbnail is not None:
        thumb_key = f"{STORAGE_PREFIX}/{stem}-thumb.jpg"
        try:
            thumb_url = store.put(thumb_key, thumbnail, "image/jpeg")
        except Exception as e:
            _discard(store, key)
            raise PublishError(f"Upload of {thumb_key} failed: {e}", pdf=pdf, key=key) from e
    logger.info("Uploaded %s", key)

    try:
        entry = create_entry(
            session,
            title=metadata.title,
            publish_date=metadata.day,
            pdf_url=pdf_url,
            thumbnail=thumb_url,
            status=ArchiveStatusEnum(metadata.status),
        )
        session.commit()
        session.refresh(entry)
    except Exception as e:
        session.rollback()
        logger.warning("Archive record for %s failed; stored object %s is orphaned", metadata.day.isoformat(), key)
        raise PublishError(f"Archive record for {metadata.day.isoformat()} failed: {e}", pdf=pdf, key=key) from e

    logger.info("Published edition %s (%s)", entry.id, metadata.day.isoformat())
    return entry


def download_only(pdf: bytes, filename: str, dest_dir: str | Path) -> Path:
    """Write the PDF locally; no storage or database call is made."""
    dest = Path(dest_dir)
    dest.mkdir(parents=True, exist_ok=True)
    path = dest / filename
    path.write_bytes(pdf)
    return path
