"""Archive entry persistence: create, lookup, list, update, and delete editions"""

from datetime import date, datetime
from uuid import UUID

from sqlmodel import Session, select

from epaper.crud.models import ArchiveEntry, ArchiveStatusEnum


def create_entry(
    session: Session,
    title: str,
    publish_date: date,
    pdf_url: str,
    thumbnail: str | None = None,
    status: ArchiveStatusEnum = ArchiveStatusEnum.draft,
    ) -> ArchiveEntry:
    """Insert a new ArchiveEntry. Flushes but does not commit; caller controls the transaction."""
    entry = ArchiveEntry(
        title=title,
        publish_date=publish_date,
        pdf_url=pdf_url,
        thumbnail=thumbnail,
        status=status,
    )
    session.add(entry)
    session.flush()
    return entry


def get_entry(session: Session, entry_id: UUID) -> ArchiveEntry | None:
    return session.get(ArchiveEntry, entry_id)


def get_by_date(session: Session, publish_date: date) -> ArchiveEntry | None:
    """Return the most recently created published entry for a date, or None."""
    return session.exec(
        select(ArchiveEntry)
        .where(ArchiveEntry.publish_date == publish_date)
        .where(ArchiveEntry.status == ArchiveStatusEnum.published)
        .order_by(ArchiveEntry.created_at.desc())
    ).first()


def has_entry_for_date(session: Session, publish_date: date) -> bool:
    """True if any entry, draft or published, exists for the date."""
    return session.exec(
        select(ArchiveEntry.id).where(ArchiveEntry.publish_date == publish_date)
    ).first() is not None


def get_latest(session: Session) -> ArchiveEntry | None:
    """Return the published entry with the newest publish_date, or None."""
    return session.exec(
        select(ArchiveEntry)
        .where(ArchiveEntry.status == ArchiveStatusEnum.published)
        .order_by(ArchiveEntry.publish_date.desc(), ArchiveEntry.created_at.desc())
    ).first()


def list_entries(session: Session, status: str | None = None) -> list[ArchiveEntry]:
    """Return entries newest date first; status None or 'all' lists every entry."""
    stmt = select(ArchiveEntry).order_by(ArchiveEntry.publish_date.desc(), ArchiveEntry.created_at.desc())
    if status and status != "all":
        stmt = stmt.where(ArchiveEntry.status == ArchiveStatusEnum(status))
    return list(session.exec(stmt).all())


def list_dates(session: Session) -> list[date]:
    """Distinct publish dates that have a published edition, newest first."""
    dates = session.exec(
        select(ArchiveEntry.publish_date)
        .where(ArchiveEntry.status == ArchiveStatusEnum.published)
        .order_by(ArchiveEntry.publish_date.desc())
    ).all()
    return list(dict.fromkeys(dates))


def update_entry(session: Session, entry_id: UUID, **fields) -> ArchiveEntry:
    """Apply manual edits to an entry. Raises ValueError if it does not exist."""
    entry = session.get(ArchiveEntry, entry_id)
    if entry is None:
        raise ValueError(f"Archive entry {entry_id} not found")
    for key, value in fields.items():
        if key not in {"title", "publish_date", "pdf_url", "thumbnail", "status"}:
            raise ValueError(f"Field '{key}' cannot be edited")
        setattr(entry, key, ArchiveStatusEnum(value) if key == "status" else value)
    entry.updated_at = datetime.now()
    session.add(entry)
    session.flush()
    return entry


def delete_entry(session: Session, entry_id: UUID) -> bool:
    """Delete an entry; returns False if it did not exist."""
    entry = session.get(ArchiveEntry, entry_id)
    if entry is None:
        return False
    session.delete(entry)
    session.flush()
    return True
