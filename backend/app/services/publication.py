from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.models.timetable import TimetableEntry
from app.schemas.timetable import PublicationStatusOut
from app.services.entry_repository import EntryRepository
from app.services.slot_assignment import EditContext, require_edit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublicationResult:
    status: PublicationStatusOut
    # Entries whose published flag actually flipped.
    changed: int


def publication_status(entries: Sequence[TimetableEntry]) -> PublicationStatusOut:
    total = len(entries)
    published = sum(1 for entry in entries if entry.is_published)
    if total == 0:
        state = "empty"
    elif published == total:
        state = "published"
    elif published == 0:
        state = "draft"
    else:
        state = "partial"
    return PublicationStatusOut(state=state, published_count=published, total_count=total)


def visible_entries(entries: Sequence[TimetableEntry], *, privileged: bool) -> list[TimetableEntry]:
    if privileged:
        return list(entries)
    return [entry for entry in entries if entry.is_published]


def publish_all(db: Session, ctx: EditContext, *, now: datetime | None = None) -> PublicationResult:
    require_edit(ctx)
    repository = EntryRepository(db, ctx.school_id)
    entries = repository.entries_for_section(ctx.section_id)
    drafts = sum(1 for entry in entries if not entry.is_published)
    if not drafts:
        return PublicationResult(status=publication_status(entries), changed=0)

    when = now or datetime.now(timezone.utc)
    updated = repository.set_published(ctx.section_id, True, when)
    logger.info("Published %d timetable entries for section %s", updated, ctx.section_id)
    return PublicationResult(
        status=publication_status(repository.entries_for_section(ctx.section_id)),
        changed=drafts,
    )


def unpublish_all(db: Session, ctx: EditContext) -> PublicationResult:
    require_edit(ctx)
    repository = EntryRepository(db, ctx.school_id)
    entries = repository.entries_for_section(ctx.section_id)
    published = sum(1 for entry in entries if entry.is_published)
    if not published:
        return PublicationResult(status=publication_status(entries), changed=0)

    updated = repository.set_published(ctx.section_id, False, None)
    logger.info("Unpublished %d timetable entries for section %s", updated, ctx.section_id)
    return PublicationResult(
        status=publication_status(repository.entries_for_section(ctx.section_id)),
        changed=published,
    )
