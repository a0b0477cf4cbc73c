"""Bulk edits offered next to the builder grid."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Literal

from sqlalchemy.orm import Session

from app.core.exceptions import InvalidTargetError
from app.models.timetable import TimetableEntry, TimetablePeriod
from app.schemas.timetable import DAY_LABELS
from app.services.entry_repository import EntryRepository
from app.services.slot_assignment import EditContext, require_edit

logger = logging.getLogger(__name__)

ALL_DAYS = tuple(range(len(DAY_LABELS)))


def bulk_room_fill(
    db: Session,
    ctx: EditContext,
    room: str,
    *,
    day_of_week: int | None = None,
    only_empty: bool = True,
) -> int:
    require_edit(ctx)
    if not room.strip():
        raise InvalidTargetError("Enter a room name.")
    repository = EntryRepository(db, ctx.school_id)
    return repository.fill_room(ctx.section_id, room, day_of_week=day_of_week, only_empty=only_empty)


def copy_timetable(
    db: Session,
    ctx: EditContext,
    *,
    source_section_id: str,
    periods: Sequence[TimetablePeriod],
    mode: Literal["week", "day"] = "week",
    source_day: int = 1,
    target_day: int = 1,
) -> int:
    """Copy entries from ``source_section_id`` into the context's section.

    The target scope (whole week, or ``target_day``) is cleared first. Copies
    start as drafts; entries on unknown or break periods are skipped.
    """
    require_edit(ctx)
    if source_section_id == ctx.section_id and (mode == "week" or source_day == target_day):
        raise InvalidTargetError("Source and target are the same timetable")

    repository = EntryRepository(db, ctx.school_id)
    period_by_id = {period.id: period for period in periods}
    source = [
        entry
        for entry in repository.entries_for_section(source_section_id)
        if mode == "week" or entry.day_of_week == source_day
    ]
    copies = []
    for entry in source:
        period = period_by_id.get(entry.period_id)
        if period is None or period.is_break:
            continue
        copies.append(
            TimetableEntry(
                school_id=ctx.school_id,
                class_section_id=ctx.section_id,
                day_of_week=entry.day_of_week if mode == "week" else target_day,
                period_id=entry.period_id,
                subject_name=entry.subject_name,
                teacher_user_id=entry.teacher_user_id,
                room=entry.room,
                start_time=period.start_time,
                end_time=period.end_time,
                is_published=False,
                created_by=ctx.actor_id,
            )
        )
    if not copies:
        return 0

    repository.delete_for_section_days(ctx.section_id, ALL_DAYS if mode == "week" else (target_day,))
    inserted = repository.add_all(copies)
    logger.info(
        "Copied %d timetable entries from section %s to section %s (%s)",
        inserted,
        source_section_id,
        ctx.section_id,
        mode,
    )
    return inserted
