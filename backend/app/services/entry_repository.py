from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import SlotConflictError
from app.models.timetable import TimetableEntry, TimetablePeriod

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()


def normalize_room(room: str | None) -> str | None:
    if room is None:
        return None
    stripped = room.strip()
    return stripped or None


class EntryRepository:
    """All timetable entries of one school, keyed by (section, day, period).

    Methods flush but never commit; the request handler owns the transaction.
    """

    def __init__(self, db: Session, school_id: str) -> None:
        self.db = db
        self.school_id = school_id

    def _select(self):
        return select(TimetableEntry).where(TimetableEntry.school_id == self.school_id)

    def entries_for_section(self, section_id: str) -> list[TimetableEntry]:
        stmt = self._select().where(TimetableEntry.class_section_id == section_id)
        return list(self.db.execute(stmt).scalars())

    def all_school_entries(self) -> list[TimetableEntry]:
        return list(self.db.execute(self._select()).scalars())

    def get_entry(self, entry_id: str) -> TimetableEntry | None:
        entry = self.db.get(TimetableEntry, entry_id)
        if entry is None or entry.school_id != self.school_id:
            return None
        return entry

    def entry_at(self, section_id: str, day_of_week: int, period_id: str, *, for_update: bool = False) -> TimetableEntry | None:
        stmt = self._select().where(
            TimetableEntry.class_section_id == section_id,
            TimetableEntry.day_of_week == day_of_week,
            TimetableEntry.period_id == period_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def upsert_slot(
        self,
        section_id: str,
        day_of_week: int,
        period: TimetablePeriod,
        subject_name: str,
        *,
        teacher_user_id: str | None | _Unset = UNSET,
        room: str | None | _Unset = UNSET,
        created_by: str | None = None,
    ) -> TimetableEntry:
        """Replace whatever occupies the slot with a new entry.

        Teacher and room default to the previous occupant's values when they
        are not passed. Delete and insert share one transaction; a concurrent
        writer that wins the unique key surfaces as ``SlotConflictError``.
        """
        existing = self.entry_at(section_id, day_of_week, period.id, for_update=True)
        if teacher_user_id is UNSET:
            teacher_user_id = existing.teacher_user_id if existing is not None else None
        if room is UNSET:
            room = existing.room if existing is not None else None

        try:
            if existing is not None:
                self.db.delete(existing)
                self.db.flush()
            entry = TimetableEntry(
                school_id=self.school_id,
                class_section_id=section_id,
                day_of_week=day_of_week,
                period_id=period.id,
                subject_name=subject_name,
                teacher_user_id=teacher_user_id,
                room=normalize_room(room),
                start_time=period.start_time,
                end_time=period.end_time,
                is_published=False,
                created_by=created_by,
            )
            self.db.add(entry)
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning(
                "Slot write lost a race for section %s day %s period %s",
                section_id,
                day_of_week,
                period.id,
            )
            raise SlotConflictError(section_id, day_of_week, period.id) from exc
        return entry

    def clear_slot(self, section_id: str, day_of_week: int, period_id: str) -> bool:
        existing = self.entry_at(section_id, day_of_week, period_id, for_update=True)
        if existing is None:
            return False
        self.db.delete(existing)
        self.db.flush()
        return True

    def update_details(
        self,
        entry: TimetableEntry,
        *,
        teacher_user_id: str | None | _Unset = UNSET,
        room: str | None | _Unset = UNSET,
    ) -> TimetableEntry:
        if teacher_user_id is not UNSET:
            entry.teacher_user_id = teacher_user_id or None
        if room is not UNSET:
            entry.room = normalize_room(room)
        self.db.flush()
        return entry

    def set_published(self, section_id: str, published: bool, when: datetime | None) -> int:
        result = self.db.execute(
            update(TimetableEntry)
            .where(
                TimetableEntry.school_id == self.school_id,
                TimetableEntry.class_section_id == section_id,
            )
            .values(is_published=published, published_at=when if published else None)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    def fill_room(self, section_id: str, room: str, *, day_of_week: int | None = None, only_empty: bool = True) -> int:
        conditions = [
            TimetableEntry.school_id == self.school_id,
            TimetableEntry.class_section_id == section_id,
        ]
        if day_of_week is not None:
            conditions.append(TimetableEntry.day_of_week == day_of_week)
        if only_empty:
            conditions.append(or_(TimetableEntry.room.is_(None), TimetableEntry.room == ""))
        result = self.db.execute(
            update(TimetableEntry)
            .where(*conditions)
            .values(room=normalize_room(room))
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    def delete_for_section_days(self, section_id: str, days: Iterable[int]) -> int:
        result = self.db.execute(
            delete(TimetableEntry)
            .where(
                TimetableEntry.school_id == self.school_id,
                TimetableEntry.class_section_id == section_id,
                TimetableEntry.day_of_week.in_(list(days)),
            )
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    def delete_for_period(self, period_id: str) -> int:
        result = self.db.execute(
            delete(TimetableEntry)
            .where(
                TimetableEntry.school_id == self.school_id,
                TimetableEntry.period_id == period_id,
            )
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    def add_all(self, entries: Iterable[TimetableEntry]) -> int:
        rows = list(entries)
        try:
            self.db.add_all(rows)
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            first = rows[0] if rows else None
            raise SlotConflictError(
                first.class_section_id if first else "",
                first.day_of_week if first else -1,
                first.period_id if first else "",
            ) from exc
        return len(rows)

    def sync_period_times(self, period: TimetablePeriod) -> int:
        result = self.db.execute(
            update(TimetableEntry)
            .where(
                TimetableEntry.school_id == self.school_id,
                TimetableEntry.period_id == period.id,
            )
            .values(start_time=period.start_time, end_time=period.end_time)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0
