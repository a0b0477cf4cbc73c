from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.core.exceptions import (
    EntryNotFoundError,
    InvalidTargetError,
    PermissionDeniedError,
    SubjectNotEligibleError,
)
from app.models.timetable import TimetableEntry, TimetablePeriod
from app.schemas.timetable import MAX_DAY, MIN_DAY
from app.services.catalog import SectionCatalog
from app.services.entry_repository import UNSET, EntryRepository, _Unset


@dataclass(frozen=True)
class EditContext:
    school_id: str
    section_id: str
    can_edit: bool
    actor_id: str | None = None


def require_edit(ctx: EditContext) -> None:
    if not ctx.can_edit:
        raise PermissionDeniedError()


class SlotAssignmentEngine:
    """Assign, clear and override single slots of one section's grid.

    Every check runs before the first write, so a failed call leaves the
    repository untouched.
    """

    def __init__(
        self,
        db: Session,
        ctx: EditContext,
        catalog: SectionCatalog,
        periods: Iterable[TimetablePeriod],
    ) -> None:
        if catalog.section.id != ctx.section_id:
            raise InvalidTargetError(
                "Section catalog does not match the edit context",
                details={"section_id": ctx.section_id},
            )
        self.ctx = ctx
        self.catalog = catalog
        self.repository = EntryRepository(db, ctx.school_id)
        self.period_by_id = {period.id: period for period in periods if period.school_id == ctx.school_id}

    def _resolve_target(self, day_of_week: int, period_id: str) -> TimetablePeriod:
        if not MIN_DAY <= day_of_week <= MAX_DAY:
            raise InvalidTargetError(
                f"Day {day_of_week} is outside 0-6",
                details={"day_of_week": day_of_week},
            )
        period = self.period_by_id.get(period_id)
        if period is None:
            raise InvalidTargetError(f"Period {period_id} not found", details={"period_id": period_id})
        if period.is_break:
            raise InvalidTargetError(
                f"{period.label} is a break and cannot hold a subject",
                details={"period_id": period_id},
            )
        return period

    def assign_slot(self, day_of_week: int, period_id: str, subject_id: str) -> TimetableEntry:
        period = self._resolve_target(day_of_week, period_id)
        if subject_id not in self.catalog.eligible_subject_ids:
            raise SubjectNotEligibleError(subject_id, self.ctx.section_id)
        require_edit(self.ctx)

        subject_name = self.catalog.subject_name(subject_id)
        existing = self.repository.entry_at(self.ctx.section_id, day_of_week, period_id, for_update=True)
        # Swapping the subject keeps the slot's logistics; only an override changes them.
        teacher_user_id = (existing.teacher_user_id if existing is not None else None) or (
            self.catalog.default_teacher_for(subject_id)
        )
        room = existing.room if existing is not None else None

        return self.repository.upsert_slot(
            self.ctx.section_id,
            day_of_week,
            period,
            subject_name,
            teacher_user_id=teacher_user_id,
            room=room,
            created_by=self.ctx.actor_id,
        )

    def clear_slot(self, day_of_week: int, period_id: str) -> bool:
        require_edit(self.ctx)
        return self.repository.clear_slot(self.ctx.section_id, day_of_week, period_id)

    def override_slot_details(
        self,
        entry_id: str,
        *,
        teacher_user_id: str | None | _Unset = UNSET,
        room: str | None | _Unset = UNSET,
    ) -> TimetableEntry:
        require_edit(self.ctx)
        entry = self.repository.get_entry(entry_id)
        if entry is None or entry.class_section_id != self.ctx.section_id:
            raise EntryNotFoundError(entry_id)
        return self.repository.update_details(entry, teacher_user_id=teacher_user_id, room=room)
