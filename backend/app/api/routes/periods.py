from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.deps import Actor, get_current_actor, get_db
from app.core.exceptions import PermissionDeniedError
from app.models.timetable import TimetablePeriod
from app.schemas.timetable import PeriodCreate, PeriodOut, PeriodUpdate, parse_time_to_minutes
from app.services.audit import log_activity
from app.services.catalog import load_periods
from app.services.change_hub import broadcast_entries_changed
from app.services.entry_repository import EntryRepository

router = APIRouter()


def _require_editor(actor: Actor) -> None:
    if not actor.can_edit_timetable:
        raise PermissionDeniedError()


def _get_period(db: Session, actor: Actor, period_id: str) -> TimetablePeriod:
    period = db.get(TimetablePeriod, period_id)
    if period is None or period.school_id != actor.school_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Period not found")
    return period


@router.get("/", response_model=list[PeriodOut])
def list_periods(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)) -> list[PeriodOut]:
    return load_periods(db, actor.school_id)


@router.post("/", response_model=PeriodOut, status_code=status.HTTP_201_CREATED)
def create_period(
    payload: PeriodCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> PeriodOut:
    _require_editor(actor)
    period = TimetablePeriod(school_id=actor.school_id, **payload.model_dump())
    db.add(period)
    db.flush()
    log_activity(
        db,
        school_id=actor.school_id,
        user_id=actor.user_id,
        action="timetable.period.create",
        entity_type="timetable_period",
        entity_id=period.id,
        details={"label": period.label, "is_break": period.is_break},
    )
    db.commit()
    db.refresh(period)
    return period


@router.put("/{period_id}", response_model=PeriodOut)
def update_period(
    period_id: str,
    payload: PeriodUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> PeriodOut:
    _require_editor(actor)
    period = _get_period(db, actor, period_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("label") is None:
        data.pop("label", None)
    if data.get("sort_order") is None:
        data.pop("sort_order", None)
    if data.get("is_break") is None:
        data.pop("is_break", None)
    start_time = data.get("start_time", period.start_time)
    end_time = data.get("end_time", period.end_time)
    if start_time and end_time and parse_time_to_minutes(end_time) <= parse_time_to_minutes(start_time):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="end_time must be after start_time")

    for key, value in data.items():
        setattr(period, key, value)
    db.flush()

    repository = EntryRepository(db, actor.school_id)
    removed = 0
    if period.is_break:
        # Breaks never hold entries.
        removed = repository.delete_for_period(period.id)
    elif "start_time" in data or "end_time" in data:
        repository.sync_period_times(period)

    if data:
        log_activity(
            db,
            school_id=actor.school_id,
            user_id=actor.user_id,
            action="timetable.period.update",
            entity_type="timetable_period",
            entity_id=period.id,
            details={"fields": sorted(data), "removed_entries": removed},
        )
    db.commit()
    db.refresh(period)
    if data:
        broadcast_entries_changed(actor.school_id, None, "period_update")
    return period


@router.delete("/{period_id}")
def delete_period(
    period_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict:
    _require_editor(actor)
    period = _get_period(db, actor, period_id)
    removed = EntryRepository(db, actor.school_id).delete_for_period(period.id)
    log_activity(
        db,
        school_id=actor.school_id,
        user_id=actor.user_id,
        action="timetable.period.delete",
        entity_type="timetable_period",
        entity_id=period.id,
        details={"label": period.label, "removed_entries": removed},
    )
    db.delete(period)
    db.commit()
    broadcast_entries_changed(actor.school_id, None, "period_delete")
    return {"success": True, "removed_entries": removed}
