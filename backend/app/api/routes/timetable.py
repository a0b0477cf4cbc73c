from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Response, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from app.api.deps import Actor, actor_from_token, get_current_actor, get_db
from app.core.config import get_settings
from app.core.exceptions import PermissionDeniedError
from app.schemas.catalog import CatalogOut, ClassOut, SectionOut, TeacherOut
from app.schemas.conflict import SchoolConflictReport
from app.schemas.timetable import (
    MAX_DAY,
    MIN_DAY,
    AssignSlotRequest,
    BulkRoomFillRequest,
    CopyTimetableRequest,
    EligibleSubjectOut,
    EntryOut,
    FlatRowOut,
    GridDayOut,
    OverrideSlotRequest,
    PeriodOut,
    PublicationStatusOut,
    SectionTimetableOut,
    ToolResult,
)
from app.services.audit import log_activity
from app.services.catalog import get_section, load_catalog, load_periods, load_section_catalog, teacher_label
from app.services.change_hub import broadcast_entries_changed, change_hub
from app.services.conflict_detector import conflict_summary, detect_conflicts
from app.services.entry_repository import UNSET, EntryRepository
from app.services.export import export_filename, grid_rows, rows_to_csv, to_flat_rows
from app.services.publication import publication_status, publish_all, unpublish_all, visible_entries
from app.services.section_locks import section_write_lock
from app.services.slot_assignment import SlotAssignmentEngine
from app.services.timetable_tools import bulk_room_fill, copy_timetable
from app.services.workload import daily_workload

logger = logging.getLogger(__name__)

router = APIRouter()

settings = get_settings()

DayOfWeek = Annotated[int, Path(ge=MIN_DAY, le=MAX_DAY)]


@router.get("/catalog", response_model=CatalogOut)
def get_catalog(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)) -> CatalogOut:
    catalog = load_catalog(db, actor.school_id)
    section_labels = catalog.section_labels()
    return CatalogOut(
        classes=[ClassOut.model_validate(item) for item in catalog.classes],
        sections=[
            SectionOut(id=section.id, name=section.name, class_id=section.class_id, label=section_labels[section.id])
            for section in catalog.sections
        ],
        periods=[PeriodOut.model_validate(period) for period in catalog.periods],
        teachers=[
            TeacherOut(
                user_id=member.user_id,
                display_name=member.display_name,
                email=member.email,
                label=teacher_label(member),
            )
            for member in catalog.teacher_directory
        ],
    )


@router.get("/conflicts", response_model=SchoolConflictReport)
def get_school_conflicts(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)) -> SchoolConflictReport:
    if not actor.can_edit_timetable:
        raise PermissionDeniedError("Only timetable editors can review school-wide conflicts.")
    catalog = load_catalog(db, actor.school_id)
    conflicts = detect_conflicts(
        EntryRepository(db, actor.school_id).all_school_entries(),
        catalog.section_labels(),
    )
    return SchoolConflictReport(conflicts=conflicts, summary=conflict_summary(conflicts))


@router.get("/sections/{section_id}", response_model=SectionTimetableOut)
def get_section_timetable(
    section_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> SectionTimetableOut:
    catalog = load_catalog(db, actor.school_id)
    section_catalog = load_section_catalog(db, actor.school_id, section_id)
    section_labels = catalog.section_labels()
    teacher_labels = catalog.teacher_labels()

    entries = visible_entries(section_catalog.entries, privileged=actor.can_edit_timetable)
    conflicts = {}
    if actor.can_edit_timetable:
        # Detection always runs on the whole school, then narrows to this section.
        school_conflicts = detect_conflicts(
            EntryRepository(db, actor.school_id).all_school_entries(),
            section_labels,
        )
        conflicts = {entry.id: school_conflicts[entry.id] for entry in entries if entry.id in school_conflicts}

    subjects = []
    for subject in section_catalog.eligible_subjects:
        teacher_id = section_catalog.default_teacher_for(subject.id)
        subjects.append(
            EligibleSubjectOut(
                id=subject.id,
                name=subject.name,
                teacher_user_id=teacher_id,
                teacher_label=teacher_labels.get(teacher_id, teacher_id) if teacher_id else None,
            )
        )

    return SectionTimetableOut(
        section_id=section_id,
        section_label=section_labels.get(section_id, section_catalog.section.name),
        can_edit=actor.can_edit_timetable,
        subjects=subjects,
        periods=[PeriodOut.model_validate(period) for period in catalog.periods],
        entries=[EntryOut.model_validate(entry) for entry in entries],
        conflicts=conflicts,
        publication=publication_status(entries),
        workload=daily_workload(catalog.periods, entries, default_minutes=settings.default_period_minutes),
    )


@router.get("/sections/{section_id}/published", response_model=list[EntryOut])
def get_published_entries(
    section_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[EntryOut]:
    get_section(db, actor.school_id, section_id)
    entries = EntryRepository(db, actor.school_id).entries_for_section(section_id)
    return [EntryOut.model_validate(entry) for entry in visible_entries(entries, privileged=False)]


@router.get("/sections/{section_id}/grid", response_model=list[GridDayOut])
def get_section_grid(
    section_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[GridDayOut]:
    catalog = load_catalog(db, actor.school_id)
    get_section(db, actor.school_id, section_id)
    entries = EntryRepository(db, actor.school_id).entries_for_section(section_id)
    entries = visible_entries(entries, privileged=actor.can_edit_timetable)
    return grid_rows(catalog.periods, entries, catalog.teacher_labels())


def _flat_rows(db: Session, actor: Actor, section_id: str) -> tuple[str, list[FlatRowOut]]:
    catalog = load_catalog(db, actor.school_id)
    section = get_section(db, actor.school_id, section_id)
    entries = EntryRepository(db, actor.school_id).entries_for_section(section_id)
    entries = visible_entries(entries, privileged=actor.can_edit_timetable)
    teacher_labels = catalog.teacher_labels()
    label = catalog.section_labels().get(section_id, section.name)
    return label, to_flat_rows(catalog.periods, entries, teacher_labels.get)


@router.get("/sections/{section_id}/export", response_model=list[FlatRowOut])
def export_section_rows(
    section_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[FlatRowOut]:
    _, rows = _flat_rows(db, actor, section_id)
    return rows


@router.get("/sections/{section_id}/export.csv")
def export_section_csv(
    section_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> Response:
    label, rows = _flat_rows(db, actor, section_id)
    return Response(
        content=rows_to_csv(rows),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(label)}"'},
    )


def _engine(db: Session, actor: Actor, section_id: str) -> SlotAssignmentEngine:
    return SlotAssignmentEngine(
        db,
        actor.edit_context(section_id),
        load_section_catalog(db, actor.school_id, section_id),
        load_periods(db, actor.school_id),
    )


@router.put("/sections/{section_id}/slots/{day_of_week}/{period_id}", response_model=EntryOut)
def assign_slot(
    section_id: str,
    period_id: str,
    payload: AssignSlotRequest,
    day_of_week: DayOfWeek,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> EntryOut:
    with section_write_lock(actor.school_id, section_id):
        engine = _engine(db, actor, section_id)
        entry = engine.assign_slot(day_of_week, period_id, payload.subject_id)
        log_activity(
            db,
            school_id=actor.school_id,
            user_id=actor.user_id,
            action="timetable.slot.assign",
            entity_type="timetable_entry",
            entity_id=entry.id,
            details={"section_id": section_id, "day_of_week": day_of_week, "period_id": period_id},
        )
        db.commit()
        db.refresh(entry)
    broadcast_entries_changed(actor.school_id, section_id, "assign")
    return entry


@router.delete("/sections/{section_id}/slots/{day_of_week}/{period_id}")
def clear_slot(
    section_id: str,
    period_id: str,
    day_of_week: DayOfWeek,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> dict:
    with section_write_lock(actor.school_id, section_id):
        engine = _engine(db, actor, section_id)
        cleared = engine.clear_slot(day_of_week, period_id)
        if cleared:
            log_activity(
                db,
                school_id=actor.school_id,
                user_id=actor.user_id,
                action="timetable.slot.clear",
                entity_type="class_section",
                entity_id=section_id,
                details={"day_of_week": day_of_week, "period_id": period_id},
            )
        db.commit()
    if cleared:
        broadcast_entries_changed(actor.school_id, section_id, "clear")
    return {"success": True, "cleared": cleared}


@router.patch("/sections/{section_id}/entries/{entry_id}", response_model=EntryOut)
def override_slot_details(
    section_id: str,
    entry_id: str,
    payload: OverrideSlotRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> EntryOut:
    provided = payload.model_fields_set
    with section_write_lock(actor.school_id, section_id):
        engine = _engine(db, actor, section_id)
        entry = engine.override_slot_details(
            entry_id,
            teacher_user_id=payload.teacher_user_id if "teacher_user_id" in provided else UNSET,
            room=payload.room if "room" in provided else UNSET,
        )
        log_activity(
            db,
            school_id=actor.school_id,
            user_id=actor.user_id,
            action="timetable.slot.override",
            entity_type="timetable_entry",
            entity_id=entry.id,
            details={"fields": sorted(provided)},
        )
        db.commit()
        db.refresh(entry)
    broadcast_entries_changed(actor.school_id, section_id, "override")
    return entry


@router.post("/sections/{section_id}/publish", response_model=PublicationStatusOut)
def publish_section(
    section_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> PublicationStatusOut:
    get_section(db, actor.school_id, section_id)
    with section_write_lock(actor.school_id, section_id):
        result = publish_all(db, actor.edit_context(section_id))
        if result.changed:
            log_activity(
                db,
                school_id=actor.school_id,
                user_id=actor.user_id,
                action="timetable.publish",
                entity_type="class_section",
                entity_id=section_id,
                details={"entries": result.changed},
            )
        db.commit()
    if result.changed:
        broadcast_entries_changed(actor.school_id, section_id, "publish")
    return result.status


@router.post("/sections/{section_id}/unpublish", response_model=PublicationStatusOut)
def unpublish_section(
    section_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> PublicationStatusOut:
    get_section(db, actor.school_id, section_id)
    with section_write_lock(actor.school_id, section_id):
        result = unpublish_all(db, actor.edit_context(section_id))
        if result.changed:
            log_activity(
                db,
                school_id=actor.school_id,
                user_id=actor.user_id,
                action="timetable.unpublish",
                entity_type="class_section",
                entity_id=section_id,
                details={"entries": result.changed},
            )
        db.commit()
    if result.changed:
        broadcast_entries_changed(actor.school_id, section_id, "unpublish")
    return result.status


@router.post("/sections/{section_id}/tools/bulk-room", response_model=ToolResult)
def bulk_room(
    section_id: str,
    payload: BulkRoomFillRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> ToolResult:
    get_section(db, actor.school_id, section_id)
    with section_write_lock(actor.school_id, section_id):
        affected = bulk_room_fill(
            db,
            actor.edit_context(section_id),
            payload.room,
            day_of_week=payload.day_of_week,
            only_empty=payload.only_empty,
        )
        log_activity(
            db,
            school_id=actor.school_id,
            user_id=actor.user_id,
            action="timetable.tools.bulk_room",
            entity_type="class_section",
            entity_id=section_id,
            details={"room": payload.room, "day_of_week": payload.day_of_week, "affected": affected},
        )
        db.commit()
    if affected:
        broadcast_entries_changed(actor.school_id, section_id, "bulk_room")
    return ToolResult(affected=affected)


@router.post("/sections/{section_id}/tools/copy", response_model=ToolResult, status_code=status.HTTP_200_OK)
def copy_section_timetable(
    section_id: str,
    payload: CopyTimetableRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> ToolResult:
    get_section(db, actor.school_id, section_id)
    get_section(db, actor.school_id, payload.source_section_id)
    with section_write_lock(actor.school_id, section_id):
        affected = copy_timetable(
            db,
            actor.edit_context(section_id),
            source_section_id=payload.source_section_id,
            periods=load_periods(db, actor.school_id),
            mode=payload.mode,
            source_day=payload.source_day,
            target_day=payload.target_day,
        )
        log_activity(
            db,
            school_id=actor.school_id,
            user_id=actor.user_id,
            action="timetable.tools.copy",
            entity_type="class_section",
            entity_id=section_id,
            details={"source_section_id": payload.source_section_id, "mode": payload.mode, "affected": affected},
        )
        db.commit()
    if affected:
        broadcast_entries_changed(actor.school_id, section_id, "copy")
    return ToolResult(affected=affected)


def _extract_ws_token(websocket: WebSocket) -> str | None:
    token = websocket.query_params.get("token")
    if token:
        return token.strip()
    auth_header = websocket.headers.get("authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()
    return None


@router.websocket("/ws")
async def timetable_changes_websocket(websocket: WebSocket) -> None:
    token = _extract_ws_token(websocket)
    if not token:
        await websocket.close(code=1008)
        return
    try:
        actor = actor_from_token(token)
    except HTTPException:
        await websocket.close(code=1008)
        return

    await change_hub.connect(actor.school_id, websocket)
    try:
        await websocket.send_json({"event": "connected", "school_id": actor.school_id})
        while True:
            message = await websocket.receive_text()
            if message.strip().lower() == "ping":
                await websocket.send_json({"event": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        await change_hub.disconnect(actor.school_id, websocket)
