import pytest

from app.core.exceptions import InvalidTargetError, PermissionDeniedError
from app.services.catalog import load_periods, load_section_catalog
from app.services.entry_repository import EntryRepository
from app.services.publication import publish_all
from app.services.slot_assignment import EditContext, SlotAssignmentEngine
from app.services.timetable_tools import bulk_room_fill, copy_timetable


def _ctx(school, section_id=None, can_edit=True):
    return EditContext(
        school_id=school.school_id,
        section_id=section_id or school.s1,
        can_edit=can_edit,
        actor_id="editor-1",
    )


def _engine(db, school, section_id=None):
    ctx = _ctx(school, section_id)
    return SlotAssignmentEngine(
        db,
        ctx,
        load_section_catalog(db, school.school_id, ctx.section_id),
        load_periods(db, school.school_id),
    )


def _entries(db, school, section_id=None):
    entries = EntryRepository(db, school.school_id).entries_for_section(section_id or school.s1)
    return sorted(entries, key=lambda entry: (entry.day_of_week, entry.period_id))


def test_bulk_room_fill_only_touches_empty_rooms(db_session, school):
    engine = _engine(db_session, school)
    keep = engine.assign_slot(1, school.p1, school.math)
    engine.override_slot_details(keep.id, room="Lab")
    engine.assign_slot(1, school.p2, school.math)
    engine.assign_slot(2, school.p1, school.english)
    db_session.commit()

    affected = bulk_room_fill(db_session, _ctx(school), "  R7 ")
    db_session.commit()

    assert affected == 2
    rooms = {(entry.day_of_week, entry.period_id): entry.room for entry in _entries(db_session, school)}
    assert rooms[(1, school.p1)] == "Lab"
    assert rooms[(1, school.p2)] == "R7"
    assert rooms[(2, school.p1)] == "R7"


def test_bulk_room_fill_can_target_one_day_and_overwrite(db_session, school):
    engine = _engine(db_session, school)
    keep = engine.assign_slot(1, school.p1, school.math)
    engine.override_slot_details(keep.id, room="Lab")
    engine.assign_slot(2, school.p1, school.english)
    db_session.commit()

    affected = bulk_room_fill(db_session, _ctx(school), "Hall", day_of_week=1, only_empty=False)
    db_session.commit()

    assert affected == 1
    rooms = {entry.day_of_week: entry.room for entry in _entries(db_session, school)}
    assert rooms == {1: "Hall", 2: None}


def test_bulk_room_fill_rejects_blank_room_and_viewers(db_session, school):
    with pytest.raises(InvalidTargetError):
        bulk_room_fill(db_session, _ctx(school), "   ")
    with pytest.raises(PermissionDeniedError):
        bulk_room_fill(db_session, _ctx(school, can_edit=False), "R1")


def test_copy_week_replaces_target_and_starts_as_draft(db_session, school):
    source = _engine(db_session, school, school.s2)
    copied = source.assign_slot(1, school.p1, school.math)
    source.override_slot_details(copied.id, room="R2")
    source.assign_slot(3, school.p2, school.math)
    publish_all(db_session, _ctx(school, school.s2))

    target = _engine(db_session, school)
    target.assign_slot(5, school.p1, school.english)
    db_session.commit()

    affected = copy_timetable(
        db_session,
        _ctx(school),
        source_section_id=school.s2,
        periods=load_periods(db_session, school.school_id),
        mode="week",
    )
    db_session.commit()

    assert affected == 2
    entries = _entries(db_session, school)
    assert [(entry.day_of_week, entry.subject_name) for entry in entries] == [(1, "Math"), (3, "Math")]
    assert entries[0].room == "R2"
    assert entries[0].teacher_user_id == "t1"
    assert not any(entry.is_published for entry in entries)
    assert len(_entries(db_session, school, school.s2)) == 2


def test_copy_day_moves_entries_to_target_day_only(db_session, school):
    engine = _engine(db_session, school)
    engine.assign_slot(1, school.p1, school.math)
    engine.assign_slot(1, school.p2, school.english)
    engine.assign_slot(2, school.p1, school.english)
    engine.assign_slot(4, school.p2, school.math)
    db_session.commit()

    affected = copy_timetable(
        db_session,
        _ctx(school),
        source_section_id=school.s1,
        periods=load_periods(db_session, school.school_id),
        mode="day",
        source_day=1,
        target_day=2,
    )
    db_session.commit()

    assert affected == 2
    by_slot = {(entry.day_of_week, entry.period_id): entry.subject_name for entry in _entries(db_session, school)}
    assert by_slot == {
        (1, school.p1): "Math",
        (1, school.p2): "English",
        (2, school.p1): "Math",
        (2, school.p2): "English",
        (4, school.p2): "Math",
    }


def test_copy_from_empty_source_leaves_target_untouched(db_session, school):
    _engine(db_session, school).assign_slot(1, school.p1, school.math)
    db_session.commit()

    affected = copy_timetable(
        db_session,
        _ctx(school),
        source_section_id=school.s2,
        periods=load_periods(db_session, school.school_id),
    )

    assert affected == 0
    assert len(_entries(db_session, school)) == 1


def test_copy_onto_itself_is_rejected(db_session, school):
    periods = load_periods(db_session, school.school_id)
    with pytest.raises(InvalidTargetError):
        copy_timetable(db_session, _ctx(school), source_section_id=school.s1, periods=periods, mode="week")
    with pytest.raises(InvalidTargetError):
        copy_timetable(
            db_session,
            _ctx(school),
            source_section_id=school.s1,
            periods=periods,
            mode="day",
            source_day=3,
            target_day=3,
        )
