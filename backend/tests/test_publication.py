from datetime import datetime, timezone

import pytest

from app.core.exceptions import PermissionDeniedError
from app.services.catalog import load_periods, load_section_catalog
from app.services.entry_repository import EntryRepository
from app.services.publication import publication_status, publish_all, unpublish_all, visible_entries
from app.services.slot_assignment import EditContext, SlotAssignmentEngine


def _ctx(school, section_id=None, can_edit=True):
    return EditContext(
        school_id=school.school_id,
        section_id=section_id or school.s1,
        can_edit=can_edit,
        actor_id="editor-1",
    )


def _fill(db, school, section_id=None):
    ctx = _ctx(school, section_id)
    engine = SlotAssignmentEngine(
        db,
        ctx,
        load_section_catalog(db, school.school_id, ctx.section_id),
        load_periods(db, school.school_id),
    )
    engine.assign_slot(1, school.p1, school.math)
    engine.assign_slot(2, school.p2, school.math)
    db.commit()


def test_publish_marks_every_entry_of_the_section(db_session, school):
    _fill(db_session, school)
    _fill(db_session, school, school.s2)
    when = datetime(2026, 3, 2, 7, 30, tzinfo=timezone.utc)

    result = publish_all(db_session, _ctx(school), now=when)
    status = result.status
    db_session.commit()

    assert status.state == "published"
    assert status.published_count == status.total_count == 2
    assert result.changed == 2
    entries = EntryRepository(db_session, school.school_id).entries_for_section(school.s1)
    assert all(entry.is_published and entry.published_at is not None for entry in entries)

    other = EntryRepository(db_session, school.school_id).entries_for_section(school.s2)
    assert not any(entry.is_published for entry in other)


def test_publish_is_idempotent(db_session, school):
    _fill(db_session, school)

    first = publish_all(db_session, _ctx(school))
    db_session.commit()
    second = publish_all(db_session, _ctx(school))
    db_session.commit()

    assert first.status == second.status
    assert second.status.state == "published"
    assert first.changed == 2
    assert second.changed == 0


def test_unpublish_of_draft_section_is_a_no_op(db_session, school):
    _fill(db_session, school)

    result = unpublish_all(db_session, _ctx(school))

    assert result.changed == 0
    status = result.status
    assert status.state == "draft"
    assert status.published_count == 0
    assert status.total_count == 2


def test_unpublish_returns_section_to_draft(db_session, school):
    _fill(db_session, school)
    publish_all(db_session, _ctx(school))
    db_session.commit()

    result = unpublish_all(db_session, _ctx(school))
    db_session.commit()

    assert result.changed == 2
    assert result.status.state == "draft"
    entries = EntryRepository(db_session, school.school_id).entries_for_section(school.s1)
    assert all(entry.published_at is None for entry in entries)


def test_publish_empty_section_reports_empty(db_session, school):
    result = publish_all(db_session, _ctx(school))

    assert result.changed == 0
    assert result.status.state == "empty"
    assert result.status.total_count == 0


def test_publication_requires_edit_capability(db_session, school):
    with pytest.raises(PermissionDeniedError):
        publish_all(db_session, _ctx(school, can_edit=False))
    with pytest.raises(PermissionDeniedError):
        unpublish_all(db_session, _ctx(school, can_edit=False))


def test_edit_after_publish_reports_partial_and_hides_draft_from_viewers(db_session, school):
    _fill(db_session, school)
    publish_all(db_session, _ctx(school))
    db_session.commit()

    ctx = _ctx(school)
    engine = SlotAssignmentEngine(
        db_session,
        ctx,
        load_section_catalog(db_session, school.school_id, school.s1),
        load_periods(db_session, school.school_id),
    )
    engine.assign_slot(1, school.p1, school.english)
    db_session.commit()

    entries = EntryRepository(db_session, school.school_id).entries_for_section(school.s1)
    assert publication_status(entries).state == "partial"

    visible = visible_entries(entries, privileged=False)
    assert [entry.subject_name for entry in visible] == ["Math"]
    assert len(visible_entries(entries, privileged=True)) == 2
