from types import SimpleNamespace

from app.services.export import export_filename, grid_rows, rows_to_csv, to_flat_rows, to_grid


def _period(period_id, label, sort_order, start=None, end=None, is_break=False):
    return SimpleNamespace(
        id=period_id,
        label=label,
        sort_order=sort_order,
        start_time=start,
        end_time=end,
        is_break=is_break,
    )


def _entry(entry_id, day, period_id, subject, teacher=None, room=None):
    return SimpleNamespace(
        id=entry_id,
        class_section_id="s1",
        day_of_week=day,
        period_id=period_id,
        subject_name=subject,
        teacher_user_id=teacher,
        room=room,
        start_time=None,
        end_time=None,
        is_published=False,
        published_at=None,
    )


PERIODS = [
    _period("p1", "P1", 1, "08:00", "08:45"),
    _period("lunch", "Lunch", 2, "08:45", "09:30", is_break=True),
    _period("p2", "P2", 3, "09:30", "10:15"),
]
LABELS = {"t1": "Asha Rao"}


def test_flat_rows_are_ordered_by_day_then_period_sort_order():
    entries = [
        _entry("e3", 2, "p1", "Science"),
        _entry("e2", 1, "p2", "English", teacher="t1"),
        _entry("e1", 1, "p1", "Math", teacher="t9", room="R1"),
    ]

    rows = to_flat_rows(PERIODS, entries, LABELS.get)

    assert [(row.day, row.period, row.subject) for row in rows] == [
        ("Mon", "P1", "Math"),
        ("Mon", "P2", "English"),
        ("Tue", "P1", "Science"),
    ]
    assert rows[0].teacher == "t9"
    assert rows[0].room == "R1"
    assert rows[1].teacher == "Asha Rao"
    assert rows[1].start_time == "09:30"
    assert rows[2].teacher == ""
    assert rows[2].room == ""


def test_flat_rows_break_sort_order_ties_like_the_grid():
    periods = [_period("a", "A", 1), _period("b", "B", 1)]
    entries = [_entry("e2", 1, "b", "English"), _entry("e1", 1, "a", "Math")]

    rows = to_flat_rows(periods, entries, LABELS.get)
    grid = grid_rows(periods, entries, LABELS)

    assert [row.period for row in rows] == ["A", "B"]
    assert [cell.period_id for cell in grid[1].cells] == ["a", "b"]
    assert [row.subject for row in rows] == [cell.entry.subject_name for cell in grid[1].cells]


def test_flat_rows_keep_entries_on_unknown_periods():
    rows = to_flat_rows(PERIODS, [_entry("e1", 0, "gone", "Math")], LABELS.get)

    assert rows[0].day == "Sun"
    assert rows[0].period == ""
    assert rows[0].start_time == ""


def test_csv_has_header_and_quotes_commas():
    rows = to_flat_rows(PERIODS, [_entry("e1", 1, "p1", "Math, Advanced", teacher="t1", room="R1")], LABELS.get)

    text = rows_to_csv(rows)

    assert text.splitlines() == [
        "Day,Period,Start Time,End Time,Subject,Teacher,Room",
        'Mon,P1,08:00,08:45,"Math, Advanced",Asha Rao,R1',
    ]


def test_csv_of_empty_timetable_is_header_only():
    assert rows_to_csv([]) == "Day,Period,Start Time,End Time,Subject,Teacher,Room\n"


def test_grid_covers_every_day_and_flags_breaks():
    entries = [_entry("e1", 1, "p1", "Math", teacher="t1"), _entry("e2", 3, "gone", "Art")]

    grid = to_grid(PERIODS, entries)
    assert set(grid) == {(1, "p1")}

    rows = grid_rows(PERIODS, entries, LABELS)
    assert [row.label for row in rows] == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
    monday = rows[1]
    assert [cell.period_id for cell in monday.cells] == ["p1", "lunch", "p2"]
    assert monday.cells[0].entry.subject_name == "Math"
    assert monday.cells[0].teacher_label == "Asha Rao"
    assert monday.cells[1].is_break is True
    assert monday.cells[2].entry is None


def test_export_filename_slugifies_section_label():
    assert export_filename("Class 5 • A") == "timetable-class-5-a.csv"
