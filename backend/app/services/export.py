"""Read-side projections of a section's entries: display grid and flat rows."""
from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence

import pandas as pd

from app.models.timetable import TimetableEntry, TimetablePeriod
from app.schemas.timetable import (
    DAY_LABELS,
    EntryOut,
    FlatRowOut,
    GridCellOut,
    GridDayOut,
    day_label,
    time_label,
)

CSV_COLUMNS = (
    ("Day", "day"),
    ("Period", "period"),
    ("Start Time", "start_time"),
    ("End Time", "end_time"),
    ("Subject", "subject"),
    ("Teacher", "teacher"),
    ("Room", "room"),
)


def to_grid(
    periods: Sequence[TimetablePeriod],
    entries: Sequence[TimetableEntry],
) -> dict[tuple[int, str], TimetableEntry]:
    known = {period.id for period in periods}
    return {
        (entry.day_of_week, entry.period_id): entry
        for entry in entries
        if entry.period_id in known
    }


def grid_rows(
    periods: Sequence[TimetablePeriod],
    entries: Sequence[TimetableEntry],
    teacher_labels: Mapping[str, str],
) -> list[GridDayOut]:
    grid = to_grid(periods, entries)
    rows: list[GridDayOut] = []
    for day_of_week, label in enumerate(DAY_LABELS):
        cells: list[GridCellOut] = []
        for period in periods:
            if period.is_break:
                cells.append(GridCellOut(period_id=period.id, is_break=True))
                continue
            entry = grid.get((day_of_week, period.id))
            teacher = None
            if entry is not None and entry.teacher_user_id:
                teacher = teacher_labels.get(entry.teacher_user_id, entry.teacher_user_id)
            cells.append(
                GridCellOut(
                    period_id=period.id,
                    entry=EntryOut.model_validate(entry) if entry is not None else None,
                    teacher_label=teacher,
                )
            )
        rows.append(GridDayOut(day_of_week=day_of_week, label=label, cells=cells))
    return rows


def to_flat_rows(
    periods: Sequence[TimetablePeriod],
    entries: Sequence[TimetableEntry],
    teacher_label: Callable[[str], str | None],
) -> list[FlatRowOut]:
    """One row per entry, ordered by day of week then period ``sort_order``.

    Ties on ``sort_order`` break by label, the same order the grid uses.
    """
    period_by_id = {period.id: period for period in periods}

    def sort_key(entry: TimetableEntry) -> tuple[int, int, str]:
        period = period_by_id.get(entry.period_id)
        if period is None:
            return entry.day_of_week, 0, ""
        return entry.day_of_week, period.sort_order, period.label

    rows: list[FlatRowOut] = []
    for entry in sorted(entries, key=sort_key):
        period = period_by_id.get(entry.period_id)
        teacher = ""
        if entry.teacher_user_id:
            teacher = teacher_label(entry.teacher_user_id) or entry.teacher_user_id
        rows.append(
            FlatRowOut(
                day=day_label(entry.day_of_week),
                period=period.label if period is not None else "",
                start_time=time_label(period.start_time if period is not None else None),
                end_time=time_label(period.end_time if period is not None else None),
                subject=entry.subject_name,
                teacher=teacher,
                room=entry.room or "",
            )
        )
    return rows


def rows_to_csv(rows: Sequence[FlatRowOut]) -> str:
    df = pd.DataFrame(
        [[getattr(row, field) for _, field in CSV_COLUMNS] for row in rows],
        columns=[header for header, _ in CSV_COLUMNS],
        dtype=object,
    )
    return df.to_csv(index=False, lineterminator="\n")


def export_filename(section_label: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", section_label, flags=re.IGNORECASE).lower()
    return f"timetable-{slug}.csv"
