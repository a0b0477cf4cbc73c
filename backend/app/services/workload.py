from __future__ import annotations

from collections.abc import Sequence

from app.models.timetable import TimetableEntry, TimetablePeriod
from app.schemas.timetable import DAY_LABELS, DayWorkloadOut, WorkloadOut, parse_time_to_minutes


def period_minutes(period: TimetablePeriod, default_minutes: int) -> int:
    if period.start_time and period.end_time:
        try:
            start = parse_time_to_minutes(period.start_time[:5])
            end = parse_time_to_minutes(period.end_time[:5])
        except ValueError:
            return default_minutes
        return end - start if end > start else 0
    return default_minutes


def _hours(periods: Sequence[TimetablePeriod], period_ids: set[str], default_minutes: int) -> float:
    total_minutes = 0
    for period in periods:
        if period.id not in period_ids or period.is_break:
            continue
        total_minutes += period_minutes(period, default_minutes)
    return round(total_minutes / 60, 1)


def daily_workload(
    periods: Sequence[TimetablePeriod],
    entries: Sequence[TimetableEntry],
    *,
    default_minutes: int = 45,
) -> WorkloadOut:
    by_day: dict[int, list[str]] = {day: [] for day in range(len(DAY_LABELS))}
    for entry in entries:
        if entry.subject_name and entry.day_of_week in by_day:
            by_day[entry.day_of_week].append(entry.period_id)

    days = [
        DayWorkloadOut(
            day_of_week=day,
            label=DAY_LABELS[day],
            periods=len(period_ids),
            hours=_hours(periods, set(period_ids), default_minutes),
        )
        for day, period_ids in by_day.items()
    ]
    total_hours = round(sum(day.hours for day in days), 1)
    active_days = sum(1 for day in days if day.periods > 0)
    return WorkloadOut(
        days=days,
        total_periods=sum(day.periods for day in days),
        total_hours=total_hours,
        average_hours_per_active_day=round(total_hours / active_days, 1) if active_days else 0.0,
    )
