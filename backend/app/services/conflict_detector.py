from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from typing import Any, Dict, List, Tuple

from app.schemas.conflict import ConflictSummary, EntryConflict

UNKNOWN_SECTION_LABEL = "another section"


def normalize_room_key(room: str | None) -> str:
    if not room:
        return ""
    return room.strip().casefold()


def _slot_key(entry: Any) -> Tuple[int, str] | None:
    entry_id = getattr(entry, "id", None)
    section_id = getattr(entry, "class_section_id", None)
    day = getattr(entry, "day_of_week", None)
    period_id = getattr(entry, "period_id", None)
    if not entry_id or not section_id or day is None or not period_id:
        return None
    return day, period_id


def _tag_group(
    group: List[Any],
    conflict_type: str,
    section_labels: Mapping[str, str],
    conflicts: Dict[str, List[EntryConflict]],
) -> None:
    if len({entry.class_section_id for entry in group}) < 2:
        return

    for entry in group:
        others = [other for other in group if other.class_section_id != entry.class_section_id]
        other_section_ids = list(dict.fromkeys(other.class_section_id for other in others))
        names = ", ".join(section_labels.get(section_id, UNKNOWN_SECTION_LABEL) for section_id in other_section_ids)
        if conflict_type == "teacher":
            message = f"Teacher already assigned in {names}"
        else:
            message = f"Room already used in {names}"
        conflicts[entry.id].append(
            EntryConflict(
                type=conflict_type,
                message=message,
                other_entry_ids=[other.id for other in others],
                other_section_ids=other_section_ids,
            )
        )


def detect_conflicts(
    entries: Iterable[Any],
    section_labels: Mapping[str, str] | None = None,
) -> Dict[str, List[EntryConflict]]:
    """Map entry id -> teacher/room double-bookings against other sections.

    ``entries`` must be the whole school's snapshot. Two entries conflict when
    they share (day, period), belong to different sections and agree on the
    teacher or on the room (trimmed, case-insensitive). Entries without an id,
    section, day or period are ignored. Only entries with at least one
    conflict appear in the result.
    """
    labels = section_labels or {}
    conflicts: Dict[str, List[EntryConflict]] = defaultdict(list)

    slots: Dict[Tuple[int, str], List[Any]] = defaultdict(list)
    seen: set[str] = set()
    for entry in entries:
        key = _slot_key(entry)
        if key is None or entry.id in seen:
            continue
        seen.add(entry.id)
        slots[key].append(entry)

    for slot_entries in slots.values():
        if len(slot_entries) < 2:
            continue

        by_teacher: Dict[str, List[Any]] = defaultdict(list)
        for entry in slot_entries:
            teacher_id = getattr(entry, "teacher_user_id", None)
            if teacher_id:
                by_teacher[teacher_id].append(entry)
        for group in by_teacher.values():
            _tag_group(group, "teacher", labels, conflicts)

        by_room: Dict[str, List[Any]] = defaultdict(list)
        for entry in slot_entries:
            room_key = normalize_room_key(getattr(entry, "room", None))
            if room_key:
                by_room[room_key].append(entry)
        for group in by_room.values():
            _tag_group(group, "room", labels, conflicts)

    return dict(conflicts)


def conflict_summary(conflicts: Mapping[str, List[EntryConflict]]) -> ConflictSummary:
    summary = ConflictSummary(affected_entries=len(conflicts))
    for items in conflicts.values():
        kinds = {item.type for item in items}
        if "teacher" in kinds:
            summary.teacher += 1
        if "room" in kinds:
            summary.room += 1
    return summary
