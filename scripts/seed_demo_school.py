"""Seed a demo school with classes, subjects, a bell schedule and editor/viewer tokens.

Run:
  PYTHONPATH=backend python scripts/seed_demo_school.py
"""

from __future__ import annotations

import os

from sqlalchemy import select

from app.core.security import create_access_token
from app.db.bootstrap import ensure_runtime_schema_compatibility
from app.db.session import SessionLocal
from app.models.academic import (
    ClassSection,
    ClassSectionSubject,
    DirectoryMember,
    SchoolClass,
    Subject,
    TeacherSubjectAssignment,
)
from app.models.timetable import TimetablePeriod

SCHOOL_ID = os.getenv("DEMO_SCHOOL_ID", "demo-school")

CLASSES = {
    "Class 5": ["A", "B"],
    "Class 6": ["A"],
}
SUBJECTS = ["Mathematics", "English", "Science", "Social Studies", "Art"]
TEACHERS = [
    ("demo-teacher-1", "Asha Rao", "asha.rao@example.com"),
    ("demo-teacher-2", "Ben Okafor", "ben.okafor@example.com"),
    ("demo-teacher-3", None, "c.lindqvist@example.com"),
]
# (label, sort_order, start, end, is_break)
BELL_SCHEDULE = [
    ("Period 1", 1, "08:00", "08:45", False),
    ("Period 2", 2, "08:45", "09:30", False),
    ("Short Break", 3, "09:30", "09:45", True),
    ("Period 3", 4, "09:45", "10:30", False),
    ("Period 4", 5, "10:30", "11:15", False),
    ("Lunch", 6, "11:15", "12:00", True),
    ("Period 5", 7, "12:00", "12:45", False),
]
# Subject -> default teacher for every section
DEFAULT_TEACHERS = {
    "Mathematics": "demo-teacher-1",
    "Science": "demo-teacher-1",
    "English": "demo-teacher-2",
    "Social Studies": "demo-teacher-3",
}


def _get_or_create(session, model, **filters):
    existing = session.execute(select(model).filter_by(**filters)).scalar_one_or_none()
    if existing is None:
        existing = model(**filters)
        session.add(existing)
        session.flush()
    return existing


def _upsert_assignment(session, section_id: str, subject_id: str, teacher_user_id: str) -> None:
    existing = session.execute(
        select(TeacherSubjectAssignment).where(
            TeacherSubjectAssignment.class_section_id == section_id,
            TeacherSubjectAssignment.subject_id == subject_id,
        )
    ).scalar_one_or_none()
    if existing is None:
        session.add(
            TeacherSubjectAssignment(
                school_id=SCHOOL_ID,
                class_section_id=section_id,
                subject_id=subject_id,
                teacher_user_id=teacher_user_id,
            )
        )
    else:
        existing.teacher_user_id = teacher_user_id


def _seed() -> list[ClassSection]:
    with SessionLocal() as session:
        subjects = {name: _get_or_create(session, Subject, school_id=SCHOOL_ID, name=name) for name in SUBJECTS}

        for user_id, display_name, email in TEACHERS:
            member = _get_or_create(session, DirectoryMember, school_id=SCHOOL_ID, user_id=user_id, email=email)
            member.display_name = display_name

        for label, sort_order, start, end, is_break in BELL_SCHEDULE:
            period = _get_or_create(session, TimetablePeriod, school_id=SCHOOL_ID, label=label)
            period.sort_order = sort_order
            period.start_time = start
            period.end_time = end
            period.is_break = is_break

        sections: list[ClassSection] = []
        for class_name, section_names in CLASSES.items():
            school_class = _get_or_create(session, SchoolClass, school_id=SCHOOL_ID, name=class_name)
            for section_name in section_names:
                section = _get_or_create(
                    session,
                    ClassSection,
                    school_id=SCHOOL_ID,
                    class_id=school_class.id,
                    name=section_name,
                )
                sections.append(section)
                for subject_name, subject in subjects.items():
                    # Art is left disabled for Class 6 to show the eligibility filter.
                    if subject_name == "Art" and class_name == "Class 6":
                        continue
                    _get_or_create(
                        session,
                        ClassSectionSubject,
                        school_id=SCHOOL_ID,
                        class_section_id=section.id,
                        subject_id=subject.id,
                    )
                    teacher_id = DEFAULT_TEACHERS.get(subject_name)
                    if teacher_id:
                        _upsert_assignment(session, section.id, subject.id, teacher_id)

        session.commit()
        for section in sections:
            session.refresh(section)
        return sections


def main() -> None:
    ensure_runtime_schema_compatibility()
    sections = _seed()

    print(f"\nDemo school ready: {SCHOOL_ID}")
    for section in sections:
        print(f"  - section {section.name}: {section.id}")

    editor = create_access_token("demo-editor", school_id=SCHOOL_ID, can_edit_timetable=True)
    viewer = create_access_token("demo-viewer", school_id=SCHOOL_ID, can_edit_timetable=False)
    print("\nBearer tokens:")
    print(f"  - editor: {editor}")
    print(f"  - viewer: {viewer}")


if __name__ == "__main__":
    main()
