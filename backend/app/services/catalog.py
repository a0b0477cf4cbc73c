"""Read projections of the school's reference data.

Everything here is a plain read from the database. The only rule applied is
the eligibility filter: a section only sees subjects linked to it through
``class_section_subjects``.
"""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import InvalidTargetError
from app.models.academic import (
    ClassSection,
    ClassSectionSubject,
    DirectoryMember,
    SchoolClass,
    Subject,
    TeacherSubjectAssignment,
)
from app.models.timetable import TimetableEntry, TimetablePeriod


def section_label(section: ClassSection, class_name: str | None) -> str:
    return f"{class_name or 'Class'} • {section.name}"


def teacher_label(member: DirectoryMember) -> str:
    return member.display_name or member.email


@dataclass(frozen=True)
class SchoolCatalog:
    classes: tuple[SchoolClass, ...]
    sections: tuple[ClassSection, ...]
    periods: tuple[TimetablePeriod, ...]
    teacher_directory: tuple[DirectoryMember, ...]

    def section_labels(self) -> dict[str, str]:
        class_name_by_id = {item.id: item.name for item in self.classes}
        return {
            section.id: section_label(section, class_name_by_id.get(section.class_id))
            for section in self.sections
        }

    def teacher_labels(self) -> dict[str, str]:
        return {member.user_id: teacher_label(member) for member in self.teacher_directory}


@dataclass(frozen=True)
class SectionCatalog:
    section: ClassSection
    eligible_subjects: tuple[Subject, ...]
    eligible_subject_ids: frozenset[str]
    teacher_assignments: tuple[TeacherSubjectAssignment, ...]
    entries: tuple[TimetableEntry, ...]

    def subject_name(self, subject_id: str) -> str | None:
        for subject in self.eligible_subjects:
            if subject.id == subject_id:
                return subject.name
        return None

    def default_teacher_for(self, subject_id: str) -> str | None:
        for assignment in self.teacher_assignments:
            if assignment.subject_id == subject_id:
                return assignment.teacher_user_id
        return None


def load_periods(db: Session, school_id: str) -> list[TimetablePeriod]:
    # sort_order is authoritative; start times are display-only.
    return list(
        db.execute(
            select(TimetablePeriod)
            .where(TimetablePeriod.school_id == school_id)
            .order_by(TimetablePeriod.sort_order.asc(), TimetablePeriod.label.asc())
        ).scalars()
    )


def load_catalog(db: Session, school_id: str) -> SchoolCatalog:
    classes = db.execute(
        select(SchoolClass).where(SchoolClass.school_id == school_id).order_by(SchoolClass.name)
    ).scalars()
    sections = db.execute(
        select(ClassSection).where(ClassSection.school_id == school_id).order_by(ClassSection.name)
    ).scalars()
    directory = db.execute(
        select(DirectoryMember).where(DirectoryMember.school_id == school_id)
    ).scalars()
    return SchoolCatalog(
        classes=tuple(classes),
        sections=tuple(sections),
        periods=tuple(load_periods(db, school_id)),
        teacher_directory=tuple(directory),
    )


def get_section(db: Session, school_id: str, section_id: str) -> ClassSection:
    section = db.get(ClassSection, section_id)
    if section is None or section.school_id != school_id:
        raise InvalidTargetError(f"Section {section_id} not found", details={"section_id": section_id})
    return section


def load_section_catalog(db: Session, school_id: str, section_id: str) -> SectionCatalog:
    section = get_section(db, school_id, section_id)

    allowed_subject_ids = frozenset(
        db.execute(
            select(ClassSectionSubject.subject_id).where(
                ClassSectionSubject.school_id == school_id,
                ClassSectionSubject.class_section_id == section_id,
            )
        ).scalars()
    )
    subjects = db.execute(
        select(Subject).where(Subject.school_id == school_id).order_by(Subject.name)
    ).scalars()
    eligible = tuple(subject for subject in subjects if subject.id in allowed_subject_ids)

    assignments = db.execute(
        select(TeacherSubjectAssignment).where(
            TeacherSubjectAssignment.school_id == school_id,
            TeacherSubjectAssignment.class_section_id == section_id,
        )
    ).scalars()
    entries = db.execute(
        select(TimetableEntry).where(
            TimetableEntry.school_id == school_id,
            TimetableEntry.class_section_id == section_id,
        )
    ).scalars()

    return SectionCatalog(
        section=section,
        eligible_subjects=eligible,
        # Links to subjects from another school never make it into the set.
        eligible_subject_ids=frozenset(subject.id for subject in eligible),
        teacher_assignments=tuple(assignments),
        entries=tuple(entries),
    )
