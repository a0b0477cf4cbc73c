from app.models.academic import (  # noqa: F401
    ClassSection,
    ClassSectionSubject,
    DirectoryMember,
    SchoolClass,
    Subject,
    TeacherSubjectAssignment,
)
from app.models.activity_log import ActivityLog  # noqa: F401
from app.models.timetable import TimetableEntry, TimetablePeriod  # noqa: F401
