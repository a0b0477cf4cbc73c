class AppError(Exception):
    """Base class for all application exceptions."""
    code = "app_error"

    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidTargetError(AppError):
    """Raised when a slot targets a break period or an unknown period/section."""
    code = "invalid_target"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=422, details=details)


class SubjectNotEligibleError(AppError):
    """Raised when a subject is not linked to the section being edited."""
    code = "subject_not_eligible"

    def __init__(self, subject_id: str, section_id: str):
        super().__init__(
            f"Subject {subject_id} is not enabled for section {section_id}",
            status_code=422,
            details={"subject_id": subject_id, "section_id": section_id},
        )


class PermissionDeniedError(AppError):
    """Raised when the caller lacks the timetable edit capability."""
    code = "permission_denied"

    def __init__(self, message: str = "Read-only: you don't have permission to edit timetables."):
        super().__init__(message, status_code=403)


class SlotConflictError(AppError):
    """Raised when a concurrent writer claimed the same (section, day, period) key."""
    code = "slot_conflict"

    def __init__(self, section_id: str, day_of_week: int, period_id: str):
        super().__init__(
            "The slot was modified by another session; refresh and try again",
            status_code=409,
            details={"section_id": section_id, "day_of_week": day_of_week, "period_id": period_id},
        )


class EntryNotFoundError(AppError):
    """Raised when a requested timetable entry does not exist."""
    code = "not_found"

    def __init__(self, entry_id: str):
        super().__init__(f"Timetable entry with id {entry_id} not found", status_code=404)
