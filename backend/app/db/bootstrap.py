from __future__ import annotations

import logging

from sqlalchemy import inspect

import app.models  # noqa: F401
from app.db.base import Base
from app.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "timetable_periods": {"id", "school_id", "label", "sort_order", "is_break"},
    "timetable_entries": {
        "id",
        "school_id",
        "class_section_id",
        "day_of_week",
        "period_id",
        "subject_name",
        "is_published",
        "published_at",
    },
    "class_sections": {"id", "school_id", "class_id", "name"},
    "class_section_subjects": {"class_section_id", "subject_id"},
    "teacher_subject_assignments": {"class_section_id", "subject_id", "teacher_user_id"},
}


def missing_schema() -> tuple[list[str], dict[str, list[str]]]:
    with engine.connect() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = sorted(name for name in REQUIRED_COLUMNS if name not in table_names)
        missing_columns: dict[str, list[str]] = {}
        for table_name, required in REQUIRED_COLUMNS.items():
            if table_name not in table_names:
                continue
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            missing = sorted(required - existing)
            if missing:
                missing_columns[table_name] = missing
    return missing_tables, missing_columns


def ensure_runtime_schema_compatibility() -> None:
    try:
        if engine.dialect.name == "sqlite":
            # Local development databases are not managed by alembic.
            Base.metadata.create_all(bind=engine)
        missing_tables, missing_columns = missing_schema()
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc

    if missing_tables or missing_columns:
        logger.warning(
            "Database schema is behind the models (missing tables: %s, missing columns: %s); run `alembic upgrade head`",
            ", ".join(missing_tables) or "none",
            missing_columns or "none",
        )
