from __future__ import annotations

import logging

from sqlalchemy import inspect

from campus_scheduler.db.base import Base
from campus_scheduler.db.session import engine

import campus_scheduler.models  # noqa: F401

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "departments": {"id", "name"},
    "subjects": {"id", "department_id", "semester", "hours_per_week", "credits"},
    "faculty": {"id", "department_id", "is_available"},
    "classrooms": {"id", "department_id", "is_available"},
    "student_batches": {"id", "department_id", "semester"},
    "faculty_subjects": {"id", "faculty_id", "subject_id", "preference_level"},
    "fixed_slots": {"id", "day_of_week", "start_time", "end_time", "is_active"},
    "optimization_params": {"id", "department_id", "working_days"},
}


def _assert_required_columns(bind=None) -> None:
    with (bind or engine).begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_catalog_schema(bind=None) -> None:
    target = bind or engine
    try:
        Base.metadata.create_all(bind=target)
        _assert_required_columns(target)
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Catalog schema bootstrap failed")
        raise RuntimeError("Catalog schema bootstrap failed") from exc
