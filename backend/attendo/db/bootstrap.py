from __future__ import annotations

import logging

from sqlalchemy import inspect, text

from attendo.core.exceptions import ConfigurationError
from attendo.db.base import Base
from attendo.db.session import engine
import attendo.models  # noqa: F401

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "email", "role", "has_timetable_admin"},
    "terms": {"id", "start_date", "end_date", "working_days"},
    "timetable_slots": {
        "id",
        "term_id",
        "day_of_week",
        "lesson_period_id",
        "room_id",
        "trainer_id",
        "class_id",
        "subject_id",
        "is_online_session",
    },
    "timetable_settings": {
        "id",
        "generation_deadline_enabled",
        "timetable_generation_deadline",
        "enforce_room_department_affinity",
    },
}


def _ensure_slot_online_flag_column() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "timetable_slots" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("timetable_slots")}
        if "is_online_session" in column_names:
            return
        connection.execute(
            text("ALTER TABLE timetable_slots ADD COLUMN is_online_session BOOLEAN NOT NULL DEFAULT FALSE")
        )


def _ensure_settings_affinity_column() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "timetable_settings" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("timetable_settings")}
        if "enforce_room_department_affinity" in column_names:
            return
        connection.execute(
            text(
                "ALTER TABLE timetable_settings "
                "ADD COLUMN enforce_room_department_affinity BOOLEAN NOT NULL DEFAULT FALSE"
            )
        )


def _assert_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise ConfigurationError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise ConfigurationError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_runtime_schema_compatibility() -> None:
    try:
        # Tables first, then additive patches for databases created before the column existed.
        Base.metadata.create_all(bind=engine)
        _ensure_slot_online_flag_column()
        _ensure_settings_affinity_column()
        _assert_required_columns()
    except ConfigurationError:
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise ConfigurationError("Runtime schema compatibility bootstrap failed") from exc
