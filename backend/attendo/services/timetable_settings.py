from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from attendo.models.timetable_settings import TimetableSettings
from attendo.schemas.settings import TimetableSettingsBase, TimetableSettingsOut, TimetableSettingsUpdate


def _to_utc(value: datetime | None) -> datetime | None:
    # Stored without offset on some backends; always persist the UTC instant.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def load_timetable_settings(db: Session) -> TimetableSettingsOut:
    record = db.get(TimetableSettings, 1)
    if record is None:
        return TimetableSettingsOut(id=1, **TimetableSettingsBase().model_dump())
    return TimetableSettingsOut(
        id=record.id,
        generation_deadline_enabled=record.generation_deadline_enabled,
        timetable_generation_deadline=_to_utc(record.timetable_generation_deadline),
        default_sessions_per_week=record.default_sessions_per_week,
        default_min_classes_per_day=record.default_min_classes_per_day,
        enforce_room_department_affinity=record.enforce_room_department_affinity,
    )


def update_timetable_settings(db: Session, payload: TimetableSettingsUpdate) -> TimetableSettingsOut:
    record = db.get(TimetableSettings, 1)
    data = payload.model_dump(exclude_unset=True)
    if "timetable_generation_deadline" in data:
        data["timetable_generation_deadline"] = _to_utc(data["timetable_generation_deadline"])
    if record is None:
        defaults = TimetableSettingsBase().model_dump()
        record = TimetableSettings(id=1, **{**defaults, **data})
        db.add(record)
    else:
        for key, value in data.items():
            setattr(record, key, value)
    db.commit()
    db.refresh(record)
    return load_timetable_settings(db)
