from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, model_validator


class TimetableSettingsBase(BaseModel):
    generation_deadline_enabled: bool = False
    timetable_generation_deadline: datetime | None = None
    default_sessions_per_week: int = Field(default=2, ge=1, le=5)
    default_min_classes_per_day: int = Field(default=1, ge=1, le=20)
    enforce_room_department_affinity: bool = False


class TimetableSettingsUpdate(BaseModel):
    generation_deadline_enabled: bool | None = None
    timetable_generation_deadline: datetime | None = None
    default_sessions_per_week: int | None = Field(default=None, ge=1, le=5)
    default_min_classes_per_day: int | None = Field(default=None, ge=1, le=20)
    enforce_room_department_affinity: bool | None = None

    @model_validator(mode="after")
    def validate_deadline(self) -> "TimetableSettingsUpdate":
        if self.generation_deadline_enabled and "timetable_generation_deadline" in self.model_fields_set:
            if self.timetable_generation_deadline is None:
                raise ValueError("timetable_generation_deadline is required when the deadline is enabled")
        return self


class TimetableSettingsOut(TimetableSettingsBase):
    id: int
