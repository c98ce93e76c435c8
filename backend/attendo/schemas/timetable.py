from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class TimetableSlotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    term_id: str
    day_of_week: int
    lesson_period_id: str
    room_id: str
    trainer_id: str
    class_id: str
    subject_id: str
    status: str
    is_online_session: bool
    created_at: datetime | None = None
