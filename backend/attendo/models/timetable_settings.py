from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from attendo.db.base import Base


class TimetableSettings(Base):
    __tablename__ = "timetable_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    generation_deadline_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    timetable_generation_deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    default_sessions_per_week: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    default_min_classes_per_day: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    enforce_room_department_affinity: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
