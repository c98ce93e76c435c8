import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from attendo.db.base import Base


class TimetableGenerationRun(Base):
    """Audit row written in the same transaction as the generated slots."""

    __tablename__ = "timetable_generation_runs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    term_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    sessions_per_week: Mapped[int] = mapped_column(Integer, nullable=False)
    min_classes_per_day: Mapped[int] = mapped_column(Integer, nullable=False)
    regenerated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    slots_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    slots_deleted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    shortfall_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
