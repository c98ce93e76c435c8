import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from attendo.db.base import Base

DEFAULT_WORKING_DAYS = [1, 2, 3, 4, 5]


class Term(Base):
    __tablename__ = "terms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # Days of week, 0 = Sunday ... 6 = Saturday. Older rows may hold a JSON string.
    working_days: Mapped[list | None] = mapped_column(
        JSON, nullable=True, default=lambda: list(DEFAULT_WORKING_DAYS)
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class TermClass(Base):
    __tablename__ = "term_classes"
    __table_args__ = (UniqueConstraint("term_id", "class_id", name="uq_term_classes_term_class"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    term_id: Mapped[str] = mapped_column(String(36), ForeignKey("terms.id", ondelete="CASCADE"), index=True)
    class_id: Mapped[str] = mapped_column(String(36), ForeignKey("classes.id", ondelete="CASCADE"), index=True)
