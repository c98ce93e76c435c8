import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from attendo.db.base import Base


class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    department: Mapped[str | None] = mapped_column(String(200), nullable=True)
    credit_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)


class ClassSubject(Base):
    """A subject a class studies during one term."""

    __tablename__ = "class_subjects"
    __table_args__ = (
        UniqueConstraint("class_id", "subject_id", "term_id", name="uq_class_subjects_identity"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    class_id: Mapped[str] = mapped_column(String(36), ForeignKey("classes.id", ondelete="CASCADE"), index=True)
    subject_id: Mapped[str] = mapped_column(String(36), ForeignKey("subjects.id", ondelete="CASCADE"), index=True)
    term_id: Mapped[str] = mapped_column(String(36), ForeignKey("terms.id", ondelete="CASCADE"), index=True)


class TrainerSubjectAssignment(Base):
    """A trainer taking on a class subject for a term."""

    __tablename__ = "trainer_subject_assignments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    class_subject_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("class_subjects.id", ondelete="CASCADE"), index=True
    )
    term_id: Mapped[str] = mapped_column(String(36), ForeignKey("terms.id", ondelete="CASCADE"), index=True)
    trainer_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
