"""Seed a small demo school so timetable generation can be tried end to end.

Run:
  PYTHONPATH=backend python scripts/seed_demo_term.py
"""

from __future__ import annotations

from datetime import date, time, timedelta
import os

from sqlalchemy import select
from sqlalchemy.orm import Session

from attendo.core.security import create_access_token
from attendo.db.bootstrap import ensure_runtime_schema_compatibility
from attendo.db.session import SessionLocal
from attendo.models.lesson_period import LessonPeriod
from attendo.models.room import Room
from attendo.models.school_class import SchoolClass
from attendo.models.subject import ClassSubject, Subject, TrainerSubjectAssignment
from attendo.models.term import Term, TermClass
from attendo.models.user import User, UserRole

TERM_NAME = os.getenv("DEMO_TERM_NAME", "Demo Term")
DEPARTMENT = "Science"

DEMO_CLASSES = [("G7A", "Grade 7 A"), ("G7B", "Grade 7 B")]
DEMO_SUBJECTS = [("MATH7", "Mathematics"), ("SCI7", "Integrated Science"), ("ENG7", "English")]
DEMO_ROOMS = [("Room 101", DEPARTMENT), ("Room 102", None)]
DEMO_PERIODS = [
    ("Period 1", time(8, 0), time(8, 45)),
    ("Period 2", time(8, 50), time(9, 35)),
    ("Period 3", time(9, 50), time(10, 35)),
    ("Period 4", time(10, 40), time(11, 25)),
    ("Period 5", time(11, 30), time(12, 15)),
]


def _upsert_user(session: Session, *, name: str, email: str, role: UserRole) -> User:
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user is None:
        user = User(name=name, email=email, role=role, department=DEPARTMENT)
        session.add(user)
        session.flush()
    return user


def _get_or_create(session: Session, model, lookup: dict, **values):
    instance = session.execute(select(model).filter_by(**lookup)).scalar_one_or_none()
    if instance is None:
        instance = model(**lookup, **values)
        session.add(instance)
        session.flush()
    return instance


def main() -> None:
    ensure_runtime_schema_compatibility()
    with SessionLocal() as session:
        admin = _upsert_user(session, name="Demo Admin", email="admin.demo@example.com", role=UserRole.admin)
        trainers = [
            _upsert_user(
                session,
                name=f"Demo Trainer {index + 1}",
                email=f"trainer{index + 1}.demo@example.com",
                role=UserRole.trainer,
            )
            for index in range(len(DEMO_SUBJECTS))
        ]

        term = _get_or_create(
            session,
            Term,
            {"name": TERM_NAME},
            start_date=date.today() + timedelta(days=7),
            end_date=date.today() + timedelta(days=97),
            working_days=[1, 2, 3, 4, 5],
        )
        classes = [
            _get_or_create(session, SchoolClass, {"code": code}, name=name, department=DEPARTMENT)
            for code, name in DEMO_CLASSES
        ]
        for school_class in classes:
            _get_or_create(session, TermClass, {"term_id": term.id, "class_id": school_class.id})

        for (code, name), trainer in zip(DEMO_SUBJECTS, trainers):
            subject = _get_or_create(session, Subject, {"code": code}, name=name, department=DEPARTMENT)
            for school_class in classes:
                class_subject = _get_or_create(
                    session,
                    ClassSubject,
                    {"class_id": school_class.id, "subject_id": subject.id, "term_id": term.id},
                )
                _get_or_create(
                    session,
                    TrainerSubjectAssignment,
                    {"class_subject_id": class_subject.id, "term_id": term.id, "trainer_id": trainer.id},
                )

        for name, department in DEMO_ROOMS:
            _get_or_create(session, Room, {"name": name}, department=department)
        for name, start_time, end_time in DEMO_PERIODS:
            _get_or_create(
                session,
                LessonPeriod,
                {"name": name},
                start_time=start_time,
                end_time=end_time,
                duration=45,
            )

        session.commit()
        print("\nDemo term ready:")
        print(f"  - term_id: {term.id}")
        print(f"  - classes: {', '.join(code for code, _ in DEMO_CLASSES)}")
        print(f"  - admin bearer token: {create_access_token(admin.id)}")
        print("\nNext:")
        print(f"  GET  /api/timetable/generate/pre-flight?term_id={term.id}")
        print(f'  POST /api/timetable/generate {{"term_id": "{term.id}"}}')


if __name__ == "__main__":
    main()
