import os

# The app engine is built at import time; point it at a throwaway database first.
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from datetime import date, time, timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient #fake http client, no server needed
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from attendo.api.deps import get_db
from attendo.core.security import create_access_token
from attendo.db.base import Base
from attendo.main import app
from attendo.models.lesson_period import LessonPeriod
from attendo.models.room import Room
from attendo.models.school_class import SchoolClass
from attendo.models.subject import ClassSubject, Subject, TrainerSubjectAssignment
from attendo.models.term import Term, TermClass
from attendo.models.user import User, UserRole
from attendo.services.generation_lock import GenerationLockRegistry, get_generation_locks


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def generation_locks():
    return GenerationLockRegistry(ttl_seconds=600)


@pytest.fixture()
def client(session_factory, generation_locks):
    get_generation_locks().clear() #module registry must not leak holders between tests

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_generation_locks] = lambda: generation_locks

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    get_generation_locks().clear()


@pytest.fixture()
def make_user(db_session):
    counter = {"value": 0}

    def _make_user(role=UserRole.admin, *, has_timetable_admin=False, is_active=True, name=None, department=None):
        counter["value"] += 1
        user = User(
            name=name or f"{role.value.title()} {counter['value']}",
            email=f"{role.value}{counter['value']}@example.com",
            role=role,
            department=department,
            has_timetable_admin=has_timetable_admin,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture()
def auth_headers(make_user):
    def _auth_headers(role=UserRole.admin, **kwargs):
        user = make_user(role, **kwargs)
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _auth_headers


@pytest.fixture()
def seed_school(db_session, make_user):
    """Build a term with classes, subjects, trainers, rooms and lesson periods.

    By default: 2 classes with the same 3 subjects, subject N taught by trainer N
    in both classes, 2 rooms, 5 lesson periods, Monday to Friday.
    """

    def _seed(
        *,
        class_count=2,
        subject_count=3,
        room_count=2,
        period_count=5,
        term_started_days_ago=0,
        working_days=None,
        unassigned_subjects=0,
        class_department="Science",
        room_departments=None,
    ):
        term = Term(
            name="Term 1",
            start_date=date.today() - timedelta(days=term_started_days_ago),
            end_date=date.today() + timedelta(days=90),
            working_days=working_days if working_days is not None else [1, 2, 3, 4, 5],
        )
        db_session.add(term)
        db_session.flush()

        classes = []
        for index in range(class_count):
            school_class = SchoolClass(
                name=f"Grade {index + 1}",
                code=f"G{index + 1}",
                department=class_department,
            )
            db_session.add(school_class)
            db_session.flush()
            db_session.add(TermClass(term_id=term.id, class_id=school_class.id))
            classes.append(school_class)

        trainers = [
            make_user(UserRole.trainer, name=f"Trainer {index + 1}", department=class_department)
            for index in range(subject_count)
        ]

        subjects = []
        assignments = []
        for index in range(subject_count + unassigned_subjects):
            subject = Subject(code=f"SUB{index + 1}", name=f"Subject {index + 1}", credit_hours=3)
            db_session.add(subject)
            db_session.flush()
            subjects.append(subject)
            for school_class in classes:
                class_subject = ClassSubject(class_id=school_class.id, subject_id=subject.id, term_id=term.id)
                db_session.add(class_subject)
                db_session.flush()
                if index >= subject_count:
                    continue
                assignment = TrainerSubjectAssignment(
                    class_subject_id=class_subject.id,
                    term_id=term.id,
                    trainer_id=trainers[index].id,
                )
                db_session.add(assignment)
                assignments.append(assignment)

        departments = room_departments or [None] * room_count
        rooms = []
        for index in range(room_count):
            room = Room(name=f"Room {index + 1}", capacity=40, department=departments[index])
            db_session.add(room)
            rooms.append(room)

        periods = []
        for index in range(period_count):
            period = LessonPeriod(
                name=f"Period {index + 1}",
                start_time=time(8 + index, 0),
                end_time=time(8 + index, 45),
                duration=45,
            )
            db_session.add(period)
            periods.append(period)

        db_session.commit()
        return SimpleNamespace(
            term_id=term.id,
            class_ids=[item.id for item in classes],
            subject_ids=[item.id for item in subjects],
            trainer_ids=[item.id for item in trainers],
            assignment_ids=[item.id for item in assignments],
            room_ids=[item.id for item in rooms],
            period_ids=[item.id for item in periods],
        )

    return _seed
