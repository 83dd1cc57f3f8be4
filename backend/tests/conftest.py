import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from campus_scheduler.api.deps import get_db
from campus_scheduler.db.base import Base
from campus_scheduler.main import app
from campus_scheduler.models import (
    Classroom,
    Department,
    Faculty,
    FacultySubject,
    FixedSlot,
    OptimizationParams,
    StudentBatch,
    Subject,
)


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def seeded_catalog(db_session):
    """One department, semester 3: two subjects, two faculty, two rooms, one batch."""
    department = Department(name="Computer Science", code="CSE")
    db_session.add(department)
    db_session.flush()

    data_structures = Subject(
        name="Data Structures",
        code="CS301",
        department_id=department.id,
        semester=3,
        credits=4,
        hours_per_week=3,
    )
    algorithms = Subject(
        name="Algorithms",
        code="CS302",
        department_id=department.id,
        semester=3,
        credits=3,
        hours_per_week=2,
    )
    other_semester = Subject(
        name="Compilers",
        code="CS501",
        department_id=department.id,
        semester=5,
        credits=3,
        hours_per_week=3,
    )
    db_session.add_all([data_structures, algorithms, other_semester])

    alice = Faculty(
        name="Alice Rao",
        employee_id="E100",
        email="alice@example.edu",
        department_id=department.id,
    )
    bob = Faculty(
        name="Bob Iyer",
        employee_id="E101",
        email="bob@example.edu",
        department_id=department.id,
    )
    on_leave = Faculty(
        name="Carol Das",
        employee_id="E102",
        email="carol@example.edu",
        department_id=department.id,
        is_available=False,
    )
    db_session.add_all([alice, bob, on_leave])

    room = Classroom(name="A-101", capacity=60, department_id=department.id)
    shared_room = Classroom(name="Main Hall", capacity=200, department_id=None)
    closed_room = Classroom(name="B-204", capacity=40, department_id=department.id, is_available=False)
    db_session.add_all([room, shared_room, closed_room])

    batch = StudentBatch(
        name="CSE-3A",
        department_id=department.id,
        semester=3,
        student_count=55,
        academic_year="2025-2026",
    )
    db_session.add(batch)
    db_session.flush()

    db_session.add_all([
        FacultySubject(faculty_id=alice.id, subject_id=data_structures.id, preference_level=2),
        FacultySubject(faculty_id=bob.id, subject_id=algorithms.id, preference_level=1),
        FacultySubject(faculty_id=bob.id, subject_id=other_semester.id, preference_level=1),
    ])
    db_session.add(OptimizationParams(department_id=department.id, working_days=5))
    db_session.add(
        FixedSlot(
            day_of_week=0,
            start_time="09:00",
            end_time="10:00",
            faculty_id=alice.id,
            classroom_id=room.id,
            batch_id=batch.id,
            description="Department seminar",
        )
    )
    db_session.commit()

    return {
        "department_id": department.id,
        "subjects": {"ds": data_structures.id, "algo": algorithms.id, "compilers": other_semester.id},
        "faculty": {"alice": alice.id, "bob": bob.id, "carol": on_leave.id},
        "classrooms": {"room": room.id, "shared": shared_room.id, "closed": closed_room.id},
        "batch_id": batch.id,
    }
