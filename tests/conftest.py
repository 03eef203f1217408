import os
from dataclasses import dataclass

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite://")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from classqa.api.deps import get_rate_limiter
from classqa.core.database import Base, get_db
from classqa.main import app
from classqa.models import (
    Course,
    CourseEnrollment,
    Question,
    Role,
    Session,
    SessionStatus,
    Slide,
    User,
    Visibility,
)
from classqa.services.rate_limiter import RedisRateLimiter
from tests.fakes import FakeClock, FakeRedis


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_redis(clock):
    return FakeRedis(clock=clock)


@pytest.fixture
def limiter(fake_redis):
    return RedisRateLimiter(redis_client=fake_redis)


@pytest.fixture
def client(session_factory, limiter):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    yield TestClient(app)
    app.dependency_overrides.clear()


@dataclass
class Classroom:
    professor: User
    ta: User
    student: User
    other_student: User
    outsider: User
    course: Course
    session: Session
    slide: Slide


def _user(db, utorid: str, name: str, role: Role) -> User:
    user = User(utorid=utorid, email=f"{utorid}@utoronto.ca", name=name, role=role)
    db.add(user)
    db.flush()
    return user


@pytest.fixture
def classroom(db) -> Classroom:
    """An ACTIVE session accepting questions, with a staff member of each kind."""
    professor = _user(db, "prof001", "Professor Smith", Role.PROFESSOR)
    # Globally a professor, but a TA in this course
    ta = _user(db, "prof002", "Dr. Lee", Role.PROFESSOR)
    student = _user(db, "student001", "Student Jones", Role.STUDENT)
    other_student = _user(db, "student002", "Student Kim", Role.STUDENT)
    outsider = _user(db, "student003", "Student Park", Role.STUDENT)

    course = Course(code="CSC108", name="Introduction to Computer Programming", semester="Winter 2026",
                    created_by_id=professor.id)
    db.add(course)
    db.flush()
    db.add_all([
        CourseEnrollment(user_id=professor.id, course_id=course.id, role=Role.PROFESSOR),
        CourseEnrollment(user_id=ta.id, course_id=course.id, role=Role.TA),
        CourseEnrollment(user_id=student.id, course_id=course.id, role=Role.STUDENT),
        CourseEnrollment(user_id=other_student.id, course_id=course.id, role=Role.STUDENT),
    ])

    session = Session(
        course_id=course.id,
        created_by_id=professor.id,
        title="Lecture 1: Introduction to Python",
        status=SessionStatus.ACTIVE,
        is_submissions_enabled=True,
    )
    db.add(session)
    db.flush()
    slide = Slide(session_id=session.id, slide_number=1, content_url="slides/lecture1/1.png")
    db.add(slide)
    db.commit()
    return Classroom(
        professor=professor,
        ta=ta,
        student=student,
        other_student=other_student,
        outsider=outsider,
        course=course,
        session=session,
        slide=slide,
    )


@pytest.fixture
def make_question(db, classroom):
    """Insert a question directly, bypassing rate limits and the gate."""
    def _make(content="What does the return statement do?", **overrides) -> Question:
        fields = dict(
            session_id=classroom.session.id,
            author_id=classroom.student.id,
            content=content,
            visibility=Visibility.PUBLIC,
        )
        fields.update(overrides)
        question = Question(**fields)
        db.add(question)
        db.commit()
        db.refresh(question)
        return question

    return _make
