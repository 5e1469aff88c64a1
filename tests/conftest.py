from datetime import date, datetime, time, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from triclub.main import create_app
from triclub.database import Base
from triclub.dependencies import get_db
from triclub.models import ForumPost, PostType, User, UserRole, WorkoutSignup, WorkoutWaitlistEntry
from triclub.auth.jwt_handler import create_access_token

# Test database (SQLite file next to the tests run)
DATABASE_URL = "sqlite:///./test_database.db"

engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Reference workout: 2026-01-15 07:00 in Toronto (EST) is 12:00 UTC
WORKOUT_DATE = date(2026, 1, 15)
WORKOUT_TIME = time(7, 0)
WORKOUT_START_UTC = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def db_session():
    """
    One shared database session per test; tables are created before and
    dropped after every test.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def dispatcher():
    """Notification dispatcher double; inspect the calls it received."""
    return MagicMock()


@pytest.fixture
def client(db_session, dispatcher):
    """
    FastAPI test client built around the test engine, with `get_db` overridden
    to use the test session.
    """
    app = create_app(engine=engine, notification_dispatcher=dispatcher)

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def create_user(db_session: Session):
    """Factory creating a user with the given role."""
    counter = {"n": 0}

    def _create_user(name: str, role: UserRole = UserRole.MEMBER, absences: int = 0) -> User:
        counter["n"] += 1
        user = User(
            name=name,
            email=f"{name.lower().replace(' ', '.')}.{counter['n']}@example.com",
            phone_number="4165550100",
            role=role,
            absences=absences,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _create_user


@pytest.fixture
def admin(create_user) -> User:
    return create_user("Club Admin", UserRole.ADMINISTRATOR)


@pytest.fixture
def member_a(create_user) -> User:
    return create_user("Alice", UserRole.MEMBER)


@pytest.fixture
def member_b(create_user) -> User:
    return create_user("Bob", UserRole.MEMBER)


@pytest.fixture
def member_c(create_user) -> User:
    return create_user("Carol", UserRole.MEMBER)


@pytest.fixture
def create_workout(db_session: Session, admin):
    """Factory creating a workout post authored by the admin unless told otherwise."""

    def _create_workout(
        capacity=None,
        workout_date=WORKOUT_DATE,
        workout_time=WORKOUT_TIME,
        author: User = None,
        title: str = "Tuesday swim",
    ) -> ForumPost:
        workout = ForumPost(
            user_id=(author or admin).id,
            type=PostType.WORKOUT.value,
            title=title,
            content="Pool, lanes 3-5",
            workout_type="swim",
            workout_date=workout_date,
            workout_time=workout_time,
            capacity=capacity,
        )
        db_session.add(workout)
        db_session.commit()
        db_session.refresh(workout)
        return workout

    return _create_workout


@pytest.fixture
def add_signup(db_session: Session):
    def _add_signup(workout: ForumPost, user: User) -> WorkoutSignup:
        signup = WorkoutSignup(post_id=workout.id, user_id=user.id, signup_time=datetime.now(timezone.utc))
        db_session.add(signup)
        db_session.commit()
        return signup

    return _add_signup


@pytest.fixture
def add_to_waitlist(db_session: Session):
    def _add_to_waitlist(workout: ForumPost, user: User) -> WorkoutWaitlistEntry:
        entry = WorkoutWaitlistEntry(post_id=workout.id, user_id=user.id, joined_at=datetime.now(timezone.utc))
        db_session.add(entry)
        db_session.commit()
        return entry

    return _add_to_waitlist


@pytest.fixture
def auth_headers_for():
    """Builds bearer headers for the given user."""

    def _auth_headers_for(user: User) -> dict:
        token = create_access_token({"sub": user.email, "id": user.id, "role": user.role.value})
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers_for
