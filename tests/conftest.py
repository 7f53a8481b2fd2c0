"""
Pytest configuration and fixtures

Every test gets a fresh in-memory SQLite database (StaticPool, schema from
Base.metadata), an in-process cache and an in-process rate limiter, so
nothing needs Postgres or Redis and nothing leaks between tests.
"""
import os
import sys
from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

import pytest

# Point the app at SQLite before anything imports core.database
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_FORMAT", "text")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.cache import LocalCache
from core.database import Base
from core.rate_limit import RateLimiter
from models import User, Exercise
from services.exercise_catalog import ExerciseCatalog
from services.observability import Observability
from services.plan_framework.cache import PlanCacheService
from services.plan_framework.generator import PlanGenerator
from services.plan_service import PlanService
from services.plan_store import PlanStore

FIXED_NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
PLAN_START = date(2026, 3, 2)

# (name, muscle_group, equipment), inserted in this order
TEST_CATALOG = [
    ("Push-ups", "chest", "bodyweight"),
    ("Bench Press", "chest", "barbell"),
    ("Dumbbell Bench Press", "chest", "dumbbells"),
    ("Overhead Press", "shoulders", "barbell"),
    ("Pike Push-ups", "shoulders", "bodyweight"),
    ("Bench Dips", "triceps", "bodyweight"),
    ("Band Triceps Pushdown", "triceps", "resistance-band"),
    ("Pull-ups", "back", "pull-up-bar"),
    ("Bent-over Row", "back", "barbell"),
    ("One-arm Dumbbell Row", "back", "dumbbells"),
    ("Inverted Row", "back", "bodyweight"),
    ("Band Curl", "biceps", "resistance-band"),
    ("Squats", "legs", "bodyweight"),
    ("Back Squat", "legs", "barbell"),
    ("Goblet Squat", "legs", "kettlebell"),
    ("Glute Bridge", "glutes", "bodyweight"),
    ("Deadlift", "hamstrings", "barbell"),
    ("Running", "cardio", "bodyweight"),
    ("Jump Rope", "cardio", "bodyweight"),
    ("Burpees", "Full Body", "bodyweight"),
    ("Plank", "core", "bodyweight"),
    ("Crunches", "core", "bodyweight"),
    ("Mountain Climbers", "core", "bodyweight"),
]


class FixedRandom:
    """
    Fixed-sequence stand-in for random.Random.

    randrange(n) returns the next value of the sequence modulo n, cycling.
    FixedRandom([0]) always draws index 0, so selection degrades to taking
    pool entries in catalog order.
    """

    def __init__(self, sequence=(0,)):
        self.sequence = list(sequence)
        self.calls = 0

    def randrange(self, n):
        value = self.sequence[self.calls % len(self.sequence)]
        self.calls += 1
        return value % n


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Session on the per-test database. Committing is fine; the database is discarded."""
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def test_user(db_session):
    user = User(email=f"test_{uuid4()}@example.com", display_name="Test User")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def other_user(db_session):
    user = User(email=f"other_{uuid4()}@example.com", display_name="Other User")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def catalog_exercises(db_session):
    """Test catalog with strictly increasing created_at."""
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    exercises = []
    for i, (name, muscle_group, equipment) in enumerate(TEST_CATALOG):
        exercise = Exercise(
            name=name,
            muscle_group=muscle_group,
            equipment=equipment,
            created_at=base + timedelta(minutes=i),
        )
        db_session.add(exercise)
        exercises.append(exercise)
    db_session.commit()
    return exercises


@pytest.fixture
def exercise_ids(catalog_exercises):
    """Exercise id by name."""
    return {e.name: e.id for e in catalog_exercises}


@pytest.fixture
def fixed_random():
    return FixedRandom


@pytest.fixture
def local_cache():
    return LocalCache()


@pytest.fixture
def plan_cache(local_cache):
    return PlanCacheService(local_cache)


@pytest.fixture
def rate_limiter():
    return RateLimiter(
        action_limits={
            "createPlan": 1,
            "nextWorkout": 60,
            "rescheduleWorkout": 10,
            "logWorkout": 10,
        },
        window=60,
    )


@pytest.fixture
def make_service(db_session, plan_cache, rate_limiter):
    """Build a PlanService over the test database; keyword overrides replace collaborators."""

    def _make(**overrides):
        kwargs = dict(
            store=PlanStore(db_session),
            catalog=ExerciseCatalog(db_session),
            cache=plan_cache,
            rate_limiter=rate_limiter,
            observability=Observability(),
            generator=PlanGenerator(rng=FixedRandom([0])),
            clock=lambda: FIXED_NOW,
            ip_salt="test-salt",
        )
        kwargs.update(overrides)
        return PlanService(**kwargs)

    return _make


@pytest.fixture
def plan_service(make_service):
    return make_service()


@pytest.fixture
def strength_profile(test_user):
    return {
        "user_id": test_user.id,
        "goal": "strength",
        "frequency": 3,
        "available_equipment": ["gym completo"],
        "start_date": PLAN_START.isoformat(),
    }
