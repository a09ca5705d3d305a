"""Shared fixtures: in-memory database, API client, sample venues and artists"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["LOCAL_TIMEZONE"] = "Asia/Bangkok"

import fakeredis  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from venuebook.cache import cache  # noqa: E402
from venuebook.database import Base, configure_sqlite, get_db  # noqa: E402
from venuebook.main import app  # noqa: E402
from venuebook.models import Artist, Venue  # noqa: E402

ADMIN = {"X-Actor-Id": "1", "X-Actor-Role": "ADMIN"}


# ═══════════════════════════════════════════════════════════════════════════════
# DATABASE
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def fake_redis():
    """Route the calendar cache to an in-process fake Redis"""
    fake = fakeredis.FakeRedis(decode_responses=True)
    cache.redis_client = fake
    yield fake
    cache.redis_client = None


# ═══════════════════════════════════════════════════════════════════════════════
# SAMPLE DATA
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def ldk(db):
    """Two-slot venue: Early and Late sets every night"""
    venue = Venue(
        name="LDK",
        start_time="18:00",
        end_time="24:00",
        slots=["Early", "Late"],
        slot_hours={
            "Early": {"startTime": "18:00", "endTime": "21:00"},
            "Late": {"startTime": "21:00", "endTime": "02:00"},
        },
    )
    db.add(venue)
    db.commit()
    db.refresh(venue)
    return venue


@pytest.fixture
def riverside(db):
    """Single-slot venue"""
    venue = Venue(name="Riverside", start_time="20:00", end_time="24:00", slots=[])
    db.add(venue)
    db.commit()
    db.refresh(venue)
    return venue


@pytest.fixture
def rooftop(db):
    venue = Venue(name="Rooftop", start_time="19:00", end_time="24:00", slots=[])
    db.add(venue)
    db.commit()
    db.refresh(venue)
    return venue


@pytest.fixture
def dj(db):
    artist = Artist(stage_name="DJ Nova", category="DJ")
    db.add(artist)
    db.commit()
    db.refresh(artist)
    return artist


@pytest.fixture
def other_dj(db):
    artist = Artist(stage_name="DJ Pulse", category="DJ")
    db.add(artist)
    db.commit()
    db.refresh(artist)
    return artist


@pytest.fixture
def artist_headers(dj):
    return {"X-Actor-Id": str(dj.id), "X-Actor-Role": "ARTIST"}


@pytest.fixture
def admin_headers():
    return dict(ADMIN)
