"""
Shared fixtures: an isolated in-memory database per test.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import tripsplit.models  # noqa: F401  registers every table on Base.metadata
from tripsplit.db.base import Base
from tripsplit.db.session import get_db
from tripsplit.main import app
from tripsplit.models.trip import TripParticipant
from tripsplit.models.user import User
from tripsplit.schemas.trip import TripCreate, ParticipantCreate
from tripsplit.services import trip_service


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
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(username: str) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            hashed_password="not-a-real-hash"
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def owner(make_user):
    return make_user("alice")


@pytest.fixture
def member(make_user):
    return make_user("bob")


@pytest.fixture
def outsider(make_user):
    return make_user("mallory")


@pytest.fixture
def trip(db, owner):
    return trip_service.create_trip(TripCreate(name="Goa", base_currency="INR", creator_name="P1"), owner, db)


@pytest.fixture
def p1(db, trip, owner):
    return db.query(TripParticipant).filter(
        TripParticipant.trip_id == trip.id,
        TripParticipant.user_id == owner.id
    ).one()


@pytest.fixture
def p2(db, trip, owner, member):
    return trip_service.add_participant(
        trip.id, ParticipantCreate(name="P2", email=member.email), owner, db
    )


@pytest.fixture
def totals(db):
    """Return a reader of fresh (total_paid, total_owed) for a participant id."""
    def _totals(participant_id):
        participant = db.get(TripParticipant, participant_id)
        db.refresh(participant)
        return participant.total_paid, participant.total_owed
    return _totals
