"""
Pytest configuration and fixtures

IMPORTANT: All tests use transactional rollback isolation.
Nothing created during tests persists to the database.

The schema is created on an in-memory SQLite database. pgvector columns
are stored as text there, so nearest-neighbour search itself is exercised
through mocks rather than SQL.
"""
import pytest
import sys
import os
from unittest.mock import MagicMock

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool
from core.database import Base
from models import Coach
from services.coach_voice.config import VoiceEngineConfig
from tests.voice_test_helpers import fake_embedding


@pytest.fixture(scope="session")
def test_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite needs explicit BEGIN for SAVEPOINT support
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_conn, connection_record):
        dbapi_conn.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    import models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine):
    """
    Create a database session with transactional rollback.

    Application commits release a savepoint instead of committing, and the
    outer transaction is rolled back after the test.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def voice_config():
    return VoiceEngineConfig()


@pytest.fixture
def test_coach(db_session):
    """An active coach with neutral traits and an empty voice profile."""
    coach = Coach(
        name="Coach Mike",
        handle="coach-mike",
        description="Former college athlete turned strength coach",
        primary_response_style="tough_love",
        communication_traits={"energy_level": 8, "directness": 9, "formality": 3, "emotion_focus": 3},
        voice_profile={},
        catchphrases=[],
    )
    db_session.add(coach)
    db_session.flush()
    return coach


@pytest.fixture
def mock_embedding_client():
    client = MagicMock()
    client.embed.return_value = fake_embedding()
    return client


@pytest.fixture
def mock_completion_client():
    client = MagicMock()
    client.complete.return_value = "No excuses. Lace up and get it done!"
    return client
