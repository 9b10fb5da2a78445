import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.database import enable_sqlite_foreign_keys, get_session
from app.main import app
from app.services.match_service import MatchService
from app.services.stores import SqlMatchStore, SqlTournamentStore
from app.services.tournament_service import TournamentService
from tests.memory_stores import MemoryMatchStore, MemoryTournamentStore

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. Use sqlite:///:memory: with StaticPool so ALL sessions share same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Foreign keys enabled per connection (SQLite ignores them otherwise)
# 4. App dependency overridden to use test_engine (see client_fixture)
# 5. Tables dropped and recreated per test so ids start at 1
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(test_engine)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place
    for the entire duration. This ensures the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def tournament_service(session: Session) -> TournamentService:
    return TournamentService(SqlTournamentStore(session), SqlMatchStore(session))


@pytest.fixture
def match_service(session: Session) -> MatchService:
    return MatchService(SqlMatchStore(session))


@pytest.fixture
def memory_stores():
    tournaments = MemoryTournamentStore()
    matches = MemoryMatchStore(tournaments)
    return tournaments, matches
