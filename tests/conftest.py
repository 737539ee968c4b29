"""Pytest configuration and fixtures."""

import os

# Settings are read at import time; keep tests off the real database
os.environ.setdefault("ENV", "test")
os.environ.setdefault("INIT_DB_ON_STARTUP", "false")
os.environ.setdefault("GEMINI_API_KEY", "")

from collections.abc import AsyncGenerator, Callable, Generator
from datetime import date, datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from portage.api.deps import get_children_store
from portage.catalog.loader import Catalog, get_default_catalog
from portage.db.base import Base
from portage.main import app
from portage.schemas.catalog import DevelopmentalArea, Question
from portage.schemas.child import (
    Assessment,
    AssessmentStatus,
    Child,
    Gender,
    ResponseItem,
    ScoreValue,
)
from portage.services.identity import InMemoryPreferenceStore, SessionContext, StaticIdentityProvider
from portage.services.persistence import InMemoryPersistenceBackend
from portage.services.storage import JsonFileChildrenStore, SqlChildrenStore

# Use SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

FIXED_NOW = datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """Fixed timestamp for scoring actions."""
    return FIXED_NOW


@pytest.fixture
def small_catalog() -> Catalog:
    """Three questions split across two areas (A: 2, B: 1)."""
    return Catalog.from_questions(
        [
            Question(id="q1", area=DevelopmentalArea.LANGUAGE, age_range_label="0-1", description="Balbucia"),
            Question(id="q2", area=DevelopmentalArea.LANGUAGE, age_range_label="1-2", description="Diz 5 palavras"),
            Question(id="q3", area=DevelopmentalArea.MOTOR, age_range_label="0-1", description="Senta sem apoio"),
        ],
        labels={
            DevelopmentalArea.LANGUAGE: "Linguagem",
            DevelopmentalArea.MOTOR: "Desenvolvimento Motor",
        },
    )


@pytest.fixture
def catalog() -> Catalog:
    """The bundled Portage catalog."""
    return get_default_catalog()


@pytest.fixture
def make_child() -> Callable[..., Child]:
    """Factory for children with sensible defaults."""

    def _make_child(child_id: str = "child-1", **overrides) -> Child:
        data = {
            "id": child_id,
            "name": "Ana Souza",
            "birth_date": date(2021, 1, 10),
            "gender": Gender.FEMALE,
            "guardian_name": "Maria Souza",
            "condition": "None",
        }
        data.update(overrides)
        return Child(**data)

    return _make_child


@pytest.fixture
def completed_child(make_child: Callable[..., Child]) -> Child:
    """Child with one completed assessment holding all three score values."""
    assessment = Assessment(
        id="assess-1",
        date=FIXED_NOW,
        lead_professional_name="Dra. Carla",
        lead_professional_role="Fonoaudióloga",
        status=AssessmentStatus.COMPLETED,
        summary_notes="Evolução positiva.",
        responses={
            "q1": ResponseItem(score=ScoreValue.ACHIEVED, respondent_name="Dra. Carla", answered_at=FIXED_NOW),
            "q2": ResponseItem(
                score=ScoreValue.EMERGING,
                respondent_name="João TO",
                answered_at=FIXED_NOW,
                notes="Com ajuda",
            ),
            "q3": ResponseItem(score=ScoreValue.NOT_ACHIEVED, respondent_name="Dra. Carla", answered_at=FIXED_NOW),
        },
    )
    return make_child(condition="Síndrome de Down", clinical_history="Prematuro", assessments=[assessment])


@pytest.fixture
def context() -> SessionContext:
    """Session with a known respondent and role."""
    return SessionContext(
        identity_provider=StaticIdentityProvider(None),
        preferences=InMemoryPreferenceStore(
            {"last_prof_name": "Dra. Carla", "last_prof_role": "Fonoaudióloga"}
        ),
    )


@pytest.fixture
def backend() -> InMemoryPersistenceBackend:
    """Empty in-memory remote store."""
    return InMemoryPersistenceBackend()


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def sql_store(async_engine: AsyncEngine) -> SqlChildrenStore:
    """Children store on the in-memory database."""
    return SqlChildrenStore(
        async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
    )


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    """Location of the JSON children document."""
    return tmp_path / "db.json"


@pytest.fixture
def client(data_file: Path) -> Generator[TestClient, None, None]:
    """Create FastAPI test client backed by a JSON file store."""
    store = JsonFileChildrenStore(data_file)
    app.dependency_overrides[get_children_store] = lambda: store

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
