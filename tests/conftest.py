"""
Shared fixtures: in-memory SQLite store, fake Gemini generator, and a FastAPI app
wired to both through dependency overrides (no lifespan, no network).
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from studynotes import models  # noqa: F401 - register tables on Base.metadata
from studynotes.config import Settings
from studynotes.database import Base, build_session_factory, get_db
from studynotes.exceptions import GeneratorFailure
from studynotes.main import create_app
from studynotes.routers.ai import get_explanation_generator


class FakeGenerator:
    """Stands in for ExplanationGenerator; records every call."""

    def __init__(self, reply: str = "La derivada es 2x", ocr_text: str = "Explica la derivada de x^2"):
        self.reply = reply
        self.ocr_text = ocr_text
        self.error: Exception | None = None
        self.calls: list[tuple[str, str | None]] = []
        self.ocr_calls: list[tuple[bytes, str]] = []

    def explain(self, text: str, subject: str | None = None) -> str:
        self.calls.append((text, subject))
        if self.error is not None:
            raise self.error
        return self.reply

    def extract_text(self, image_bytes: bytes, mime_type: str = "image/png") -> str:
        self.ocr_calls.append((image_bytes, mime_type))
        if self.error is not None:
            raise self.error
        return self.ocr_text


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def failing_generator():
    gen = FakeGenerator()
    gen.error = GeneratorFailure("Vertex AI timed out")
    return gen


@pytest.fixture
def app(session_factory, generator):
    app = create_app(Settings(database_url="sqlite://", _env_file=None))

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_explanation_generator] = lambda: generator
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_headers(client):
    res = client.post(
        "/api/auth/register",
        json={"email": "ana@example.com", "password": "secret123", "full_name": "Ana"},
    )
    assert res.status_code == 201
    return {"Authorization": f"Bearer {res.json()['access_token']}"}
