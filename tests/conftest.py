import json
import os

# Configure the app before it is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("OPENROUTER_API_KEY", "test-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.models.user import User
from app.schemas.openrouter import ChatCompletionResponse
from app.utils.dependencies import get_openrouter_service
from app.utils.security import build_session, hash_password

SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_movie(title="Inception", year=2010, **overrides):
    movie = {
        "title": title,
        "year": year,
        "description": "A thief steals secrets through dream-sharing technology.",
        "genres": ["Sci-Fi", "Thriller"],
        "actors": ["Leonardo DiCaprio", "Elliot Page"],
        "director": "Christopher Nolan",
    }
    movie.update(overrides)
    return movie


def make_completion(content, model="openai/gpt-4o-mini"):
    """Completion body as OpenRouter returns it"""
    return {
        "id": "gen-123",
        "model": model,
        "created": 1700000000,
        "object": "chat.completion",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 120, "completion_tokens": 300, "total_tokens": 420},
    }


class FakeOpenRouter:
    """Stands in for OpenRouterService: records prompts, replays queued replies"""

    model = "test/model"

    def __init__(self):
        self.prompts = []
        self.replies = []

    def reply_with_movies(self, *movies):
        self.replies.append(json.dumps({"movies": list(movies)}))

    def reply_with(self, reply):
        """Queue raw content (str) or an exception to raise"""
        self.replies.append(reply)

    def send_chat_request(self, message):
        self.prompts.append(message)
        reply = self.replies.pop(0) if self.replies else json.dumps({"movies": []})
        if isinstance(reply, Exception):
            raise reply
        return ChatCompletionResponse.model_validate(make_completion(reply, model=self.model))


@pytest.fixture
def db_session():
    """Provide a clean database session for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_openrouter():
    return FakeOpenRouter()


@pytest.fixture
def client(db_session, fake_openrouter):
    """FastAPI test client with the database and AI client overridden."""

    def override_get_db():
        test_db = TestingSessionLocal()
        try:
            yield test_db
        finally:
            test_db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_openrouter_service] = lambda: fake_openrouter

    yield TestClient(app)

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_openrouter_service, None)


def create_user(session, email="user@example.com", password="Password123!", name="Test User"):
    user = User(email=email, password_hash=hash_password(password), name=name)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def auth_headers_for(user):
    token = build_session(user.id, user.email)["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def test_user(db_session):
    return create_user(db_session)


@pytest.fixture
def other_user(db_session):
    return create_user(db_session, email="other@example.com", name="Other User")


@pytest.fixture
def auth_headers(test_user):
    return auth_headers_for(test_user)
