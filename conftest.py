"""
Shared pytest fixtures.

DATABASE_URL is pinned to in-memory SQLite before Pantry is imported so the
module-level engine never reaches for PostgreSQL. Every test then gets its
own database and a scripted stand-in for the generation service.
"""
import json
import os

os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from api import app
from Pantry.database import Base, get_db, make_engine
from Pantry.routers.base import get_assistant


class FakeAssistant:
    """Returns queued answers in order and records every call it receives."""

    def __init__(self):
        self.answers = {
            "generate_recipe": [],
            "analyze_image": [],
            "categorize_items": [],
            "suggest_equipment": [],
        }
        self.calls = []

    def queue(self, method, *answers):
        self.answers[method].extend(answers)

    def _answer(self, method, *args):
        self.calls.append((method, args))
        if not self.answers[method]:
            raise AssertionError(f"unexpected call to {method}")
        answer = self.answers[method].pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer if isinstance(answer, str) else json.dumps(answer)

    def generate_recipe(self, context, timeout=None):
        return self._answer("generate_recipe", dict(context), timeout)

    def analyze_image(self, image_url, timeout=None):
        return self._answer("analyze_image", image_url, timeout)

    def categorize_items(self, items, categories, timeout=None):
        return self._answer("categorize_items", items, categories, timeout)

    def suggest_equipment(self, level, additional_info=None, timeout=None):
        return self._answer("suggest_equipment", level, additional_info, timeout)


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
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
def assistant():
    return FakeAssistant()


@pytest.fixture
def client(session_factory, assistant):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_assistant] = lambda: assistant
    yield TestClient(app)
    app.dependency_overrides.clear()
