"""Shared test fixtures for the scriptdesk test suite.

Every test gets its own application built by ``create_app`` against a fresh
in-memory SQLite database (StaticPool), so there is nothing to clean up
between tests.  Clock and id factory are pinned so timestamps and ids are
predictable.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from scriptdesk.core.config import Settings
from scriptdesk.database import get_db
from scriptdesk.main import create_app
from scriptdesk.schemas.project import FolderNode
from scriptdesk.services import ProjectService, ScriptService

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FakeClock:
    """Returns T0, T0+1s, T0+2s, ... on successive calls."""

    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        now = self.current
        self.current = now + timedelta(seconds=1)
        return now


class SequentialIds:
    def __init__(self, prefix: str = "id"):
        self.prefix = prefix
        self.n = 0

    def __call__(self) -> str:
        self.n += 1
        return f"{self.prefix}-{self.n}"


@pytest.fixture()
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        log_format="text",
        log_level="WARNING",
        rate_limit_per_minute=0,
    )


@pytest.fixture()
def app(settings):
    return create_app(settings)


@pytest.fixture()
def db(app):
    """Per-test database session on the app's in-memory engine."""
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def ids():
    return SequentialIds()


@pytest.fixture()
def project_service(db, clock, ids):
    return ProjectService(db, clock=clock, id_factory=ids)


@pytest.fixture()
def script_service(db, clock, ids):
    return ScriptService(db, clock=clock, id_factory=ids)


@pytest.fixture()
def client(app, db):
    """FastAPI TestClient with the DB dependency overridden to use the test session."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def folder(folder_id: str, name: str = None, parent_id: str = None, children=None, script_count: int = 0) -> FolderNode:
    """Factory for FolderNode values in pure forest tests."""
    return FolderNode(
        id=folder_id,
        name=name or folder_id.upper(),
        parent_id=parent_id,
        children=children,
        script_count=script_count,
        created_at=T0,
    )


def make_project(owner_id: str = "user-1", title: str = "Launch Week", **overrides) -> dict:
    """Factory for project creation payloads."""
    payload = {"owner_id": owner_id, "title": title, "description": "Short-form scripts"}
    payload.update(overrides)
    return payload


def make_script(project_id: str, folder_id: str, title: str = "Hook ideas", content: str = "v1", **overrides) -> dict:
    """Factory for script creation payloads."""
    payload = {
        "owner_id": "user-1",
        "project_id": project_id,
        "folder_id": folder_id,
        "title": title,
        "content": content,
        "metadata": {"content_type": "tiktok", "tags": ["hooks"], "status": "draft"},
    }
    payload.update(overrides)
    return payload
