"""Shared fixtures: a fresh in-memory app per test, seeded with three users."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator

import pytest
from fastapi.testclient import TestClient

from todo_api.db import SQLiteRepository
from todo_api.main import create_app
from todo_api.repositories import InMemoryRepository, Repository
from todo_api.settings import Settings

BASE_TIME = datetime(2025, 1, 1, 9, 0, 0, tzinfo=timezone.utc)


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "persistence_backend": "memory",
        "sqlite_db_path": "./data/test-todos.db",
        "cors_allow_origins": ["*"],
        "host": "127.0.0.1",
        "port": 5000,
        "log_level": "INFO",
        "users_seed_file": None,
    }
    values.update(overrides)
    return Settings(**values)


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


@pytest.fixture
def repo() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def users(repo: Repository) -> Dict[str, Dict[str, str]]:
    return {
        "alice": repo.add_user("alice", "Alice Adams"),
        "bob": repo.add_user("bob", "Bob Brown"),
        "carol": repo.add_user("carol", "Carol Clark"),
    }


@pytest.fixture
def client(repo: Repository, users) -> Iterator[TestClient]:
    app = create_app(make_settings(), repository=repo)
    with TestClient(app) as c:
        yield c


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path) -> Iterator[Repository]:
    """Each storage backend in turn."""
    if request.param == "memory":
        backend: Repository = InMemoryRepository()
    else:
        backend = SQLiteRepository(str(tmp_path / "todos.db"))
    yield backend
    backend.close()


def todo_fields(user_id: str, title: str, created_at: datetime = BASE_TIME, **overrides: Any) -> Dict[str, Any]:
    fields: Dict[str, Any] = {
        "title": title,
        "description": None,
        "priority": "medium",
        "completed": False,
        "user_id": user_id,
        "tags": [],
        "assigned_users": [],
        "notes": [],
        "created_at": created_at,
        "updated_at": created_at,
    }
    fields.update(overrides)
    return fields
