from __future__ import annotations

import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from chore_calendar.db import SQLiteChoreRepository, SQLiteCommentRepository  # noqa: E402
from chore_calendar.main import create_app  # noqa: E402
from chore_calendar.repositories import InMemoryChoreRepository, InMemoryCommentRepository  # noqa: E402
from chore_calendar.settings import Settings  # noqa: E402

from .fakes import FakeImageHost  # noqa: E402


@pytest.fixture(params=["memory", "sqlite"])
def chore_repo(request, tmp_path: Path):
    if request.param == "sqlite":
        return SQLiteChoreRepository(str(tmp_path / "chores.db"))
    return InMemoryChoreRepository()


@pytest.fixture(params=["memory", "sqlite"])
def comment_repo(request, tmp_path: Path):
    if request.param == "sqlite":
        return SQLiteCommentRepository(str(tmp_path / "comments.db"))
    return InMemoryCommentRepository()


@pytest.fixture()
def image_host() -> FakeImageHost:
    return FakeImageHost()


@pytest.fixture()
def settings() -> Settings:
    return Settings(persistence_backend="memory", quota_cap=2, log_level="DEBUG")


@pytest.fixture()
def client(settings: Settings, image_host: FakeImageHost) -> TestClient:
    return TestClient(create_app(settings, image_host=image_host))


@pytest.fixture()
def unconfigured_client(settings: Settings) -> TestClient:
    """App with no image host configured."""
    return TestClient(create_app(settings))
