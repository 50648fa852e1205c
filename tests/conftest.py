"""Shared fixtures: an in-memory store and realtime services injected through dependency overrides."""

from __future__ import annotations

import os

# Settings are cached on first import, so the environment is fixed before the app loads.
os.environ["LESSONROOM_ALLOWED_ORIGINS"] = "http://localhost:3000"
os.environ["LESSONROOM_STORE_BACKEND"] = "memory"
os.environ["LESSONROOM_MASTER_TEACHER"] = "master@lessonroom.test"
os.environ["LESSONROOM_SAMPLE_TEACHER"] = "sample@lessonroom.test"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from lessonroom.api.deps import get_broadcaster, get_registry, get_store  # noqa: E402
from lessonroom.main import app  # noqa: E402
from lessonroom.notifications.registry import ConnectionRegistry  # noqa: E402
from lessonroom.notifications.service import BroadcastService  # noqa: E402
from lessonroom.storage.memory_documents_repo import MemoryDocumentStore  # noqa: E402

MASTER = "master@lessonroom.test"
SAMPLE = "sample@lessonroom.test"


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def store() -> MemoryDocumentStore:
  return MemoryDocumentStore()


@pytest.fixture
def registry() -> ConnectionRegistry:
  return ConnectionRegistry()


@pytest.fixture
def broadcaster(registry: ConnectionRegistry) -> BroadcastService:
  return BroadcastService(registry)


@pytest.fixture
def client(store, registry, broadcaster):
  app.dependency_overrides[get_store] = lambda: store
  app.dependency_overrides[get_registry] = lambda: registry
  app.dependency_overrides[get_broadcaster] = lambda: broadcaster
  try:
    yield TestClient(app)
  finally:
    app.dependency_overrides.clear()
