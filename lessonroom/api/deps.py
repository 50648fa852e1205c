"""Shared FastAPI dependencies for the store and realtime services."""

from __future__ import annotations

from starlette.requests import HTTPConnection

from lessonroom.notifications.registry import ConnectionRegistry
from lessonroom.notifications.service import BroadcastService
from lessonroom.storage.documents_repo import DocumentStore


def get_store(connection: HTTPConnection) -> DocumentStore:
  """Return the document store built during startup."""
  return connection.app.state.store


def get_registry(connection: HTTPConnection) -> ConnectionRegistry:
  return connection.app.state.registry


def get_broadcaster(connection: HTTPConnection) -> BroadcastService:
  return connection.app.state.broadcaster
