"""Teacher profile lookups."""

from __future__ import annotations

import copy
import datetime
import logging
from typing import Any

from lessonroom.core.errors import ConflictError, NotFoundError
from lessonroom.storage.documents_repo import TEACHERS, Document, DocumentStore

logger = logging.getLogger(__name__)


async def get_teacher(store: DocumentStore, name: str) -> Document | None:
  return await store.find_one(TEACHERS, {"name": name})


async def require_teacher(store: DocumentStore, name: str) -> Document:
  """Return a teacher document or raise when the teacher is unknown."""
  teacher = await get_teacher(store, name)
  if teacher is None:
    raise NotFoundError(f"Teacher '{name}' not found.")
  return teacher


async def get_teacher_units(store: DocumentStore, name: str) -> list[dict[str, Any]]:
  """Return a teacher's units as stored; an unknown teacher simply has none."""
  teacher = await get_teacher(store, name)
  if teacher is None:
    return []
  return copy.deepcopy(list(teacher.get("units") or []))


async def register_teacher(store: DocumentStore, name: str) -> Document:
  if await get_teacher(store, name) is not None:
    raise ConflictError(f"Teacher '{name}' already exists.")
  document = {"name": name, "units": [], "createdAt": datetime.datetime.now(datetime.UTC)}
  document["_id"] = await store.insert_one(TEACHERS, document)
  logger.info("Registered teacher %s", name)
  return document


def find_unit(units: list[dict[str, Any]], value: Any) -> dict[str, Any] | None:
  """Return the unit with the given value/slug."""
  for unit in units:
    if unit.get("value") == value:
      return unit
  return None
