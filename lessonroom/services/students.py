"""Student profiles, assigned lessons and per-lesson progress."""

from __future__ import annotations

import copy
import datetime
import logging
from collections.abc import Callable
from typing import Any

from lessonroom.core.errors import ConflictError, NotFoundError, PayloadValidationError
from lessonroom.services.catalog import combine_units
from lessonroom.services.lesson_resolver import LessonResolution, resolve_lesson_references
from lessonroom.services.teachers import require_teacher
from lessonroom.services.units import normalize_class_period
from lessonroom.storage.documents_repo import STUDENTS, Document, DocumentStore, add_to_set
from lessonroom.utils.ids import identifier_key

logger = logging.getLogger(__name__)

SOURCE_ASSIGNED = "assigned"


def _now() -> datetime.datetime:
  return datetime.datetime.now(datetime.UTC)


def _new_progress() -> dict[str, Any]:
  return {"elapsed_time": 0, "condition_state": {}, "completed_conditions": [], "completion_snapshots": [], "updated_at": None}


def progress_key(lesson_id: Any) -> str:
  key = identifier_key(lesson_id)
  if key is None:
    raise PayloadValidationError(["lessonId"])
  return key


async def get_student(store: DocumentStore, member_name: str) -> Document | None:
  return await store.find_one(STUDENTS, {"memberName": member_name})


async def require_student(store: DocumentStore, member_name: str) -> Document:
  student = await get_student(store, member_name)
  if student is None:
    raise NotFoundError(f"Student '{member_name}' not found.")
  return student


async def register_student(store: DocumentStore, *, member_name: str, teacher: str, class_period: Any) -> Document:
  if not member_name or not member_name.strip():
    raise PayloadValidationError(["memberName"])
  period = normalize_class_period(class_period)
  await require_teacher(store, teacher)
  if await get_student(store, member_name) is not None:
    raise ConflictError(f"Student '{member_name}' already exists.")

  document = {"memberName": member_name, "teacher": teacher, "classPeriod": period, "assignedUnits": [], "lesson_progress": {}, "createdAt": _now()}
  document["_id"] = await store.insert_one(STUDENTS, document)
  logger.info("Registered student %s for teacher=%s period=%s", member_name, teacher, period)
  return document


async def get_assigned_lessons(store: DocumentStore, member_name: str, *, master_teacher: str) -> tuple[LessonResolution, str]:
  """Resolve a student's assigned lessons.

  Students with no assignments see every lesson of their teacher's combined catalog instead.
  """
  student = await require_student(store, member_name)
  lesson_ids = [lesson_id for entry in student.get("assignedUnits") or [] if isinstance(entry, dict) for lesson_id in entry.get("lesson_ids") or []]
  if lesson_ids:
    return await resolve_lesson_references(store, lesson_ids), SOURCE_ASSIGNED

  units, source = await combine_units(store, student.get("teacher") or "", master_teacher=master_teacher)
  references = [reference for unit in units for reference in unit.get("lessons") or []]
  return await resolve_lesson_references(store, references), source


async def _update_progress(store: DocumentStore, member_name: str, lesson_id: Any, apply: Callable[[dict[str, Any]], None]) -> dict[str, Any]:
  """Create the progress record on first write and apply one change to it atomically."""
  key = progress_key(lesson_id)
  snapshot: dict[str, Any] = {}

  def mutate(student: Document) -> bool:
    progress = student.get("lesson_progress")
    if not isinstance(progress, dict):
      progress = {}
      student["lesson_progress"] = progress
    record = progress.setdefault(key, _new_progress())
    apply(record)
    record["updated_at"] = _now()
    snapshot.update(copy.deepcopy(record))
    return True

  result = await store.update_one(STUDENTS, {"memberName": member_name}, mutate)
  if result.matched_count == 0:
    raise NotFoundError(f"Student '{member_name}' not found.")
  return snapshot


async def get_progress(store: DocumentStore, member_name: str, lesson_id: Any) -> dict[str, Any]:
  student = await require_student(store, member_name)
  record = (student.get("lesson_progress") or {}).get(progress_key(lesson_id))
  return {**_new_progress(), **record} if isinstance(record, dict) else _new_progress()


async def get_lesson_time(store: DocumentStore, member_name: str, lesson_id: Any) -> int:
  progress = await get_progress(store, member_name, lesson_id)
  return int(progress.get("elapsed_time") or 0)


async def add_lesson_time(store: DocumentStore, member_name: str, lesson_id: Any, elapsed_time: int) -> int:
  """Add elapsed seconds to a lesson timer and return the new total."""
  if elapsed_time < 0:
    raise PayloadValidationError(["elapsedTime"])

  def apply(record: dict[str, Any]) -> None:
    record["elapsed_time"] = int(record.get("elapsed_time") or 0) + elapsed_time

  record = await _update_progress(store, member_name, lesson_id, apply)
  return record["elapsed_time"]


async def save_condition_state(store: DocumentStore, member_name: str, lesson_id: Any, condition_state: dict[str, Any]) -> dict[str, Any]:
  def apply(record: dict[str, Any]) -> None:
    record["condition_state"] = copy.deepcopy(condition_state)

  return await _update_progress(store, member_name, lesson_id, apply)


async def record_completion(store: DocumentStore, member_name: str, lesson_id: Any, *, snapshot: dict[str, Any], completed_conditions: list[Any]) -> int:
  """Append a completion snapshot and merge the completed conditions; returns the snapshot count."""
  recorded_at = _now()

  def apply(record: dict[str, Any]) -> None:
    completed = record.setdefault("completed_conditions", [])
    for condition in completed_conditions:
      add_to_set(completed, copy.deepcopy(condition))
    record.setdefault("completion_snapshots", []).append({**copy.deepcopy(snapshot), "recorded_at": recorded_at})

  record = await _update_progress(store, member_name, lesson_id, apply)
  logger.info("Recorded completion for student=%s lesson=%s", member_name, lesson_id)
  return len(record["completion_snapshots"])
