"""Unit management and assignment of units to class periods."""

from __future__ import annotations

import copy
import datetime
import logging
from dataclasses import dataclass
from typing import Any

from lessonroom.core.errors import ConflictError, NotFoundError, PayloadValidationError
from lessonroom.schema.lessons import build_lesson_reference, reference_id
from lessonroom.services.lesson_resolver import is_resolved_lesson, resolve_lesson_references
from lessonroom.services.lessons import require_lesson
from lessonroom.services.teachers import find_unit, get_teacher_units, require_teacher
from lessonroom.storage.documents_repo import STUDENTS, TEACHERS, Document, DocumentStore, add_to_set, remove_where
from lessonroom.utils.ids import DocumentId, identifier_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssignmentResult:
  unit: dict[str, Any]
  lesson_ids: list[DocumentId]
  students_updated: int
  student_names: list[str]


def normalize_class_period(value: Any) -> str:
  """Class periods arrive as numbers or strings; both are stored as trimmed strings."""
  if value is None or isinstance(value, bool):
    raise PayloadValidationError(["classPeriod"])
  text = str(value).strip()
  if not text:
    raise PayloadValidationError(["classPeriod"])
  return text


def _period_forms(period: str) -> list[Any]:
  """Stored forms a normalized period may take; older student records hold numbers."""
  forms: list[Any] = [period]
  if period.isascii() and period.isdigit() and len(period) < 19:
    forms.append(int(period))
  return forms


def _reference_key(reference: Any) -> str | None:
  return identifier_key(reference_id(reference))


def _append_unit(units: list[dict[str, Any]], unit: dict[str, Any]) -> bool:
  if find_unit(units, unit["value"]) is not None:
    raise ConflictError(f"Unit '{unit['value']}' already exists.")
  units.append(unit)
  return True


async def create_unit(store: DocumentStore, *, teacher: str, name: str, value: str) -> dict[str, Any]:
  if not name or not value:
    raise PayloadValidationError([field for field, given in (("name", name), ("value", value)) if not given])
  await require_teacher(store, teacher)

  unit = {"name": name, "value": value, "lessons": []}
  await store.update_one(TEACHERS, {"name": teacher}, lambda document: _append_unit(document.setdefault("units", []), copy.deepcopy(unit)))
  logger.info("Created unit %s for teacher=%s", value, teacher)
  return unit


def _require_unit_in(document: Document, unit_value: str) -> dict[str, Any]:
  unit = find_unit(document.get("units") or [], unit_value)
  if unit is None:
    raise NotFoundError(f"Unit '{unit_value}' not found.")
  return unit


async def add_lesson_to_unit(store: DocumentStore, *, teacher: str, unit_value: str, lesson_id: Any) -> dict[str, Any]:
  """Reference an existing lesson from a unit; adding the same lesson twice is a no-op."""
  lesson = await require_lesson(store, lesson_id)
  await require_teacher(store, teacher)
  reference = build_lesson_reference(lesson["_id"], lesson)

  def mutate(document: Document) -> bool:
    unit = _require_unit_in(document, unit_value)
    return add_to_set(unit.setdefault("lessons", []), reference, key=_reference_key)

  await store.update_one(TEACHERS, {"name": teacher}, mutate)
  return reference


async def remove_lesson_from_unit(store: DocumentStore, *, teacher: str, unit_value: str, lesson_id: Any) -> int:
  """Drop every reference to a lesson from a unit, whatever representation it was stored under."""
  key = identifier_key(lesson_id)
  if key is None:
    raise PayloadValidationError(["lessonId"])
  await require_teacher(store, teacher)
  removed = 0

  def mutate(document: Document) -> bool:
    nonlocal removed
    unit = _require_unit_in(document, unit_value)
    removed = remove_where(unit.setdefault("lessons", []), lambda item: _reference_key(item) == key)
    return removed > 0

  await store.update_one(TEACHERS, {"name": teacher}, mutate)
  return removed


def _claim_period(units: list[dict[str, Any]], unit_value: str, class_period: str, claimed: dict[str, Any] | None, now: datetime.datetime) -> bool:
  """Give one unit the period, taking it away from any other unit of the same teacher."""
  if claimed is not None and find_unit(units, unit_value) is None:
    units.append(copy.deepcopy(claimed))
  target = find_unit(units, unit_value)
  if target is None:
    raise NotFoundError(f"Unit '{unit_value}' not found.")

  for unit in units:
    if unit is not target and unit.get("assigned_class_period") == class_period:
      del unit["assigned_class_period"]
      unit.pop("assigned_at", None)
  target["assigned_class_period"] = class_period
  target["assigned_at"] = now
  return True


def _replace_assignment(student: Document, assignment: dict[str, Any], updated: list[str]) -> bool:
  assigned = student.setdefault("assignedUnits", [])
  remove_where(assigned, lambda entry: isinstance(entry, dict) and entry.get("assigned_by") == assignment["assigned_by"] and entry.get("class_period") == assignment["class_period"])
  assigned.append(copy.deepcopy(assignment))
  updated.append(student.get("memberName"))
  return True


async def assign_unit_to_period(store: DocumentStore, *, teacher: str, unit_value: str, class_period: Any, master_teacher: str) -> AssignmentResult:
  """Assign a unit to a class period and push the lesson list to every enrolled student.

  A unit the teacher only inherits from the master teacher is copied into the teacher's own units
  first. Each student keeps at most one assignment per (teacher, class period). The teacher update
  and the per-student updates are separate writes.
  """
  period = normalize_class_period(class_period)
  teacher_doc = await require_teacher(store, teacher)

  # Fall back to the master catalog when the teacher does not own the unit.
  claimed: dict[str, Any] | None = None
  unit = find_unit(teacher_doc.get("units") or [], unit_value)
  if unit is None:
    master_unit = find_unit(await get_teacher_units(store, master_teacher), unit_value)
    if master_unit is None:
      raise NotFoundError(f"Unit '{unit_value}' not found.")
    claimed = {key: value for key, value in master_unit.items() if key not in ("assigned_class_period", "assigned_at")}
    claimed["inherited_from"] = master_teacher
    unit = claimed

  now = datetime.datetime.now(datetime.UTC)
  result = await store.update_one(TEACHERS, {"name": teacher}, lambda document: _claim_period(document.setdefault("units", []), unit_value, period, claimed, now))
  if result.matched_count == 0:
    raise NotFoundError(f"Teacher '{teacher}' not found.")

  # Students get a snapshot of the resolved ids; legacy references without an id are skipped.
  resolution = await resolve_lesson_references(store, unit.get("lessons") or [])
  lesson_ids = [entry["_id"] for entry in resolution.lessons if is_resolved_lesson(entry)]

  assignment = {
    "unit_value": unit_value,
    "unit_name": unit.get("name"),
    "assigned_by": teacher,
    "assigned_at": now,
    "class_period": period,
    "lesson_ids": lesson_ids,
  }
  student_names: list[str] = []
  students = await store.update_many(STUDENTS, {"teacher": teacher, "classPeriod": {"$in": _period_forms(period)}}, lambda student: _replace_assignment(student, assignment, student_names))

  logger.info("Assigned unit %s of teacher=%s to period %s; students=%d lessons=%d", unit_value, teacher, period, students.matched_count, len(lesson_ids))
  assigned_unit = {**unit, "assigned_class_period": period, "assigned_at": now}
  return AssignmentResult(unit=assigned_unit, lesson_ids=lesson_ids, students_updated=students.matched_count, student_names=student_names)
