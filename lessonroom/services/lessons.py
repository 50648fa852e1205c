"""Lesson persistence: save, partial update, lookup and legacy-shape repair."""

from __future__ import annotations

import copy
import datetime
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from lessonroom.core.errors import ConflictError, NotFoundError, PayloadValidationError
from lessonroom.schema.lessons import (
  LESSON_FIELDS,
  NESTED_KEY,
  build_lesson_reference,
  decode_lesson,
  detect_shape,
  flatten_lesson_document,
  lesson_title_of,
  lesson_view,
  normalize_conditions,
  reference_id,
)
from lessonroom.services.lesson_resolver import pick_preferred
from lessonroom.services.teachers import find_unit, require_teacher
from lessonroom.storage.documents_repo import LESSONS, TEACHERS, Document, DocumentStore, add_to_set, remove_where
from lessonroom.utils.ids import DocumentId, identifier_key, normalize_identifier

logger = logging.getLogger(__name__)

# Keys a client may never overwrite through a lesson payload.
_PROTECTED_KEYS = frozenset({"_id", NESTED_KEY, "teacher", "unit", "createdAt", "updatedAt"})


@dataclass(frozen=True)
class RepairSummary:
  scanned: int
  repaired: int


def _now() -> datetime.datetime:
  return datetime.datetime.now(datetime.UTC)


def _missing_fields(values: Mapping[str, Any]) -> list[str]:
  return [name for name, value in values.items() if value is None or (isinstance(value, str) and not value.strip())]


def _reference_key(reference: Any) -> str | None:
  return identifier_key(reference_id(reference))


async def find_lesson(store: DocumentStore, raw_id: Any) -> Document | None:
  """Find a lesson by any representation of its identifier, preferring the literal one."""
  candidates = normalize_identifier(raw_id)
  if not candidates:
    return None
  documents = await store.find_by_ids(LESSONS, candidates)
  return pick_preferred(candidates, {document["_id"]: document for document in documents})


async def require_lesson(store: DocumentStore, raw_id: Any) -> Document:
  lesson = await find_lesson(store, raw_id)
  if lesson is None:
    raise NotFoundError(f"Lesson '{raw_id}' not found.")
  return lesson


async def get_lesson(store: DocumentStore, raw_id: Any) -> dict[str, Any]:
  return lesson_view(await require_lesson(store, raw_id))


def _attach_reference(units: list[dict[str, Any]], unit_name: str, unit_value: str, reference: dict[str, Any]) -> bool:
  """Push a lesson reference into a unit, creating the unit when the teacher has none with that value."""
  unit = find_unit(units, unit_value)
  if unit is None:
    units.append({"name": unit_name, "value": unit_value, "lessons": [reference]})
    return True
  lessons = unit.setdefault("lessons", [])
  return add_to_set(lessons, reference, key=_reference_key)


async def save_lesson(store: DocumentStore, *, teacher: str, unit_name: str, unit_value: str, lesson: Mapping[str, Any]) -> DocumentId:
  """Persist a new lesson in the flat layout and reference it from the teacher's unit.

  The teacher must exist before anything is written. The unit is created on the teacher when it
  does not exist yet.
  """
  missing = _missing_fields({"teacher": teacher, "unit.name": unit_name, "unit.value": unit_value, "lesson.lesson_title": lesson.get("lesson_title")})
  if missing:
    raise PayloadValidationError(missing)

  await require_teacher(store, teacher)

  now = _now()
  document = decode_lesson({key: value for key, value in lesson.items() if key not in _PROTECTED_KEYS})
  document["lesson_conditions"] = normalize_conditions(document["lesson_conditions"])
  document.update({"teacher": teacher, "unit": {"name": unit_name, "value": unit_value}, "createdAt": now, "updatedAt": now})
  lesson_id = await store.insert_one(LESSONS, document)

  reference = build_lesson_reference(lesson_id, document)
  result = await store.update_one(TEACHERS, {"name": teacher}, lambda doc: _attach_reference(doc.setdefault("units", []), unit_name, unit_value, reference))
  if result.matched_count == 0:
    logger.warning("Teacher %s disappeared before lesson %s could be referenced", teacher, lesson_id)

  logger.info("Saved lesson %s for teacher=%s unit=%s", lesson_id, teacher, unit_value)
  return lesson_id


def _apply_changes(document: Document, changes: Mapping[str, Any], unit: Mapping[str, str] | None, now: datetime.datetime) -> bool:
  flattened, _ = flatten_lesson_document(document)
  nested = flattened.get(NESTED_KEY)
  for key, value in changes.items():
    if key in _PROTECTED_KEYS:
      continue
    flattened[key] = copy.deepcopy(value)
    # Keep a legacy nested copy consistent with what was written at the top level.
    if isinstance(nested, dict) and (key in nested or key in LESSON_FIELDS):
      nested[key] = copy.deepcopy(value)

  flattened["lesson_conditions"] = normalize_conditions(flattened.get("lesson_conditions", []))
  if isinstance(nested, dict) and "lesson_conditions" in nested:
    nested["lesson_conditions"] = copy.deepcopy(flattened["lesson_conditions"])
  if unit is not None:
    flattened["unit"] = {"name": unit["name"], "value": unit["value"]}
  flattened["updatedAt"] = now

  document.clear()
  document.update(flattened)
  return True


def _sync_unit_references(units: list[dict[str, Any]], lesson_id: DocumentId, document: Mapping[str, Any], target: Mapping[str, str] | None) -> bool:
  """Refresh the reference projection and move it when the lesson changed unit."""
  key = identifier_key(lesson_id)
  reference = build_lesson_reference(lesson_id, document)
  changed = False
  for unit in units:
    lessons = unit.get("lessons") or []
    if target is not None and unit.get("value") != target["value"]:
      changed = remove_where(lessons, lambda item: _reference_key(item) == key) > 0 or changed
      continue
    for item in lessons:
      if isinstance(item, dict) and _reference_key(item) == key:
        item["lesson_title"] = reference["lesson_title"]
        item["lesson_description"] = reference["lesson_description"]
        changed = True
  if target is not None:
    changed = _attach_reference(units, target["name"], target["value"], reference) or changed
  return changed


async def update_lesson(store: DocumentStore, raw_id: Any, *, changes: Mapping[str, Any], unit: Mapping[str, str] | None = None) -> DocumentId:
  """Apply a partial update to an existing lesson.

  Only the fields present in `changes` are written; every other field, including the lesson
  blocks, is preserved. A lesson that cannot be found is reported without writing anything.
  """
  if unit is not None:
    missing = _missing_fields({"unit.name": unit.get("name"), "unit.value": unit.get("value")})
    if missing:
      raise PayloadValidationError(missing)

  existing = await require_lesson(store, raw_id)
  lesson_id = existing["_id"]
  now = _now()

  result = await store.update_one(LESSONS, {"_id": lesson_id}, lambda document: _apply_changes(document, changes, unit, now))
  if result.matched_count == 0:
    raise NotFoundError(f"Lesson '{raw_id}' not found.")

  updated = await require_lesson(store, lesson_id)
  owner = updated.get("teacher")
  if owner:
    await store.update_one(TEACHERS, {"name": owner}, lambda doc: _sync_unit_references(doc.setdefault("units", []), lesson_id, updated, unit))

  logger.info("Updated lesson %s fields=%s", lesson_id, sorted(changes))
  return lesson_id


def _unit_name_of(document: Mapping[str, Any]) -> Any:
  unit = decode_lesson(dict(document)).get("unit")
  return unit.get("name") if isinstance(unit, dict) else None


async def lookup_lesson(store: DocumentStore, *, teacher: str, unit_name: str, lesson_title: str) -> dict[str, Any]:
  """Find a teacher's lesson by unit name and title in either storage layout."""
  missing = _missing_fields({"teacher": teacher, "unitName": unit_name, "lessonTitle": lesson_title})
  if missing:
    raise PayloadValidationError(missing)

  for document in await store.find(LESSONS, {"teacher": teacher}):
    if _unit_name_of(document) == unit_name and lesson_title_of(document) == lesson_title:
      return lesson_view(document)
  raise NotFoundError(f"Lesson '{lesson_title}' not found in unit '{unit_name}'.")


def _flatten_in_place(document: Document, *, clean: bool) -> bool:
  flattened, changed = flatten_lesson_document(document, clean=clean)
  if changed:
    document.clear()
    document.update(flattened)
  return changed


async def repair_lesson(store: DocumentStore, raw_id: Any, *, clean: bool = False) -> tuple[Document, bool]:
  """Copy a lesson's nested-only fields to the top level and return the stored result."""
  existing = await require_lesson(store, raw_id)
  shape = detect_shape(existing)
  result = await store.update_one(LESSONS, {"_id": existing["_id"]}, lambda document: _flatten_in_place(document, clean=clean))
  repaired = await require_lesson(store, existing["_id"])
  logger.info("Flattened lesson %s shape=%s changed=%s", existing["_id"], shape.value, bool(result.modified_count))
  return repaired, bool(result.modified_count)


async def repair_lessons(store: DocumentStore, *, teacher: str | None = None, clean: bool = False) -> RepairSummary:
  """Flatten every lesson, optionally only one teacher's, one document at a time."""
  lesson_filter = {"teacher": teacher} if teacher else {}
  result = await store.update_many(LESSONS, lesson_filter, lambda document: _flatten_in_place(document, clean=clean))
  logger.info("Flattened lessons teacher=%s scanned=%d repaired=%d", teacher or "*", result.matched_count, result.modified_count)
  return RepairSummary(scanned=result.matched_count, repaired=result.modified_count)


def _clear_units(document: Document) -> bool:
  changed = bool(document.get("units"))
  document["units"] = []
  return changed


async def reset_sample_teacher(store: DocumentStore, *, sample_teacher: str, master_teacher: str) -> int:
  """Delete the sample teacher's lessons and units, returning the number of lessons removed."""
  if sample_teacher == master_teacher:
    raise ConflictError("The master teacher cannot be reset.")

  deleted = await store.delete_many(LESSONS, {"teacher": sample_teacher})
  await store.update_one(TEACHERS, {"name": sample_teacher}, _clear_units)
  logger.info("Reset sample teacher %s; removed %d lesson(s)", sample_teacher, deleted)
  return deleted
