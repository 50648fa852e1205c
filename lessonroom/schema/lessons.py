"""Canonical lesson document shape and the decoder for legacy layouts.

Lessons were first written with their content nested under a `lesson` sub-object and later with
the same fields at the top level. Reads decode either layout into one flat canonical dict; writes
always produce the flat layout.
"""

from __future__ import annotations

import copy
from enum import Enum
from typing import Any

from lessonroom.utils.ids import DocumentId, HexId, IntegerId, OpaqueId

NESTED_KEY = "lesson"

# Canonical lesson fields and the value a document gets when neither layout carries them.
LESSON_FIELDS: dict[str, Any] = {
  "lesson_title": "",
  "lesson_description": "",
  "lesson_blocks": [],
  "lesson_conditions": [],
  "intro_text_blocks": [],
  "learning_objectives": [],
  "required_actions": [],
  "success_metrics": {},
  "status": "active",
}

REFERENCE_ID_KEYS = ("_id", "id", "lessonId", "lesson_id")


class LessonShape(str, Enum):
  """Storage layout detected for a lesson document."""

  FLAT = "flat"
  NESTED = "nested"
  MIXED = "mixed"
  EMPTY = "empty"


def _nested(document: dict[str, Any]) -> dict[str, Any]:
  nested = document.get(NESTED_KEY)
  return nested if isinstance(nested, dict) else {}


def detect_shape(document: dict[str, Any]) -> LessonShape:
  """Report where a document keeps its lesson fields."""
  nested = _nested(document)
  has_flat = any(field in document for field in LESSON_FIELDS)
  has_nested = any(field in nested for field in LESSON_FIELDS)
  if has_flat and has_nested:
    return LessonShape.MIXED
  if has_nested:
    return LessonShape.NESTED
  if has_flat:
    return LessonShape.FLAT
  return LessonShape.EMPTY


def decode_lesson(document: dict[str, Any]) -> dict[str, Any]:
  """Decode any stored layout into the flat canonical dict.

  Top-level values win over nested ones. Nested keys missing at the top level are lifted, and
  lesson fields missing from both layouts get their defaults.
  """
  nested = _nested(document)
  canonical = {key: copy.deepcopy(value) for key, value in document.items() if key != NESTED_KEY}
  for key, value in nested.items():
    if key not in canonical:
      canonical[key] = copy.deepcopy(value)
  for field, default in LESSON_FIELDS.items():
    if field not in canonical:
      canonical[field] = copy.deepcopy(default)
  return canonical


def lesson_view(document: dict[str, Any]) -> dict[str, Any]:
  """Return the canonical dict with a nested mirror so readers of either layout find every field."""
  canonical = decode_lesson(document)
  canonical[NESTED_KEY] = {field: copy.deepcopy(canonical[field]) for field in LESSON_FIELDS}
  return canonical


def lesson_title_of(document: dict[str, Any]) -> str:
  title = document.get("lesson_title")
  if title is None:
    title = _nested(document).get("lesson_title")
  return str(title or "")


def normalize_conditions(conditions: Any) -> Any:
  """Back-fill `condition_value` from the legacy `value` field when the former is empty."""
  if not isinstance(conditions, list):
    return conditions

  normalized: list[Any] = []
  for condition in conditions:
    if isinstance(condition, dict):
      condition = dict(condition)
      legacy_value = condition.get("value")
      if condition.get("condition_value") in (None, "") and legacy_value not in (None, ""):
        condition["condition_value"] = legacy_value
    normalized.append(condition)
  return normalized


def flatten_lesson_document(document: dict[str, Any], *, clean: bool = False) -> tuple[dict[str, Any], bool]:
  """Copy nested-only lesson fields to the top level.

  Existing top-level values are never overwritten, and the nested copy is kept unless `clean` is
  set. Running this on its own output changes nothing.
  """
  flattened = copy.deepcopy(document)
  changed = False
  for key, value in _nested(document).items():
    if key not in flattened:
      flattened[key] = copy.deepcopy(value)
      changed = True
  if clean and NESTED_KEY in flattened:
    del flattened[NESTED_KEY]
    changed = True
  return flattened, changed


def reference_id(reference: Any) -> Any:
  """Return the identifier carried by a lesson reference, or None for legacy references without one."""
  if isinstance(reference, dict):
    for key in REFERENCE_ID_KEYS:
      if reference.get(key) not in (None, ""):
        return reference[key]
    return None
  if isinstance(reference, IntegerId | HexId | OpaqueId | int | str):
    return reference
  return None


def build_lesson_reference(doc_id: DocumentId, document: dict[str, Any]) -> dict[str, Any]:
  """Project a lesson into the lightweight reference stored inside a unit."""
  canonical = decode_lesson(document)
  return {"_id": doc_id, "lesson_title": canonical["lesson_title"], "lesson_description": canonical["lesson_description"]}
