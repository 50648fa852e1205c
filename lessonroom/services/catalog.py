"""Combine a teacher's own units and lessons with the master teacher's default content."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any

from lessonroom.schema.lessons import lesson_title_of, lesson_view
from lessonroom.services.lesson_resolver import resolve_lesson_references
from lessonroom.services.teachers import get_teacher_units
from lessonroom.storage.documents_repo import LESSONS, DocumentStore

logger = logging.getLogger(__name__)

SOURCE_MASTER = "master"
SOURCE_TEACHER = "teacher"
SOURCE_DEFAULT = "default"


@dataclass(frozen=True)
class TeacherCatalog:
  """Units and lessons a teacher sees, plus which tier produced them."""

  units: list[dict[str, Any]]
  lessons: list[dict[str, Any]]
  source: str


def _tag(items: list[dict[str, Any]], *, default: bool) -> list[dict[str, Any]]:
  return [{**item, "is_default": default, "source": SOURCE_MASTER if default else "own"} for item in items]


async def _teacher_lessons(store: DocumentStore, teacher: str) -> list[dict[str, Any]]:
  return [lesson_view(document) for document in await store.find(LESSONS, {"teacher": teacher})]


async def combine_units(store: DocumentStore, teacher: str, *, master_teacher: str) -> tuple[list[dict[str, Any]], str]:
  """Return the combined, still unresolved, unit list and the tier it came from."""
  master_units = await get_teacher_units(store, master_teacher)
  if teacher == master_teacher:
    return master_units, SOURCE_MASTER

  own_units = await get_teacher_units(store, teacher)
  if not own_units:
    return _tag(master_units, default=True), SOURCE_DEFAULT

  # A master unit is shadowed by any own unit with the same slug.
  own_values = {unit.get("value") for unit in own_units}
  inherited = [unit for unit in master_units if unit.get("value") not in own_values]
  return _tag(own_units, default=False) + _tag(inherited, default=True), SOURCE_TEACHER


async def _resolve_units(store: DocumentStore, units: list[dict[str, Any]]) -> list[dict[str, Any]]:
  resolved_units: list[dict[str, Any]] = []
  for unit in units:
    resolution = await resolve_lesson_references(store, unit.get("lessons") or [])
    resolved_units.append({**unit, "lessons": resolution.lessons})
  return resolved_units


async def build_teacher_catalog(store: DocumentStore, teacher: str, *, master_teacher: str) -> TeacherCatalog:
  """Build the prioritized view of units and lessons for a teacher.

  Own content always wins: master units are shadowed by slug and master lessons by title. A
  teacher without units, or without a teacher document at all, falls back to the master content.
  Every lesson reference inside the returned units is resolved to its full lesson.
  """
  units, source = await combine_units(store, teacher, master_teacher=master_teacher)
  master_lessons = await _teacher_lessons(store, master_teacher)

  if source == SOURCE_MASTER:
    lessons = master_lessons
  elif source == SOURCE_DEFAULT:
    lessons = _tag(master_lessons, default=True)
  else:
    own_lessons = await _teacher_lessons(store, teacher)
    # Titles, not identifiers, decide whether a master lesson is shadowed.
    own_titles = {lesson_title_of(lesson) for lesson in own_lessons}
    inherited_lessons = [lesson for lesson in master_lessons if lesson_title_of(lesson) not in own_titles]
    lessons = _tag(own_lessons, default=False) + _tag(inherited_lessons, default=True)

  logger.info("Catalog for teacher=%s source=%s units=%d lessons=%d", teacher, source, len(units), len(lessons))
  return TeacherCatalog(units=await _resolve_units(store, copy.deepcopy(units)), lessons=lessons, source=source)
