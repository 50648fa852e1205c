"""Routes for authoring, fetching and resolving lessons."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, status

from lessonroom.api.deps import get_broadcaster, get_store
from lessonroom.api.models import LessonLookupRequest, ResolveLessonsRequest, SaveLessonRequest, UnitPayload, UpdateLessonRequest
from lessonroom.core.errors import PayloadValidationError
from lessonroom.core.json import DocumentJSONResponse, success_response
from lessonroom.notifications.service import BroadcastService
from lessonroom.services.lesson_resolver import resolve_lesson_references
from lessonroom.services.lessons import get_lesson, lookup_lesson, save_lesson, update_lesson
from lessonroom.storage.documents_repo import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _unit_fields(unit: UnitPayload | None) -> dict[str, str] | None:
  if unit is None:
    return None
  return {"name": unit.name or "", "value": unit.value or ""}


@router.post("/lessons", status_code=status.HTTP_201_CREATED)
@router.post("/save-lesson", status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def create_lesson(payload: SaveLessonRequest, store: DocumentStore = Depends(get_store), broadcaster: BroadcastService = Depends(get_broadcaster)) -> DocumentJSONResponse:  # noqa: B008
  """Save a new lesson and reference it from the teacher's unit."""
  missing = [name for name, value in (("lesson", payload.lesson), ("unit", payload.unit), ("teacher", payload.teacher)) if not value]
  if missing:
    raise PayloadValidationError(missing)

  lesson_id = await save_lesson(store, teacher=payload.teacher, unit_name=payload.unit.name or "", unit_value=payload.unit.value or "", lesson=payload.lesson)
  broadcaster.notify_teacher(payload.teacher, "lessonCreated", {"teacher": payload.teacher, "lessonId": lesson_id, "unitValue": payload.unit.value, "lessonTitle": payload.lesson.get("lesson_title")})
  return success_response(status.HTTP_201_CREATED, lessonId=lesson_id)


async def _apply_update(store: DocumentStore, broadcaster: BroadcastService, lesson_id: Any, payload: UpdateLessonRequest) -> DocumentJSONResponse:
  updated_id = await update_lesson(store, lesson_id, changes=payload.lesson, unit=_unit_fields(payload.unit))
  if payload.teacher:
    broadcaster.notify_teacher(payload.teacher, "lessonUpdated", {"teacher": payload.teacher, "lessonId": updated_id, "fields": sorted(payload.lesson)})
  return success_response(lessonId=updated_id)


@router.put("/lessons/{lesson_id}")
async def replace_lesson_fields(lesson_id: str, payload: UpdateLessonRequest, store: DocumentStore = Depends(get_store), broadcaster: BroadcastService = Depends(get_broadcaster)) -> DocumentJSONResponse:  # noqa: B008
  """Apply a partial update; omitted fields keep their stored values."""
  return await _apply_update(store, broadcaster, lesson_id, payload)


@router.post("/update-lesson", include_in_schema=False)
async def update_lesson_by_body(payload: UpdateLessonRequest, store: DocumentStore = Depends(get_store), broadcaster: BroadcastService = Depends(get_broadcaster)) -> DocumentJSONResponse:  # noqa: B008
  if payload.lesson_id is None:
    raise PayloadValidationError(["lessonId"])
  return await _apply_update(store, broadcaster, payload.lesson_id, payload)


@router.post("/lessons/lookup")
async def find_lesson_by_title(payload: LessonLookupRequest, store: DocumentStore = Depends(get_store)) -> DocumentJSONResponse:  # noqa: B008
  lesson = await lookup_lesson(store, teacher=payload.teacher or "", unit_name=payload.unit_name or "", lesson_title=payload.lesson_title or "")
  return success_response(lesson=lesson)


@router.post("/lessons/resolve")
async def resolve_lessons(payload: ResolveLessonsRequest, store: DocumentStore = Depends(get_store)) -> DocumentJSONResponse:  # noqa: B008
  """Resolve lesson identifiers in order; unresolved ones are returned as given."""
  resolution = await resolve_lesson_references(store, payload.lesson_ids)
  if resolution.found_count < resolution.requested_count:
    logger.info("Partial lesson resolution student=%s requested=%d found=%d", payload.student_name, resolution.requested_count, resolution.found_count)
  return success_response(lessons=resolution.lessons, requestedCount=resolution.requested_count, foundCount=resolution.found_count)


@router.get("/lessons/{lesson_id}")
async def read_lesson(lesson_id: str, store: DocumentStore = Depends(get_store)) -> DocumentJSONResponse:  # noqa: B008
  return success_response(lesson=await get_lesson(store, lesson_id))
