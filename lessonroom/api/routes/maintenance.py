"""Explicit repair and cleanup operations."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from lessonroom.api.deps import get_store
from lessonroom.api.models import FlattenLessonsRequest
from lessonroom.config import Settings, get_settings
from lessonroom.core.errors import NotFoundError
from lessonroom.core.json import DocumentJSONResponse, success_response
from lessonroom.services.lessons import repair_lesson, repair_lessons, reset_sample_teacher
from lessonroom.storage.documents_repo import DocumentStore

router = APIRouter()


@router.post("/maintenance/lessons/flatten")
async def flatten_lessons(payload: FlattenLessonsRequest, store: DocumentStore = Depends(get_store)) -> DocumentJSONResponse:  # noqa: B008
  """Copy nested-only lesson fields to the top level across many lessons."""
  summary = await repair_lessons(store, teacher=payload.teacher, clean=payload.clean)
  return success_response(scanned=summary.scanned, repaired=summary.repaired)


@router.post("/maintenance/lessons/{lesson_id}/flatten")
async def flatten_lesson(lesson_id: str, clean: bool = Query(default=False), store: DocumentStore = Depends(get_store)) -> DocumentJSONResponse:  # noqa: B008
  lesson, changed = await repair_lesson(store, lesson_id, clean=clean)
  return success_response(changed=changed, lesson=lesson)


@router.post("/maintenance/sample-teacher/reset")
async def reset_sample(store: DocumentStore = Depends(get_store), settings: Settings = Depends(get_settings)) -> DocumentJSONResponse:  # noqa: B008
  """Remove the demo teacher's lessons and units."""
  if not settings.sample_teacher:
    raise NotFoundError("No sample teacher is configured.")
  deleted = await reset_sample_teacher(store, sample_teacher=settings.sample_teacher, master_teacher=settings.master_teacher)
  return success_response(lessonsDeleted=deleted)
