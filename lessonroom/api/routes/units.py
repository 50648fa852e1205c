"""Routes for unit management and class-period assignment."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from lessonroom.api.deps import get_broadcaster, get_store
from lessonroom.api.models import AddLessonToUnitRequest, AssignUnitRequest, CreateUnitRequest
from lessonroom.config import Settings, get_settings
from lessonroom.core.json import DocumentJSONResponse, success_response
from lessonroom.notifications.service import BroadcastService
from lessonroom.services.units import add_lesson_to_unit, assign_unit_to_period, create_unit, remove_lesson_from_unit
from lessonroom.storage.documents_repo import DocumentStore

router = APIRouter()


@router.post("/units", status_code=status.HTTP_201_CREATED)
async def create_teacher_unit(payload: CreateUnitRequest, store: DocumentStore = Depends(get_store), broadcaster: BroadcastService = Depends(get_broadcaster)) -> DocumentJSONResponse:  # noqa: B008
  unit = await create_unit(store, teacher=payload.teacher, name=payload.unit.name or "", value=payload.unit.value or "")
  broadcaster.notify_teacher(payload.teacher, "unitCreated", {"teacher": payload.teacher, "unit": unit})
  return success_response(status.HTTP_201_CREATED, unit=unit)


@router.post("/units/{unit_value}/lessons")
async def add_unit_lesson(unit_value: str, payload: AddLessonToUnitRequest, store: DocumentStore = Depends(get_store), broadcaster: BroadcastService = Depends(get_broadcaster)) -> DocumentJSONResponse:  # noqa: B008
  """Reference an existing lesson from a unit without creating duplicates."""
  reference = await add_lesson_to_unit(store, teacher=payload.teacher, unit_value=unit_value, lesson_id=payload.lesson_id)
  broadcaster.notify_teacher(payload.teacher, "unitUpdated", {"teacher": payload.teacher, "unitValue": unit_value, "lesson": reference})
  return success_response(added=reference)


@router.delete("/units/{unit_value}/lessons/{lesson_id}")
async def remove_unit_lesson(unit_value: str, lesson_id: str, teacher: str = Query(min_length=1), store: DocumentStore = Depends(get_store), broadcaster: BroadcastService = Depends(get_broadcaster)) -> DocumentJSONResponse:  # noqa: B008
  removed = await remove_lesson_from_unit(store, teacher=teacher, unit_value=unit_value, lesson_id=lesson_id)
  if removed:
    broadcaster.notify_teacher(teacher, "unitUpdated", {"teacher": teacher, "unitValue": unit_value, "removedLessonId": lesson_id})
  return success_response(removed=removed)


@router.post("/units/assign")
async def assign_unit(
  payload: AssignUnitRequest,
  store: DocumentStore = Depends(get_store),  # noqa: B008
  broadcaster: BroadcastService = Depends(get_broadcaster),  # noqa: B008
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> DocumentJSONResponse:
  """Assign a unit to a class period and notify the teacher's room and the affected students."""
  result = await assign_unit_to_period(store, teacher=payload.teacher, unit_value=payload.unit_value, class_period=payload.class_period, master_teacher=settings.master_teacher)
  period = result.unit["assigned_class_period"]
  broadcaster.notify_teacher(payload.teacher, "unitAssigned", {"teacher": payload.teacher, "unit": result.unit, "classPeriod": period})
  if result.student_names:
    broadcaster.publish_in_background("lessonsAssigned", {"unitValue": payload.unit_value, "classPeriod": period, "lessonIds": result.lesson_ids}, user_ids=result.student_names)
  return success_response(studentsUpdated=result.students_updated, lessonIds=result.lesson_ids, unit=result.unit)
