"""Routes for student profiles, assigned lessons and progress tracking."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from lessonroom.api.deps import get_store
from lessonroom.api.models import ConditionStateRequest, LessonCompletionRequest, LessonTimeRequest, RegisterStudentRequest
from lessonroom.config import Settings, get_settings
from lessonroom.core.json import DocumentJSONResponse, success_response
from lessonroom.services.students import add_lesson_time, get_assigned_lessons, get_lesson_time, get_progress, record_completion, register_student, save_condition_state
from lessonroom.storage.documents_repo import DocumentStore

router = APIRouter()


@router.post("/students", status_code=status.HTTP_201_CREATED)
async def create_student(payload: RegisterStudentRequest, store: DocumentStore = Depends(get_store)) -> DocumentJSONResponse:  # noqa: B008
  student = await register_student(store, member_name=payload.member_name.strip(), teacher=payload.teacher, class_period=payload.class_period)
  return success_response(status.HTTP_201_CREATED, student=student)


@router.get("/students/{student}/lessons")
async def list_student_lessons(student: str, store: DocumentStore = Depends(get_store), settings: Settings = Depends(get_settings)) -> DocumentJSONResponse:  # noqa: B008
  """Return the student's assigned lessons, or the teacher's catalog lessons when nothing is assigned."""
  resolution, source = await get_assigned_lessons(store, student, master_teacher=settings.master_teacher)
  return success_response(lessons=resolution.lessons, requestedCount=resolution.requested_count, foundCount=resolution.found_count, source=source)


@router.get("/students/{student}/lessons/{lesson_id}/time")
async def read_lesson_time(student: str, lesson_id: str, store: DocumentStore = Depends(get_store)) -> DocumentJSONResponse:  # noqa: B008
  return success_response(elapsedTime=await get_lesson_time(store, student, lesson_id))


@router.post("/students/lesson-time")
@router.post("/update-lesson-time", include_in_schema=False)
async def add_student_lesson_time(payload: LessonTimeRequest, store: DocumentStore = Depends(get_store)) -> DocumentJSONResponse:  # noqa: B008
  """Add elapsed seconds to the student's timer for one lesson."""
  total = await add_lesson_time(store, payload.student_name, payload.lesson_id, payload.elapsed_time)
  return success_response(totalElapsedTime=total)


@router.post("/students/condition-state")
async def save_student_condition_state(payload: ConditionStateRequest, store: DocumentStore = Depends(get_store)) -> DocumentJSONResponse:  # noqa: B008
  await save_condition_state(store, payload.student_name, payload.lesson_id, payload.condition_state)
  return success_response()


@router.post("/students/lesson-completion")
async def record_student_completion(payload: LessonCompletionRequest, store: DocumentStore = Depends(get_store)) -> DocumentJSONResponse:  # noqa: B008
  count = await record_completion(store, payload.student_name, payload.lesson_id, snapshot=payload.snapshot, completed_conditions=payload.completed_conditions)
  return success_response(snapshotCount=count)


@router.get("/students/{student}/progress/{lesson_id}")
async def read_student_progress(student: str, lesson_id: str, store: DocumentStore = Depends(get_store)) -> DocumentJSONResponse:  # noqa: B008
  return success_response(progress=await get_progress(store, student, lesson_id))
