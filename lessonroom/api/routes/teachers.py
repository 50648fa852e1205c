"""Routes for teacher profiles and their combined unit/lesson catalog."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from lessonroom.api.deps import get_store
from lessonroom.api.models import RegisterTeacherRequest
from lessonroom.config import Settings, get_settings
from lessonroom.core.json import DocumentJSONResponse, success_response
from lessonroom.services.catalog import build_teacher_catalog
from lessonroom.services.teachers import get_teacher_units, register_teacher
from lessonroom.storage.documents_repo import DocumentStore

router = APIRouter()


@router.post("/teachers", status_code=status.HTTP_201_CREATED)
async def create_teacher(payload: RegisterTeacherRequest, store: DocumentStore = Depends(get_store)) -> DocumentJSONResponse:  # noqa: B008
  teacher = await register_teacher(store, payload.name.strip())
  return success_response(status.HTTP_201_CREATED, teacher=teacher)


@router.get("/teachers/{teacher}/units")
async def list_teacher_units(teacher: str, store: DocumentStore = Depends(get_store)) -> DocumentJSONResponse:  # noqa: B008
  """Return the teacher's own units exactly as stored, or an empty list."""
  return success_response(units=await get_teacher_units(store, teacher))


@router.get("/teachers/{teacher}/catalog")
async def get_teacher_catalog(teacher: str, store: DocumentStore = Depends(get_store), settings: Settings = Depends(get_settings)) -> DocumentJSONResponse:  # noqa: B008
  """Return own and inherited units with every lesson reference resolved."""
  catalog = await build_teacher_catalog(store, teacher, master_teacher=settings.master_teacher)
  return success_response(units=catalog.units, lessons=catalog.lessons, source=catalog.source)
