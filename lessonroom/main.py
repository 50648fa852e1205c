from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from lessonroom.api.routes import events, lessons, maintenance, students, teachers, units
from lessonroom.config import get_settings
from lessonroom.core.errors import LessonroomError
from lessonroom.core.exceptions import global_exception_handler, http_exception_handler, lessonroom_exception_handler, request_validation_exception_handler
from lessonroom.core.json import DocumentJSONResponse
from lessonroom.core.lifespan import lifespan
from lessonroom.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

settings = get_settings()

app = FastAPI(title="lessonroom", default_response_class=DocumentJSONResponse, lifespan=lifespan)

app.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), allow_credentials=True, allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"], allow_headers=["content-type", "authorization"], expose_headers=["content-length", "x-request-id"])

# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(LessonroomError, lessonroom_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": "0.1.0"}


app.include_router(teachers.router, tags=["teachers"])
app.include_router(units.router, tags=["units"])
app.include_router(lessons.router, tags=["lessons"])
app.include_router(students.router, tags=["students"])
app.include_router(maintenance.router, tags=["maintenance"])
app.include_router(events.router, tags=["events"])
