"""Domain exceptions raised by lessonroom services."""

from __future__ import annotations


class LessonroomError(Exception):
  """Base class for errors that map onto a client-facing status code."""

  status_code = 500


class PayloadValidationError(LessonroomError):
  """Raised when a request payload is missing required fields, before any store access."""

  status_code = 400

  def __init__(self, fields: list[str] | tuple[str, ...]) -> None:
    self.fields = tuple(fields)
    super().__init__(f"Missing required fields: {', '.join(self.fields)}")


class NotFoundError(LessonroomError):
  """Raised when a referenced teacher, unit, student or lesson does not exist."""

  status_code = 404


class ConflictError(LessonroomError):
  """Raised when a create would duplicate an existing record."""

  status_code = 409
