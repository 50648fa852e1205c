"""Unit tests for API exception sanitization behavior."""

from __future__ import annotations

from lessonroom.core.errors import NotFoundError, PayloadValidationError
from lessonroom.core.exceptions import _error_payload, _sanitize_validation_errors


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Ensure validation errors stay JSON-serializable and drop raw request payloads."""
  errors = [{"type": "value_error", "loc": ("body", "lessonIds"), "msg": "Value error, bad id.", "input": {"lessonIds": [{"x": 1}]}, "ctx": {"error": ValueError("bad id."), "input": [{"x": 1}]}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["loc"] == ["body", "lessonIds"]
  assert sanitized[0]["ctx"]["error"] == "ValueError: bad id."
  assert "input" not in sanitized[0]["ctx"]


def test_error_payload_carries_failure_flag_and_request_id() -> None:
  assert _error_payload("nope", request_id="abc") == {"success": False, "detail": "nope", "requestId": "abc"}
  assert _error_payload("nope") == {"success": False, "detail": "nope"}


def test_domain_errors_map_to_status_codes() -> None:
  assert NotFoundError("x").status_code == 404
  error = PayloadValidationError(["teacher", "unit.value"])
  assert error.status_code == 400
  assert str(error) == "Missing required fields: teacher, unit.value"
