import json
import logging
import time
import uuid
from typing import Any

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from lessonroom.config import get_settings

logger = logging.getLogger("lessonroom.core.middleware")

# Student and teacher identities are personal data; bodies are logged with these keys masked.
_SENSITIVE_KEYS = frozenset({"authorization", "cookie", "password", "token", "secret", "membername", "studentname", "name", "teacher", "email"})


def _redact_sensitive_keys(data: Any) -> Any:
  """Redact sensitive keys from a dictionary or list recursively."""
  if isinstance(data, dict):
    return {key: ("***" if str(key).lower() in _SENSITIVE_KEYS else _redact_sensitive_keys(value)) for key, value in data.items()}
  if isinstance(data, list):
    return [_redact_sensitive_keys(item) for item in data]
  return data


def _header(scope_or_message: Scope | Message, name: str) -> str | None:
  """Read one header from a scope or a response start message."""
  # Header names arrive as raw bytes in their original case.
  for key, value in scope_or_message.get("headers", []):
    if key.decode("latin-1").lower() == name:
      return value.decode("latin-1")
  return None


def _build_request_url(scope: Scope) -> str:
  """Build a readable URL path for logging without touching the request body."""
  # Mirror the incoming request target, query string included.
  path = scope.get("path", "")
  query_string = scope.get("query_string", b"")
  if query_string:
    return f"{path}?{query_string.decode('latin-1')}"
  return path


def _is_json(content_type: str | None) -> bool:
  """Decide whether a body can be parsed as JSON for redaction."""
  if not content_type:
    return False
  normalized = content_type.lower()
  return "application/json" in normalized or normalized.endswith("+json")


def _format_body_for_log(body: bytes, content_type: str | None, max_bytes: int) -> str:
  """Format a request/response body for logging with redaction."""
  if not body:
    return "<empty>"
  # Binary payloads are summarized by size only.
  if not _is_json(content_type) and not (content_type or "").lower().startswith("text/"):
    return f"<non-text body {len(body)} bytes>"

  # Avoid parsing truncated JSON to prevent misleading logs.
  if len(body) > max_bytes:
    return f"{body[:max_bytes].decode('utf-8', errors='replace')}...(truncated)"

  # Mask identity fields before the body reaches the log.
  text = body.decode("utf-8", errors="replace")
  if _is_json(content_type):
    try:
      parsed = json.loads(text)
    except json.JSONDecodeError:
      return text
    return json.dumps(_redact_sensitive_keys(parsed), ensure_ascii=True)
  return text


class RequestLoggingMiddleware:
  """Log request/response details while preserving body streams for downstream handlers."""

  def __init__(self, app: ASGIApp) -> None:
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    # Websocket and lifespan scopes pass straight through.
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    settings = get_settings()
    log_bodies = settings.log_http_bodies
    max_bytes = settings.log_http_body_bytes

    # Handlers and exception handlers read the id from scope state.
    request_id = str(uuid.uuid4())
    scope.setdefault("state", {})["request_id"] = request_id
    start_time = time.time()
    method = scope.get("method", "UNKNOWN")
    logger.info("Incoming request request_id=%s %s %s", request_id, method, _build_request_url(scope))

    request_content_type = _header(scope, "content-type")
    receive_wrapper = receive
    if log_bodies:
      # Drain the body once, log it and replay it for the route handler.
      chunks: list[bytes] = []
      more_body = True
      while more_body:
        message = await receive()
        if message.get("type") != "http.request":
          break
        chunks.append(message.get("body", b""))
        more_body = message.get("more_body", False)
      request_body = b"".join(chunks)
      replayed = False

      async def receive_wrapper() -> Message:
        nonlocal replayed
        if replayed:
          return {"type": "http.request", "body": b"", "more_body": False}
        replayed = True
        return {"type": "http.request", "body": request_body, "more_body": False}

      if request_body:
        logger.info("Request body request_id=%s body=%s", request_id, _format_body_for_log(request_body, request_content_type, max_bytes))

    status_code = 0
    response_content_type: str | None = None
    response_chunks: list[bytes] = []

    # Capture status and a bounded copy of the response body while echoing the request id.
    async def send_wrapper(message: Message) -> None:
      nonlocal status_code, response_content_type
      if message["type"] == "http.response.start":
        status_code = message.get("status", 0)
        headers = MutableHeaders(scope=message)
        if "x-request-id" not in headers:
          headers["x-request-id"] = request_id
        response_content_type = headers.get("content-type")
      elif log_bodies and message["type"] == "http.response.body" and sum(len(chunk) for chunk in response_chunks) <= max_bytes:
        response_chunks.append(message.get("body", b""))
      await send(message)

    await self.app(scope, receive_wrapper, send_wrapper)

    # Timing covers the whole downstream stack.
    process_time = (time.time() - start_time) * 1000
    logger.info("Response request_id=%s status=%s (took %.2fms)", request_id, status_code, process_time)
    if log_bodies and response_chunks:
      logger.info("Response body request_id=%s status=%s body=%s", request_id, status_code, _format_body_for_log(b"".join(response_chunks), response_content_type, max_bytes))


class SecurityHeadersMiddleware:
  """Middleware to strip sensitive headers from responses."""

  def __init__(self, app: ASGIApp) -> None:
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    async def send_wrapper(message: Message) -> None:
      if message["type"] == "http.response.start":
        headers = MutableHeaders(scope=message)
        # Drop headers that advertise the server stack.
        for name in ("x-powered-by", "server"):
          if name in headers:
            del headers[name]
      await send(message)

    await self.app(scope, receive, send_wrapper)
