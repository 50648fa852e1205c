"""Custom JSON handling."""

from __future__ import annotations

import datetime
import json
from typing import Any

from fastapi.responses import JSONResponse

from lessonroom.utils.ids import HexId, IntegerId, OpaqueId


class DocumentJSONEncoder(json.JSONEncoder):
  """JSON encoder that understands stored identifiers and timestamps."""

  def default(self, obj: Any) -> Any:
    if isinstance(obj, IntegerId):
      return obj.value
    if isinstance(obj, HexId | OpaqueId):
      return str(obj)
    if isinstance(obj, datetime.datetime | datetime.date):
      return obj.isoformat()
    return super().default(obj)


class DocumentJSONResponse(JSONResponse):
  """JSONResponse that renders documents read from the store."""

  def render(self, content: Any) -> bytes:
    return json.dumps(content, ensure_ascii=False, allow_nan=False, indent=None, separators=(",", ":"), cls=DocumentJSONEncoder).encode("utf-8")


def success_response(status_code: int = 200, **fields: Any) -> DocumentJSONResponse:
  """Wrap a route result in the `success: true` envelope."""
  return DocumentJSONResponse(status_code=status_code, content={"success": True, **fields})
