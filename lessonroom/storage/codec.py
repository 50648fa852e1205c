"""JSON codec for document bodies.

Bodies are persisted as JSON, so identifiers and timestamps embedded in them use the extended
markers `{"$oid": ...}` and `{"$date": ...}`. Integer and opaque identifiers map onto plain JSON
numbers and strings.
"""

from __future__ import annotations

import datetime
from typing import Any

from lessonroom.utils.ids import HexId, IntegerId, OpaqueId

_OID_KEY = "$oid"
_DATE_KEY = "$date"


def encode_value(value: Any) -> Any:
  """Convert a document value into JSON-safe primitives."""
  if isinstance(value, HexId):
    return {_OID_KEY: value.value}
  if isinstance(value, IntegerId | OpaqueId):
    return value.value
  if isinstance(value, datetime.datetime):
    return {_DATE_KEY: value.isoformat()}
  if isinstance(value, dict):
    return {str(key): encode_value(item) for key, item in value.items()}
  if isinstance(value, list | tuple):
    return [encode_value(item) for item in value]
  return value


def decode_value(value: Any) -> Any:
  """Rebuild identifiers and timestamps from their JSON markers."""
  if isinstance(value, dict):
    if len(value) == 1 and _OID_KEY in value and isinstance(value[_OID_KEY], str):
      return HexId(value[_OID_KEY].lower())
    if len(value) == 1 and _DATE_KEY in value and isinstance(value[_DATE_KEY], str):
      return datetime.datetime.fromisoformat(value[_DATE_KEY])
    return {key: decode_value(item) for key, item in value.items()}
  if isinstance(value, list):
    return [decode_value(item) for item in value]
  return value
