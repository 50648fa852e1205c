"""Contracts for realtime event delivery to connected listeners."""

from __future__ import annotations

from typing import Any, Protocol

import msgspec

from lessonroom.utils.ids import HexId, IntegerId, OpaqueId


class BroadcastEvent(msgspec.Struct, frozen=True):
  """Represents one named event frame sent to listeners."""

  event: str
  data: Any = None


class ClientMessage(msgspec.Struct, frozen=True, rename="camel"):
  """Represents a control frame sent by a connected client."""

  event: str
  user_id: str | None = None
  teacher: str | None = None


class Listener(Protocol):
  """Delivery contract for anything that can receive a text frame."""

  async def send_text(self, data: str) -> None:
    """Send one text frame."""


def _to_plain(value: Any) -> Any:
  """Replace stored identifiers with their JSON values; msgspec would emit them as objects."""
  if isinstance(value, IntegerId | HexId | OpaqueId):
    return value.value
  if isinstance(value, dict):
    return {str(key): _to_plain(item) for key, item in value.items()}
  if isinstance(value, list | tuple):
    return [_to_plain(item) for item in value]
  return value


def encode_event(event: BroadcastEvent) -> str:
  """Encode an event frame as JSON text."""
  return msgspec.json.encode(BroadcastEvent(event=event.event, data=_to_plain(event.data))).decode("utf-8")


def decode_client_message(raw: str | bytes) -> ClientMessage:
  """Decode a client control frame, raising msgspec errors on malformed input."""
  return msgspec.json.decode(raw, type=ClientMessage)


def teacher_room(teacher: str) -> str:
  """Return the room name that scopes events to one teacher's listeners."""
  return f"teacher:{teacher}"
