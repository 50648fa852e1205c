"""Websocket endpoint that feeds the realtime broadcast service."""

from __future__ import annotations

import logging

import msgspec
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from lessonroom.api.deps import get_registry
from lessonroom.notifications.contracts import BroadcastEvent, decode_client_message, encode_event, teacher_room
from lessonroom.notifications.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


class SocketListener:
  """Adapt a websocket to the listener contract used by the registry."""

  def __init__(self, websocket: WebSocket) -> None:
    self._websocket = websocket

  async def send_text(self, data: str) -> None:
    await self._websocket.send_text(data)


async def _reply(listener: SocketListener, event: str, data: dict[str, str]) -> None:
  await listener.send_text(encode_event(BroadcastEvent(event=event, data=data)))


@router.websocket("/ws")
async def events_socket(websocket: WebSocket, registry: ConnectionRegistry = Depends(get_registry)) -> None:  # noqa: B008
  """Accept control frames: `identify` binds a user id and `joinTeacher` joins a teacher's room."""
  await websocket.accept()
  listener = SocketListener(websocket)
  registry.connect(listener)
  try:
    while True:
      raw = await websocket.receive_text()
      try:
        message = decode_client_message(raw)
      except (msgspec.DecodeError, msgspec.ValidationError) as exc:
        await _reply(listener, "error", {"detail": f"Malformed frame: {exc}"})
        continue

      if message.event == "identify" and message.user_id:
        registry.register(message.user_id, listener)
        await _reply(listener, "identified", {"userId": message.user_id})
      elif message.event == "joinTeacher" and message.teacher:
        room = teacher_room(message.teacher)
        registry.join(room, listener)
        await _reply(listener, "joined", {"room": room})
      else:
        await _reply(listener, "error", {"detail": f"Unsupported frame '{message.event}'."})
  except WebSocketDisconnect:
    logger.debug("Listener disconnected")
  finally:
    registry.unregister(listener)
