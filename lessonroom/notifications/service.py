"""Best-effort fan-out of state changes to connected listeners."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from lessonroom.notifications.contracts import BroadcastEvent, Listener, encode_event, teacher_room
from lessonroom.notifications.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class BroadcastService:
  """Deliver named events to every listener, to a room or to specific users."""

  def __init__(self, registry: ConnectionRegistry) -> None:
    self._registry = registry
    self._pending: set[asyncio.Task[int]] = set()

  def _targets(self, room: str | None, user_ids: Iterable[str] | None) -> list[Listener]:
    if room is None and user_ids is None:
      return self._registry.all_listeners()

    targets: dict[int, Listener] = {}
    if room is not None:
      targets.update((id(listener), listener) for listener in self._registry.listeners_in_room(room))
    for user_id in user_ids or ():
      targets.update((id(listener), listener) for listener in self._registry.listeners_for_user(user_id))
    return list(targets.values())

  async def publish(self, event: str, data: Any = None, *, room: str | None = None, user_ids: Iterable[str] | None = None) -> int:
    """Send an event and return how many listeners received it. Never raises."""
    try:
      frame = encode_event(BroadcastEvent(event=event, data=data))
    except Exception as exc:  # noqa: BLE001
      logger.error("Event encoding failed event=%s error=%s", event, exc, exc_info=True)
      return 0

    delivered = 0
    for listener in self._targets(room, user_ids):
      try:
        await listener.send_text(frame)
        delivered += 1
      except Exception as exc:  # noqa: BLE001
        # Drop listeners whose transport is gone so later events skip them.
        logger.warning("Event delivery failed event=%s error=%s; dropping listener.", event, exc)
        self._registry.unregister(listener)

    logger.debug("Event delivered event=%s room=%s listeners=%d", event, room, delivered)
    return delivered

  def publish_in_background(self, event: str, data: Any = None, *, room: str | None = None, user_ids: Iterable[str] | None = None) -> asyncio.Task[int] | None:
    """Schedule delivery so the caller's response is never blocked by slow listeners."""
    try:
      task = asyncio.get_running_loop().create_task(self.publish(event, data, room=room, user_ids=list(user_ids) if user_ids is not None else None))
    except RuntimeError:
      logger.warning("No running event loop; skipping event=%s", event)
      return None

    self._pending.add(task)
    task.add_done_callback(self._finish_task)
    return task

  def notify_teacher(self, teacher: str, event: str, data: Any = None) -> asyncio.Task[int] | None:
    """Rebroadcast a teacher-authoring change to that teacher's room."""
    return self.publish_in_background(event, data, room=teacher_room(teacher))

  def _finish_task(self, task: asyncio.Task[int]) -> None:
    """Log background task exceptions to avoid silent delivery failures."""
    self._pending.discard(task)
    if task.cancelled():
      return
    exc = task.exception()
    if exc is not None:
      logger.error("Background event delivery failed: %s", exc, exc_info=exc)

  async def drain(self) -> None:
    """Wait for scheduled deliveries, used on shutdown and by tests."""
    if self._pending:
      await asyncio.gather(*list(self._pending), return_exceptions=True)
