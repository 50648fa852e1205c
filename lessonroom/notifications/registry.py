"""Registry of live listener connections."""

from __future__ import annotations

import logging
from collections import defaultdict

from lessonroom.notifications.contracts import Listener

logger = logging.getLogger(__name__)


class ConnectionRegistry:
  """Track connected listeners by user id and by room.

  The transport inserts a listener when it connects and removes it on disconnect; request handlers
  only read from the registry through the broadcast service.
  """

  def __init__(self) -> None:
    self._listeners: set[Listener] = set()
    self._by_user: defaultdict[str, set[Listener]] = defaultdict(set)
    self._rooms: defaultdict[str, set[Listener]] = defaultdict(set)

  def connect(self, listener: Listener) -> None:
    self._listeners.add(listener)

  def register(self, user_id: str, listener: Listener) -> None:
    """Associate a listener with a user id."""
    self._listeners.add(listener)
    self._by_user[user_id].add(listener)
    logger.info("Listener identified user_id=%s connections=%d", user_id, len(self._by_user[user_id]))

  def join(self, room: str, listener: Listener) -> None:
    self._listeners.add(listener)
    self._rooms[room].add(listener)

  def unregister(self, listener: Listener) -> None:
    """Forget a listener everywhere it was registered."""
    self._listeners.discard(listener)
    for index in (self._by_user, self._rooms):
      for key in [key for key, members in index.items() if listener in members]:
        index[key].discard(listener)
        if not index[key]:
          del index[key]

  def listeners_for_user(self, user_id: str) -> list[Listener]:
    return list(self._by_user.get(user_id, ()))

  def listeners_in_room(self, room: str) -> list[Listener]:
    return list(self._rooms.get(room, ()))

  def all_listeners(self) -> list[Listener]:
    return list(self._listeners)

  def __len__(self) -> int:
    return len(self._listeners)
