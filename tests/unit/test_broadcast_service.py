from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from lessonroom.notifications.contracts import BroadcastEvent, decode_client_message, encode_event, teacher_room
from lessonroom.notifications.registry import ConnectionRegistry
from lessonroom.notifications.service import BroadcastService
from lessonroom.utils.ids import HexId, IntegerId

HEX = "507f1f77bcf86cd799439011"


class _Listener:
  def __init__(self) -> None:
    self.send_text = AsyncMock()

  def frames(self) -> list[dict]:
    return [json.loads(call.args[0]) for call in self.send_text.await_args_list]


@pytest.fixture
def registry() -> ConnectionRegistry:
  return ConnectionRegistry()


@pytest.fixture
def service(registry) -> BroadcastService:
  return BroadcastService(registry)


def test_encode_event_renders_identifiers_as_plain_values() -> None:
  frame = json.loads(encode_event(BroadcastEvent(event="lessonCreated", data={"lessonId": HexId(HEX), "ids": [IntegerId(4)]})))
  assert frame == {"event": "lessonCreated", "data": {"lessonId": HEX, "ids": [4]}}


def test_decode_client_message_uses_camel_case_keys() -> None:
  message = decode_client_message('{"event": "identify", "userId": "ana"}')
  assert (message.event, message.user_id, message.teacher) == ("identify", "ana", None)


@pytest.mark.anyio
async def test_room_events_only_reach_room_members(registry, service) -> None:
  member, outsider = _Listener(), _Listener()
  registry.join(teacher_room("t1"), member)
  registry.connect(outsider)

  delivered = await service.publish("unitCreated", {"teacher": "t1"}, room=teacher_room("t1"))

  assert delivered == 1
  assert member.frames() == [{"event": "unitCreated", "data": {"teacher": "t1"}}]
  outsider.send_text.assert_not_awaited()


@pytest.mark.anyio
async def test_events_without_target_reach_everyone(registry, service) -> None:
  listeners = [_Listener(), _Listener()]
  for listener in listeners:
    registry.connect(listener)

  assert await service.publish("ping") == 2


@pytest.mark.anyio
async def test_user_events_reach_every_connection_of_the_user(registry, service) -> None:
  phone, laptop, other = _Listener(), _Listener(), _Listener()
  registry.register("ana", phone)
  registry.register("ana", laptop)
  registry.register("ben", other)

  assert await service.publish("lessonsAssigned", {"lessonIds": [1]}, user_ids=["ana"]) == 2
  other.send_text.assert_not_awaited()


@pytest.mark.anyio
async def test_failing_listener_is_dropped_without_raising(registry, service) -> None:
  broken, healthy = _Listener(), _Listener()
  broken.send_text.side_effect = RuntimeError("socket closed")
  registry.register("ana", broken)
  registry.register("ana", healthy)

  assert await service.publish("lessonsAssigned", user_ids=["ana"]) == 1
  assert registry.listeners_for_user("ana") == [healthy]
  assert len(registry) == 1


@pytest.mark.anyio
async def test_background_publish_completes_after_drain(registry, service) -> None:
  listener = _Listener()
  registry.join(teacher_room("t1"), listener)

  task = service.notify_teacher("t1", "lessonUpdated", {"lessonId": 5})
  await service.drain()

  assert task is not None and task.result() == 1
  assert listener.frames() == [{"event": "lessonUpdated", "data": {"lessonId": 5}}]


def test_background_publish_without_event_loop_is_skipped(service) -> None:
  assert service.publish_in_background("ping") is None
