from __future__ import annotations

import pytest

from lessonroom.services.lesson_resolver import is_resolved_lesson, resolve_lesson_references
from lessonroom.services.lessons import get_lesson
from lessonroom.storage.documents_repo import LESSONS
from lessonroom.storage.memory_documents_repo import MemoryDocumentStore
from lessonroom.utils.ids import HexId, IntegerId, OpaqueId

HEX = "507f1f77bcf86cd799439011"


@pytest.fixture
async def seeded_store() -> MemoryDocumentStore:
  store = MemoryDocumentStore()
  await store.insert_one(LESSONS, {"_id": IntegerId(123), "lesson_title": "Budgeting"})
  await store.insert_one(LESSONS, {"_id": HexId(HEX), "lesson": {"lesson_title": "Saving", "lesson_blocks": [{"type": "video"}]}})
  return store


@pytest.mark.anyio
async def test_equivalent_identifiers_resolve_to_one_lesson_each(seeded_store) -> None:
  resolution = await resolve_lesson_references(seeded_store, ["123", 123, HEX])

  assert resolution.requested_count == 3
  assert resolution.found_count == 2
  assert [lesson["lesson_title"] for lesson in resolution.lessons] == ["Budgeting", "Saving"]


@pytest.mark.anyio
async def test_resolved_lessons_expose_nested_and_flat_fields(seeded_store) -> None:
  resolution = await resolve_lesson_references(seeded_store, [{"_id": HEX, "lesson_title": "stale title"}])

  lesson = resolution.lessons[0]
  assert is_resolved_lesson(lesson)
  assert lesson["lesson_title"] == "Saving"
  assert lesson["lesson"]["lesson_blocks"] == [{"type": "video"}]
  assert lesson["_id"] == HexId(HEX)


@pytest.mark.anyio
async def test_unresolvable_references_pass_through_in_order(seeded_store) -> None:
  legacy = {"lesson_title": "No id"}
  missing = {"_id": 999, "lesson_title": "Deleted"}
  resolution = await resolve_lesson_references(seeded_store, [legacy, 123, missing, None])

  assert resolution.lessons[0] is legacy
  assert resolution.lessons[1]["lesson_title"] == "Budgeting"
  assert resolution.lessons[2] is missing
  assert resolution.lessons[3] is None
  assert not is_resolved_lesson(legacy)
  assert (resolution.requested_count, resolution.found_count) == (4, 1)


@pytest.mark.anyio
async def test_same_lesson_stored_twice_resolves_like_a_single_read() -> None:
  store = MemoryDocumentStore()
  await store.insert_one(LESSONS, {"_id": IntegerId(7), "lesson_title": "Integer copy"})
  await store.insert_one(LESSONS, {"_id": OpaqueId("7"), "lesson_title": "String copy"})

  by_string = await resolve_lesson_references(store, ["7", 7])
  by_integer = await resolve_lesson_references(store, [7])

  assert by_string.found_count == 1
  assert [lesson["lesson_title"] for lesson in by_string.lessons] == ["String copy"]
  assert by_string.lessons[0]["lesson_title"] == (await get_lesson(store, "7"))["lesson_title"]
  assert by_integer.lessons[0]["lesson_title"] == (await get_lesson(store, 7))["lesson_title"] == "Integer copy"


@pytest.mark.anyio
async def test_oversized_numeric_identifier_is_no_match(seeded_store) -> None:
  resolution = await resolve_lesson_references(seeded_store, ["9" * 5000, 123])

  assert resolution.lessons[0] == "9" * 5000
  assert resolution.lessons[1]["lesson_title"] == "Budgeting"
  assert (resolution.requested_count, resolution.found_count) == (2, 1)


@pytest.mark.anyio
async def test_queries_once_per_identifier_kind(seeded_store, monkeypatch) -> None:
  calls: list[set] = []
  original = seeded_store.find_by_ids

  async def counting_find_by_ids(collection, ids):
    ids = set(ids)
    calls.append(ids)
    return await original(collection, ids)

  monkeypatch.setattr(seeded_store, "find_by_ids", counting_find_by_ids)
  await resolve_lesson_references(seeded_store, ["123", 123, HEX, "456"])

  assert len(calls) == 3
  assert {IntegerId(123), IntegerId(456)} in calls
