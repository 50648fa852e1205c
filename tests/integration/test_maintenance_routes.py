from __future__ import annotations

import asyncio

import pytest

from lessonroom.storage.documents_repo import LESSONS, TEACHERS
from lessonroom.utils.ids import IntegerId

SAMPLE = "sample@lessonroom.test"


@pytest.fixture
def legacy_lessons(client, store):
  """Seed nested legacy lessons through the store the app is wired to."""

  async def seed() -> None:
    await store.insert_one(TEACHERS, {"name": SAMPLE, "units": [{"name": "Demo", "value": "demo", "lessons": [{"_id": 1}]}]})
    await store.insert_one(LESSONS, {"_id": IntegerId(1), "teacher": SAMPLE, "lesson": {"lesson_title": "Nested demo"}})
    await store.insert_one(LESSONS, {"_id": IntegerId(2), "teacher": "t1", "lesson": {"lesson_title": "Nested own"}})

  asyncio.run(seed())
  return store


def test_flatten_one_lesson(client, legacy_lessons) -> None:
  first = client.post("/maintenance/lessons/2/flatten").json()
  second = client.post("/maintenance/lessons/2/flatten").json()

  assert first["changed"] is True
  assert first["lesson"]["lesson_title"] == "Nested own"
  assert first["lesson"]["lesson"] == {"lesson_title": "Nested own"}
  assert second["changed"] is False


def test_flatten_with_clean_drops_nested_copy(client, legacy_lessons) -> None:
  body = client.post("/maintenance/lessons/2/flatten", params={"clean": "true"}).json()
  assert "lesson" not in body["lesson"]


def test_flatten_many_scoped_to_teacher(client, legacy_lessons) -> None:
  body = client.post("/maintenance/lessons/flatten", json={"teacher": "t1"}).json()
  assert (body["scanned"], body["repaired"]) == (1, 1)


def test_sample_teacher_reset(client, legacy_lessons) -> None:
  body = client.post("/maintenance/sample-teacher/reset").json()

  assert body == {"success": True, "lessonsDeleted": 1}
  assert client.get(f"/teachers/{SAMPLE}/units").json()["units"] == []
  assert client.get("/lessons/1").status_code == 404
  assert client.get("/lessons/2").status_code == 200
