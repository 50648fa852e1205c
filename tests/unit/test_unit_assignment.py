from __future__ import annotations

import pytest

from lessonroom.core.errors import ConflictError, NotFoundError
from lessonroom.services.students import register_student
from lessonroom.services.units import add_lesson_to_unit, assign_unit_to_period, create_unit, remove_lesson_from_unit
from lessonroom.storage.documents_repo import LESSONS, STUDENTS, TEACHERS
from lessonroom.storage.memory_documents_repo import MemoryDocumentStore
from lessonroom.utils.ids import IntegerId

MASTER = "master@lessonroom.test"


@pytest.fixture
async def store() -> MemoryDocumentStore:
  store = MemoryDocumentStore()
  for lesson_id in (1, 2, 3):
    await store.insert_one(LESSONS, {"_id": IntegerId(lesson_id), "teacher": "t1", "lesson_title": f"Lesson {lesson_id}"})
  await store.insert_one(
    TEACHERS,
    {
      "name": "t1",
      "units": [
        {"name": "Unit 1", "value": "U1", "lessons": [{"_id": 1}, {"_id": 2}]},
        {"name": "Unit 2", "value": "U2", "lessons": [{"_id": 3}, {"lesson_title": "legacy without id"}]},
      ],
    },
  )
  await store.insert_one(TEACHERS, {"name": MASTER, "units": [{"name": "Starter", "value": "starter", "lessons": [{"_id": 1}]}]})
  for name, period in (("ana", "3"), ("ben", 3), ("cy", "4")):
    await register_student(store, member_name=name, teacher="t1", class_period=period)
  return store


async def _units(store: MemoryDocumentStore) -> dict[str, dict]:
  teacher = await store.find_one(TEACHERS, {"name": "t1"})
  return {unit["value"]: unit for unit in teacher["units"]}


@pytest.mark.anyio
async def test_assigning_a_period_moves_it_between_units(store) -> None:
  first = await assign_unit_to_period(store, teacher="t1", unit_value="U1", class_period=3, master_teacher=MASTER)
  second = await assign_unit_to_period(store, teacher="t1", unit_value="U2", class_period="3", master_teacher=MASTER)

  units = await _units(store)
  assert "assigned_class_period" not in units["U1"]
  assert "assigned_at" not in units["U1"]
  assert units["U2"]["assigned_class_period"] == "3"
  assert first.lesson_ids == [IntegerId(1), IntegerId(2)]
  assert second.lesson_ids == [IntegerId(3)]
  assert (first.students_updated, second.students_updated) == (2, 2)


@pytest.mark.anyio
async def test_students_keep_one_assignment_per_teacher_and_period(store) -> None:
  await assign_unit_to_period(store, teacher="t1", unit_value="U1", class_period=3, master_teacher=MASTER)
  await assign_unit_to_period(store, teacher="t1", unit_value="U2", class_period=3, master_teacher=MASTER)

  ana = await store.find_one(STUDENTS, {"memberName": "ana"})
  cy = await store.find_one(STUDENTS, {"memberName": "cy"})
  assert [entry["unit_value"] for entry in ana["assignedUnits"]] == ["U2"]
  assert ana["assignedUnits"][0]["lesson_ids"] == [3]
  assert cy["assignedUnits"] == []


@pytest.mark.anyio
async def test_assignment_snapshot_is_not_a_live_reference(store) -> None:
  await assign_unit_to_period(store, teacher="t1", unit_value="U1", class_period=3, master_teacher=MASTER)
  await remove_lesson_from_unit(store, teacher="t1", unit_value="U1", lesson_id="2")

  ben = await store.find_one(STUDENTS, {"memberName": "ben"})
  assert ben["assignedUnits"][0]["lesson_ids"] == [1, 2]


@pytest.mark.anyio
async def test_inherited_master_unit_is_copied_before_assignment(store) -> None:
  result = await assign_unit_to_period(store, teacher="t1", unit_value="starter", class_period="4", master_teacher=MASTER)

  units = await _units(store)
  assert units["starter"]["inherited_from"] == MASTER
  assert units["starter"]["assigned_class_period"] == "4"
  assert result.students_updated == 1
  assert result.student_names == ["cy"]
  master = await store.find_one(TEACHERS, {"name": MASTER})
  assert "assigned_class_period" not in master["units"][0]


@pytest.mark.anyio
async def test_unknown_unit_cannot_be_assigned(store) -> None:
  with pytest.raises(NotFoundError):
    await assign_unit_to_period(store, teacher="t1", unit_value="nope", class_period=3, master_teacher=MASTER)


@pytest.mark.anyio
async def test_create_unit_rejects_duplicate_values(store) -> None:
  unit = await create_unit(store, teacher="t1", name="Unit 3", value="U3")
  assert unit == {"name": "Unit 3", "value": "U3", "lessons": []}
  with pytest.raises(ConflictError):
    await create_unit(store, teacher="t1", name="Again", value="U3")


@pytest.mark.anyio
async def test_adding_a_lesson_twice_keeps_one_reference(store) -> None:
  await add_lesson_to_unit(store, teacher="t1", unit_value="U2", lesson_id="1")
  await add_lesson_to_unit(store, teacher="t1", unit_value="U2", lesson_id=1)

  units = await _units(store)
  ids = [ref.get("_id") for ref in units["U2"]["lessons"]]
  assert ids.count(1) == 1


@pytest.mark.anyio
async def test_remove_lesson_matches_any_representation(store) -> None:
  assert await remove_lesson_from_unit(store, teacher="t1", unit_value="U1", lesson_id="0001") == 1
  assert [ref["_id"] for ref in (await _units(store))["U1"]["lessons"]] == [2]


@pytest.mark.anyio
async def test_students_stored_with_numeric_period_are_assigned(store) -> None:
  await store.insert_one(STUDENTS, {"memberName": "dee", "teacher": "t1", "classPeriod": 3, "assignedUnits": []})

  result = await assign_unit_to_period(store, teacher="t1", unit_value="U1", class_period="3", master_teacher=MASTER)

  dee = await store.find_one(STUDENTS, {"memberName": "dee"})
  assert "dee" in result.student_names
  assert [entry["unit_value"] for entry in dee["assignedUnits"]] == ["U1"]
