from __future__ import annotations


def _seed(client) -> list[str]:
  assert client.post("/teachers", json={"name": "t1"}).status_code == 201
  lesson_ids = []
  for title, unit in (("L1", "U1"), ("L2", "U1"), ("L3", "U2")):
    response = client.post("/lessons", json={"teacher": "t1", "unit": {"name": unit, "value": unit}, "lesson": {"lesson_title": title}})
    lesson_ids.append(response.json()["lessonId"])
  for name, period in (("ana", 3), ("ben", "3"), ("cy", 4)):
    assert client.post("/students", json={"memberName": name, "teacher": "t1", "classPeriod": period}).status_code == 201
  return lesson_ids


def test_create_unit_conflicts_on_duplicate_value(client) -> None:
  client.post("/teachers", json={"name": "t1"})

  created = client.post("/units", json={"teacher": "t1", "unit": {"name": "Unit A", "value": "a"}})
  duplicate = client.post("/units", json={"teacher": "t1", "unit": {"name": "Other", "value": "a"}})

  assert created.status_code == 201
  assert created.json()["unit"] == {"name": "Unit A", "value": "a", "lessons": []}
  assert duplicate.status_code == 409


def test_assign_moves_period_and_updates_students(client) -> None:
  lesson_ids = _seed(client)

  first = client.post("/units/assign", json={"teacher": "t1", "unitValue": "U1", "classPeriod": 3}).json()
  second = client.post("/units/assign", json={"teacher": "t1", "unitValue": "U2", "classPeriod": "3"}).json()

  assert first["studentsUpdated"] == 2
  assert first["lessonIds"] == lesson_ids[:2]
  assert second["lessonIds"] == lesson_ids[2:]

  units = {unit["value"]: unit for unit in client.get("/teachers/t1/units").json()["units"]}
  assert "assigned_class_period" not in units["U1"]
  assert units["U2"]["assigned_class_period"] == "3"

  lessons = client.get("/students/ana/lessons").json()
  assert lessons["source"] == "assigned"
  assert [lesson["lesson_title"] for lesson in lessons["lessons"]] == ["L3"]


def test_add_and_remove_lesson_reference(client) -> None:
  lesson_ids = _seed(client)

  added = client.post("/units/U2/lessons", json={"teacher": "t1", "lessonId": lesson_ids[0]})
  again = client.post("/units/U2/lessons", json={"teacher": "t1", "lessonId": lesson_ids[0]})
  assert added.status_code == again.status_code == 200

  units = {unit["value"]: unit for unit in client.get("/teachers/t1/units").json()["units"]}
  assert [ref["_id"] for ref in units["U2"]["lessons"]] == [lesson_ids[2], lesson_ids[0]]

  removed = client.delete(f"/units/U2/lessons/{lesson_ids[0]}", params={"teacher": "t1"})
  assert removed.json() == {"success": True, "removed": 1}


def test_unknown_unit_returns_not_found(client) -> None:
  _seed(client)
  response = client.post("/units/assign", json={"teacher": "t1", "unitValue": "missing", "classPeriod": 1})
  assert response.status_code == 404
