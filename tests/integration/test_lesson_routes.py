from __future__ import annotations

MASTER = "master@lessonroom.test"

HEX = "507f1f77bcf86cd799439011"


def _create_teacher(client, name: str = "t1") -> None:
  assert client.post("/teachers", json={"name": name}).status_code == 201


def _save_lesson(client, title: str = "Budgets", **extra) -> str:
  payload = {"teacher": "t1", "unit": {"name": "Unit 1", "value": "unit1"}, "lesson": {"lesson_title": title, **extra}}
  response = client.post("/lessons", json=payload)
  assert response.status_code == 201, response.text
  body = response.json()
  assert body["success"] is True
  return body["lessonId"]


def test_save_lesson_requires_teacher_unit_and_lesson(client) -> None:
  response = client.post("/lessons", json={"lesson": {"lesson_title": "x"}})

  assert response.status_code == 400
  body = response.json()
  assert body["success"] is False
  assert body["detail"] == "Missing required fields: unit, teacher"
  assert body["requestId"]


def test_save_lesson_for_unknown_teacher_is_not_found(client) -> None:
  response = client.post("/save-lesson", json={"teacher": "ghost", "unit": {"name": "U", "value": "u"}, "lesson": {"lesson_title": "x"}})
  assert response.status_code == 404


def test_saved_lesson_appears_in_units_and_can_be_fetched(client) -> None:
  _create_teacher(client)
  lesson_id = _save_lesson(client, lesson_blocks=[{"type": "text"}])

  units = client.get("/teachers/t1/units").json()["units"]
  assert units[0]["value"] == "unit1"
  assert units[0]["lessons"][0]["_id"] == lesson_id

  lesson = client.get(f"/lessons/{lesson_id}").json()["lesson"]
  assert lesson["lesson_title"] == "Budgets"
  assert lesson["lesson"]["lesson_blocks"] == [{"type": "text"}]


def test_partial_update_keeps_blocks(client) -> None:
  _create_teacher(client)
  blocks = [{"type": "text", "content": str(index)} for index in range(5)]
  lesson_id = _save_lesson(client, title="Old", lesson_blocks=blocks)

  response = client.put(f"/lessons/{lesson_id}", json={"teacher": "t1", "lesson": {"lesson_title": "New"}})
  assert response.status_code == 200
  assert response.json() == {"success": True, "lessonId": lesson_id}

  alias = client.post("/update-lesson", json={"lessonId": lesson_id, "lesson": {"status": "draft"}})
  assert alias.status_code == 200

  lesson = client.get(f"/lessons/{lesson_id}").json()["lesson"]
  assert lesson["lesson_title"] == "New"
  assert lesson["status"] == "draft"
  assert lesson["lesson_blocks"] == blocks


def test_update_of_missing_lesson_is_not_found(client) -> None:
  response = client.put(f"/lessons/{HEX}", json={"lesson": {"lesson_title": "x"}})
  assert response.status_code == 404
  assert response.json()["success"] is False


def test_lookup_by_unit_name_and_title(client) -> None:
  _create_teacher(client)
  lesson_id = _save_lesson(client, title="Findable")

  response = client.post("/lessons/lookup", json={"teacher": "t1", "unitName": "Unit 1", "lessonTitle": "Findable"})
  assert response.status_code == 200
  assert response.json()["lesson"]["_id"] == lesson_id

  missing = client.post("/lessons/lookup", json={"teacher": "t1", "unitName": "Unit 1", "lessonTitle": "Nope"})
  assert missing.status_code == 404


def test_resolve_reports_partial_results(client) -> None:
  _create_teacher(client)
  lesson_id = _save_lesson(client)

  response = client.post("/lessons/resolve", json={"lessonIds": [lesson_id, lesson_id.upper(), "404", None]})

  body = response.json()
  assert body["requestedCount"] == 4
  assert body["foundCount"] == 1
  assert body["lessons"][0]["lesson_title"] == "Budgets"
  assert body["lessons"][1:] == ["404", None]


def test_resolve_treats_oversized_numeric_id_as_missing(client) -> None:
  _create_teacher(client)
  lesson_id = _save_lesson(client)

  response = client.post("/lessons/resolve", json={"lessonIds": ["9" * 5000, lesson_id]})

  assert response.status_code == 200
  assert (response.json()["requestedCount"], response.json()["foundCount"]) == (2, 1)


def test_catalog_merges_master_content(client) -> None:
  _create_teacher(client, MASTER)
  client.post("/units", json={"teacher": MASTER, "unit": {"name": "Starter", "value": "starter"}})
  _create_teacher(client)

  body = client.get("/teachers/t1/catalog").json()

  assert body["source"] == "default"
  assert [(unit["value"], unit["is_default"]) for unit in body["units"]] == [("starter", True)]


def test_validation_errors_are_sanitized(client) -> None:
  response = client.post("/lessons/resolve", json={"lessonIds": "not-a-list"})

  assert response.status_code == 422
  detail = response.json()["detail"]
  assert detail[0]["loc"] == ["body", "lessonIds"]
  assert "input" not in detail[0]
