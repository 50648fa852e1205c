from __future__ import annotations


def test_identify_is_acknowledged_and_registers_the_user(client, registry) -> None:
  with client.websocket_connect("/ws") as websocket:
    websocket.send_json({"event": "identify", "userId": "ana"})
    assert websocket.receive_json() == {"event": "identified", "data": {"userId": "ana"}}
    assert len(registry.listeners_for_user("ana")) == 1


def test_joined_teacher_room_receives_authoring_events(client) -> None:
  # One portal for the whole test so background deliveries outlive the request that scheduled them.
  with client:
    client.post("/teachers", json={"name": "t1"})
    with client.websocket_connect("/ws") as websocket:
      websocket.send_json({"event": "joinTeacher", "teacher": "t1"})
      assert websocket.receive_json() == {"event": "joined", "data": {"room": "teacher:t1"}}

      client.post("/units", json={"teacher": "t1", "unit": {"name": "Unit A", "value": "a"}})

      frame = websocket.receive_json()
      assert frame["event"] == "unitCreated"
      assert frame["data"]["unit"]["value"] == "a"


def test_malformed_frames_get_an_error_reply(client) -> None:
  with client.websocket_connect("/ws") as websocket:
    websocket.send_text("not json")
    assert websocket.receive_json()["event"] == "error"
    websocket.send_json({"event": "dance"})
    assert websocket.receive_json()["event"] == "error"


def test_health(client) -> None:
  assert client.get("/health").json() == {"status": "ok", "version": "0.1.0"}
