from fastapi.testclient import TestClient

from tests.conftest import auth_headers, teacher_headers


def _award(client: TestClient, headers: dict[str, str], student_id: str, category_id: str, **extra) -> dict:
    response = client.post(
        "/behavior-points",
        headers=headers,
        json={"student_id": student_id, "category_id": category_id, **extra},
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_socket_greets_and_answers_ping(app_client: TestClient):
    with app_client.websocket_connect("/ws") as ws:
        hello = ws.receive_json()
        assert hello["type"] == "connection"
        assert hello["scope"] == "connection"
        assert hello["data"]["sequences"] == {}

        assert app_client.get("/system/info").json()["live_clients"] == 1

        ws.send_text("ping")
        assert ws.receive_text() == "pong"


def test_single_award_sends_one_message_per_scope(app_client: TestClient, school: dict[str, str]):
    headers = teacher_headers(app_client)
    with app_client.websocket_connect("/ws") as ws:
        ws.receive_json()
        point = _award(app_client, headers, school["alice"], school["helping"])

        messages = [ws.receive_json() for _ in range(4)]

    assert [message["type"] for message in messages] == [
        "points-updated",
        "class-updated",
        "pod-updated",
        "house-updated",
    ]
    points, class_event, pod_event, house_event = messages
    assert points["data"]["student_ids"] == [school["alice"]]
    assert points["data"]["point_ids"] == [point["id"]]
    assert points["data"]["delta"] == 3
    assert class_event["data"] == {"type": "class-updated", "class_id": school["class_6a"], "delta": 3}
    assert class_event["scope"] == f"class:{school['class_6a']}"
    assert pod_event["data"]["pod_id"] == school["north"]
    assert house_event["data"]["house_id"] == school["phoenix"]
    assert all(message["sequence"] == 1 for message in messages)
    assert all("timestamp" in message for message in messages)


def test_student_without_house_skips_house_message(app_client: TestClient, school: dict[str, str]):
    headers = auth_headers(app_client)
    with app_client.websocket_connect("/ws") as ws:
        ws.receive_json()
        _award(app_client, headers, school["dave"], school["disruption"])
        ws.send_text("ping")

        received = []
        while True:
            message = ws.receive_text()
            if message == "pong":
                break
            received.append(message)

    assert len(received) == 3
    assert '"house-updated"' not in "".join(received)


def test_batch_sends_one_message_per_affected_scope(app_client: TestClient, school: dict[str, str]):
    headers = auth_headers(app_client)
    entries = [
        {"student_id": school["alice"], "category_id": school["helping"], "points": 2},
        {"student_id": school["bob"], "category_id": school["helping"], "points": 2},
        {"student_id": school["carol"], "category_id": school["helping"], "points": 2},
        {"student_id": "missing", "category_id": school["helping"]},
    ]
    with app_client.websocket_connect("/ws") as ws:
        ws.receive_json()
        response = app_client.post("/behavior-points/batch", headers=headers, json={"entries": entries})
        assert response.json()["count"] == 3

        # 1 points + 2 classes (6A, 6B) + 1 pod (North) + 2 houses (Phoenix via pod, Griffin for Carol)
        messages = [ws.receive_json() for _ in range(6)]

    by_type: dict[str, list[dict]] = {}
    for message in messages:
        by_type.setdefault(message["type"], []).append(message["data"])

    assert by_type["points-updated"][0]["delta"] == 6
    assert sorted(by_type["points-updated"][0]["student_ids"]) == sorted(
        [school["alice"], school["bob"], school["carol"]]
    )
    assert {item["class_id"]: item["delta"] for item in by_type["class-updated"]} == {
        school["class_6a"]: 4,
        school["class_6b"]: 2,
    }
    assert by_type["pod-updated"] == [{"type": "pod-updated", "pod_id": school["north"], "delta": 6}]
    assert {item["house_id"]: item["delta"] for item in by_type["house-updated"]} == {
        school["phoenix"]: 4,
        school["griffin"]: 2,
    }


def test_batch_without_valid_entries_is_silent(app_client: TestClient, school: dict[str, str]):
    headers = auth_headers(app_client)
    bus = app_client.app.state.event_bus
    seen = []
    bus.subscribe("points-updated", seen.append)

    response = app_client.post(
        "/behavior-points/batch",
        headers=headers,
        json={"entries": [{"student_id": "missing", "category_id": school["helping"]}]},
    )
    assert response.json()["count"] == 0
    assert seen == []


def test_all_connected_clients_receive_and_sequences_increase(app_client: TestClient, school: dict[str, str]):
    headers = auth_headers(app_client)
    with app_client.websocket_connect("/ws") as first, app_client.websocket_connect("/ws") as second:
        first.receive_json()
        second.receive_json()

        _award(app_client, headers, school["dave"], school["helping"])
        _award(app_client, headers, school["dave"], school["helping"])

        for ws in (first, second):
            messages = [ws.receive_json() for _ in range(6)]
            class_sequences = [message["sequence"] for message in messages if message["type"] == "class-updated"]
            assert class_sequences == [1, 2]


def test_late_client_gets_no_replay_but_learns_sequences(app_client: TestClient, school: dict[str, str]):
    headers = auth_headers(app_client)
    _award(app_client, headers, school["dave"], school["helping"])

    with app_client.websocket_connect("/ws") as ws:
        hello = ws.receive_json()
        assert hello["type"] == "connection"
        assert hello["data"]["sequences"]["points"] == 1
        assert hello["data"]["sequences"][f"class:{school['class_7a']}"] == 1

        ws.send_text("ping")
        assert ws.receive_text() == "pong"


def test_deleting_a_point_broadcasts_negative_delta(app_client: TestClient, school: dict[str, str]):
    headers = auth_headers(app_client)
    point = _award(app_client, headers, school["alice"], school["helping"])

    with app_client.websocket_connect("/ws") as ws:
        ws.receive_json()
        assert app_client.delete(f"/behavior-points/{point['id']}", headers=headers).status_code == 200
        messages = [ws.receive_json() for _ in range(4)]

    assert messages[0]["type"] == "points-updated"
    assert messages[0]["data"]["point_ids"] == [point["id"]]
    assert all(message["data"]["delta"] == -3 for message in messages)


def test_roster_move_announces_both_classes(app_client: TestClient, school: dict[str, str]):
    headers = auth_headers(app_client)
    _award(app_client, headers, school["alice"], school["helping"])

    with app_client.websocket_connect("/ws") as ws:
        ws.receive_json()
        response = app_client.patch(
            f"/students/{school['alice']}/roster",
            headers=headers,
            json={"class_id": school["class_6b"]},
        )
        assert response.status_code == 200
        messages = [ws.receive_json() for _ in range(2)]

    assert [(message["type"], message["data"]["delta"]) for message in messages] == [
        ("class-updated", -3),
        ("class-updated", 3),
    ]
    assert messages[0]["data"]["class_id"] == school["class_6a"]
    assert messages[1]["data"]["class_id"] == school["class_6b"]


def test_app_keeps_broadcasting_after_a_restart(app_client: TestClient, school: dict[str, str]):
    from housepoints.main import create_app

    app = create_app()
    with TestClient(app):
        pass

    with TestClient(app) as client:
        headers = auth_headers(client)
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            _award(client, headers, school["dave"], school["helping"])
            assert ws.receive_json()["type"] == "points-updated"


def test_binary_frames_are_ignored(app_client: TestClient):
    with app_client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_bytes(b"ping")
        ws.send_text("hello")
        ws.send_text("ping")
        assert ws.receive_text() == "pong"
