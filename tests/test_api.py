from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from tests.conftest import auth_headers, teacher_headers


def _points_by_id(items: list[dict]) -> dict[str, int]:
    return {item["id"]: item["points"] for item in items}


def _student_total(client: TestClient, headers: dict[str, str], student_id: str) -> int:
    response = client.get(f"/students/{student_id}", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["total_points"]


def test_public_standings_and_protected_reads(app_client: TestClient, school: dict[str, str]):
    for path in ("/houses", "/pods", "/classes", "/behavior-categories", "/rewards"):
        assert app_client.get(path).status_code == 200, path

    assert app_client.get("/students").status_code == 401
    assert app_client.get(f"/classes/{school['class_6a']}").status_code == 401
    assert app_client.get("/users", headers=teacher_headers(app_client)).status_code == 403


def test_invalid_token_rejected(app_client: TestClient):
    response = app_client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_award_and_deduct_roll_up_to_every_scope(app_client: TestClient, school: dict[str, str]):
    headers = teacher_headers(app_client)

    plus = app_client.post(
        "/behavior-points",
        headers=headers,
        json={"student_id": school["alice"], "category_id": school["helping"]},
    )
    assert plus.status_code == 201, plus.text
    assert plus.json()["points"] == 3
    assert plus.json()["teacher_id"] == school["teacher"]

    minus = app_client.post(
        "/behavior-points",
        headers=headers,
        json={"student_id": school["alice"], "category_id": school["disruption"], "notes": "talking"},
    )
    assert minus.status_code == 201, minus.text
    assert minus.json()["points"] == -2

    assert _student_total(app_client, headers, school["alice"]) == 1
    assert _points_by_id(app_client.get("/classes").json())[school["class_6a"]] == 1
    assert _points_by_id(app_client.get("/pods").json())[school["north"]] == 1

    houses = _points_by_id(app_client.get("/houses").json())
    assert houses[school["phoenix"]] == 1
    assert houses[school["griffin"]] == 0


def test_standings_are_sorted_by_points(app_client: TestClient, school: dict[str, str]):
    headers = auth_headers(app_client)
    app_client.post(
        "/behavior-points",
        headers=headers,
        json={"student_id": school["dave"], "category_id": school["helping"], "points": 7},
    )

    classes = app_client.get("/classes").json()
    assert classes[0]["id"] == school["class_7a"]
    assert classes[0]["points"] == 7
    assert [item["points"] for item in classes] == sorted((item["points"] for item in classes), reverse=True)


def test_student_house_overrides_pod_house(app_client: TestClient, school: dict[str, str]):
    headers = auth_headers(app_client)
    response = app_client.post(
        "/behavior-points",
        headers=headers,
        json={"student_id": school["carol"], "category_id": school["helping"]},
    )
    assert response.status_code == 201

    houses = _points_by_id(app_client.get("/houses").json())
    assert houses[school["griffin"]] == 3
    assert houses[school["phoenix"]] == 0
    assert _points_by_id(app_client.get("/pods").json())[school["north"]] == 3


def test_award_validation_errors(app_client: TestClient, school: dict[str, str]):
    headers = auth_headers(app_client)

    zero = app_client.post(
        "/behavior-points",
        headers=headers,
        json={"student_id": school["alice"], "category_id": school["helping"], "points": 0},
    )
    assert zero.status_code == 422

    fractional = app_client.post(
        "/behavior-points",
        headers=headers,
        json={"student_id": school["alice"], "category_id": school["helping"], "points": 2.5},
    )
    assert fractional.status_code == 422

    wrong_sign = app_client.post(
        "/behavior-points",
        headers=headers,
        json={"student_id": school["alice"], "category_id": school["helping"], "points": -3},
    )
    assert wrong_sign.status_code == 422
    assert "positive" in wrong_sign.json()["detail"]

    unknown_student = app_client.post(
        "/behavior-points",
        headers=headers,
        json={"student_id": "missing", "category_id": school["helping"]},
    )
    assert unknown_student.status_code == 404

    unknown_teacher = app_client.post(
        "/behavior-points",
        headers=headers,
        json={"student_id": school["alice"], "category_id": school["helping"], "teacher_id": "missing"},
    )
    assert unknown_teacher.status_code == 404

    assert app_client.get(f"/behavior-points/student/{school['alice']}", headers=headers).json() == []


def test_award_requires_login(app_client: TestClient, school: dict[str, str]):
    response = app_client.post(
        "/behavior-points",
        json={"student_id": school["alice"], "category_id": school["helping"]},
    )
    assert response.status_code == 401


def test_batch_writes_valid_entries_and_reports_the_rest(app_client: TestClient, school: dict[str, str]):
    headers = teacher_headers(app_client)
    entries = [
        {"student_id": school["alice"], "category_id": school["helping"]},
        {"student_id": "missing", "category_id": school["helping"]},
        {"student_id": school["bob"], "category_id": school["disruption"]},
        {"student_id": school["erin"], "category_id": school["helping"], "points": 0},
        {"student_id": school["dave"], "category_id": school["helping"], "points": 5},
    ]
    response = app_client.post("/behavior-points/batch", headers=headers, json={"entries": entries})
    assert response.status_code == 200, response.text
    payload = response.json()

    assert payload["count"] == 3
    assert len(payload["created"]) == 3
    assert [item["index"] for item in payload["failed"]] == [1, 3]
    assert "not found" in payload["failed"][0]["error"]

    recent = app_client.get("/behavior-points/recent", headers=headers, params={"limit": 50}).json()
    assert len(recent) == 3
    assert {item["student"]["id"] for item in recent} == {school["alice"], school["bob"], school["dave"]}


def test_batch_with_malformed_body_is_rejected_whole(app_client: TestClient, school: dict[str, str]):
    headers = auth_headers(app_client)
    good = {"student_id": school["alice"], "category_id": school["helping"]}

    for body in ({"entries": "nope"}, {"entries": [good, 5]}, {"items": [good]}, [good], {"entries": []}):
        response = app_client.post("/behavior-points/batch", headers=headers, json=body)
        assert response.status_code == 422, body

    assert _student_total(app_client, headers, school["alice"]) == 0


def test_batch_of_three_students_raises_class_total_by_six(app_client: TestClient, school: dict[str, str]):
    headers = auth_headers(app_client)
    entries = [
        {"student_id": student, "category_id": school["helping"], "points": 2}
        for student in (school["alice"], school["bob"], school["erin"])
    ]
    response = app_client.post("/behavior-points/batch", headers=headers, json={"entries": entries})
    assert response.status_code == 200
    assert response.json()["count"] == 3

    class_6a = app_client.get(f"/classes/{school['class_6a']}", headers=headers).json()
    assert class_6a["points"] == 6

    top = app_client.get(f"/classes/{school['class_6a']}/top-students", headers=headers, params={"limit": 2}).json()
    assert len(top) == 2
    assert all(item["total_points"] == 2 for item in top)


def test_roster_move_changes_which_class_counts_the_points(app_client: TestClient, school: dict[str, str]):
    headers = auth_headers(app_client)
    app_client.post(
        "/behavior-points",
        headers=headers,
        json={"student_id": school["alice"], "category_id": school["helping"]},
    )

    moved = app_client.patch(
        f"/students/{school['alice']}/roster",
        headers=headers,
        json={"class_id": school["class_7a"]},
    )
    assert moved.status_code == 200, moved.text
    assert moved.json()["class_id"] == school["class_7a"]
    assert moved.json()["effective_house_id"] is None

    classes = _points_by_id(app_client.get("/classes").json())
    assert classes[school["class_6a"]] == 0
    assert classes[school["class_7a"]] == 3
    assert _points_by_id(app_client.get("/houses").json())[school["phoenix"]] == 0

    assigned = app_client.patch(
        f"/students/{school['alice']}/roster",
        headers=headers,
        json={"house_id": school["griffin"]},
    )
    assert assigned.json()["effective_house_id"] == school["griffin"]
    assert _points_by_id(app_client.get("/houses").json())[school["griffin"]] == 3


def test_roster_changes_are_admin_only(app_client: TestClient, school: dict[str, str]):
    response = app_client.patch(
        f"/students/{school['alice']}/roster",
        headers=teacher_headers(app_client),
        json={"class_id": school["class_7a"]},
    )
    assert response.status_code == 403


def test_list_students_filters_by_effective_house(app_client: TestClient, school: dict[str, str]):
    headers = auth_headers(app_client)

    phoenix = app_client.get("/students", headers=headers, params={"house_id": school["phoenix"]}).json()
    assert {item["id"] for item in phoenix} == {school["alice"], school["bob"], school["erin"]}

    class_6b = app_client.get("/students", headers=headers, params={"class_id": school["class_6b"]}).json()
    assert [item["id"] for item in class_6b] == [school["carol"]]


def test_delete_point_is_admin_only_and_lowers_totals(app_client: TestClient, school: dict[str, str]):
    teacher = teacher_headers(app_client)
    admin = auth_headers(app_client)
    created = app_client.post(
        "/behavior-points",
        headers=teacher,
        json={"student_id": school["bob"], "category_id": school["helping"]},
    ).json()

    assert app_client.delete(f"/behavior-points/{created['id']}", headers=teacher).status_code == 403
    assert _student_total(app_client, admin, school["bob"]) == 3

    assert app_client.delete(f"/behavior-points/{created['id']}", headers=admin).status_code == 200
    assert _student_total(app_client, admin, school["bob"]) == 0
    assert _points_by_id(app_client.get("/classes").json())[school["class_6a"]] == 0

    assert app_client.delete(f"/behavior-points/{created['id']}", headers=admin).status_code == 404


def test_ledger_write_failure_returns_500_and_announces_nothing(
    app_client: TestClient, school: dict[str, str], monkeypatch: pytest.MonkeyPatch
):
    from sqlalchemy.exc import OperationalError
    from sqlalchemy.orm import Session

    headers = auth_headers(app_client)
    seen = []
    app_client.app.state.event_bus.subscribe("points-updated", seen.append)

    def failing_commit(self):
        raise OperationalError("INSERT INTO behavior_points", {}, Exception("disk I/O error"))

    with monkeypatch.context() as patch:
        patch.setattr(Session, "commit", failing_commit)
        response = app_client.post(
            "/behavior-points",
            headers=headers,
            json={"student_id": school["alice"], "category_id": school["helping"]},
        )

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to record behavior points"
    assert seen == []
    assert app_client.get(f"/behavior-points/student/{school['alice']}", headers=headers).json() == []


def test_teacher_history_visibility(app_client: TestClient, school: dict[str, str]):
    teacher = teacher_headers(app_client)
    admin = auth_headers(app_client)
    app_client.post(
        "/behavior-points",
        headers=teacher,
        json={"student_id": school["alice"], "category_id": school["helping"]},
    )
    admin_id = app_client.get("/auth/me", headers=admin).json()["id"]

    own = app_client.get(f"/behavior-points/teacher/{school['teacher']}", headers=teacher)
    assert own.status_code == 200
    assert len(own.json()) == 1

    assert app_client.get(f"/behavior-points/teacher/{admin_id}", headers=teacher).status_code == 403
    assert app_client.get(f"/behavior-points/teacher/{school['teacher']}", headers=admin).status_code == 200


def test_reward_redemption_checks_balance_and_stock(app_client: TestClient, school: dict[str, str]):
    admin = auth_headers(app_client)
    teacher = teacher_headers(app_client)

    reward = app_client.post(
        "/rewards",
        headers=admin,
        json={"name": "Homework Pass", "point_cost": 5, "quantity": 1},
    )
    assert reward.status_code == 201, reward.text
    reward_id = reward.json()["id"]
    redeem_body = {"student_id": school["alice"], "reward_id": reward_id}

    app_client.post(
        "/behavior-points",
        headers=teacher,
        json={"student_id": school["alice"], "category_id": school["helping"]},
    )
    poor = app_client.post("/rewards/redeem", headers=teacher, json=redeem_body)
    assert poor.status_code == 400

    app_client.post(
        "/behavior-points",
        headers=teacher,
        json={"student_id": school["alice"], "category_id": school["helping"]},
    )
    redeemed = app_client.post("/rewards/redeem", headers=teacher, json=redeem_body)
    assert redeemed.status_code == 201, redeemed.text
    assert redeemed.json()["balance"] == 1
    assert redeemed.json()["redemption"]["status"] == "pending"

    detail = app_client.get(f"/students/{school['alice']}", headers=teacher).json()
    assert detail["total_points"] == 6
    assert detail["balance"] == 1

    sold_out = app_client.post("/rewards/redeem", headers=teacher, json=redeem_body)
    assert sold_out.status_code == 409

    redemption_id = redeemed.json()["redemption"]["id"]
    approved = app_client.patch(f"/rewards/redemptions/{redemption_id}", headers=admin, json={"status": "approved"})
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"

    history = app_client.get(f"/rewards/redemptions/student/{school['alice']}", headers=teacher).json()
    assert [item["reward"]["name"] for item in history] == ["Homework Pass"]


def test_admin_crud_for_school_structure(app_client: TestClient, school: dict[str, str]):
    admin = auth_headers(app_client)

    house = app_client.post("/houses", headers=admin, json={"name": "Dragon", "color": "#f59e0b"})
    assert house.status_code == 201
    duplicate = app_client.post("/houses", headers=admin, json={"name": "Dragon"})
    assert duplicate.status_code == 409

    pod = app_client.post("/pods", headers=admin, json={"name": "East Pod", "house_id": house.json()["id"]})
    assert pod.status_code == 201
    assert pod.json()["house_id"] == house.json()["id"]

    school_class = app_client.post("/classes", headers=admin, json={"name": "8A", "pod_id": pod.json()["id"]})
    assert school_class.status_code == 201

    student = app_client.post(
        "/students",
        headers=admin,
        json={"first_name": "Finn", "last_name": "Fox", "class_id": school_class.json()["id"]},
    )
    assert student.status_code == 201
    assert student.json()["effective_house_id"] == house.json()["id"]

    assert app_client.delete(f"/classes/{school_class.json()['id']}", headers=admin).status_code == 409
    assert app_client.delete(f"/students/{student.json()['id']}", headers=admin).status_code == 200
    assert app_client.delete(f"/classes/{school_class.json()['id']}", headers=admin).status_code == 200

    category = app_client.post(
        "/behavior-categories",
        headers=admin,
        json={"name": "Teamwork", "is_positive": True, "point_value": 4},
    )
    assert category.status_code == 201
    assert category.json()["signed_points"] == 4
    out_of_range = app_client.post(
        "/behavior-categories",
        headers=admin,
        json={"name": "Huge", "is_positive": True, "point_value": 11},
    )
    assert out_of_range.status_code == 422

    teacher_user = app_client.post(
        "/users",
        headers=admin,
        json={"login": "mr.smith", "password": "secret1", "role": "teacher"},
    )
    assert teacher_user.status_code == 201
    assert "password_hash" not in teacher_user.json()
    auth_headers(app_client, login="mr.smith", password="secret1")


def test_category_sign_cannot_flip_once_used(app_client: TestClient, school: dict[str, str]):
    admin = auth_headers(app_client)
    app_client.post(
        "/behavior-points",
        headers=admin,
        json={"student_id": school["alice"], "category_id": school["helping"]},
    )
    response = app_client.patch(
        f"/behavior-categories/{school['helping']}",
        headers=admin,
        json={"is_positive": False},
    )
    assert response.status_code == 409


def test_change_password(app_client: TestClient, school: dict[str, str]):
    headers = teacher_headers(app_client)
    wrong = app_client.post(
        "/auth/change-password",
        headers=headers,
        json={"current_password": "nope", "new_password": "another1"},
    )
    assert wrong.status_code == 400

    changed = app_client.post(
        "/auth/change-password",
        headers=headers,
        json={"current_password": "teacher123", "new_password": "another1"},
    )
    assert changed.status_code == 200
    auth_headers(app_client, login="teacher", password="another1")


def test_house_logo_upload_is_stored_as_png(app_client: TestClient, school: dict[str, str]):
    admin = auth_headers(app_client)
    buffer = BytesIO()
    Image.new("RGB", (8, 8), color=(255, 0, 0)).save(buffer, format="JPEG")

    response = app_client.post(
        f"/houses/{school['phoenix']}/logo",
        headers=admin,
        files={"logo": ("logo.jpg", buffer.getvalue(), "image/jpeg")},
    )
    assert response.status_code == 200, response.text
    logo_url = response.json()["logo_url"]
    assert logo_url.startswith("http://testserver/media/houses/")
    assert logo_url.endswith(".png")

    broken = app_client.post(
        f"/pods/{school['north']}/logo",
        headers=admin,
        files={"logo": ("logo.png", b"not an image", "image/png")},
    )
    assert broken.status_code == 400
