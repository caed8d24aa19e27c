from pathlib import Path

import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def app_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    db_file = tmp_path / "test.db"
    media_dir = tmp_path / "media"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_file.as_posix()}")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("MEDIA_DIR", str(media_dir))
    monkeypatch.setenv("MEDIA_BASE_URL", "http://testserver/media")
    monkeypatch.setenv("AUTO_CREATE_ADMIN", "true")
    monkeypatch.setenv("BOOTSTRAP_ADMIN_LOGIN", "admin")
    monkeypatch.setenv("BOOTSTRAP_ADMIN_PASSWORD", "admin123")
    monkeypatch.setenv("SEED_DEMO_DATA", "false")

    from housepoints import models  # noqa: F401
    from housepoints.core.config import clear_settings_cache
    from housepoints.db.base import Base
    from housepoints.db.session import get_engine, reset_engine
    from housepoints.main import create_app

    clear_settings_cache()
    reset_engine()
    Base.metadata.create_all(bind=get_engine())

    app = create_app()
    with TestClient(app) as client:
        yield client

    Base.metadata.drop_all(bind=get_engine())
    reset_engine()


@pytest.fixture()
def school(app_client: TestClient) -> dict[str, str]:
    """Two houses, two pods (one without a house), three classes, five students, a teacher."""
    from housepoints.core.security import hash_password
    from housepoints.db.session import get_session_factory
    from housepoints.models import BehaviorCategory, House, Pod, SchoolClass, Student, User

    with get_session_factory()() as db:
        phoenix = House(name="Phoenix", color="#3b82f6")
        griffin = House(name="Griffin", color="#10b981")
        db.add_all([phoenix, griffin])
        db.flush()

        north = Pod(name="North Pod", house_id=phoenix.id)
        south = Pod(name="South Pod")
        db.add_all([north, south])
        db.flush()

        class_6a = SchoolClass(name="6A", grade_level="6", pod_id=north.id)
        class_6b = SchoolClass(name="6B", grade_level="6", pod_id=north.id)
        class_7a = SchoolClass(name="7A", grade_level="7", pod_id=south.id)
        db.add_all([class_6a, class_6b, class_7a])
        db.flush()

        alice = Student(first_name="Alice", last_name="Adams", class_id=class_6a.id)
        bob = Student(first_name="Bob", last_name="Brown", class_id=class_6a.id)
        erin = Student(first_name="Erin", last_name="Evans", class_id=class_6a.id)
        carol = Student(first_name="Carol", last_name="Clark", class_id=class_6b.id, house_id=griffin.id)
        dave = Student(first_name="Dave", last_name="Davis", class_id=class_7a.id)
        db.add_all([alice, bob, erin, carol, dave])

        helping = BehaviorCategory(name="Helping Others", is_positive=True, point_value=3)
        disruption = BehaviorCategory(name="Classroom Disruption", is_positive=False, point_value=2)
        db.add_all([helping, disruption])

        teacher = User(
            login="teacher",
            password_hash=hash_password("teacher123"),
            first_name="Tina",
            last_name="Turner",
            role="teacher",
        )
        db.add(teacher)
        db.commit()

        return {
            "phoenix": phoenix.id,
            "griffin": griffin.id,
            "north": north.id,
            "south": south.id,
            "class_6a": class_6a.id,
            "class_6b": class_6b.id,
            "class_7a": class_7a.id,
            "alice": alice.id,
            "bob": bob.id,
            "erin": erin.id,
            "carol": carol.id,
            "dave": dave.id,
            "helping": helping.id,
            "disruption": disruption.id,
            "teacher": teacher.id,
        }


def auth_headers(client: TestClient, login: str = "admin", password: str = "admin123") -> dict[str, str]:
    response = client.post("/auth/login", json={"login": login, "password": password})
    assert response.status_code == 200, response.text
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


def teacher_headers(client: TestClient) -> dict[str, str]:
    return auth_headers(client, login="teacher", password="teacher123")
