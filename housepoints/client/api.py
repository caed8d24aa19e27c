import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

FETCH_PATHS = {
    "students": "/students",
    "houses": "/houses",
    "pods": "/pods",
    "classes": "/classes",
    "behavior-categories": "/behavior-categories",
    "behavior-points/recent": "/behavior-points/recent",
    "rewards": "/rewards",
}
PARAMETRIC_PREFIXES = (
    "behavior-points/student/",
    "behavior-points/teacher/",
    "classes/",
    "pods/",
    "houses/",
    "students/",
)


class PointsApiError(Exception):
    def __init__(self, status_code: int, detail: Any) -> None:
        super().__init__(f"HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


def key_path(key: str) -> str:
    """Map a cache key such as ``"behavior-points/student/<id>"`` to its URL path."""
    if key in FETCH_PATHS:
        return FETCH_PATHS[key]
    if key.startswith(PARAMETRIC_PREFIXES) and not key.endswith("/"):
        return f"/{key}"
    raise KeyError(f"Unknown query key: {key}")


class PointsApiClient:
    """Thin HTTP client for dashboards and scripts.

    ``http`` may be any ``httpx.Client``; tests pass FastAPI's ``TestClient``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        http: httpx.Client | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._owns_http = http is None
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self._headers: dict[str, str] = {}

    def login(self, login: str, password: str) -> str:
        payload = self._request("POST", "/auth/login", json={"login": login, "password": password})
        token = payload["access_token"]
        self._headers = {"Authorization": f"Bearer {token}"}
        return token

    def fetch(self, key: str, **params: Any) -> Any:
        return self._request("GET", key_path(key), params=params or None)

    def award_points(
        self,
        student_id: str,
        category_id: str,
        points: int | None = None,
        *,
        notes: str | None = None,
        teacher_id: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"student_id": student_id, "category_id": category_id}
        if points is not None:
            body["points"] = points
        if notes is not None:
            body["notes"] = notes
        if teacher_id is not None:
            body["teacher_id"] = teacher_id
        return self._request("POST", "/behavior-points", json=body)

    def award_points_batch(self, entries: list[dict[str, Any]]) -> dict[str, Any]:
        return self._request("POST", "/behavior-points/batch", json={"entries": entries})

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self.http.request(method, path, headers=self._headers, **kwargs)
        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            detail = body.get("detail") if isinstance(body, dict) else body
            logger.debug("%s %s failed with %d: %s", method, path, response.status_code, detail)
            raise PointsApiError(response.status_code, detail)
        return response.json()
