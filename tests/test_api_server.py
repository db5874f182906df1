"""Tests for the HTTP API (Flask test client).

Test cases:
    - health check
    - /api/normalize: success, missing file, unreadable file, unrenderable
      and oversized targets
    - /api/normalize-drawing: success, empty drawing, non-finite and huge coordinates
    - /api/detect-components placeholder
    - background sessions: analyze → result → clear
    - session eviction by capacity and by idle time

Run: pytest tests/test_api_server.py -v
"""
import base64
from io import BytesIO

import numpy as np
import pytest
from PIL import Image as PILImage

from circuit_sketch import api_server

DRAWING = {"strokes": [{"points": [[10, 10], [120, 10], [120, 80]], "width": 6}]}
SMALL_DRAWING = {**DRAWING, "width": 32, "height": 32}


@pytest.fixture
def client():
    api_server.app.config["TESTING"] = True
    with api_server.app.test_client() as client:
        yield client


def _png_upload(width=40, height=20, color=(255, 255, 255)):
    buffer = BytesIO()
    PILImage.new("RGB", (width, height), color).save(buffer, format="PNG")
    buffer.seek(0)
    return buffer, "sketch.png"


def _decode(data_url):
    assert data_url.startswith("data:image/png;base64,")
    raw = base64.b64decode(data_url.split(",", 1)[1])
    return np.asarray(PILImage.open(BytesIO(raw)))


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "healthy"


class TestNormalize:

    def test_upload(self, client):
        response = client.post("/api/normalize", data={
            "image": _png_upload(), "width": "64", "height": "32",
        }, content_type="multipart/form-data")

        body = response.get_json()
        assert response.status_code == 200
        assert body["success"] is True
        assert (body["width"], body["height"]) == (64, 32)
        assert _decode(body["image"]).shape == (32, 64, 4)

    def test_missing_image(self, client):
        response = client.post("/api/normalize", data={}, content_type="multipart/form-data")
        assert response.status_code == 400

    def test_unreadable_image(self, client):
        response = client.post("/api/normalize", data={
            "image": (BytesIO(b"garbage"), "sketch.png"),
        }, content_type="multipart/form-data")
        assert response.status_code == 400

    def test_bad_dimensions(self, client):
        response = client.post("/api/normalize", data={
            "image": _png_upload(), "width": "wide",
        }, content_type="multipart/form-data")
        assert response.status_code == 400

    def test_unrenderable_target(self, client):
        response = client.post("/api/normalize", data={
            "image": _png_upload(), "width": "0", "height": "32",
        }, content_type="multipart/form-data")
        assert response.status_code == 422
        assert response.get_json()["success"] is False

    def test_oversized_target(self, client):
        response = client.post("/api/normalize", data={
            "image": _png_upload(), "width": "100000", "height": "100000",
        }, content_type="multipart/form-data")
        assert response.status_code == 400


class TestNormalizeDrawing:

    def test_drawing(self, client):
        response = client.post("/api/normalize-drawing", json={**DRAWING, "width": 48, "height": 48})
        body = response.get_json()
        assert response.status_code == 200
        assert (body["width"], body["height"]) == (48, 48)

    def test_empty_drawing(self, client):
        response = client.post("/api/normalize-drawing", json={"strokes": []})
        assert response.status_code == 400

    @pytest.mark.parametrize("points", [
        [[0, 0], [float("inf"), 5]],
        [[0, 0], [1e7, 1e7]],
    ])
    def test_unrasterizable_points(self, client, points):
        response = client.post("/api/normalize-drawing", json={"strokes": [{"points": points}]})
        assert response.status_code == 400
        assert response.get_json()["success"] is False

    def test_oversized_target(self, client):
        response = client.post("/api/normalize-drawing", json={**DRAWING, "width": 100000})
        assert response.status_code == 400


def test_detect_components_placeholder(client):
    response = client.post("/api/detect-components", data={"image": _png_upload()},
                           content_type="multipart/form-data")
    assert response.status_code == 200
    assert response.get_json()["components"] == []


class TestSessions:

    def test_analyze_then_poll(self, client):
        response = client.post("/api/sessions/canvas-1/analyze", json={**DRAWING, "width": 32, "height": 32})
        assert response.status_code == 202
        assert response.get_json()["sequence"] == 1

        # drain the worker so the slot is filled
        api_server.sessions["canvas-1"].dispatcher.shutdown(wait=True)

        body = client.get("/api/sessions/canvas-1/result").get_json()
        assert body["processing"] is False
        assert body["sequence"] == 1
        assert body["error"] is None
        assert _decode(body["image"]).shape == (32, 32, 4)

        assert client.post("/api/clear-session", json={"session_id": "canvas-1"}).status_code == 200
        assert client.post("/api/clear-session", json={"session_id": "canvas-1"}).status_code == 404

    def test_failed_analysis_reports_error(self, client):
        client.post("/api/sessions/canvas-2/analyze", json={**DRAWING, "width": 0, "height": 32})
        api_server.sessions["canvas-2"].dispatcher.shutdown(wait=True)

        body = client.get("/api/sessions/canvas-2/result").get_json()
        assert body["image"] is None
        assert body["error"]
        client.post("/api/clear-session", json={"session_id": "canvas-2"})

    def test_unknown_session(self, client):
        assert client.get("/api/sessions/nobody/result").status_code == 404


@pytest.fixture
def no_sessions():
    for session_id in list(api_server.sessions):
        api_server.sessions.pop(session_id).clear()
    yield api_server.sessions
    for session_id in list(api_server.sessions):
        api_server.sessions.pop(session_id).clear()


class TestSessionEviction:

    def test_least_recently_used_evicted_at_capacity(self, client, no_sessions, monkeypatch):
        monkeypatch.setattr(api_server, "MAX_SESSIONS", 2)
        for session_id in ("a", "b"):
            client.post(f"/api/sessions/{session_id}/analyze", json=SMALL_DRAWING)
        no_sessions["a"].last_used -= 10  # "b" is the more recent one
        evicted = no_sessions["a"]

        client.post("/api/sessions/c/analyze", json=SMALL_DRAWING)

        assert sorted(no_sessions) == ["b", "c"]
        with pytest.raises(RuntimeError):
            evicted.dispatcher.submit(api_server.RasterImage.solid(4, 4))
        assert client.get("/api/sessions/a/result").status_code == 404

    def test_idle_session_evicted(self, client, no_sessions):
        client.post("/api/sessions/idle/analyze", json=SMALL_DRAWING)
        no_sessions["idle"].last_used -= api_server.SESSION_IDLE_TTL_S + 1

        client.post("/api/sessions/active/analyze", json=SMALL_DRAWING)

        assert list(no_sessions) == ["active"]

    def test_existing_session_is_reused(self, client, no_sessions, monkeypatch):
        monkeypatch.setattr(api_server, "MAX_SESSIONS", 1)
        client.post("/api/sessions/only/analyze", json=SMALL_DRAWING)
        session = no_sessions["only"]

        response = client.post("/api/sessions/only/analyze", json=SMALL_DRAWING)

        assert response.get_json()["sequence"] == 2
        assert no_sessions["only"] is session
