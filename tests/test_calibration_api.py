"""Calibration API endpoint tests."""

import math

import pytest
from fastapi.testclient import TestClient

from api.main import app


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def model_id(client):
    """Create a model holding one unit box."""
    response = client.post(
        "/api/models/",
        json={"primitives": [{"type": "BOX", "position": [0, 0, 0], "scale": [1, 1, 1]}]},
    )
    return response.json()["id"]


def _url(model_id, action=""):
    base = f"/api/models/{model_id}/calibration"
    return f"{base}/{action}" if action else base


def _pick(client, model_id, point):
    return client.post(_url(model_id, "pick"), json={"point": point, "primitive_index": 1})


class TestCalibrationFlow:
    """Test the two-point calibration workflow."""

    def test_initial_state(self, client, model_id):
        """Test a new model starts idle at scale 1."""
        response = client.get(_url(model_id))
        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "idle"
        assert data["global_scale"] == 1.0

    def test_full_flow(self, client, model_id):
        """Test start, two picks and confirm."""
        assert client.post(_url(model_id, "start")).json()["state"] == "awaiting_point_a"

        data = _pick(client, model_id, [-0.45, -0.48, -0.5]).json()
        assert data["state"] == "awaiting_point_b"
        assert data["picked"] == [-0.5, -0.5, -0.5]

        data = _pick(client, model_id, [0.5, 0.5, 0.5]).json()
        assert data["state"] == "ready"
        assert data["measured_distance"] == pytest.approx(math.sqrt(3))

        response = client.post(_url(model_id, "confirm"), json={"length": 2 * math.sqrt(3)})
        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "idle"
        assert data["global_scale"] == pytest.approx(2.0)

        bounds = client.get(f"/api/models/{model_id}").json()["bounds"]
        assert bounds["max"] == pytest.approx([1.0, 1.0, 1.0])

    def test_recalibration(self, client, model_id):
        """Test that a second calibration replaces the scale instead of compounding."""
        client.post(_url(model_id, "start"))
        _pick(client, model_id, [-0.5, -0.5, -0.5])
        _pick(client, model_id, [0.5, -0.5, -0.5])
        client.post(_url(model_id, "confirm"), json={"length": 4})

        client.post(_url(model_id, "start"))
        _pick(client, model_id, [-2.0, -2.0, -2.0])
        data = _pick(client, model_id, [2.0, -2.0, -2.0]).json()
        assert data["measured_distance"] == pytest.approx(4.0)

        data = client.post(_url(model_id, "confirm"), json={"length": "1"}).json()
        assert data["global_scale"] == pytest.approx(1.0)

    def test_pick_with_ray(self, client, model_id):
        """Test picking by casting a ray into the model."""
        client.post(_url(model_id, "start"))
        response = client.post(
            _url(model_id, "pick"),
            json={"origin": [0.45, 0.45, 5.0], "direction": [0, 0, -1]},
        )
        assert response.status_code == 200
        assert response.json()["picked"] == [0.5, 0.5, 0.5]

    def test_ray_miss(self, client, model_id):
        """Test 404 when the ray misses every primitive."""
        client.post(_url(model_id, "start"))
        response = client.post(
            _url(model_id, "pick"),
            json={"origin": [5.0, 5.0, 5.0], "direction": [0, 0, -1]},
        )
        assert response.status_code == 404

    def test_zero_ray_direction(self, client, model_id):
        """Test 400 for a ray without direction."""
        client.post(_url(model_id, "start"))
        response = client.post(
            _url(model_id, "pick"),
            json={"origin": [0.0, 0.0, 5.0], "direction": [0, 0, 0]},
        )
        assert response.status_code == 400

    def test_cancel(self, client, model_id):
        """Test cancelling keeps the scale."""
        client.post(_url(model_id, "start"))
        _pick(client, model_id, [-0.5, -0.5, -0.5])
        data = client.post(_url(model_id, "cancel")).json()
        assert data["state"] == "idle"
        assert data["point_a"] is None
        assert data["global_scale"] == 1.0


class TestCalibrationErrors:
    """Test calibration error handling."""

    def test_pick_before_start(self, client, model_id):
        """Test 409 when picking outside calibration mode."""
        response = _pick(client, model_id, [0.5, 0.5, 0.5])
        assert response.status_code == 409

    def test_confirm_before_points(self, client, model_id):
        """Test 409 when confirming without two points."""
        client.post(_url(model_id, "start"))
        response = client.post(_url(model_id, "confirm"), json={"length": 10})
        assert response.status_code == 409

    @pytest.mark.parametrize("length", [0, -5, "abc", ""])
    def test_invalid_length(self, client, model_id, length):
        """Test 422 for invalid lengths, leaving the measurement in place."""
        client.post(_url(model_id, "start"))
        _pick(client, model_id, [-0.5, -0.5, -0.5])
        _pick(client, model_id, [0.5, 0.5, 0.5])

        response = client.post(_url(model_id, "confirm"), json={"length": length})
        assert response.status_code == 422

        data = client.get(_url(model_id)).json()
        assert data["state"] == "ready"
        assert data["global_scale"] == 1.0

    def test_coincident_points(self, client, model_id):
        """Test 422 when both picks land on the same vertex."""
        client.post(_url(model_id, "start"))
        _pick(client, model_id, [0.5, 0.5, 0.5])
        _pick(client, model_id, [0.45, 0.5, 0.5])
        response = client.post(_url(model_id, "confirm"), json={"length": 10})
        assert response.status_code == 422
        assert client.get(_url(model_id)).json()["global_scale"] == 1.0

    def test_unknown_primitive(self, client, model_id):
        """Test 404 for a primitive index outside the model."""
        client.post(_url(model_id, "start"))
        response = client.post(
            _url(model_id, "pick"), json={"point": [0, 0, 0], "primitive_index": 2}
        )
        assert response.status_code == 404

    def test_pick_requires_point_or_ray(self, client, model_id):
        """Test 422 for a pick request with neither a point nor a ray."""
        client.post(_url(model_id, "start"))
        response = client.post(_url(model_id, "pick"), json={"origin": [0, 0, 5]})
        assert response.status_code == 422

    def test_unknown_model(self, client):
        """Test 404 for calibration on a missing model."""
        response = client.post(_url("nonexistent", "start"))
        assert response.status_code == 404


class TestCalibrationHover:
    """Test the live distance shown while choosing the second point."""

    def test_hover_before_point_a(self, client, model_id):
        """Test that no distance is reported until point A is set."""
        client.post(_url(model_id, "start"))
        response = client.post(
            _url(model_id, "hover"), json={"point": [0.5, 0.5, 0.5], "primitive_index": 1}
        )
        assert response.status_code == 200
        assert response.json() == {"state": "awaiting_point_a", "live_distance": None}

    def test_hover_distance_snaps(self, client, model_id):
        """Test the hover distance from point A to the snapped vertex."""
        client.post(_url(model_id, "start"))
        _pick(client, model_id, [-0.5, -0.5, -0.5])
        response = client.post(
            _url(model_id, "hover"), json={"point": [0.45, -0.5, -0.5], "primitive_index": 1}
        )
        assert response.status_code == 200
        assert response.json()["live_distance"] == pytest.approx(1.0)

    def test_hover_does_not_record(self, client, model_id):
        """Test that hovering leaves the calibration state unchanged."""
        client.post(_url(model_id, "start"))
        _pick(client, model_id, [-0.5, -0.5, -0.5])
        client.post(_url(model_id, "hover"), json={"origin": [0.45, 0.45, 5.0], "direction": [0, 0, -1]})
        data = client.get(_url(model_id)).json()
        assert data["state"] == "awaiting_point_b"
        assert data["point_b"] is None

    def test_hover_with_ray(self, client, model_id):
        """Test hovering by casting a ray into the model."""
        client.post(_url(model_id, "start"))
        _pick(client, model_id, [-0.5, -0.5, -0.5])
        response = client.post(
            _url(model_id, "hover"), json={"origin": [0.45, 0.45, 5.0], "direction": [0, 0, -1]}
        )
        assert response.json()["live_distance"] == pytest.approx(math.sqrt(3))

    def test_hover_zero_ray_direction(self, client, model_id):
        """Test 400 for a hover ray without direction."""
        client.post(_url(model_id, "start"))
        _pick(client, model_id, [-0.5, -0.5, -0.5])
        response = client.post(
            _url(model_id, "hover"), json={"origin": [0.0, 0.0, 5.0], "direction": [0, 0, 0]}
        )
        assert response.status_code == 400

    def test_hover_unknown_primitive(self, client, model_id):
        """Test 404 for a hover on a primitive outside the model."""
        client.post(_url(model_id, "start"))
        response = client.post(
            _url(model_id, "hover"), json={"point": [0, 0, 0], "primitive_index": 3}
        )
        assert response.status_code == 404
