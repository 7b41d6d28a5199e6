"""Tests for scale calibration and ray picking."""

import math

import numpy as np
import pytest

from geoimage.calibration import (
    CalibrationSession,
    CalibrationState,
    parse_length,
    ray_pick,
    snap_to_vertex,
)
from geoimage.errors import CalibrationInputError, CalibrationStateError
from geoimage.geometry import Model, Primitive, PrimitiveKind, build_primitive_mesh


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def unit_box():
    """A unit box at the origin."""
    return Primitive(kind=PrimitiveKind.BOX)


@pytest.fixture
def box_model(unit_box):
    """Model with one unit box."""
    return Model(primitives=[unit_box])


@pytest.fixture
def session():
    """A fresh calibration session."""
    return CalibrationSession()


def _measure_corners(session, primitive):
    """Pick two opposite box corners on the mesh at the session's scale."""
    mesh = build_primitive_mesh(primitive, session.global_scale)
    session.start()
    session.pick(mesh.vertices[0], mesh)
    session.pick(mesh.vertices[6], mesh)
    return session.measured_distance


# ============================================================================
# Snapping Tests
# ============================================================================


class TestSnapping:
    """Tests for vertex snapping."""

    def test_snaps_within_threshold(self):
        """Test that a point near a vertex snaps to it."""
        vertices = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
        assert snap_to_vertex((0.95, 0.05, 0.0), vertices, 0.2) == (1.0, 0.0, 0.0)

    def test_keeps_raw_point_outside_threshold(self):
        """Test that a distant point is kept as picked."""
        vertices = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
        assert snap_to_vertex((0.5, 0.0, 0.0), vertices, 0.2) == (0.5, 0.0, 0.0)

    def test_empty_vertices(self):
        """Test snapping against an empty mesh."""
        assert snap_to_vertex((1, 2, 3), np.zeros((0, 3)), 1.0) == (1.0, 2.0, 3.0)

    def test_threshold_is_in_world_units(self, unit_box):
        """Test that the threshold does not shrink or grow with the global scale."""
        big = build_primitive_mesh(unit_box, 100.0)
        # 0.15 world units from the corner at (50, 50, 50)
        assert snap_to_vertex((49.85, 50.0, 50.0), big.vertices, 0.2) == (50.0, 50.0, 50.0)
        # 1 world unit away is not snapped, even though it is 0.01 in unit space
        assert snap_to_vertex((49.0, 50.0, 50.0), big.vertices, 0.2) == (49.0, 50.0, 50.0)

    def test_invalid_point(self):
        """Test that a malformed point is rejected."""
        with pytest.raises(ValueError):
            snap_to_vertex((1.0, 2.0), np.zeros((1, 3)))


# ============================================================================
# Length Parsing Tests
# ============================================================================


class TestParseLength:
    """Tests for real-world length input."""

    @pytest.mark.parametrize("value,expected", [(2, 2.0), (0.5, 0.5), ("12.5", 12.5), (" 3 ", 3.0)])
    def test_valid(self, value, expected):
        """Test accepted lengths."""
        assert parse_length(value) == expected

    @pytest.mark.parametrize("value", [0, -1, "0", "-2.5", "abc", "", None, True, float("nan"), "inf"])
    def test_invalid(self, value):
        """Test rejected lengths."""
        with pytest.raises(CalibrationInputError):
            parse_length(value)


# ============================================================================
# Session Tests
# ============================================================================


class TestCalibrationSession:
    """Tests for the calibration state machine."""

    def test_initial_state(self, session):
        """Test the idle starting state."""
        assert session.state == CalibrationState.IDLE
        assert session.global_scale == 1.0
        assert session.measured_distance is None

    def test_state_transitions(self, session, unit_box):
        """Test idle -> A -> B -> ready -> idle."""
        mesh = build_primitive_mesh(unit_box)
        session.start()
        assert session.state == CalibrationState.AWAITING_POINT_A
        session.pick(mesh.vertices[0], mesh)
        assert session.state == CalibrationState.AWAITING_POINT_B
        session.pick(mesh.vertices[1], mesh)
        assert session.state == CalibrationState.READY
        assert session.measured_distance == pytest.approx(1.0)
        session.confirm(1.0)
        assert session.state == CalibrationState.IDLE

    def test_pick_in_idle_raises(self, session):
        """Test that picking requires calibration mode."""
        with pytest.raises(CalibrationStateError):
            session.pick((0, 0, 0))

    def test_confirm_before_two_points_raises(self, session):
        """Test that confirming needs both points."""
        session.start()
        session.pick((0, 0, 0))
        with pytest.raises(CalibrationStateError):
            session.confirm(1.0)
        assert session.state == CalibrationState.AWAITING_POINT_B

    def test_pick_snaps_to_mesh(self, session, unit_box):
        """Test that a pick near a corner records the corner."""
        mesh = build_primitive_mesh(unit_box)
        session.start()
        point = session.pick((0.45, 0.48, 0.5), mesh)
        assert point == (0.5, 0.5, 0.5)
        assert session.point_a == (0.5, 0.5, 0.5)

    def test_pick_without_mesh_keeps_point(self, session):
        """Test that picks without a mesh are recorded as given."""
        session.start()
        assert session.pick([0.1, 0.2, 0.3]) == (0.1, 0.2, 0.3)

    def test_third_pick_restarts_measurement(self, session):
        """Test that picking after B starts a new measurement from A."""
        session.start()
        session.pick((0, 0, 0))
        session.pick((1, 0, 0))
        session.pick((5, 0, 0))
        assert session.state == CalibrationState.AWAITING_POINT_B
        assert session.point_a == (5.0, 0.0, 0.0)
        assert session.point_b is None

    def test_live_distance(self, session):
        """Test the hover distance while waiting for the second point."""
        assert session.live_distance((1, 1, 1)) is None
        session.start()
        session.pick((0, 0, 0))
        assert session.live_distance((3, 4, 0)) == pytest.approx(5.0)

    def test_live_distance_snaps_to_mesh(self, session, unit_box):
        """Test that the hover distance uses the snapped point without recording it."""
        mesh = build_primitive_mesh(unit_box, 1.0)
        session.start()
        session.pick((-0.5, -0.5, -0.5), mesh)
        assert session.live_distance((0.45, -0.5, -0.5), mesh) == pytest.approx(1.0)
        assert session.live_distance((0.45, -0.5, -0.5)) == pytest.approx(0.95)
        assert session.state == CalibrationState.AWAITING_POINT_B
        assert session.point_b is None


    def test_doubles_scale(self, session, unit_box):
        """Test that entering twice the measured length doubles the scale."""
        d0 = _measure_corners(session, unit_box)
        assert d0 == pytest.approx(math.sqrt(3))
        assert session.confirm(2 * d0) == pytest.approx(2.0)
        assert session.global_scale == pytest.approx(2.0)

    def test_recalibration_does_not_compound(self, session, unit_box):
        """Test that re-measuring after calibration derives the scale afresh."""
        d0 = _measure_corners(session, unit_box)
        session.confirm(2 * d0)

        d1 = _measure_corners(session, unit_box)
        assert d1 == pytest.approx(2 * d0)
        assert session.confirm(d0) == pytest.approx(1.0)

    def test_remeasure_yields_entered_length(self, session, unit_box):
        """Test that after calibration the same vertices measure the entered length."""
        _measure_corners(session, unit_box)
        session.confirm("7.25")
        assert _measure_corners(session, unit_box) == pytest.approx(7.25)

    @pytest.mark.parametrize("length", [0, -3, "abc", "", None, float("nan")])
    def test_invalid_length_leaves_state(self, session, unit_box, length):
        """Test that invalid lengths are rejected without side effects."""
        _measure_corners(session, unit_box)
        before = session.to_dict()
        with pytest.raises(CalibrationInputError):
            session.confirm(length)
        assert session.to_dict() == before
        assert session.state == CalibrationState.READY

    def test_coincident_points_rejected(self, session):
        """Test that a zero measured distance is rejected without side effects."""
        session.start()
        session.pick((1, 1, 1))
        session.pick((1, 1, 1))
        scale = session.global_scale
        with pytest.raises(CalibrationInputError):
            session.confirm(10)
        assert session.global_scale == scale
        assert session.state == CalibrationState.READY

    def test_cancel_keeps_scale(self, session, unit_box):
        """Test that cancelling never changes the scale."""
        _measure_corners(session, unit_box)
        session.confirm(4.0)
        scale = session.global_scale

        _measure_corners(session, unit_box)
        session.cancel()
        assert session.state == CalibrationState.IDLE
        assert session.point_a is None and session.point_b is None
        assert session.global_scale == scale

    def test_start_clears_points(self, session):
        """Test that restarting discards a partial measurement."""
        session.start()
        session.pick((0, 0, 0))
        session.start()
        assert session.state == CalibrationState.AWAITING_POINT_A
        assert session.point_a is None

    def test_invalid_initial_scale(self):
        """Test that the session needs a positive scale."""
        with pytest.raises(ValueError):
            CalibrationSession(global_scale=0)

    def test_to_dict(self, session):
        """Test the serializable snapshot."""
        session.start()
        session.pick((0, 0, 0))
        data = session.to_dict()
        assert data["state"] == "awaiting_point_b"
        assert data["point_a"] == [0.0, 0.0, 0.0]
        assert data["global_scale"] == 1.0


# ============================================================================
# Ray Picking Tests
# ============================================================================


class TestRayPick:
    """Tests for ray picking against primitive meshes."""

    def test_hits_box_face(self, box_model):
        """Test a ray along -Z hitting the front face of the box."""
        hit = ray_pick(box_model, 1.0, (0.1, 0.2, 5.0), (0, 0, -1))
        assert hit is not None
        assert hit.primitive_index == 0
        assert hit.point == pytest.approx((0.1, 0.2, 0.5))
        assert hit.distance == pytest.approx(4.5)

    def test_miss(self, box_model):
        """Test a ray passing beside the model."""
        assert ray_pick(box_model, 1.0, (3.0, 3.0, 5.0), (0, 0, -1)) is None

    def test_ignores_hits_behind_origin(self, box_model):
        """Test that only intersections ahead of the origin count."""
        assert ray_pick(box_model, 1.0, (0.0, 0.0, 5.0), (0, 0, 1)) is None

    def test_nearest_primitive_wins(self):
        """Test that the closest of two stacked primitives is returned."""
        model = Model(
            primitives=[
                Primitive(kind=PrimitiveKind.BOX, position=(0, 0, -3)),
                Primitive(kind=PrimitiveKind.SPHERE, position=(0, 0, 0)),
            ]
        )
        hit = ray_pick(model, 1.0, (0.05, 0.03, 10.0), (0, 0, -1))
        assert hit.primitive_index == 1
        assert hit.mesh.kind == PrimitiveKind.SPHERE

    def test_uses_global_scale(self, box_model):
        """Test picking against the scaled mesh."""
        hit = ray_pick(box_model, 10.0, (1.0, 3.0, 50.0), (0, 0, -2))
        assert hit.point[2] == pytest.approx(5.0)

    def test_skips_degenerate_primitives(self):
        """Test that zero-scale primitives cannot be hit."""
        model = Model(primitives=[Primitive(kind=PrimitiveKind.BOX, scale=(0, 0, 0))])
        assert ray_pick(model, 1.0, (0.0, 0.0, 5.0), (0, 0, -1)) is None

    def test_zero_direction_rejected(self, box_model):
        """Test that a ray needs a direction."""
        with pytest.raises(ValueError):
            ray_pick(box_model, 1.0, (0, 0, 5), (0, 0, 0))

    def test_pick_then_snap(self, box_model):
        """Test a ray hit near a corner feeding a calibration pick."""
        session = CalibrationSession(snap_threshold=0.2)
        session.start()
        hit = ray_pick(box_model, session.global_scale, (0.45, 0.45, 5.0), (0, 0, -1))
        assert session.pick(hit.point, hit.mesh) == (0.5, 0.5, 0.5)
