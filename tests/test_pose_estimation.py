"""Tests for landmark-to-pose geometry."""

from types import SimpleNamespace

import pytest

from config import PoseThresholds
from errors import DegenerateGeometryError, MissingLandmarksError
from pose_estimation import (
    REQUIRED_LANDMARKS,
    classify_distance,
    classify_position,
    compute_face_pose,
    estimate_face_pose,
    is_level,
    weighted_face_size,
)
from pose_types import Landmark3D


class TestEstimateFacePose:
    def test_frontal_face(self, make_landmarks):
        pose = estimate_face_pose(make_landmarks(), 1280, 720)

        assert pose is not None
        assert pose.position == "center"
        assert pose.side_projection == pytest.approx(0.0)
        assert pose.distance_status == "good"
        assert pose.is_good_distance is True
        assert pose.tilt_angle == pytest.approx(0.0)
        assert pose.is_level is True
        assert pose.normalized_x == pytest.approx(0.5)
        assert pose.display_x == pytest.approx(0.5)

    def test_size_metrics(self, make_landmarks):
        pose = estimate_face_pose(make_landmarks(), 1280, 720)

        assert pose.face_width == pytest.approx(0.3)
        assert pose.face_height == pytest.approx(0.6)
        # 0.4 * 0.6 + 0.3 * 0.2 + 0.3 * 0.3
        assert pose.weighted_size == pytest.approx(0.39)

    def test_unit_normal(self, make_landmarks):
        pose = estimate_face_pose(make_landmarks(), 1280, 720)
        # normal = (0, 0.01, 0.02) before normalization
        assert pose.forward_projection == pytest.approx(0.02 / (0.0005 ** 0.5))

    def test_too_far(self, make_landmarks):
        pose = estimate_face_pose(make_landmarks(scale=0.5), 1280, 720)
        assert pose.distance_status == "too_far"
        assert pose.is_good_distance is False

    def test_too_close(self, make_landmarks):
        pose = estimate_face_pose(make_landmarks(scale=1.5), 1280, 720)
        assert pose.distance_status == "too_close"
        assert pose.is_good_distance is False

    def test_head_turned_reports_mirrored_labels(self, make_landmarks):
        right = estimate_face_pose(make_landmarks(eye_depth=-0.3), 1280, 720)
        left = estimate_face_pose(make_landmarks(eye_depth=0.3), 1280, 720)

        assert right.side_projection > 0.7
        assert right.position == "right"
        assert left.side_projection < -0.7
        assert left.position == "left"

    def test_tilted_head(self, make_landmarks):
        landmarks = make_landmarks()
        landmarks[33] = Landmark3D(0.4, 0.4, 0.0)
        landmarks[263] = Landmark3D(0.6, 0.6, 0.0)

        pose = estimate_face_pose(landmarks, 1280, 720)

        assert pose.tilt_angle == pytest.approx(45.0)
        assert pose.is_level is False

    def test_identical_inputs_identical_output(self, make_landmarks):
        landmarks = make_landmarks(eye_depth=0.1)
        first = estimate_face_pose(landmarks, 1280, 720)
        second = estimate_face_pose(landmarks, 1280, 720)
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_accepts_mediapipe_like_points(self, make_landmarks):
        landmarks = [SimpleNamespace(x=lm.x, y=lm.y, z=lm.z) for lm in make_landmarks()]
        pose = estimate_face_pose(landmarks, 1280, 720)
        assert pose is not None
        assert pose.position == "center"

    def test_refined_mesh_is_accepted(self, make_landmarks):
        pose = estimate_face_pose(make_landmarks(size=478), 1280, 720)
        assert pose is not None

    def test_to_dict_keys(self, make_landmarks):
        payload = estimate_face_pose(make_landmarks(), 1280, 720).to_dict()
        assert set(payload) == {
            "normalizedX",
            "position",
            "faceWidth",
            "faceHeight",
            "tiltAngle",
            "isLevel",
            "isGoodDistance",
            "distanceStatus",
            "boundingBox",
            "sideProjection",
        }
        assert set(payload["boundingBox"]) == {"left", "top", "width", "height"}

    def test_custom_thresholds(self, make_landmarks):
        strict = PoseThresholds(min_weighted_size=0.4, max_weighted_size=0.5)
        pose = estimate_face_pose(make_landmarks(), 1280, 720, strict)
        assert pose.distance_status == "too_far"


class TestBoundingBox:
    def test_mirrored_box(self, make_landmarks):
        landmarks = make_landmarks()
        landmarks[0] = Landmark3D(0.2, 0.1, 0.0)
        landmarks[2] = Landmark3D(0.8, 0.9, 0.0)

        box = estimate_face_pose(landmarks, 1280, 720).bounding_box

        assert box.left == pytest.approx(1280 - 0.8 * 1280)
        assert box.left == pytest.approx(256.0)
        assert box.width == pytest.approx(768.0)
        assert box.top == pytest.approx(72.0)
        assert box.height == pytest.approx(576.0)

    def test_asymmetric_face_is_flipped(self, make_landmarks):
        landmarks = [Landmark3D(lm.x * 0.5, lm.y, lm.z) for lm in make_landmarks()]
        # Face sits in the left half of the camera image, so the right half of the display.
        box = estimate_face_pose(landmarks, 1000, 1000).bounding_box
        assert box.left == pytest.approx(1000 - 0.325 * 1000)
        assert box.width == pytest.approx(0.15 * 1000)


class TestMissingLandmarks:
    @pytest.mark.parametrize("name,idx", sorted(REQUIRED_LANDMARKS.items()))
    def test_missing_required_point(self, make_landmarks, name, idx):
        landmarks = make_landmarks()
        landmarks[idx] = None

        assert estimate_face_pose(landmarks, 1280, 720) is None
        with pytest.raises(MissingLandmarksError) as exc_info:
            compute_face_pose(landmarks, 1280, 720)
        assert exc_info.value.missing == [name]

    def test_truncated_mesh(self, make_landmarks):
        assert estimate_face_pose(make_landmarks()[:200], 1280, 720) is None

    def test_empty_mesh(self):
        assert estimate_face_pose([], 1280, 720) is None

    def test_missing_cheek(self, make_landmarks):
        landmarks = make_landmarks()
        landmarks[454] = None
        assert estimate_face_pose(landmarks, 1280, 720) is None


class TestDegenerateGeometry:
    def test_parallel_vectors(self, make_landmarks):
        landmarks = make_landmarks()
        # Nose line parallel to the eye line gives a zero cross product.
        landmarks[168] = Landmark3D(0.5, 0.45, 0.0)
        landmarks[1] = Landmark3D(0.6, 0.45, 0.0)

        assert estimate_face_pose(landmarks, 1280, 720) is None
        with pytest.raises(DegenerateGeometryError):
            compute_face_pose(landmarks, 1280, 720)

    def test_collapsed_face(self):
        landmarks = [Landmark3D(0.5, 0.5, 0.0)] * 468
        assert estimate_face_pose(landmarks, 1280, 720) is None

    def test_nan_nose_tip(self, make_landmarks):
        landmarks = make_landmarks()
        landmarks[1] = Landmark3D(float("nan"), 0.55, -0.05)

        assert estimate_face_pose(landmarks, 1280, 720) is None
        with pytest.raises(DegenerateGeometryError):
            compute_face_pose(landmarks, 1280, 720)

    def test_nan_outside_key_points(self, make_landmarks):
        landmarks = make_landmarks()
        landmarks[0] = Landmark3D(float("nan"), 0.5, 0.0)

        with pytest.raises(DegenerateGeometryError, match="Non-finite"):
            compute_face_pose(landmarks, 1280, 720)

    def test_infinite_eye(self, make_landmarks):
        landmarks = make_landmarks()
        landmarks[263] = Landmark3D(float("inf"), 0.45, 0.0)
        assert estimate_face_pose(landmarks, 1280, 720) is None


class TestUnexpectedFailure:
    def test_bad_coordinates_return_none(self, make_landmarks):
        landmarks = make_landmarks()
        landmarks[1] = SimpleNamespace(x="bad", y=0.5, z=0.0)

        assert estimate_face_pose(landmarks, 1280, 720) is None
        with pytest.raises(TypeError):
            compute_face_pose(landmarks, 1280, 720)


class TestClassifiers:
    @pytest.mark.parametrize(
        "side,expected",
        [
            (0.71, "right"),
            (0.7, "center"),
            (0.0, "center"),
            (-0.7, "center"),
            (-0.71, "left"),
        ],
    )
    def test_position(self, side, expected):
        assert classify_position(side) == expected

    @pytest.mark.parametrize(
        "size,expected",
        [
            (0.2499, "too_far"),
            (0.25, "good"),
            (0.35, "good"),
            (0.45, "good"),
            (0.4501, "too_close"),
        ],
    )
    def test_distance(self, size, expected):
        assert classify_distance(size) == expected

    def test_level_boundary(self):
        assert is_level(14.999) is True
        assert is_level(15.0) is False
        assert is_level(-15.0) is False
        assert is_level(-14.999) is True

    def test_weighted_size(self):
        assert weighted_face_size(0.5, 0.2, 0.3) == pytest.approx(0.2 + 0.06 + 0.09)
