"""Head pose from Face Mesh landmarks.

The video is shown mirrored, so the position labels and the bounding box are
expressed in display space while ``normalized_x`` stays in camera space.
"""

import logging
import math
from typing import Optional, Sequence

import numpy as np

from config import PoseThresholds
from errors import DegenerateGeometryError, MissingLandmarksError
from geometry import cross, distance_3d, norm, subtract, tilt_degrees
from pose_types import (
    DISTANCE_GOOD,
    DISTANCE_TOO_CLOSE,
    DISTANCE_TOO_FAR,
    POSITION_CENTER,
    POSITION_LEFT,
    POSITION_RIGHT,
    BoundingBox,
    FacePose,
)

logger = logging.getLogger(__name__)

NOSE_TIP = 1
NOSE_BRIDGE = 168
LEFT_EYE = 33
RIGHT_EYE = 263
LEFT_CHEEK = 234
RIGHT_CHEEK = 454
TOP_FOREHEAD = 10
BOTTOM_CHIN = 152
# Jaw width is measured between the same points as the cheeks.
LEFT_JAW = LEFT_CHEEK
RIGHT_JAW = RIGHT_CHEEK

REQUIRED_LANDMARKS = {
    "nose_tip": NOSE_TIP,
    "nose_bridge": NOSE_BRIDGE,
    "left_eye": LEFT_EYE,
    "right_eye": RIGHT_EYE,
    "top_forehead": TOP_FOREHEAD,
    "bottom_chin": BOTTOM_CHIN,
}
SIZE_LANDMARKS = {
    "left_cheek": LEFT_CHEEK,
    "right_cheek": RIGHT_CHEEK,
}

NON_FINITE_MESSAGE = "Non-finite landmark coordinates"

_DEFAULT_THRESHOLDS = PoseThresholds()


def _landmark_at(landmarks: Sequence, idx: int):
    if idx < 0 or idx >= len(landmarks):
        return None
    return landmarks[idx]


def classify_position(side_projection: float, thresholds: PoseThresholds = _DEFAULT_THRESHOLDS) -> str:
    # Labels are swapped relative to the camera because the display is mirrored.
    if side_projection > thresholds.side_projection:
        return POSITION_RIGHT
    if side_projection < -thresholds.side_projection:
        return POSITION_LEFT
    return POSITION_CENTER


def classify_distance(weighted_size: float, thresholds: PoseThresholds = _DEFAULT_THRESHOLDS) -> str:
    if weighted_size < thresholds.min_weighted_size:
        return DISTANCE_TOO_FAR
    if weighted_size > thresholds.max_weighted_size:
        return DISTANCE_TOO_CLOSE
    return DISTANCE_GOOD


def is_level(tilt_angle: float, thresholds: PoseThresholds = _DEFAULT_THRESHOLDS) -> bool:
    return abs(tilt_angle) < thresholds.tilt_degrees


def weighted_face_size(
    face_height: float,
    eye_distance: float,
    jaw_width: float,
    thresholds: PoseThresholds = _DEFAULT_THRESHOLDS,
) -> float:
    return (
        face_height * thresholds.height_weight
        + eye_distance * thresholds.eye_weight
        + jaw_width * thresholds.jaw_weight
    )


def mirrored_bounding_box(landmarks: Sequence, image_width: float, image_height: float) -> BoundingBox:
    points = [lm for lm in landmarks if lm is not None]
    xs = np.array([lm.x for lm in points], dtype=np.float64) * image_width
    ys = np.array([lm.y for lm in points], dtype=np.float64) * image_height
    min_x, max_x = float(xs.min()), float(xs.max())
    min_y, max_y = float(ys.min()), float(ys.max())
    return BoundingBox(
        left=image_width - max_x,
        top=min_y,
        width=max_x - min_x,
        height=max_y - min_y,
    )


def compute_face_pose(
    landmarks: Sequence,
    image_width: float,
    image_height: float,
    thresholds: PoseThresholds = _DEFAULT_THRESHOLDS,
) -> FacePose:
    """Compute the head pose summary for one face.

    Raises MissingLandmarksError when a point needed by the computation is
    absent and DegenerateGeometryError when the face normal has zero length
    or any derived value is not finite.
    """
    points = {name: _landmark_at(landmarks, idx) for name, idx in REQUIRED_LANDMARKS.items()}
    points.update({name: _landmark_at(landmarks, idx) for name, idx in SIZE_LANDMARKS.items()})
    missing = [name for name, lm in points.items() if lm is None]
    if missing:
        raise MissingLandmarksError(missing)

    nose_tip = points["nose_tip"]
    left_eye = points["left_eye"]
    right_eye = points["right_eye"]
    left_cheek = points["left_cheek"]
    right_cheek = points["right_cheek"]

    v1 = subtract(right_eye, left_eye)
    v2 = subtract(nose_tip, points["nose_bridge"])
    normal = cross(v1, v2)
    length = norm(normal)
    if length == 0.0:
        raise DegenerateGeometryError()
    if not math.isfinite(length):
        raise DegenerateGeometryError(NON_FINITE_MESSAGE)
    side_projection = normal[0] / length
    forward_projection = normal[2] / length

    position = classify_position(side_projection, thresholds)

    face_width = abs(right_cheek.x - left_cheek.x)
    face_height = abs(points["top_forehead"].y - points["bottom_chin"].y)
    eye_distance = distance_3d(right_eye, left_eye)
    jaw_width = distance_3d(right_cheek, left_cheek)
    weighted_size = weighted_face_size(face_height, eye_distance, jaw_width, thresholds)
    distance_status = classify_distance(weighted_size, thresholds)

    tilt_angle = tilt_degrees(left_eye, right_eye)
    level = is_level(tilt_angle, thresholds)

    bounding_box = mirrored_bounding_box(landmarks, image_width, image_height)
    derived = (
        nose_tip.x,
        face_width,
        weighted_size,
        tilt_angle,
        bounding_box.left,
        bounding_box.top,
        bounding_box.width,
        bounding_box.height,
    )
    if not all(math.isfinite(v) for v in derived):
        raise DegenerateGeometryError(NON_FINITE_MESSAGE)

    logger.debug(
        "forward=%.4f side=%.4f position=%s weighted_size=%.3f distance=%s tilt=%.2f",
        forward_projection,
        side_projection,
        position,
        weighted_size,
        distance_status,
        tilt_angle,
    )

    return FacePose(
        normalized_x=nose_tip.x,
        position=position,
        face_width=face_width,
        face_height=face_height,
        tilt_angle=tilt_angle,
        is_level=level,
        distance_status=distance_status,
        is_good_distance=distance_status == DISTANCE_GOOD,
        bounding_box=bounding_box,
        side_projection=side_projection,
        forward_projection=forward_projection,
        weighted_size=weighted_size,
    )


def estimate_face_pose(
    landmarks: Sequence,
    image_width: float,
    image_height: float,
    thresholds: PoseThresholds = _DEFAULT_THRESHOLDS,
) -> Optional[FacePose]:
    try:
        return compute_face_pose(landmarks, image_width, image_height, thresholds)
    except (MissingLandmarksError, DegenerateGeometryError) as e:
        logger.debug("No pose for frame: %s", e)
        return None
    except Exception:
        logger.exception("Error calculating face position")
        return None
