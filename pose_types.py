from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

POSITION_LEFT = "left"
POSITION_RIGHT = "right"
POSITION_CENTER = "center"

DISTANCE_TOO_FAR = "too_far"
DISTANCE_GOOD = "good"
DISTANCE_TOO_CLOSE = "too_close"


@dataclass(frozen=True)
class Landmark3D:
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class BoundingBox:
    left: float
    top: float
    width: float
    height: float

    def to_dict(self) -> Dict[str, float]:
        return {"left": self.left, "top": self.top, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class FacePose:
    normalized_x: float
    position: str
    face_width: float
    face_height: float
    tilt_angle: float
    is_level: bool
    distance_status: str
    is_good_distance: bool
    bounding_box: BoundingBox
    side_projection: float
    forward_projection: float = 0.0
    weighted_size: float = 0.0

    @property
    def display_x(self) -> float:
        # Nose position in the mirrored display space used by bounding_box.
        return 1.0 - self.normalized_x

    def to_dict(self) -> Dict[str, Any]:
        return {
            "normalizedX": self.normalized_x,
            "position": self.position,
            "faceWidth": self.face_width,
            "faceHeight": self.face_height,
            "tiltAngle": self.tilt_angle,
            "isLevel": self.is_level,
            "isGoodDistance": self.is_good_distance,
            "distanceStatus": self.distance_status,
            "boundingBox": self.bounding_box.to_dict(),
            "sideProjection": self.side_projection,
        }


@dataclass
class FaceMeshFrame:
    timestamp: float
    image_size: Tuple[int, int]
    landmarks: List[Landmark3D] = field(default_factory=list)
    frame: Optional[Any] = None

    @property
    def valid(self) -> bool:
        return len(self.landmarks) > 0
