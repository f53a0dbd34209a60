import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CameraSettings:
    index: int = 0
    width: int = 1280
    height: int = 720
    fps: int = 30


@dataclass(frozen=True)
class FaceMeshOptions:
    max_num_faces: int = 1
    # Refined landmarks add the iris points (478 total); indices below 468 are unchanged.
    refine_landmarks: bool = True
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5


@dataclass(frozen=True)
class PoseThresholds:
    # Magnitude of the face normal's x component needed to call the head turned.
    side_projection: float = 0.7
    min_weighted_size: float = 0.25
    max_weighted_size: float = 0.45
    tilt_degrees: float = 15.0
    height_weight: float = 0.4
    eye_weight: float = 0.3
    jaw_weight: float = 0.3


@dataclass(frozen=True)
class AppConfig:
    camera: CameraSettings = field(default_factory=CameraSettings)
    face_mesh: FaceMeshOptions = field(default_factory=FaceMeshOptions)
    thresholds: PoseThresholds = field(default_factory=PoseThresholds)


def get_default_config_path() -> Path:
    return Path(__file__).resolve().parent / "config.json"


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return int(default)


def _as_float(v: Any, default: float) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return float(default)


def _as_bool(v: Any, default: bool) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        return v.strip().lower() in ("1", "true", "yes", "on")
    return bool(default)


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name)
    return value if isinstance(value, dict) else {}


def _parse_camera(obj: Dict[str, Any]) -> CameraSettings:
    d = CameraSettings()
    width = _as_int(obj.get("width", d.width), d.width)
    height = _as_int(obj.get("height", d.height), d.height)
    fps = _as_int(obj.get("fps", d.fps), d.fps)
    return CameraSettings(
        index=max(0, _as_int(obj.get("index", d.index), d.index)),
        width=width if width > 0 else d.width,
        height=height if height > 0 else d.height,
        fps=fps if fps >= 0 else d.fps,
    )


def _parse_face_mesh(obj: Dict[str, Any]) -> FaceMeshOptions:
    d = FaceMeshOptions()
    max_faces = _as_int(obj.get("max_num_faces", d.max_num_faces), d.max_num_faces)
    return FaceMeshOptions(
        max_num_faces=max_faces if max_faces > 0 else d.max_num_faces,
        refine_landmarks=_as_bool(obj.get("refine_landmarks", d.refine_landmarks), d.refine_landmarks),
        min_detection_confidence=min(
            1.0, max(0.0, _as_float(obj.get("min_detection_confidence"), d.min_detection_confidence))
        ),
        min_tracking_confidence=min(
            1.0, max(0.0, _as_float(obj.get("min_tracking_confidence"), d.min_tracking_confidence))
        ),
    )


def _parse_thresholds(obj: Dict[str, Any]) -> PoseThresholds:
    d = PoseThresholds()
    values = {}
    for name in (
        "side_projection",
        "min_weighted_size",
        "max_weighted_size",
        "tilt_degrees",
        "height_weight",
        "eye_weight",
        "jaw_weight",
    ):
        default = getattr(d, name)
        values[name] = _as_float(obj.get(name, default), default)
    if values["min_weighted_size"] > values["max_weighted_size"]:
        logger.warning(
            "min_weighted_size %.3f exceeds max_weighted_size %.3f; using defaults",
            values["min_weighted_size"],
            values["max_weighted_size"],
        )
        values["min_weighted_size"] = d.min_weighted_size
        values["max_weighted_size"] = d.max_weighted_size
    return PoseThresholds(**values)


def load_config(path: Optional[Union[str, Path]] = None) -> AppConfig:
    p = Path(path).expanduser().resolve() if path else get_default_config_path()
    if not p.exists():
        return AppConfig()
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable config %s: %s", p, e)
        return AppConfig()
    if not isinstance(raw, dict):
        logger.warning("Ignoring config %s: top level is not an object", p)
        return AppConfig()

    return AppConfig(
        camera=_parse_camera(_section(raw, "camera")),
        face_mesh=_parse_face_mesh(_section(raw, "face_mesh")),
        thresholds=_parse_thresholds(_section(raw, "thresholds")),
    )
