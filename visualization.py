import logging
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from pose_types import (
    DISTANCE_TOO_CLOSE,
    DISTANCE_TOO_FAR,
    POSITION_CENTER,
    POSITION_LEFT,
    POSITION_RIGHT,
    FaceMeshFrame,
    FacePose,
)

logger = logging.getLogger(__name__)

MESH_COLOR = (192, 192, 192)
EYE_COLOR = (48, 48, 255)
GOOD_COLOR = (0, 200, 0)
WARN_COLOR = (0, 200, 255)

_EYE_INDICES = (33, 263)


def _to_mirrored_pixel(lm, image_size: Tuple[int, int]) -> Tuple[int, int]:
    width, height = image_size
    return int((1.0 - lm.x) * width), int(lm.y * height)


def draw_face_mesh(frame, landmarks: Sequence, mirrored: bool = True) -> None:
    height, width = frame.shape[:2]
    for idx, lm in enumerate(landmarks):
        if lm is None:
            continue
        if mirrored:
            x, y = _to_mirrored_pixel(lm, (width, height))
        else:
            x, y = int(lm.x * width), int(lm.y * height)
        if idx in _EYE_INDICES:
            cv2.circle(frame, (x, y), 3, EYE_COLOR, -1)
        else:
            cv2.circle(frame, (x, y), 1, MESH_COLOR, -1)


def draw_bounding_box(frame, pose: FacePose) -> None:
    box = pose.bounding_box
    good = pose.is_good_distance and pose.is_level and pose.position == POSITION_CENTER
    color = GOOD_COLOR if good else WARN_COLOR
    top_left = (int(box.left), int(box.top))
    bottom_right = (int(box.left + box.width), int(box.top + box.height))
    cv2.rectangle(frame, top_left, bottom_right, color, 2)


def draw_status_panel(frame, lines, origin=(10, 30)) -> None:
    x, y = origin
    for line in lines:
        cv2.putText(frame, line, (x, y), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2)
        y += 28


def guidance_lines(pose: Optional[FacePose], message: Optional[str] = None) -> List[str]:
    if pose is None:
        return [message or "No face detected"]

    lines = []
    if pose.position == POSITION_LEFT:
        lines.append("Turn your head right")
    elif pose.position == POSITION_RIGHT:
        lines.append("Turn your head left")
    if pose.distance_status == DISTANCE_TOO_FAR:
        lines.append("Move closer")
    elif pose.distance_status == DISTANCE_TOO_CLOSE:
        lines.append("Move back")
    if not pose.is_level:
        lines.append(f"Level your head ({pose.tilt_angle:.0f} deg)")
    if not lines:
        lines.append("Hold still")
    return lines


class DebugOverlay:
    def __init__(self, window_name: str = "Face Mesh Debug"):
        self.window_name = window_name
        self._window_open = False

    def render(
        self,
        frame_bgr: np.ndarray,
        face_frame: Optional[FaceMeshFrame],
        pose: Optional[FacePose],
        message: Optional[str] = None,
    ) -> np.ndarray:
        # Mirror like a selfie view; pose coordinates are already in this space.
        canvas = cv2.flip(frame_bgr, 1)
        if face_frame is not None and face_frame.valid:
            draw_face_mesh(canvas, face_frame.landmarks)
        if pose is not None:
            draw_bounding_box(canvas, pose)
        draw_status_panel(canvas, guidance_lines(pose, message))
        return canvas

    def show(self, frame: np.ndarray) -> None:
        if not self._window_open:
            cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)
            self._window_open = True
        cv2.imshow(self.window_name, frame)

    def close(self) -> None:
        if self._window_open:
            try:
                cv2.destroyWindow(self.window_name)
            except cv2.error as e:
                logger.debug("Debug window already gone: %s", e)
            self._window_open = False
