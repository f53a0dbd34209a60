import logging
from typing import List, Optional

import cv2

from config import FaceMeshOptions
from errors import MISSING_FACE_MESH_MESSAGE, MissingDependencyError
from pose_types import FaceMeshFrame, Landmark3D

logger = logging.getLogger(__name__)


class FaceMeshDetector:
    def __init__(self, options: Optional[FaceMeshOptions] = None):
        self.options = options or FaceMeshOptions()
        try:
            import mediapipe as mp
        except ImportError as e:
            raise MissingDependencyError(MISSING_FACE_MESH_MESSAGE) from e

        face_mesh_module = getattr(getattr(mp, "solutions", None), "face_mesh", None)
        if face_mesh_module is None:
            raise MissingDependencyError(MISSING_FACE_MESH_MESSAGE)

        self._face_mesh = face_mesh_module.FaceMesh(
            static_image_mode=False,
            max_num_faces=self.options.max_num_faces,
            refine_landmarks=self.options.refine_landmarks,
            min_detection_confidence=self.options.min_detection_confidence,
            min_tracking_confidence=self.options.min_tracking_confidence,
        )
        logger.info(
            "Face Mesh ready (max_faces=%d refine=%s det=%.2f track=%.2f)",
            self.options.max_num_faces,
            self.options.refine_landmarks,
            self.options.min_detection_confidence,
            self.options.min_tracking_confidence,
        )

    def process(self, frame_bgr, timestamp: float, keep_frame: bool = False) -> FaceMeshFrame:
        if self._face_mesh is None:
            raise RuntimeError("Face Mesh detector is closed")
        height, width = frame_bgr.shape[:2]
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        # Marking the buffer read-only lets MediaPipe skip a copy.
        frame_rgb.flags.writeable = False
        results = self._face_mesh.process(frame_rgb)

        landmarks: List[Landmark3D] = []
        if results.multi_face_landmarks:
            # Only the first face drives the pose.
            face = results.multi_face_landmarks[0]
            landmarks = [Landmark3D(lm.x, lm.y, lm.z) for lm in face.landmark]

        return FaceMeshFrame(
            timestamp=timestamp,
            image_size=(width, height),
            landmarks=landmarks,
            frame=frame_bgr if keep_frame else None,
        )

    def close(self) -> None:
        if self._face_mesh is not None:
            self._face_mesh.close()
            self._face_mesh = None
