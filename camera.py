import logging
import sys
import time
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CameraFrame:
    frame: Optional[np.ndarray]
    timestamp: float
    ok: bool

    @classmethod
    def missing(cls, timestamp: float) -> "CameraFrame":
        return cls(None, timestamp, False)

    @property
    def image_size(self) -> Tuple[int, int]:
        if self.frame is None:
            return 0, 0
        height, width = self.frame.shape[:2]
        return width, height


class CameraStream:
    def __init__(self, camera_index: int = 0, width: int = 1280, height: int = 720, target_fps: int = 30):
        self.camera_index = camera_index
        self.width = width
        self.height = height
        self.target_fps = target_fps
        self._capture: Optional[cv2.VideoCapture] = None
        self._last_time = time.time()
        self.failed_reads = 0

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    @property
    def frame_size(self) -> Tuple[int, int]:
        if self._capture is None:
            return self.width, self.height
        width = int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH)) or self.width
        height = int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT)) or self.height
        return width, height

    def open(self) -> bool:
        # DirectShow opens much faster than MSMF on Windows; elsewhere let OpenCV pick.
        backend = cv2.CAP_DSHOW if sys.platform == "win32" else cv2.CAP_ANY
        capture = cv2.VideoCapture(self.camera_index, backend)
        if not capture.isOpened():
            capture.release()
            logger.error("Could not open camera %d", self.camera_index)
            return False
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        capture.set(cv2.CAP_PROP_FPS, self.target_fps)
        self._capture = capture
        self._last_time = time.time()
        logger.info("Camera %d opened at %dx%d", self.camera_index, *self.frame_size)
        return True

    def read(self) -> CameraFrame:
        if self._capture is None:
            return CameraFrame.missing(time.time())

        grabbed, image = self._capture.read()
        if not grabbed or image is None:
            self.failed_reads += 1
            logger.debug("Camera %d returned no frame (%d total)", self.camera_index, self.failed_reads)
            return CameraFrame.missing(time.time())
        return CameraFrame(image, self._pace(), True)

    def _pace(self) -> float:
        # Hold delivery at target_fps; a non-positive target disables pacing.
        now = time.time()
        if self.target_fps > 0:
            wait = self._last_time + 1.0 / self.target_fps - now
            if wait > 0:
                time.sleep(wait)
                now = time.time()
        self._last_time = now
        return now

    def release(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info("Camera %d released", self.camera_index)

    def __enter__(self) -> "CameraStream":
        if self._capture is None and not self.open():
            raise RuntimeError(f"Could not open camera {self.camera_index}")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
