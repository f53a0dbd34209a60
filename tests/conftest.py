"""Shared fixtures for face pose tests.

All landmark sets are synthetic; no camera or MediaPipe model is needed.
"""

import threading
import time
from types import SimpleNamespace

import numpy as np
import pytest

from pose_types import FaceMeshFrame, Landmark3D

MESH_SIZE = 468


def _scaled(x, y, z, scale):
    return Landmark3D(0.5 + (x - 0.5) * scale, 0.5 + (y - 0.5) * scale, z * scale)


@pytest.fixture
def make_landmarks():
    """Factory for a frontal, level face.

    At scale 1.0 the weighted size is 0.39 ("good"); 0.5 is too far and
    1.5 too close. ``eye_depth`` pushes the right eye back and the left eye
    forward (negative values turn the other way).
    """

    def _make(scale: float = 1.0, eye_depth: float = 0.0, size: int = MESH_SIZE):
        points = [_scaled(0.5, 0.5, 0.0, scale) for _ in range(size)]
        named = {
            1: (0.5, 0.55, -0.05),  # nose tip
            168: (0.5, 0.45, 0.0),  # nose bridge
            33: (0.4, 0.45, -eye_depth),  # left eye
            263: (0.6, 0.45, eye_depth),  # right eye
            234: (0.35, 0.5, 0.0),  # left cheek / jaw
            454: (0.65, 0.5, 0.0),  # right cheek / jaw
            10: (0.5, 0.2, 0.0),  # forehead
            152: (0.5, 0.8, 0.0),  # chin
        }
        for idx, (x, y, z) in named.items():
            if idx < size:
                points[idx] = _scaled(x, y, z, scale)
        return points

    return _make


def wait_until(predicate, timeout: float = 2.0, interval: float = 0.005) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class FakeDetector:
    """Stands in for FaceMeshDetector; returns a fixed landmark list."""

    def __init__(self, landmarks=None, image_size=(640, 480), block: bool = False, error=None):
        self.landmarks = list(landmarks or [])
        self.image_size = image_size
        self.error = error
        self.started = threading.Event()
        self.release = threading.Event()
        if not block:
            self.release.set()
        self.calls = 0
        self.closed = False

    def process(self, frame, timestamp, keep_frame=False):
        self.calls += 1
        self.started.set()
        self.release.wait(timeout=2.0)
        if self.error is not None:
            raise self.error
        return FaceMeshFrame(
            timestamp=timestamp,
            image_size=self.image_size,
            landmarks=list(self.landmarks),
            frame=frame if keep_frame else None,
        )

    def close(self):
        self.closed = True


class FakeSource:
    """Video source that never opens or that yields blank frames."""

    def __init__(self, opens: bool = True, frames: bool = False, size=(640, 480)):
        self.opens = opens
        self.frames = frames
        self.size = size
        self.is_open = False
        self.released = False
        self.reads = 0

    def open(self):
        self.is_open = self.opens
        return self.opens

    def read(self):
        self.reads += 1
        time.sleep(0.005)
        if not self.frames:
            return SimpleNamespace(frame=None, timestamp=time.time(), ok=False)
        width, height = self.size
        return SimpleNamespace(frame=np.zeros((height, width, 3), dtype=np.uint8), timestamp=time.time(), ok=True)

    def release(self):
        self.is_open = False
        self.released = True
