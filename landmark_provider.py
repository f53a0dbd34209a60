"""Continuous capture + detection with a latest-wins result cache.

At most one detection runs at a time. Frames that arrive while a detection is
in flight are dropped rather than queued, so the cached result is never more
than one detection behind the camera.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

from pose_types import FaceMeshFrame

logger = logging.getLogger(__name__)

GATE_IDLE = "idle"
GATE_DETECTING = "detecting"


class DetectionGate:
    def __init__(self):
        self._lock = threading.Lock()
        self._state = GATE_IDLE

    @property
    def state(self) -> str:
        with self._lock:
            return self._state

    def try_begin(self) -> bool:
        with self._lock:
            if self._state != GATE_IDLE:
                return False
            self._state = GATE_DETECTING
            return True

    def finish(self) -> None:
        with self._lock:
            self._state = GATE_IDLE

    def reset(self) -> None:
        self.finish()


class LandmarkProvider:
    def __init__(
        self,
        source,
        detector,
        keep_frames: bool = False,
        read_retry_seconds: float = 0.01,
    ):
        # source may be None: frames are then pushed by the caller through submit().
        self._source = source
        self._detector = detector
        self._keep_frames = keep_frames
        self._read_retry_seconds = read_retry_seconds

        self._lock = threading.Lock()
        self._gate = DetectionGate()
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._latest: Optional[FaceMeshFrame] = None
        self._last_error: Optional[str] = None
        self._processed = 0
        self._dropped = 0

    @property
    def gate(self) -> DetectionGate:
        return self._gate

    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            self._last_error = None
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="facemesh-detect")

        if self._source is not None:
            t = threading.Thread(target=self._run_capture_loop, name="facemesh-capture", daemon=True)
            self._thread = t
            t.start()
        logger.info("Landmark provider started")

    def submit(self, frame, timestamp: Optional[float] = None) -> bool:
        with self._lock:
            executor = self._executor if self._running else None
        if executor is None:
            return False
        if not self._gate.try_begin():
            with self._lock:
                self._dropped += 1
            return False
        ts = time.time() if timestamp is None else timestamp
        try:
            executor.submit(self._detect, frame, ts)
        except RuntimeError:
            # Executor shut down between the running check and submit.
            self._gate.finish()
            return False
        return True

    def latest(self) -> Optional[FaceMeshFrame]:
        with self._lock:
            return self._latest

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "running": self._running,
                "processed": self._processed,
                "dropped": self._dropped,
                "gate": self._gate.state,
                "error": self._last_error,
            }

    def stop(self) -> None:
        with self._lock:
            was_running = self._running
            self._running = False
            executor = self._executor
            self._executor = None

        t = self._thread
        if t is not None and t.is_alive() and t is not threading.current_thread():
            t.join(timeout=3.0)
        self._thread = None

        if executor is not None:
            executor.shutdown(wait=True)

        if self._detector is not None:
            self._detector.close()
        if self._source is not None:
            self._source.release()

        with self._lock:
            self._latest = None
        self._gate.reset()
        if was_running:
            logger.info("Landmark provider stopped")

    def _detect(self, frame, timestamp: float) -> None:
        try:
            result = self._detector.process(frame, timestamp, keep_frame=self._keep_frames)
        except Exception as e:
            logger.exception("Face Mesh detection failed")
            with self._lock:
                self._last_error = repr(e)
        else:
            with self._lock:
                # A detection finishing after stop() must not repopulate the cache.
                if self._running:
                    self._latest = result
                    self._processed += 1
        finally:
            self._gate.finish()

    def _run_capture_loop(self) -> None:
        failures = 0
        while self.is_running():
            try:
                cam_frame = self._source.read()
            except Exception as e:
                failures += 1
                if failures == 1 or failures % 100 == 0:
                    logger.exception("Video source read raised (%d in a row)", failures)
                with self._lock:
                    self._last_error = repr(e)
                time.sleep(self._read_retry_seconds)
                continue
            if not cam_frame.ok:
                failures += 1
                if failures == 1 or failures % 100 == 0:
                    logger.warning("Failed to read frame from video source (%d in a row)", failures)
                time.sleep(self._read_retry_seconds)
                continue
            failures = 0
            self.submit(cam_frame.frame, cam_frame.timestamp)
