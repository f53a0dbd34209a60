import logging
from typing import Callable, Optional, Tuple

from config import AppConfig
from errors import (
    ALREADY_INITIALIZED_MESSAGE,
    DEGENERATE_GEOMETRY_MESSAGE,
    MISSING_LANDMARKS_MESSAGE,
    NO_FACE_MESSAGE,
    NOT_INITIALIZED_MESSAGE,
    DegenerateGeometryError,
    InitializationError,
    MissingDependencyError,
    MissingLandmarksError,
)
from landmark_provider import LandmarkProvider
from pose_estimation import compute_face_pose
from pose_types import FacePose

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_SIZE = (1280, 720)

InitCallback = Callable[[bool, Optional[str]], None]
DetectCallback = Callable[[Optional[FacePose], Optional[str]], None]


def _default_detector_factory(config: AppConfig):
    from face_mesh_detection import FaceMeshDetector

    return FaceMeshDetector(config.face_mesh)


def _default_source_factory(config: AppConfig):
    from camera import CameraStream

    cam = config.camera
    return CameraStream(camera_index=cam.index, width=cam.width, height=cam.height, target_fps=cam.fps)


class FaceMeshSession:
    """Owns the camera, the Face Mesh model and the latest detection for one caller.

    Lifecycle: ``init`` starts capture and detection, ``detect_face`` polls the
    latest result without blocking, ``dispose`` releases everything.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        detector_factory: Optional[Callable] = None,
        source_factory: Optional[Callable] = None,
    ):
        self.config = config or AppConfig()
        self._detector_factory = detector_factory or _default_detector_factory
        self._source_factory = source_factory or _default_source_factory
        self._provider: Optional[LandmarkProvider] = None
        self._source = None
        self._overlay = None
        self.debug = False

    @property
    def provider(self) -> Optional[LandmarkProvider]:
        return self._provider

    def is_initialized(self) -> bool:
        return self._provider is not None

    def init(self, video_source=None, debug: bool = False, callback: Optional[InitCallback] = None) -> bool:
        ok, message = self._start(video_source, debug)
        if callback is not None:
            callback(ok, message)
        return ok

    def _start(self, video_source, debug: bool) -> Tuple[bool, Optional[str]]:
        if self._provider is not None:
            return False, ALREADY_INITIALIZED_MESSAGE
        logger.info("Initializing Face Mesh session")

        try:
            detector = self._detector_factory(self.config)
        except MissingDependencyError as e:
            logger.error("Face Mesh unavailable: %s", e)
            return False, str(e)
        except Exception as e:
            logger.exception("Error initializing Face Mesh")
            return False, f"Error initializing Face Mesh: {e}"

        try:
            source = video_source if video_source is not None else self._source_factory(self.config)
            self._open_source(source)
        except InitializationError as e:
            detector.close()
            logger.error("%s", e)
            return False, str(e)
        except Exception as e:
            detector.close()
            logger.exception("Could not create video source")
            return False, f"Error starting camera: {e}"

        self.debug = bool(debug)
        if self.debug:
            from visualization import DebugOverlay

            self._overlay = DebugOverlay()
        self._source = source
        self._provider = LandmarkProvider(source, detector, keep_frames=self.debug)
        self._provider.start()
        logger.info("Face Mesh session initialized")
        return True, None

    @staticmethod
    def _open_source(source) -> None:
        if getattr(source, "is_open", True):
            return
        try:
            opened = source.open()
        except Exception as e:
            raise InitializationError(f"Error starting camera: {e}") from e
        if not opened:
            raise InitializationError("Error starting camera: could not open video source")

    def _image_size(self, face_frame) -> Tuple[int, int]:
        width, height = face_frame.image_size if face_frame.image_size else (0, 0)
        return (width or DEFAULT_IMAGE_SIZE[0], height or DEFAULT_IMAGE_SIZE[1])

    def detect_face(self, callback: DetectCallback) -> None:
        pose, message = self.poll()
        callback(pose, message)

    def poll(self) -> Tuple[Optional[FacePose], Optional[str]]:
        provider = self._provider
        if provider is None:
            return None, NOT_INITIALIZED_MESSAGE

        return self._pose_for(provider.latest())

    def _pose_for(self, face_frame) -> Tuple[Optional[FacePose], Optional[str]]:
        if face_frame is None or not face_frame.valid:
            return None, NO_FACE_MESSAGE

        width, height = self._image_size(face_frame)
        try:
            pose = compute_face_pose(face_frame.landmarks, width, height, self.config.thresholds)
        except MissingLandmarksError as e:
            logger.warning("%s", e)
            return None, MISSING_LANDMARKS_MESSAGE
        except DegenerateGeometryError as e:
            logger.warning("%s", e)
            return None, DEGENERATE_GEOMETRY_MESSAGE
        except Exception as e:
            logger.exception("Error in face detection")
            return None, f"Error processing face landmarks: {e}"
        return pose, None

    def debug_frame(self):
        if not self.debug or self._overlay is None or self._provider is None:
            return None
        face_frame = self._provider.latest()
        if face_frame is None or face_frame.frame is None:
            return None
        # Pose and image must come from the same detection.
        pose, message = self._pose_for(face_frame)
        return self._overlay.render(face_frame.frame, face_frame, pose, message)

    def show_debug(self) -> bool:
        frame = self.debug_frame()
        if frame is None:
            return False
        self._overlay.show(frame)
        return True

    def dispose(self) -> None:
        provider = self._provider
        self._provider = None
        if provider is not None:
            provider.stop()
        if self._overlay is not None:
            self._overlay.close()
            self._overlay = None
        self._source = None
        self.debug = False

    def __enter__(self) -> "FaceMeshSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()
