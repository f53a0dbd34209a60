NO_FACE_MESSAGE = "No face detected"
NOT_INITIALIZED_MESSAGE = "Face mesh not initialized properly"
ALREADY_INITIALIZED_MESSAGE = "Face mesh already initialized"
MISSING_LANDMARKS_MESSAGE = "Missing key facial landmarks"
DEGENERATE_GEOMETRY_MESSAGE = "Degenerate face geometry"
MISSING_FACE_MESH_MESSAGE = "MediaPipe FaceMesh library not found"


class FaceMeshError(Exception):
    pass


class MissingDependencyError(FaceMeshError):
    pass


class InitializationError(FaceMeshError):
    pass


class MissingLandmarksError(FaceMeshError):
    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(f"{MISSING_LANDMARKS_MESSAGE}: {', '.join(self.missing)}")


class DegenerateGeometryError(FaceMeshError):
    def __init__(self, message: str = DEGENERATE_GEOMETRY_MESSAGE):
        super().__init__(message)
