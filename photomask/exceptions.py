"""
Exception hierarchy for the mask editor and photo service.
"""

from typing import Optional


class PhotomaskError(Exception):
    """Base class for photomask errors."""

    pass


class SaveError(PhotomaskError):
    """Saving masks or reprocessing the photo failed; local edits are intact."""

    def __init__(self, message: str, photo_id: str, stage: str):
        super().__init__(message)
        self.photo_id = photo_id
        self.stage = stage


class PhotoServiceError(PhotomaskError):
    """The photo service rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ImageNotFoundError(PhotoServiceError):
    """Requested photo or image variant does not exist."""

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class DetectorUnavailableError(PhotomaskError):
    """The face detector backend cannot run in this environment."""

    pass


class SessionClosedError(PhotomaskError):
    """An editing session was used after it was closed."""

    pass
