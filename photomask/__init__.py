"""
photomask: redaction mask authoring and preview for order photos.
"""

from .editor import (
    EditorSession,
    HistoryManager,
    MaskStore,
    PersistenceGateway,
    Tool,
    ToolController,
    ToolSettings,
    Viewport,
)
from .detection import DetectionStatus, FaceDetectionAdapter, create_detector
from .pipeline import Anonymizer, CompositingWorker, PreviewHandle, PreviewPipeline
from .models import (
    AcceptedDetection,
    BlurBrushStroke,
    BlurRect,
    FaceDetection,
    ImageVariant,
    MaskPayload,
    MaskSet,
    PendingDetection,
    Photo,
    Point,
)
from .exceptions import (
    DetectorUnavailableError,
    ImageNotFoundError,
    PhotomaskError,
    PhotoServiceError,
    SaveError,
    SessionClosedError,
)
from .photo_service import HttpPhotoService, LocalPhotoService, PhotoService

__version__ = "0.1.0"

__all__ = [
    # Editor
    "EditorSession",
    "HistoryManager",
    "MaskStore",
    "PersistenceGateway",
    "Tool",
    "ToolController",
    "ToolSettings",
    "Viewport",
    # Detection
    "DetectionStatus",
    "FaceDetectionAdapter",
    "create_detector",
    # Preview
    "Anonymizer",
    "CompositingWorker",
    "PreviewHandle",
    "PreviewPipeline",
    # Models
    "AcceptedDetection",
    "BlurBrushStroke",
    "BlurRect",
    "FaceDetection",
    "ImageVariant",
    "MaskPayload",
    "MaskSet",
    "PendingDetection",
    "Photo",
    "Point",
    # Errors
    "DetectorUnavailableError",
    "ImageNotFoundError",
    "PhotomaskError",
    "PhotoServiceError",
    "SaveError",
    "SessionClosedError",
    # Photo service
    "HttpPhotoService",
    "LocalPhotoService",
    "PhotoService",
]
