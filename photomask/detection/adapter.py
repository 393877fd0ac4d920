"""
Integration of an external face detector with the mask editor.

Detector failures never block the session: the adapter reports itself as
unavailable and the manual tools keep working.
"""

import asyncio
from enum import Enum
from typing import Hashable, List, Optional, Protocol, Sequence, Set

from PIL import Image

from ..config import MAX_FACES, MIN_FACE_CONFIDENCE, MIN_FACE_SIZE, Settings, get_logger
from ..editor.history import HistoryManager
from ..editor.mask_store import MaskStore
from ..models import FaceDetection, PendingDetection

logger = get_logger(__name__)


class FaceDetector(Protocol):
    """Backend contract: pixel-space candidates for one image."""

    def detect(self, image: Image.Image) -> Sequence[FaceDetection]: ...

    def is_available(self) -> bool: ...


class DetectionStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


def create_detector(settings: Settings) -> Optional[FaceDetector]:
    """Build the backend selected by ``FACE_DETECTOR``."""
    if settings.face_detector == "opencv":
        from .opencv_detector import OpenCVFaceDetector

        return OpenCVFaceDetector()
    elif settings.face_detector == "gemini":
        from .gemini_detector import GeminiFaceDetector

        return GeminiFaceDetector(api_key=settings.gemini_api_key)
    return None


class FaceDetectionAdapter:
    """Runs the detector and applies accept/reject decisions to the MaskStore."""

    def __init__(
        self,
        detector: Optional[FaceDetector],
        store: MaskStore,
        history: HistoryManager,
        min_confidence: float = MIN_FACE_CONFIDENCE,
        min_face_size: int = MIN_FACE_SIZE,
        max_faces: int = MAX_FACES,
    ):
        self.detector = detector
        self.store = store
        self.history = history
        self.min_confidence = min_confidence
        self.min_face_size = min_face_size
        self.max_faces = max_faces
        self._status = DetectionStatus.IDLE
        self.last_error: Optional[str] = None
        self._detected: Set[Hashable] = set()

    @property
    def status(self) -> DetectionStatus:
        return self._status

    def is_available(self) -> bool:
        """Capability probe, independent of any particular image."""
        if self.detector is None or self._status == DetectionStatus.UNAVAILABLE:
            return False
        try:
            available = bool(self.detector.is_available())
        except Exception as e:
            self._mark_unavailable(e)
            return False
        if not available:
            self._status = DetectionStatus.UNAVAILABLE
        elif self._status == DetectionStatus.IDLE:
            self._status = DetectionStatus.AVAILABLE
        return available

    async def detect(self, image: Image.Image) -> List[PendingDetection]:
        """Run the detector off the event loop; failures yield an empty list."""
        if not self.is_available():
            return []

        self._status = DetectionStatus.LOADING
        try:
            raw = await asyncio.to_thread(self.detector.detect, image)
        except Exception as e:
            self._mark_unavailable(e)
            return []

        self._status = DetectionStatus.AVAILABLE
        detections = self._filter(raw)
        logger.info(f"Detected {len(detections)} faces")
        return detections

    async def auto_detect(self, image: Image.Image, image_key: Hashable) -> bool:
        """
        Detect once per loaded image when the masks hold no detections yet.

        Returns True when detections were merged into the store.
        """
        if image_key in self._detected or self.store.current().auto_detections:
            return False
        self._detected.add(image_key)

        detections = await self.detect(image)
        if not detections or self.store.current().auto_detections:
            return False
        return self._commit(self.store.set_detections(detections))

    def accept_all(self) -> bool:
        return self._commit(self.store.accept_all_detections())

    def reject_all(self) -> bool:
        return self._commit(self.store.reject_all_detections())

    def toggle(self, index: int) -> bool:
        return self._commit(self.store.toggle_detection_accepted(index))

    def _commit(self, changed: bool) -> bool:
        if changed:
            self.history.snapshot(self.store.current())
        return changed

    def _filter(self, raw: Sequence[FaceDetection]) -> List[PendingDetection]:
        detections = []
        for detection in raw:
            if detection.confidence is not None and detection.confidence < self.min_confidence:
                continue
            if detection.w < self.min_face_size or detection.h < self.min_face_size:
                continue
            detections.append(
                PendingDetection(
                    x=round(detection.x),
                    y=round(detection.y),
                    w=round(detection.w),
                    h=round(detection.h),
                    confidence=detection.confidence,
                )
            )
        return detections[: self.max_faces]

    def _mark_unavailable(self, error: Exception) -> None:
        self._status = DetectionStatus.UNAVAILABLE
        self.last_error = str(error)
        logger.warning(f"Face detection failed, manual tools only: {error}")
