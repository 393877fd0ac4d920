"""
OpenCV Haar-cascade face detector.
"""

import os
from typing import List, Optional

import cv2
import numpy as np
from PIL import Image

from ..config import HAAR_CASCADE_FILE, MIN_FACE_SIZE, get_logger
from ..exceptions import DetectorUnavailableError
from ..models import PendingDetection

logger = get_logger(__name__)


class OpenCVFaceDetector:
    """Frontal-face detector backed by the cascades bundled with opencv-python."""

    def __init__(
        self,
        cascade_path: Optional[str] = None,
        scale_factor: float = 1.1,
        min_neighbors: int = 5,
        min_face_size: int = MIN_FACE_SIZE,
    ):
        self.cascade_path = cascade_path or os.path.join(
            cv2.data.haarcascades, HAAR_CASCADE_FILE
        )
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_face_size = min_face_size
        self._classifier: Optional[cv2.CascadeClassifier] = None

    def _load(self) -> cv2.CascadeClassifier:
        if self._classifier is None:
            classifier = cv2.CascadeClassifier(self.cascade_path)
            if classifier.empty():
                raise DetectorUnavailableError(
                    f"Could not load face cascade from {self.cascade_path}"
                )
            self._classifier = classifier
            logger.info(f"Loaded face cascade {os.path.basename(self.cascade_path)}")
        return self._classifier

    def is_available(self) -> bool:
        try:
            self._load()
        except DetectorUnavailableError as e:
            logger.warning(str(e))
            return False
        return True

    def detect(self, image: Image.Image) -> List[PendingDetection]:
        classifier = self._load()
        gray = cv2.cvtColor(np.array(image.convert("RGB")), cv2.COLOR_RGB2GRAY)
        faces = classifier.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=(self.min_face_size, self.min_face_size),
        )
        return [
            PendingDetection(x=int(x), y=int(y), w=int(w), h=int(h))
            for (x, y, w, h) in faces
        ]
