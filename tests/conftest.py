"""
Shared fixtures for the photomask tests.
Run with: pytest tests/
"""
from datetime import datetime, timezone
from typing import List, Optional, Tuple

import numpy as np
import pytest
from PIL import Image

from photomask.exceptions import PhotoServiceError
from photomask.models import (
    AcceptedDetection,
    BlurRect,
    ImageVariant,
    MaskPayload,
    MaskSet,
    PendingDetection,
    Photo,
    PhotoProcessing,
)

FIXED_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_photo(masks: Optional[MaskSet] = None, photo_id: str = "photo-1", order_id: str = "order-1") -> Photo:
    return Photo(
        id=photo_id,
        order_id=order_id,
        original_path=f"orders/{order_id}/photos/{photo_id}/original.png",
        display_path=f"orders/{order_id}/photos/{photo_id}/display.png",
        thumb_path=f"orders/{order_id}/photos/{photo_id}/thumb.png",
        width=64,
        height=48,
        masks=masks,
        created_at=FIXED_TIME,
        updated_at=FIXED_TIME,
    )


class FakePhotoService:
    """Records calls; failures are switched on per stage."""

    def __init__(self, image: Optional[Image.Image] = None, photo: Optional[Photo] = None):
        self.image = image or Image.new("RGB", (64, 48), "white")
        self.photo = photo or make_photo()
        self.fail_set_masks = False
        self.fail_process = False
        self.calls: List[Tuple[str, str, str]] = []
        self.payloads: List[MaskPayload] = []

    def get_photo(self, order_id: str, photo_id: str) -> Photo:
        self.calls.append(("get_photo", order_id, photo_id))
        return self.photo

    def set_masks(self, order_id: str, photo_id: str, payload: MaskPayload) -> Photo:
        self.calls.append(("set_masks", order_id, photo_id))
        self.payloads.append(payload)
        if self.fail_set_masks:
            raise PhotoServiceError("masks rejected", status_code=500)
        self.photo = self.photo.model_copy(update={"masks": MaskSet(
            rects=payload.rects, brush=payload.brush, auto_detections=payload.auto_detections
        )})
        return self.photo

    def process(self, order_id: str, photo_id: str) -> Photo:
        self.calls.append(("process", order_id, photo_id))
        if self.fail_process:
            raise PhotoServiceError("processing unavailable", status_code=503)
        self.photo = self.photo.model_copy(update={"processing": PhotoProcessing(
            blurred_path="orders/order-1/photos/photo-1/blurred.png",
            last_processed_at=FIXED_TIME,
        )})
        return self.photo

    def get_image(self, order_id: str, photo_id: str, variant: ImageVariant) -> Image.Image:
        self.calls.append(("get_image", order_id, photo_id))
        return self.image.copy()


@pytest.fixture
def sample_image():
    """Create a 64x48 image where every pixel has a distinct color."""
    ys, xs = np.mgrid[0:48, 0:64]
    pixels = np.stack([xs * 4, ys * 5, (xs + ys) % 256], axis=-1).astype(np.uint8)
    return Image.fromarray(pixels, "RGB")


@pytest.fixture
def rect_a():
    return BlurRect(x=2, y=2, w=20, h=10, radius=4)


@pytest.fixture
def pending_face():
    return PendingDetection(x=30, y=5, w=12, h=14, confidence=0.9)


@pytest.fixture
def accepted_face():
    return AcceptedDetection(x=40, y=20, w=16, h=18, confidence=0.95)


@pytest.fixture
def fake_service(sample_image):
    return FakePhotoService(image=sample_image)
