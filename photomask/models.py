"""
Data models for photo redaction masks.
All geometry is in unzoomed image-pixel space, never in viewport space.
Wire names are camelCase to match the photo service payloads.
"""

from datetime import datetime
from enum import Enum
from typing import Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .config import FACE_RECT_RADIUS, MIN_RECT_SIZE, MIN_STROKE_POINTS


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Point(_FrozenModel):
    """Sample point in image pixels."""

    x: float
    y: float


class BlurRect(_FrozenModel):
    """Rounded rectangle to obscure, in image pixels."""

    x: float = Field(..., description="Left edge in pixels")
    y: float = Field(..., description="Top edge in pixels")
    w: float = Field(..., gt=0, description="Width in pixels")
    h: float = Field(..., gt=0, description="Height in pixels")
    radius: float = Field(default=10, ge=0, description="Corner radius in pixels")

    @property
    def is_undersized(self) -> bool:
        return self.w < MIN_RECT_SIZE or self.h < MIN_RECT_SIZE

    def to_xyxy(self) -> Tuple[float, float, float, float]:
        """Convert to (x1, y1, x2, y2) format."""
        return (self.x, self.y, self.x + self.w, self.y + self.h)

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x < self.x + self.w and self.y <= y < self.y + self.h


class BlurBrushStroke(_FrozenModel):
    """Freehand stroke: a polyline of sample points swept by a disc."""

    points: Tuple[Point, ...] = Field(..., description="Ordered sample points")
    radius: float = Field(..., gt=0, description="Brush radius in pixels")
    strength: float = Field(..., gt=0.0, le=1.0, description="Blur strength")

    @property
    def is_valid(self) -> bool:
        return len(self.points) >= MIN_STROKE_POINTS

    def bounds(self) -> Tuple[float, float, float, float]:
        """Bounding box of the swept area as (x1, y1, x2, y2)."""
        xs = [p.x for p in self.points]
        ys = [p.y for p in self.points]
        return (
            min(xs) - self.radius,
            min(ys) - self.radius,
            max(xs) + self.radius,
            max(ys) + self.radius,
        )


class _Detection(_FrozenModel):
    type: Literal["face"] = "face"
    x: float
    y: float
    w: float = Field(..., gt=0)
    h: float = Field(..., gt=0)
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    def to_rect(self, radius: float = FACE_RECT_RADIUS) -> BlurRect:
        """Rect that replaces this detection once it is materialized."""
        return BlurRect(x=self.x, y=self.y, w=self.w, h=self.h, radius=radius)

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x < self.x + self.w and self.y <= y < self.y + self.h

    def _fields(self) -> dict:
        return self.model_dump(exclude={"accepted"})


class PendingDetection(_Detection):
    """Detector candidate awaiting operator review."""

    accepted: Literal[False] = False

    def toggled(self) -> "AcceptedDetection":
        return AcceptedDetection(**self._fields())


class AcceptedDetection(_Detection):
    """Detection the operator confirmed; becomes a rect on save."""

    accepted: Literal[True] = True

    def toggled(self) -> PendingDetection:
        return PendingDetection(**self._fields())


# The accepted literal selects the variant when hydrating {"accepted": bool}
FaceDetection = Union[PendingDetection, AcceptedDetection]


class MaskSet(_FrozenModel):
    """Complete, order-preserving description of the redaction regions of one photo."""

    rects: Tuple[BlurRect, ...] = ()
    brush: Tuple[BlurBrushStroke, ...] = ()
    auto_detections: Tuple[FaceDetection, ...] = Field(
        default=(), alias="autoDetections"
    )

    @property
    def has_regions(self) -> bool:
        """True when rects or strokes exist (detections do not render)."""
        return bool(self.rects or self.brush)

    @property
    def is_empty(self) -> bool:
        return not (self.has_regions or self.auto_detections)

    @property
    def accepted_detections(self) -> Tuple[AcceptedDetection, ...]:
        return tuple(d for d in self.auto_detections if d.accepted)

    @property
    def pending_detections(self) -> Tuple[PendingDetection, ...]:
        return tuple(d for d in self.auto_detections if not d.accepted)

    @property
    def unresolved_count(self) -> int:
        return len(self.pending_detections)

    def to_wire(self) -> dict:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class MaskPayload(MaskSet):
    """Body submitted to the photo service; carries only pending detections."""

    @model_validator(mode="after")
    def _only_pending(self) -> "MaskPayload":
        if self.accepted_detections:
            raise ValueError("accepted detections must be converted to rects before saving")
        return self

    @classmethod
    def from_mask_set(cls, mask_set: MaskSet) -> "MaskPayload":
        return cls(
            rects=mask_set.rects,
            brush=mask_set.brush,
            auto_detections=mask_set.auto_detections,
        )


class ImageVariant(str, Enum):
    """Named renditions a photo can be requested in."""

    ORIGINAL = "original"
    DISPLAY = "display"
    THUMB = "thumb"
    BLURRED = "blurred"


class PhotoProcessing(_FrozenModel):
    """Server-side baking state."""

    blurred_path: Optional[str] = Field(default=None, alias="blurredPath")
    last_processed_at: Optional[datetime] = Field(default=None, alias="lastProcessedAt")


class Photo(_FrozenModel):
    """Photo record as returned by the photo service."""

    id: str
    order_id: str = Field(..., alias="orderId")
    original_path: str = Field(..., alias="originalPath")
    display_path: str = Field(..., alias="displayPath")
    thumb_path: str = Field(..., alias="thumbPath")
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    caption: Optional[str] = None
    masks: Optional[MaskSet] = None
    processing: Optional[PhotoProcessing] = None
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    def variant_path(self, variant: ImageVariant) -> Optional[str]:
        """Storage path of a variant, or None when it has not been produced."""
        if variant == ImageVariant.ORIGINAL:
            return self.original_path
        elif variant == ImageVariant.DISPLAY:
            return self.display_path
        elif variant == ImageVariant.THUMB:
            return self.thumb_path
        elif variant == ImageVariant.BLURRED:
            return self.processing.blurred_path if self.processing else None
        raise ValueError(f"Unknown image variant: {variant}")
