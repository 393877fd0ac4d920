"""
Compositing of redaction regions onto photos.

Two renderers live here: the deterministic block pixelation used as the
synchronous preview fallback, and the masked Gaussian blur used by the
compositing worker and by server-side baking.
"""

import math
from typing import Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageChops, ImageDraw, ImageFilter, ImageFont

from ..config import PREVIEW_BLOCK_SIZE, WORKER_BLUR_RADIUS
from ..models import BlurBrushStroke, BlurRect, MaskSet

SUPPORTED_MODES = ("RGB", "RGBA", "L")


def region_mask(
    width: int,
    height: int,
    rects: Sequence[BlurRect],
    brush: Sequence[BlurBrushStroke],
) -> np.ndarray:
    """
    Boolean (height, width) array of the pixels covered by rects and strokes.

    A pixel (x, y) is inside a rect when ``rect.x <= x < rect.x + rect.w`` (same
    for y), and inside a stroke when it lies within Euclidean distance
    ``radius`` of any sample point.
    """
    mask = np.zeros((height, width), dtype=bool)
    xs = np.arange(width, dtype=np.float64)
    ys = np.arange(height, dtype=np.float64)

    for rect in rects:
        cols = (xs >= rect.x) & (xs < rect.x + rect.w)
        rows = (ys >= rect.y) & (ys < rect.y + rect.h)
        mask |= rows[:, None] & cols[None, :]

    for stroke in brush:
        r = stroke.radius
        for point in stroke.points:
            x0 = max(0, int(math.floor(point.x - r)))
            x1 = min(width, int(math.ceil(point.x + r)) + 1)
            y0 = max(0, int(math.floor(point.y - r)))
            y1 = min(height, int(math.ceil(point.y + r)) + 1)
            if x0 >= x1 or y0 >= y1:
                continue
            dx = xs[x0:x1] - point.x
            dy = ys[y0:y1] - point.y
            mask[y0:y1, x0:x1] |= (dy[:, None] ** 2 + dx[None, :] ** 2) <= r * r

    return mask


def pixelate_regions(
    image: Image.Image,
    rects: Sequence[BlurRect],
    brush: Sequence[BlurBrushStroke],
    block_size: int = PREVIEW_BLOCK_SIZE,
) -> Image.Image:
    """
    Replace every covered pixel with the color of its block's top-left pixel.

    Colors are always read from the untouched source buffer, so the output
    depends only on the inputs and not on region order.
    """
    if block_size < 1:
        raise ValueError("block_size must be >= 1")
    if image.mode not in SUPPORTED_MODES:
        image = image.convert("RGB")

    source = np.asarray(image)
    height, width = source.shape[:2]
    mask = region_mask(width, height, rects, brush)
    result = source.copy()
    if mask.any():
        origin_y = np.minimum((np.arange(height) // block_size) * block_size, height - 1)
        origin_x = np.minimum((np.arange(width) // block_size) * block_size, width - 1)
        blocked = source[origin_y[:, None], origin_x[None, :]]
        result[mask] = blocked[mask]
    return Image.fromarray(result)


class Anonymizer:
    """Applies blur compositing and draws region overlays."""

    def __init__(self, blur_radius: float = WORKER_BLUR_RADIUS):
        """Initialize anonymizer with default settings.

        Args:
            blur_radius: Gaussian radius used by ``blur``
        """
        self.blur_radius = blur_radius

    def __call__(
        self,
        image: Image.Image,
        rects: Sequence[BlurRect],
        brush: Sequence[BlurBrushStroke],
    ) -> Image.Image:
        return self.blur(image, rects, brush)

    def build_mask(
        self,
        size: Tuple[int, int],
        rects: Sequence[BlurRect],
        brush: Sequence[BlurBrushStroke],
    ) -> Image.Image:
        """
        Create an 8-bit coverage mask.

        Rects are drawn with their rounded corners at full coverage; each stroke
        is drawn at ``255 * strength`` and strokes are merged by maximum.
        """
        mask = Image.new("L", size, 0)
        draw = ImageDraw.Draw(mask)

        for rect in rects:
            x1, y1, x2, y2 = rect.to_xyxy()
            x2 = max(x1, x2 - 1)
            y2 = max(y1, y2 - 1)
            radius = min(rect.radius, rect.w / 2, rect.h / 2)
            draw.rounded_rectangle([x1, y1, x2, y2], radius=int(radius), fill=255)

        for stroke in brush:
            layer = Image.new("L", size, 0)
            layer_draw = ImageDraw.Draw(layer)
            fill = int(round(255 * stroke.strength))
            r = stroke.radius
            points = [(p.x, p.y) for p in stroke.points]
            if len(points) > 1:
                layer_draw.line(points, fill=fill, width=int(round(2 * r)), joint="curve")
            for x, y in points:
                layer_draw.ellipse([x - r, y - r, x + r, y + r], fill=fill)
            mask = ImageChops.lighter(mask, layer)

        return mask

    def blur(
        self,
        image: Image.Image,
        rects: Sequence[BlurRect],
        brush: Sequence[BlurBrushStroke],
        blur_radius: Optional[float] = None,
    ) -> Image.Image:
        """Gaussian-blur the covered area, blending brush edges by strength."""
        if image.mode not in SUPPORTED_MODES:
            image = image.convert("RGB")
        mask = self.build_mask(image.size, rects, brush)
        if mask.getbbox() is None:
            return image.copy()
        radius = self.blur_radius if blur_radius is None else blur_radius
        blurred = image.filter(ImageFilter.GaussianBlur(radius=radius))
        return Image.composite(blurred, image, mask)

    def create_preview_with_boxes(
        self,
        image: Image.Image,
        mask_set: MaskSet,
        selection: Optional[Tuple[str, int]] = None,
        show_labels: bool = True,
    ) -> Image.Image:
        """
        Create an editor overlay with every region outlined.

        Rects and strokes are drawn in red, pending detections in orange,
        accepted detections in green; the selected region gets a thicker
        blue outline.

        Args:
            image: Image to draw on (not modified)
            mask_set: Regions to outline
            selection: Optional ("rect" | "detection", index) to highlight
            show_labels: Whether to label detections

        Returns:
            Overlay image
        """
        result = image.convert("RGB")
        draw = ImageDraw.Draw(result)

        try:
            font = ImageFont.truetype("arial.ttf", 12)
        except OSError:
            font = ImageFont.load_default()

        for index, rect in enumerate(mask_set.rects):
            selected = selection == ("rect", index)
            draw.rounded_rectangle(
                list(rect.to_xyxy()),
                radius=int(min(rect.radius, rect.w / 2, rect.h / 2)),
                outline="blue" if selected else "red",
                width=3 if selected else 2,
            )

        for stroke in mask_set.brush:
            points = [(p.x, p.y) for p in stroke.points]
            draw.line(points, fill="red", width=max(1, int(stroke.radius / 4)))

        for index, detection in enumerate(mask_set.auto_detections):
            selected = selection == ("detection", index)
            color = "green" if detection.accepted else "orange"
            x1, y1 = detection.x, detection.y
            draw.rectangle(
                [x1, y1, x1 + detection.w, y1 + detection.h],
                outline="blue" if selected else color,
                width=3 if selected else 2,
            )

            if show_labels:
                label = f"Face #{index + 1}"
                if detection.confidence is not None:
                    label += f" ({detection.confidence:.2f})"
                draw.text((x1, y1 - 15), label, fill=color, font=font)

        return result
