"""
Configuration package for photomask.
Consolidates settings, constants, and logging configuration.
"""

from .logger import setup_logging, get_logger
from .settings import Settings, get_settings
from .constants import (
    # Mask validation
    MIN_RECT_SIZE,
    MIN_STROKE_POINTS,
    FACE_RECT_RADIUS,
    # Tool defaults
    DEFAULT_BOX_RADIUS,
    DEFAULT_BRUSH_SIZE,
    DEFAULT_BRUSH_STRENGTH,
    BOX_RADIUS_RANGE,
    BRUSH_SIZE_RANGE,
    BRUSH_STRENGTH_RANGE,
    ZOOM_RANGE,
    # Face detection
    MIN_FACE_CONFIDENCE,
    MIN_FACE_SIZE,
    MAX_FACES,
    DETECTION_MODEL,
    HAAR_CASCADE_FILE,
    # Preview compositing
    PREVIEW_BLOCK_SIZE,
    WORKER_BLUR_RADIUS,
    # Baking
    BAKE_BLUR_RADIUS,
    DISPLAY_MAX_WIDTH,
    THUMBNAIL_MAX_WIDTH,
    # Storage
    PHOTOS_PREFIX,
)

__all__ = [
    # Logger
    "setup_logging",
    "get_logger",
    # Settings
    "Settings",
    "get_settings",
    # Mask validation
    "MIN_RECT_SIZE",
    "MIN_STROKE_POINTS",
    "FACE_RECT_RADIUS",
    # Tool defaults
    "DEFAULT_BOX_RADIUS",
    "DEFAULT_BRUSH_SIZE",
    "DEFAULT_BRUSH_STRENGTH",
    "BOX_RADIUS_RANGE",
    "BRUSH_SIZE_RANGE",
    "BRUSH_STRENGTH_RANGE",
    "ZOOM_RANGE",
    # Face detection
    "MIN_FACE_CONFIDENCE",
    "MIN_FACE_SIZE",
    "MAX_FACES",
    "DETECTION_MODEL",
    "HAAR_CASCADE_FILE",
    # Preview compositing
    "PREVIEW_BLOCK_SIZE",
    "WORKER_BLUR_RADIUS",
    # Baking
    "BAKE_BLUR_RADIUS",
    "DISPLAY_MAX_WIDTH",
    "THUMBNAIL_MAX_WIDTH",
    # Storage
    "PHOTOS_PREFIX",
]
