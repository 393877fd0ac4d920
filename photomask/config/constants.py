"""
Configuration constants for photomask.
"""

# Mask validation
MIN_RECT_SIZE = 5  # Smallest accepted box width/height in image pixels
MIN_STROKE_POINTS = 2

# Corner radius given to rects synthesized from accepted face detections
FACE_RECT_RADIUS = 8

# Tool defaults and slider bounds
DEFAULT_BOX_RADIUS = 10
DEFAULT_BRUSH_SIZE = 20
DEFAULT_BRUSH_STRENGTH = 0.8
BOX_RADIUS_RANGE = (5, 50)
BRUSH_SIZE_RANGE = (5, 100)
BRUSH_STRENGTH_RANGE = (0.1, 1.0)
ZOOM_RANGE = (0.1, 3.0)

# Face detection
MIN_FACE_CONFIDENCE = 0.5
MIN_FACE_SIZE = 30  # Minimum face width or height in pixels
MAX_FACES = 10
DETECTION_MODEL = "gemini-2.5-flash"
HAAR_CASCADE_FILE = "haarcascade_frontalface_default.xml"

# Preview compositing
PREVIEW_BLOCK_SIZE = 8  # Pixelation block size of the synchronous fallback
WORKER_BLUR_RADIUS = 15  # Gaussian radius used by the worker preview

# Server-side baking of the blurred variant
BAKE_BLUR_RADIUS = 25
DISPLAY_MAX_WIDTH = 2048
THUMBNAIL_MAX_WIDTH = 320

# Storage key layout
PHOTOS_PREFIX = "orders/"
