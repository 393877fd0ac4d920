"""
Gemini-based face detector.
Uses Google Gemini Vision API for detection.
"""

import base64
import io
import json
from typing import List, Optional

from google import genai
from PIL import Image

from ..config import DETECTION_MODEL, get_logger
from ..exceptions import DetectorUnavailableError
from ..models import PendingDetection

logger = get_logger(__name__)


# System prompt for Gemini detection
DETECTION_PROMPT_TEMPLATE = """You are an AI system helping an operator redact photographs.

Analyze the provided image (Resolution: {width}x{height}) and DETECT ONLY clear,
recognizable human faces (eyes, nose and mouth visible, real people only).

DO NOT detect:
- Partial faces or side profiles without clear features
- Drawings, posters, mannequins or statues
- Objects that vaguely resemble faces

For EACH face output a JSON object with:
- bbox: [ymin, xmin, ymax, xmax] as INTEGERS between 0 and 1000 (normalized to the full image)
- confidence: number between 0 and 1

Do NOT guess identities. Return ONLY a JSON array, for example:
[
  {{"bbox": [600, 500, 900, 800], "confidence": 0.98}}
]"""


class GeminiFaceDetector:
    """Face detector using a Gemini vision model."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        detection_model: str = DETECTION_MODEL,
    ):
        """
        Initialize Gemini detector.

        Args:
            api_key: Google AI API key; without one the detector is unavailable
            detection_model: Gemini model to use for detection
        """
        self.api_key = api_key
        self.detection_model = detection_model
        self._client: Optional[genai.Client] = None

    def _get_client(self) -> genai.Client:
        if not self.api_key:
            raise DetectorUnavailableError("Gemini API key required for face detection")
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def is_available(self) -> bool:
        return bool(self.api_key)

    def detect(self, image: Image.Image) -> List[PendingDetection]:
        """
        Detect faces in an image using Gemini.

        Args:
            image: PIL Image object

        Returns:
            Pending detections in image pixels
        """
        client = self._get_client()
        width, height = image.size
        logger.info(f"Detecting faces in image: {width}x{height} pixels")

        img_byte_arr = io.BytesIO()
        image.convert("RGB").save(img_byte_arr, format="PNG")

        response = client.models.generate_content(
            model=self.detection_model,
            contents=[
                DETECTION_PROMPT_TEMPLATE.format(width=width, height=height),
                {
                    "inline_data": {
                        "mime_type": "image/png",
                        "data": base64.b64encode(img_byte_arr.getvalue()).decode(),
                    }
                },
            ],
        )
        return parse_detections(response.text, width, height)


def parse_detections(text: str, width: int, height: int) -> List[PendingDetection]:
    """Convert a Gemini JSON answer with 0-1000 boxes into pixel detections."""
    response_text = text.strip()

    # Remove markdown code blocks if present
    if response_text.startswith("```"):
        lines = response_text.split("\n")
        response_text = "\n".join(lines[1:-1])
        if response_text.startswith("json"):
            response_text = response_text[4:]

    try:
        items = json.loads(response_text)
        if not isinstance(items, list):
            raise ValueError("Response is not a list")
    except (json.JSONDecodeError, ValueError) as e:
        logger.error(f"Failed to parse Gemini response: {e}")
        logger.error(f"Response text: {text}")
        return []

    detections = []
    for item in items:
        bbox = item.get("bbox", []) if isinstance(item, dict) else []
        if len(bbox) != 4:
            logger.warning("Invalid bbox format, skipping")
            continue

        y_min, x_min, y_max, x_max = (float(c) for c in bbox)
        x1 = max(0, min(width, int(x_min / 1000.0 * width)))
        x2 = max(0, min(width, int(x_max / 1000.0 * width)))
        y1 = max(0, min(height, int(y_min / 1000.0 * height)))
        y2 = max(0, min(height, int(y_max / 1000.0 * height)))
        if x1 >= x2 or y1 >= y2:
            logger.warning("bbox empty after conversion, skipping")
            continue

        confidence = item.get("confidence")
        if confidence is not None:
            confidence = max(0.0, min(1.0, float(confidence)))
        detections.append(
            PendingDetection(x=x1, y=y1, w=x2 - x1, h=y2 - y1, confidence=confidence)
        )

    return detections
