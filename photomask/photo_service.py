"""
Photo persistence service: the contract the editor saves through, an HTTP
client for it, and an in-process implementation that bakes blurred variants.
"""

import io
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Protocol, Tuple

import requests
from PIL import Image

from .config import (
    BAKE_BLUR_RADIUS,
    DISPLAY_MAX_WIDTH,
    PHOTOS_PREFIX,
    THUMBNAIL_MAX_WIDTH,
    Settings,
    get_logger,
)
from .exceptions import ImageNotFoundError, PhotoServiceError
from .models import ImageVariant, MaskPayload, MaskSet, Photo, PhotoProcessing
from .pipeline.anonymizer import Anonymizer
from .s3_storage import ImageStore

logger = get_logger(__name__)


class PhotoService(Protocol):
    def get_photo(self, order_id: str, photo_id: str) -> Photo: ...

    def set_masks(self, order_id: str, photo_id: str, payload: MaskPayload) -> Photo: ...

    def process(self, order_id: str, photo_id: str) -> Photo: ...

    def get_image(
        self, order_id: str, photo_id: str, variant: ImageVariant
    ) -> Image.Image: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _fit_width(image: Image.Image, max_width: int) -> Image.Image:
    if image.width <= max_width:
        return image.copy()
    height = max(1, round(image.height * max_width / image.width))
    return image.resize((max_width, height), Image.LANCZOS)


class LocalPhotoService:
    """
    Photo records in memory, image variants in an ImageStore.

    Masks are stored in display-image pixel space, which is the image the
    editor works on; ``process`` bakes the blurred variant from it.
    """

    def __init__(
        self,
        store: ImageStore,
        anonymizer: Optional[Anonymizer] = None,
        bake_radius: float = BAKE_BLUR_RADIUS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.anonymizer = anonymizer or Anonymizer(blur_radius=bake_radius)
        self.clock = clock
        self._photos: Dict[Tuple[str, str], Photo] = {}
        self._lock = threading.Lock()

    @staticmethod
    def image_key(order_id: str, photo_id: str, variant: ImageVariant) -> str:
        return f"{PHOTOS_PREFIX}{order_id}/photos/{photo_id}/{variant.value}.png"

    def add_photo(
        self,
        order_id: str,
        image: Image.Image,
        caption: Optional[str] = None,
        photo_id: Optional[str] = None,
    ) -> Photo:
        """Store original, display and thumb variants and create the record."""
        photo_id = photo_id or str(uuid.uuid4())
        if image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGB")

        display = _fit_width(image, DISPLAY_MAX_WIDTH)
        thumb = _fit_width(image, THUMBNAIL_MAX_WIDTH)
        paths = {}
        for variant, variant_image in (
            (ImageVariant.ORIGINAL, image),
            (ImageVariant.DISPLAY, display),
            (ImageVariant.THUMB, thumb),
        ):
            key = self.image_key(order_id, photo_id, variant)
            self.store.upload_image(variant_image, key)
            paths[variant] = key

        now = self.clock()
        photo = Photo(
            id=photo_id,
            order_id=order_id,
            original_path=paths[ImageVariant.ORIGINAL],
            display_path=paths[ImageVariant.DISPLAY],
            thumb_path=paths[ImageVariant.THUMB],
            width=display.width,
            height=display.height,
            caption=caption,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._photos[(order_id, photo_id)] = photo
        logger.info(f"Added photo {photo_id} to order {order_id}")
        return photo

    def list_photos(self, order_id: str) -> List[Photo]:
        with self._lock:
            return [p for (o, _), p in self._photos.items() if o == order_id]

    def get_photo(self, order_id: str, photo_id: str) -> Photo:
        with self._lock:
            photo = self._photos.get((order_id, photo_id))
        if photo is None:
            raise ImageNotFoundError(f"Photo not found: {order_id}/{photo_id}")
        return photo

    def set_masks(self, order_id: str, photo_id: str, payload: MaskPayload) -> Photo:
        photo = self.get_photo(order_id, photo_id)
        masks = MaskSet(
            rects=payload.rects,
            brush=payload.brush,
            auto_detections=payload.auto_detections,
        )
        return self._update(photo, masks=masks)

    def process(self, order_id: str, photo_id: str) -> Photo:
        """Bake the blurred variant from the display image and current masks."""
        photo = self.get_photo(order_id, photo_id)
        display = self.get_image(order_id, photo_id, ImageVariant.DISPLAY)
        masks = photo.masks or MaskSet()

        blurred = self.anonymizer.blur(display, masks.rects, masks.brush)
        key = self.image_key(order_id, photo_id, ImageVariant.BLURRED)
        self.store.upload_image(blurred, key)

        now = self.clock()
        logger.info(
            f"Processed photo {photo_id}: {len(masks.rects)} rects, {len(masks.brush)} strokes"
        )
        return self._update(
            photo,
            processing=PhotoProcessing(blurred_path=key, last_processed_at=now),
        )

    def get_image(
        self, order_id: str, photo_id: str, variant: ImageVariant
    ) -> Image.Image:
        photo = self.get_photo(order_id, photo_id)
        path = photo.variant_path(ImageVariant(variant))
        if path is None:
            raise ImageNotFoundError(
                f"Variant '{ImageVariant(variant).value}' not available for photo {photo_id}"
            )
        image = self.store.download_image(path)
        if image is None:
            raise ImageNotFoundError(f"Image not found: {path}")
        return image

    def _update(self, photo: Photo, **changes) -> Photo:
        updated = photo.model_copy(update={**changes, "updated_at": self.clock()})
        with self._lock:
            self._photos[(photo.order_id, photo.id)] = updated
        return updated


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("detail") or body.get("message")
        if message:
            return str(message)
    return f"HTTP {response.status_code}: {response.reason}"


class HttpPhotoService:
    """Client for the photo service REST API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpPhotoService":
        return cls(settings.photo_service_url, timeout=settings.photo_service_timeout)

    def _url(self, order_id: str, photo_id: str, suffix: str = "") -> str:
        return f"{self.base_url}/api/orders/{order_id}/photos/{photo_id}{suffix}"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise PhotoServiceError(f"{method} {url} failed: {e}") from e

        if not response.ok:
            message = _error_message(response)
            if response.status_code == 404:
                raise ImageNotFoundError(message)
            raise PhotoServiceError(message, status_code=response.status_code)
        return response

    def get_photo(self, order_id: str, photo_id: str) -> Photo:
        response = self._request("GET", self._url(order_id, photo_id))
        return Photo.model_validate(response.json())

    def set_masks(self, order_id: str, photo_id: str, payload: MaskPayload) -> Photo:
        response = self._request(
            "POST", self._url(order_id, photo_id, "/masks"), json=payload.to_wire()
        )
        return Photo.model_validate(response.json())

    def process(self, order_id: str, photo_id: str) -> Photo:
        response = self._request("POST", self._url(order_id, photo_id, "/process"))
        return Photo.model_validate(response.json())

    def get_image(
        self, order_id: str, photo_id: str, variant: ImageVariant
    ) -> Image.Image:
        response = self._request(
            "GET",
            self._url(order_id, photo_id, "/file"),
            params={"variant": ImageVariant(variant).value},
        )
        image = Image.open(io.BytesIO(response.content))
        image.load()
        return image
