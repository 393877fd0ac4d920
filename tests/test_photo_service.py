"""
Tests for the local photo service, image storage and the HTTP client.
"""
import io

import numpy as np
import pytest
import requests
from PIL import Image

from photomask.exceptions import ImageNotFoundError, PhotoServiceError
from photomask.models import BlurRect, ImageVariant, MaskPayload, MaskSet
from photomask.photo_service import HttpPhotoService, LocalPhotoService
from photomask.s3_storage import MemoryImageStore, create_image_store
from photomask.config import Settings
from conftest import FIXED_TIME, make_photo


@pytest.fixture
def service():
    return LocalPhotoService(MemoryImageStore(), clock=lambda: FIXED_TIME)


@pytest.fixture
def checkerboard():
    ys, xs = np.mgrid[0:60, 0:80]
    pixels = (((xs // 2 + ys // 2) % 2) * 255).astype(np.uint8)
    return Image.fromarray(np.stack([pixels] * 3, axis=-1), "RGB")


class TestMemoryImageStore:
    def test_round_trip(self, sample_image):
        store = MemoryImageStore()
        assert store.upload_image(sample_image, "a/b.png") == "memory://a/b.png"
        loaded = store.download_image("a/b.png")
        assert (np.asarray(loaded) == np.asarray(sample_image)).all()
        assert store.delete_image("a/b.png")
        assert store.download_image("a/b.png") is None
        assert not store.delete_image("a/b.png")

    def test_memory_store_without_bucket(self):
        assert isinstance(create_image_store(Settings(s3_bucket_name=None)), MemoryImageStore)


class TestLocalPhotoService:
    """Test photo records and baking."""

    def test_add_photo_creates_variants(self, service):
        photo = service.add_photo("order-1", Image.new("RGB", (4096, 100), "white"))

        assert photo.order_id == "order-1"
        assert (photo.width, photo.height) == (2048, 50)
        assert service.get_image("order-1", photo.id, ImageVariant.ORIGINAL).size == (4096, 100)
        assert service.get_image("order-1", photo.id, ImageVariant.THUMB).width == 320
        assert photo.processing is None
        assert service.list_photos("order-1") == [photo]
        assert service.list_photos("order-2") == []

    def test_small_photo_is_not_upscaled(self, service, sample_image):
        photo = service.add_photo("order-1", sample_image)
        assert (photo.width, photo.height) == sample_image.size

    def test_unknown_photo(self, service):
        with pytest.raises(ImageNotFoundError):
            service.get_photo("order-1", "missing")

    def test_blurred_variant_requires_processing(self, service, sample_image):
        photo = service.add_photo("order-1", sample_image)
        with pytest.raises(ImageNotFoundError):
            service.get_image("order-1", photo.id, ImageVariant.BLURRED)

    def test_set_masks(self, service, sample_image, rect_a, pending_face):
        photo = service.add_photo("order-1", sample_image)
        payload = MaskPayload(rects=(rect_a,), auto_detections=(pending_face,))
        updated = service.set_masks("order-1", photo.id, payload)

        assert isinstance(updated.masks, MaskSet)
        assert updated.masks.rects == (rect_a,)
        assert service.get_photo("order-1", photo.id).masks == updated.masks

    def test_process_blurs_masked_area(self, service, checkerboard):
        photo = service.add_photo("order-1", checkerboard)
        service.set_masks(
            "order-1", photo.id, MaskPayload(rects=(BlurRect(x=0, y=0, w=40, h=30, radius=0),))
        )
        processed = service.process("order-1", photo.id)

        assert processed.processing.blurred_path.endswith("blurred.png")
        assert processed.processing.last_processed_at == FIXED_TIME

        blurred = np.asarray(service.get_image("order-1", photo.id, ImageVariant.BLURRED))
        source = np.asarray(checkerboard)
        assert not (blurred[10:20, 10:30] == source[10:20, 10:30]).all()
        assert (blurred[40:, 50:] == source[40:, 50:]).all()

    def test_process_without_masks(self, service, sample_image):
        photo = service.add_photo("order-1", sample_image)
        processed = service.process("order-1", photo.id)
        blurred = service.get_image("order-1", processed.id, ImageVariant.BLURRED)
        assert (np.asarray(blurred) == np.asarray(sample_image)).all()


class FakeResponse:
    def __init__(self, status_code=200, payload=None, content=b"", reason="OK"):
        self.status_code = status_code
        self._payload = payload
        self.content = content
        self.reason = reason

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def photo_json():
    return make_photo().model_dump(mode="json", by_alias=True)


class TestHttpPhotoService:
    """Test the REST client against a fake session."""

    def test_set_masks_posts_camel_case(self, rect_a, pending_face):
        session = FakeSession(FakeResponse(payload=photo_json()))
        client = HttpPhotoService("http://photos.local/", timeout=3, session=session)

        photo = client.set_masks(
            "order-1", "photo-1", MaskPayload(rects=(rect_a,), auto_detections=(pending_face,))
        )

        method, url, kwargs = session.calls[0]
        assert method == "POST"
        assert url == "http://photos.local/api/orders/order-1/photos/photo-1/masks"
        assert kwargs["timeout"] == 3
        assert "autoDetections" in kwargs["json"]
        assert photo.id == "photo-1"

    def test_process(self):
        session = FakeSession(FakeResponse(payload=photo_json()))
        HttpPhotoService("http://photos.local", session=session).process("order-1", "photo-1")
        assert session.calls[0][:2] == (
            "POST",
            "http://photos.local/api/orders/order-1/photos/photo-1/process",
        )

    def test_get_image(self, sample_image):
        buffer = io.BytesIO()
        sample_image.save(buffer, format="PNG")
        session = FakeSession(FakeResponse(content=buffer.getvalue()))

        image = HttpPhotoService("http://photos.local", session=session).get_image(
            "order-1", "photo-1", ImageVariant.THUMB
        )
        assert image.size == sample_image.size
        assert session.calls[0][2]["params"] == {"variant": "thumb"}

    def test_error_detail(self):
        session = FakeSession(FakeResponse(500, payload={"detail": "bake failed"}, reason="Server Error"))
        with pytest.raises(PhotoServiceError) as exc_info:
            HttpPhotoService("http://photos.local", session=session).process("order-1", "photo-1")
        assert str(exc_info.value) == "bake failed"
        assert exc_info.value.status_code == 500

    def test_error_without_body(self):
        session = FakeSession(FakeResponse(502, reason="Bad Gateway"))
        with pytest.raises(PhotoServiceError, match="HTTP 502: Bad Gateway"):
            HttpPhotoService("http://photos.local", session=session).process("order-1", "photo-1")

    def test_not_found(self):
        session = FakeSession(FakeResponse(404, payload={"detail": "Photo not found"}))
        with pytest.raises(ImageNotFoundError):
            HttpPhotoService("http://photos.local", session=session).get_photo("order-1", "nope")

    def test_from_settings(self):
        client = HttpPhotoService.from_settings(
            Settings(photo_service_url="http://photos.internal:9000/", photo_service_timeout=7)
        )
        assert client.base_url == "http://photos.internal:9000"
        assert client.timeout == 7

    def test_connection_error(self):
        session = FakeSession(error=requests.ConnectionError("refused"))
        with pytest.raises(PhotoServiceError) as exc_info:
            HttpPhotoService("http://photos.local", session=session).get_photo("order-1", "photo-1")
        assert exc_info.value.status_code is None
