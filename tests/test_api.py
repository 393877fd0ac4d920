"""
Tests for the photo service API.
"""
import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from photomask.api import create_app
from photomask.photo_service import LocalPhotoService
from photomask.s3_storage import MemoryImageStore


@pytest.fixture
def client():
    return TestClient(create_app(LocalPhotoService(MemoryImageStore())))


@pytest.fixture
def photo(client, sample_image):
    buffer = io.BytesIO()
    sample_image.save(buffer, format="PNG")
    response = client.post(
        "/api/orders/order-1/photos/upload",
        files={"file": ("photo.png", buffer.getvalue(), "image/png")},
    )
    assert response.status_code == 200
    return response.json()


def photo_url(photo, suffix=""):
    return f"/api/orders/{photo['orderId']}/photos/{photo['id']}{suffix}"


class TestAPI:
    """Test the REST endpoints."""

    def test_health(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_upload(self, photo, sample_image):
        assert photo["orderId"] == "order-1"
        assert (photo["width"], photo["height"]) == sample_image.size
        assert photo["displayPath"].endswith("display.png")
        assert photo["processing"] is None

    def test_upload_rejects_non_images(self, client):
        response = client.post(
            "/api/orders/order-1/photos/upload",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400

    def test_get_and_list(self, client, photo):
        assert client.get(photo_url(photo)).json()["id"] == photo["id"]
        listed = client.get("/api/orders/order-1/photos").json()
        assert [p["id"] for p in listed] == [photo["id"]]

    def test_unknown_photo(self, client):
        assert client.get("/api/orders/order-1/photos/missing").status_code == 404
        assert client.post("/api/orders/order-1/photos/missing/process").status_code == 404

    def test_set_masks(self, client, photo):
        body = {
            "rects": [{"x": 2, "y": 2, "w": 20, "h": 10, "radius": 4}],
            "brush": [
                {"points": [{"x": 1, "y": 1}, {"x": 9, "y": 9}], "radius": 3, "strength": 0.5}
            ],
            "autoDetections": [
                {"type": "face", "x": 30, "y": 5, "w": 12, "h": 14, "accepted": False}
            ],
        }
        response = client.post(photo_url(photo, "/masks"), json=body)
        assert response.status_code == 200
        masks = response.json()["masks"]
        assert masks["rects"][0]["w"] == 20
        assert len(masks["autoDetections"]) == 1

    def test_set_masks_rejects_accepted_detections(self, client, photo):
        body = {
            "rects": [],
            "brush": [],
            "autoDetections": [
                {"type": "face", "x": 30, "y": 5, "w": 12, "h": 14, "accepted": True}
            ],
        }
        assert client.post(photo_url(photo, "/masks"), json=body).status_code == 422

    def test_process_and_download(self, client, photo, sample_image):
        assert client.get(photo_url(photo, "/file"), params={"variant": "blurred"}).status_code == 404

        client.post(photo_url(photo, "/masks"), json={"rects": [{"x": 0, "y": 0, "w": 30, "h": 20}]})
        processed = client.post(photo_url(photo, "/process"))
        assert processed.status_code == 200
        assert processed.json()["processing"]["blurredPath"].endswith("blurred.png")

        response = client.get(photo_url(photo, "/file"), params={"variant": "blurred"})
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert Image.open(io.BytesIO(response.content)).size == sample_image.size

    def test_download_defaults_to_display(self, client, photo):
        response = client.get(photo_url(photo, "/file"))
        assert response.status_code == 200

    def test_unknown_variant(self, client, photo):
        response = client.get(photo_url(photo, "/file"), params={"variant": "huge"})
        assert response.status_code == 422
