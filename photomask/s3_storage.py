"""
Image storage for photo variants: S3 for deployments, memory for tests and
local runs.
"""

import io
import threading
from typing import Dict, Optional, Protocol

import boto3
from botocore.exceptions import ClientError
from PIL import Image

from .config import Settings, get_logger

logger = get_logger(__name__)

CONTENT_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "JPG": "image/jpeg",
    "WEBP": "image/webp",
}


class ImageStore(Protocol):
    def upload_image(self, image: Image.Image, key: str, format: str = "PNG") -> str: ...

    def download_image(self, key: str) -> Optional[Image.Image]: ...

    def delete_image(self, key: str) -> bool: ...


def encode_image(image: Image.Image, format: str = "PNG", quality: int = 95) -> bytes:
    """Serialize an image, dropping alpha for JPEG."""
    if format.upper() in ["JPG", "JPEG"] and image.mode == "RGBA":
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format=format.upper(), quality=quality)
    return buffer.getvalue()


class MemoryImageStore:
    """In-process image store keyed like the S3 layout."""

    def __init__(self):
        self._objects: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def upload_image(self, image: Image.Image, key: str, format: str = "PNG") -> str:
        data = encode_image(image, format)
        with self._lock:
            self._objects[key] = data
        return f"memory://{key}"

    def download_image(self, key: str) -> Optional[Image.Image]:
        with self._lock:
            data = self._objects.get(key)
        if data is None:
            return None
        image = Image.open(io.BytesIO(data))
        image.load()
        return image

    def delete_image(self, key: str) -> bool:
        with self._lock:
            return self._objects.pop(key, None) is not None


class S3ImageStore:
    """S3 storage handler for images."""

    def __init__(self, settings: Settings):
        """
        Initialize S3 storage client.

        Args:
            settings: Settings with the bucket, region and optional credentials
        """
        if not settings.s3_bucket_name:
            raise ValueError(
                "S3 bucket name required. Set S3_BUCKET_NAME environment variable."
            )
        self.bucket_name = settings.s3_bucket_name

        session_kwargs = {"region_name": settings.s3_region_name}
        if settings.aws_access_key_id and settings.aws_secret_access_key:
            session_kwargs["aws_access_key_id"] = settings.aws_access_key_id
            session_kwargs["aws_secret_access_key"] = settings.aws_secret_access_key

        self.s3_client = boto3.client("s3", **session_kwargs)
        logger.info(f"Initialized S3 client for bucket: {self.bucket_name}")

    def upload_image(self, image: Image.Image, key: str, format: str = "PNG") -> str:
        """
        Upload PIL Image to S3.

        Args:
            image: PIL Image object
            key: S3 object key (path in bucket)
            format: Image format (PNG, JPEG, WEBP)

        Returns:
            S3 object URL
        """
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=encode_image(image, format),
                ContentType=CONTENT_TYPES.get(format.upper(), "image/png"),
            )
            logger.info(f"Uploaded image to s3://{self.bucket_name}/{key}")
            return f"s3://{self.bucket_name}/{key}"

        except ClientError as e:
            logger.error(f"Error uploading image: {e}")
            raise

    def download_image(self, key: str) -> Optional[Image.Image]:
        """
        Download image from S3.

        Returns:
            PIL Image object or None if not found
        """
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=key)
            image = Image.open(io.BytesIO(response["Body"].read()))
            image.load()
            return image

        except ClientError as e:
            if e.response["Error"]["Code"] == "NoSuchKey":
                logger.info(f"Image not found: {key}")
                return None
            logger.error(f"Error downloading image: {e}")
            raise

    def delete_image(self, key: str) -> bool:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
            logger.info(f"Deleted image: s3://{self.bucket_name}/{key}")
            return True

        except ClientError as e:
            logger.error(f"Error deleting image: {e}")
            return False


def create_image_store(settings: Settings) -> ImageStore:
    """S3 when a bucket is configured, memory otherwise."""
    if settings.s3_bucket_name:
        return S3ImageStore(settings)
    logger.info("S3_BUCKET_NAME not set; storing images in memory")
    return MemoryImageStore()
