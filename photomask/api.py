"""
FastAPI service exposing the photo persistence endpoints.

This service provides REST API endpoints for:
1. Upload a photo into an order
2. Read photo records
3. Store redaction masks
4. Bake the blurred variant
5. Download any image variant by name
"""

import io
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from PIL import Image, UnidentifiedImageError

from .config import get_logger, get_settings, setup_logging
from .exceptions import ImageNotFoundError
from .models import ImageVariant, MaskPayload, Photo
from .photo_service import LocalPhotoService
from .s3_storage import create_image_store

# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)


def get_service(request: Request) -> LocalPhotoService:
    return request.app.state.service


def create_app(service: Optional[LocalPhotoService] = None) -> FastAPI:
    """Build the API; without a service one is created from settings at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize the photo service."""
        if app.state.service is None:
            settings = get_settings()
            setup_logging(getattr(logging, settings.log_level.upper(), logging.INFO))
            logger.info("Initializing photo service...")
            app.state.service = LocalPhotoService(create_image_store(settings))
            logger.info("Photo service initialized successfully")
        yield
        logger.info("Shutting down...")

    app = FastAPI(
        title="photomask photo service",
        description="Photo records, redaction masks and blurred variant baking",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {"service": "photomask photo service", "version": "0.1.0", "status": "healthy"}

    @app.post("/api/orders/{order_id}/photos/upload", response_model=Photo)
    async def upload_photo(
        order_id: str,
        file: UploadFile = File(..., description="Image file to upload"),
        service: LocalPhotoService = Depends(get_service),
    ) -> Photo:
        contents = await file.read()
        try:
            image = Image.open(io.BytesIO(contents))
            image.load()
        except UnidentifiedImageError:
            raise HTTPException(status_code=400, detail="Uploaded file is not an image")

        logger.info(f"Uploading image: {file.filename}, size: {image.size}")
        return service.add_photo(order_id, image)

    @app.get("/api/orders/{order_id}/photos", response_model=List[Photo])
    async def list_photos(
        order_id: str, service: LocalPhotoService = Depends(get_service)
    ) -> List[Photo]:
        return service.list_photos(order_id)

    @app.get("/api/orders/{order_id}/photos/{photo_id}", response_model=Photo)
    async def get_photo(
        order_id: str, photo_id: str, service: LocalPhotoService = Depends(get_service)
    ) -> Photo:
        try:
            return service.get_photo(order_id, photo_id)
        except ImageNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))

    @app.post("/api/orders/{order_id}/photos/{photo_id}/masks", response_model=Photo)
    async def set_masks(
        order_id: str,
        photo_id: str,
        payload: MaskPayload,
        service: LocalPhotoService = Depends(get_service),
    ) -> Photo:
        try:
            return service.set_masks(order_id, photo_id, payload)
        except ImageNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))

    @app.post("/api/orders/{order_id}/photos/{photo_id}/process", response_model=Photo)
    async def process_photo(
        order_id: str, photo_id: str, service: LocalPhotoService = Depends(get_service)
    ) -> Photo:
        try:
            return service.process(order_id, photo_id)
        except ImageNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except Exception as e:
            logger.error(f"Error processing photo {photo_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Error processing photo: {e}")

    @app.get("/api/orders/{order_id}/photos/{photo_id}/file")
    async def get_photo_file(
        order_id: str,
        photo_id: str,
        variant: ImageVariant = Query(default=ImageVariant.DISPLAY),
        service: LocalPhotoService = Depends(get_service),
    ) -> StreamingResponse:
        try:
            image = service.get_image(order_id, photo_id, variant)
        except ImageNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))

        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        buffer.seek(0)
        return StreamingResponse(
            buffer,
            media_type="image/png",
            headers={
                "Content-Disposition": f"inline; filename={photo_id}_{variant.value}.png"
            },
        )

    return app


app = create_app()
