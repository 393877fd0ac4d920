"""
Off-thread compositing worker for preview rendering.

One worker belongs to one editing session. Its thread is started lazily on
the first posted message and stopped by ``close``.
"""

import io
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, Sequence, Union

from PIL import Image

from ..config import get_logger
from ..models import BlurBrushStroke, BlurRect, Point
from ..protocol import (
    InitRequest,
    InitResponse,
    PreviewRequest,
    PreviewResponse,
    WorkerRequest,
    WorkerResponse,
    request_adapter,
)
from .anonymizer import Anonymizer

logger = get_logger(__name__)

BlurStrategy = Callable[
    [Image.Image, Sequence[BlurRect], Sequence[BlurBrushStroke]], Image.Image
]


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


class CompositingWorker:
    """Answers INIT and PREVIEW messages on a single background thread."""

    def __init__(self, strategy: Optional[BlurStrategy] = None):
        """
        Args:
            strategy: Renderer used for previews; defaults to the masked
                Gaussian blur of ``Anonymizer``
        """
        self.strategy: BlurStrategy = strategy or Anonymizer()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def post(self, message: Union[WorkerRequest, dict]) -> "Future[WorkerResponse]":
        """Queue a message; the returned future resolves to its response."""
        if self._closed:
            raise RuntimeError("Compositing worker is closed")
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="preview_worker"
            )
            logger.debug("Compositing worker thread started")
        return self._executor.submit(self.handle, message)

    def close(self) -> None:
        """Stop the thread; queued messages are cancelled."""
        self._closed = True
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
            logger.debug("Compositing worker thread stopped")

    def handle(self, message: Union[WorkerRequest, dict]) -> WorkerResponse:
        """Process one message. Runs on the worker thread."""
        if isinstance(message, dict):
            message = request_adapter.validate_python(message)

        if isinstance(message, InitRequest):
            return InitResponse(has_offscreen_support=self._probe())
        elif isinstance(message, PreviewRequest):
            return self._preview(message)
        raise TypeError(f"Unknown worker message: {message!r}")

    def _probe(self) -> bool:
        """Check the strategy can render and encode off the main thread."""
        try:
            sample = Image.new("RGB", (4, 4), "white")
            rect = BlurRect(x=0, y=0, w=2, h=2, radius=0)
            stroke = BlurBrushStroke(
                points=(Point(x=1, y=1), Point(x=3, y=3)), radius=1, strength=1.0
            )
            encode_png(self.strategy(sample, [rect], [stroke]))
            return True
        except Exception as e:
            logger.warning(f"Compositing worker probe failed: {e}")
            return False

    def _preview(self, request: PreviewRequest) -> PreviewResponse:
        try:
            source = Image.frombytes(
                request.mode, (request.width, request.height), request.pixels
            )
            result = self.strategy(source, request.rects, request.brush)
            return PreviewResponse(generation=request.generation, result=encode_png(result))
        except Exception as e:
            logger.warning(f"Preview {request.generation} failed in worker: {e}")
            return PreviewResponse(generation=request.generation, error=str(e) or type(e).__name__)
