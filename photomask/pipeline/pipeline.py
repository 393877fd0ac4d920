"""
Preview pipeline: dispatches compositing to the worker or renders the
synchronous pixelation fallback, keeping only the latest result on screen.
"""

import io
import threading
from concurrent.futures import Future
from typing import Callable, Optional, Protocol, Tuple

from PIL import Image

from ..config import PREVIEW_BLOCK_SIZE, get_logger
from ..models import BlurBrushStroke, BlurRect, MaskSet
from ..protocol import (
    InitRequest,
    InitResponse,
    PreviewRequest,
    PreviewResponse,
    WorkerResponse,
    response_adapter,
)
from .anonymizer import SUPPORTED_MODES, pixelate_regions
from .worker import CompositingWorker

logger = get_logger(__name__)

Regions = Tuple[Tuple[BlurRect, ...], Tuple[BlurBrushStroke, ...]]


class Worker(Protocol):
    def post(self, message) -> "Future[WorkerResponse]": ...

    def close(self) -> None: ...


class PreviewHandle:
    """Displayed preview image; must be released once replaced."""

    def __init__(self, image: Image.Image, generation: int, source: str):
        self._image: Optional[Image.Image] = image
        self.generation = generation
        self.source = source  # "worker" or "fallback"

    @property
    def released(self) -> bool:
        return self._image is None

    @property
    def image(self) -> Image.Image:
        if self._image is None:
            raise RuntimeError("Preview handle has been released")
        return self._image

    def release(self) -> None:
        if self._image is not None:
            self._image.close()
            self._image = None


class PreviewPipeline:
    """
    Best-effort on-screen composite of the current masks.

    The worker capability is probed once, lazily, on the first request. Any
    worker error switches the session to the fallback for good. Each request
    gets a generation number and only the latest generation is ever displayed.
    """

    def __init__(
        self,
        source: Image.Image,
        worker_factory: Optional[Callable[[], Worker]] = CompositingWorker,
        use_worker: bool = True,
        probe_timeout: float = 5.0,
        block_size: int = PREVIEW_BLOCK_SIZE,
        listener: Optional[Callable[[PreviewHandle], None]] = None,
    ):
        """
        Args:
            source: Full-resolution source image
            worker_factory: Creates the session's worker on first need
            use_worker: False forces the fallback without probing
            probe_timeout: Seconds to wait for the INIT response
            block_size: Pixelation block size of the fallback
            listener: Called with each newly displayed preview
        """
        if source.mode not in SUPPORTED_MODES:
            source = source.convert("RGB")
        self.source = source
        self.worker_factory = worker_factory
        self.use_worker = use_worker
        self.probe_timeout = probe_timeout
        self.block_size = block_size
        self.listener = listener

        self._lock = threading.RLock()
        self._worker: Optional[Worker] = None
        self._worker_supported: Optional[bool] = None
        self._downgraded = False
        self._generation = 0
        self._pending: Optional[Future] = None
        self._handle: Optional[PreviewHandle] = None
        self._last_regions: Optional[Regions] = None
        self._pixels: Optional[bytes] = None
        self._closed = False

    @property
    def mode(self) -> str:
        """'unprobed', 'worker' or 'fallback'."""
        if self._downgraded or self._worker_supported is False:
            return "fallback"
        if self._worker_supported is None:
            return "unprobed"
        return "worker"

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def current(self) -> Optional[PreviewHandle]:
        return self._handle

    @property
    def closed(self) -> bool:
        return self._closed

    def update(self, mask_set: MaskSet) -> Optional[int]:
        """
        React to a new MaskSet.

        Issues one request when rects/brush are non-empty and differ from the
        last request; clears the preview when they become empty. Detection-only
        changes issue nothing. Returns the generation of a new request.
        """
        regions: Regions = (mask_set.rects, mask_set.brush)
        if not mask_set.has_regions:
            if self._last_regions is not None:
                self._last_regions = None
                self.clear()
            return None
        if regions == self._last_regions:
            return None
        self._last_regions = regions
        return self.request(*regions)

    def request(
        self, rects: Tuple[BlurRect, ...], brush: Tuple[BlurBrushStroke, ...]
    ) -> int:
        with self._lock:
            if self._closed:
                raise RuntimeError("Preview pipeline is closed")
            self._generation += 1
            generation = self._generation
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None

        if self._worker_available():
            self._send(generation, rects, brush)
        else:
            self._render_fallback(generation, rects, brush)
        return generation

    def clear(self) -> None:
        """Drop the displayed preview and invalidate outstanding requests."""
        with self._lock:
            self._generation += 1
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None
            if self._handle is not None:
                self._handle.release()
                self._handle = None

    def close(self) -> None:
        """Release the worker and any preview; late responses are ignored."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self.clear()
        self._shutdown_worker()
        logger.debug("Preview pipeline closed")

    def __enter__(self) -> "PreviewPipeline":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _worker_available(self) -> bool:
        if self._downgraded:
            return False
        if self._worker_supported is None:
            self._worker_supported = self._probe_worker()
        return self._worker_supported

    def _probe_worker(self) -> bool:
        if not self.use_worker or self.worker_factory is None:
            logger.info("Preview worker disabled; using fallback renderer")
            return False
        worker = self.worker_factory()
        try:
            response = worker.post(InitRequest()).result(timeout=self.probe_timeout)
            supported = (
                isinstance(response, InitResponse) and response.has_offscreen_support
            )
        except Exception as e:
            logger.warning(f"Preview worker probe failed: {e}")
            supported = False

        if supported:
            self._worker = worker
            logger.info("Preview worker available")
        else:
            worker.close()
            logger.info("Preview worker unsupported; using fallback renderer")
        return supported

    def _send(
        self,
        generation: int,
        rects: Tuple[BlurRect, ...],
        brush: Tuple[BlurBrushStroke, ...],
    ) -> None:
        if self._pixels is None:
            self._pixels = self.source.tobytes()
        request = PreviewRequest(
            generation=generation,
            pixels=self._pixels,
            mode=self.source.mode,
            width=self.source.width,
            height=self.source.height,
            rects=rects,
            brush=brush,
        )
        try:
            future = self._worker.post(request)
        except Exception as e:
            self._downgrade(str(e))
            self._render_fallback(generation, rects, brush)
            return

        with self._lock:
            if generation == self._generation:
                self._pending = future
        future.add_done_callback(
            lambda done: self._on_worker_done(generation, rects, brush, done)
        )

    def _on_worker_done(
        self,
        generation: int,
        rects: Tuple[BlurRect, ...],
        brush: Tuple[BlurBrushStroke, ...],
        future: Future,
    ) -> None:
        if future.cancelled():
            return
        try:
            response = future.result()
            if isinstance(response, dict):
                response = response_adapter.validate_python(response)
        except Exception as e:
            response = PreviewResponse(generation=generation, error=str(e) or type(e).__name__)

        with self._lock:
            if self._pending is future:
                self._pending = None

        if not isinstance(response, PreviewResponse) or response.error is not None:
            error = getattr(response, "error", None) or f"unexpected response {response!r}"
            self._fail_over(generation, rects, brush, error)
            return

        try:
            image = Image.open(io.BytesIO(response.result))
            image.load()
        except (OSError, ValueError) as e:
            self._fail_over(generation, rects, brush, f"undecodable preview result: {e}")
            return
        self._display(generation, image, "worker")

    def _fail_over(
        self,
        generation: int,
        rects: Tuple[BlurRect, ...],
        brush: Tuple[BlurBrushStroke, ...],
        reason: str,
    ) -> None:
        self._downgrade(reason)
        if self._is_latest(generation):
            self._render_fallback(generation, rects, brush)

    def _render_fallback(
        self,
        generation: int,
        rects: Tuple[BlurRect, ...],
        brush: Tuple[BlurBrushStroke, ...],
    ) -> None:
        image = pixelate_regions(self.source, rects, brush, self.block_size)
        self._display(generation, image, "fallback")

    def _display(self, generation: int, image: Image.Image, source: str) -> None:
        with self._lock:
            if self._closed or generation != self._generation:
                logger.debug(f"Discarding stale preview {generation}")
                image.close()
                return
            if self._handle is not None:
                self._handle.release()
            handle = PreviewHandle(image, generation, source)
            self._handle = handle

        if self.listener is not None:
            self.listener(handle)

    def _is_latest(self, generation: int) -> bool:
        with self._lock:
            return not self._closed and generation == self._generation

    def _downgrade(self, reason: str) -> None:
        with self._lock:
            if self._downgraded:
                return
            self._downgraded = True
        logger.warning(f"Preview worker failed ({reason}); using fallback for this session")
        self._shutdown_worker()

    def _shutdown_worker(self) -> None:
        with self._lock:
            worker, self._worker = self._worker, None
        if worker is not None:
            worker.close()
