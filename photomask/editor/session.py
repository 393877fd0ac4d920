"""
Editing session for one photo.

The session owns its MaskStore, history, tools, detection adapter, preview
pipeline and worker. Nothing is shared between sessions. Closing the session
(explicitly, through ``with``, or after a successful save) releases the worker
and the displayed preview.
"""

from typing import Callable, Optional

from PIL import Image

from ..config import Settings, get_logger, get_settings
from ..detection.adapter import FaceDetectionAdapter, FaceDetector, create_detector
from ..exceptions import SessionClosedError
from ..models import ImageVariant, MaskSet, Photo
from ..photo_service import PhotoService
from ..pipeline.anonymizer import Anonymizer
from ..pipeline.pipeline import PreviewHandle, PreviewPipeline, Worker
from ..pipeline.worker import CompositingWorker
from .gateway import PersistenceGateway
from .history import HistoryManager
from .mask_store import MaskStore
from .tools import Tool, ToolController

logger = get_logger(__name__)


class EditorSession:
    """Wires the editor components together for a single photo."""

    def __init__(
        self,
        photo: Photo,
        image: Image.Image,
        service: PhotoService,
        detector: Optional[FaceDetector] = None,
        worker_factory: Optional[Callable[[], Worker]] = CompositingWorker,
        settings: Optional[Settings] = None,
        on_preview: Optional[Callable[[PreviewHandle], None]] = None,
    ):
        """
        Args:
            photo: Photo record; its masks hydrate the session
            image: Source image the masks refer to (display variant)
            service: Photo service used on save
            detector: Face detector backend, or None for manual tools only
            worker_factory: Creates the preview worker on first need
            settings: Settings override (defaults to environment settings)
            on_preview: Called with every newly displayed preview
        """
        settings = settings or get_settings()
        self.photo = photo
        self.image = image
        initial = photo.masks or MaskSet()

        self.store = MaskStore(initial)
        self.history = HistoryManager(initial)
        self.tools = ToolController(self.store, self.history)
        self.detection = FaceDetectionAdapter(detector, self.store, self.history)
        self.preview = PreviewPipeline(
            image,
            worker_factory=worker_factory,
            use_worker=settings.preview_worker_enabled,
            probe_timeout=settings.preview_probe_timeout,
            listener=on_preview,
        )
        self.gateway = PersistenceGateway(photo.order_id, self.store, self.history, service)
        self._anonymizer = Anonymizer()
        self._closed = False
        self._unsubscribe = self.store.subscribe(self.preview.update)

        if initial.has_regions:
            self.preview.update(initial)
        logger.info(f"Opened editing session for photo {photo.id}")

    @classmethod
    def open(
        cls,
        service: PhotoService,
        order_id: str,
        photo_id: str,
        settings: Optional[Settings] = None,
        **kwargs,
    ) -> "EditorSession":
        """Load the photo and its display image from the service."""
        settings = settings or get_settings()
        photo = service.get_photo(order_id, photo_id)
        image = service.get_image(order_id, photo_id, ImageVariant.DISPLAY)
        kwargs.setdefault("detector", create_detector(settings))
        return cls(photo, image, service, settings=settings, **kwargs)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def masks(self) -> MaskSet:
        return self.store.current()

    def _check_open(self) -> None:
        if self._closed:
            raise SessionClosedError(f"Editing session for photo {self.photo.id} is closed")

    # Pointer gestures

    def set_tool(self, tool: Tool) -> None:
        self._check_open()
        self.tools.set_tool(tool)

    def pointer_down(self, x: float, y: float) -> None:
        self._check_open()
        self.tools.pointer_down(x, y)

    def pointer_move(self, x: float, y: float) -> None:
        self._check_open()
        self.tools.pointer_move(x, y)

    def pointer_up(self, x: float, y: float) -> bool:
        self._check_open()
        return self.tools.pointer_up(x, y)

    def pointer_leave(self) -> None:
        self._check_open()
        self.tools.pointer_leave()

    # History

    def undo(self) -> bool:
        self._check_open()
        state = self.history.undo()
        if state is None:
            return False
        self.store.reset(state)
        return True

    def redo(self) -> bool:
        self._check_open()
        state = self.history.redo()
        if state is None:
            return False
        self.store.reset(state)
        return True

    def clear_all(self) -> bool:
        """Remove every region and detection as one undoable step."""
        self._check_open()
        if not self.store.reset(MaskSet()):
            return False
        self.history.snapshot(self.store.current())
        return True

    # Face detections

    async def run_auto_detection(self) -> bool:
        self._check_open()
        return await self.detection.auto_detect(self.image, self.photo.id)

    def toggle_detection(self, index: int) -> bool:
        self._check_open()
        return self.detection.toggle(index)

    def accept_all_detections(self) -> bool:
        self._check_open()
        return self.detection.accept_all()

    def reject_all_detections(self) -> bool:
        self._check_open()
        return self.detection.reject_all()

    # Rendering

    def render_overlay(self) -> Image.Image:
        """Current preview (or the source) with every region outlined."""
        handle = self.preview.current
        base = handle.image if handle is not None else self.image
        return self._anonymizer.create_preview_with_boxes(
            base, self.store.current(), self.tools.selection
        )

    # Lifecycle

    def save(self) -> Photo:
        """
        Persist the masks; on success the session is closed and the server photo returned.

        Raises:
            SaveError: when the photo service fails; the session stays open
        """
        self._check_open()
        # The session closes on success, so the committed conversion needs no preview
        self._unsubscribe()
        photo = None
        try:
            photo = self.gateway.save(self.photo.id)
        finally:
            if photo is None:
                self._unsubscribe = self.store.subscribe(self.preview.update)
        self.photo = photo
        self.close()
        return photo

    def close(self) -> None:
        """Release the worker and preview; unsaved edits are discarded."""
        if self._closed:
            return
        self._closed = True
        self.tools.cancel_gesture()
        self._unsubscribe()
        self.preview.close()
        logger.info(f"Closed editing session for photo {self.photo.id}")

    cancel = close

    def __enter__(self) -> "EditorSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
