"""
Save handshake between the editor and the photo service.
"""

from ..config import FACE_RECT_RADIUS, get_logger
from ..exceptions import SaveError
from ..models import MaskPayload, Photo
from ..photo_service import PhotoService
from .history import HistoryManager
from .mask_store import MaskStore
from .reducer import ConvertAcceptedDetections, apply_command

logger = get_logger(__name__)


class PersistenceGateway:
    """
    Reconciles accepted detections into rects and submits the final masks.

    The conversion is computed up front but only committed to the store (with
    its history snapshot) after both ``set_masks`` and ``process`` succeed, so a
    failed save leaves local state exactly as it was and can be retried.
    """

    def __init__(
        self,
        order_id: str,
        store: MaskStore,
        history: HistoryManager,
        service: PhotoService,
        face_radius: float = FACE_RECT_RADIUS,
    ):
        self.order_id = order_id
        self.store = store
        self.history = history
        self.service = service
        self.face_radius = face_radius

    def build_payload(self) -> MaskPayload:
        converted = apply_command(
            self.store.current(), ConvertAcceptedDetections(self.face_radius)
        )
        return MaskPayload.from_mask_set(converted)

    def save(self, photo_id: str) -> Photo:
        """
        Submit masks and request reprocessing.

        Returns:
            The photo record returned by ``process``

        Raises:
            SaveError: when either service call fails
        """
        payload = self.build_payload()
        logger.info(
            f"Saving masks for photo {photo_id}: {len(payload.rects)} rects, "
            f"{len(payload.brush)} strokes, {payload.unresolved_count} pending detections"
        )

        try:
            self.service.set_masks(self.order_id, photo_id, payload)
        except Exception as e:
            logger.error(f"Saving masks for photo {photo_id} failed: {e}", exc_info=True)
            raise SaveError(f"Could not save masks: {e}", photo_id, "set_masks") from e

        try:
            photo = self.service.process(self.order_id, photo_id)
        except Exception as e:
            logger.error(f"Processing photo {photo_id} failed: {e}", exc_info=True)
            raise SaveError(f"Could not process photo: {e}", photo_id, "process") from e

        if self.store.convert_accepted_detections_to_rects(self.face_radius):
            self.history.snapshot(self.store.current())
        return photo
