"""
Canonical in-memory mask set for the photo being edited.
"""

from typing import Callable, Iterable, List, Optional

from ..config import FACE_RECT_RADIUS, get_logger
from ..models import BlurBrushStroke, BlurRect, FaceDetection, MaskSet
from .reducer import (
    AcceptAllDetections,
    AddRect,
    AddStroke,
    Command,
    ConvertAcceptedDetections,
    RejectAllDetections,
    ResetMasks,
    SetDetections,
    ToggleDetection,
    apply_command,
)

logger = get_logger(__name__)

MaskListener = Callable[[MaskSet], None]


class MaskStore:
    """Holds the current MaskSet and applies commands through the reducer.

    Every mutator returns True when the state changed. Callers that mutate on
    behalf of the user are responsible for the history snapshot that follows.
    """

    def __init__(self, initial: Optional[MaskSet] = None):
        self._current = initial if initial is not None else MaskSet()
        self._listeners: List[MaskListener] = []

    def current(self) -> MaskSet:
        return self._current

    def subscribe(self, listener: MaskListener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, command: Command) -> bool:
        updated = apply_command(self._current, command)
        if updated is self._current:
            return False
        self._current = updated
        for listener in list(self._listeners):
            listener(updated)
        return True

    def add_rect(self, rect: BlurRect) -> bool:
        return self.dispatch(AddRect(rect))

    def add_stroke(self, stroke: BlurBrushStroke) -> bool:
        return self.dispatch(AddStroke(stroke))

    def set_detections(self, detections: Iterable[FaceDetection]) -> bool:
        return self.dispatch(SetDetections(tuple(detections)))

    def toggle_detection_accepted(self, index: int) -> bool:
        return self.dispatch(ToggleDetection(index))

    def accept_all_detections(self) -> bool:
        return self.dispatch(AcceptAllDetections())

    def reject_all_detections(self) -> bool:
        return self.dispatch(RejectAllDetections())

    def convert_accepted_detections_to_rects(
        self, radius: float = FACE_RECT_RADIUS
    ) -> bool:
        changed = self.dispatch(ConvertAcceptedDetections(radius))
        if changed:
            logger.info(f"Converted accepted detections; {len(self._current.rects)} rects now")
        return changed

    def reset(self, mask_set: MaskSet) -> bool:
        return self.dispatch(ResetMasks(mask_set))
