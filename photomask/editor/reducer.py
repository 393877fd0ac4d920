"""
Pure mask transitions.

``apply_command(mask_set, command)`` is the only place a MaskSet changes. A
command that is rejected or changes nothing returns the very same MaskSet
object, which callers use to decide whether a history snapshot is due.
"""

from dataclasses import dataclass
from typing import Tuple, Union

from ..config import FACE_RECT_RADIUS, get_logger
from ..models import BlurBrushStroke, BlurRect, FaceDetection, MaskSet

logger = get_logger(__name__)


@dataclass(frozen=True)
class AddRect:
    rect: BlurRect


@dataclass(frozen=True)
class AddStroke:
    stroke: BlurBrushStroke


@dataclass(frozen=True)
class SetDetections:
    detections: Tuple[FaceDetection, ...]


@dataclass(frozen=True)
class ToggleDetection:
    index: int


@dataclass(frozen=True)
class AcceptAllDetections:
    pass


@dataclass(frozen=True)
class RejectAllDetections:
    pass


@dataclass(frozen=True)
class ConvertAcceptedDetections:
    radius: float = FACE_RECT_RADIUS


@dataclass(frozen=True)
class ResetMasks:
    mask_set: MaskSet


Command = Union[
    AddRect,
    AddStroke,
    SetDetections,
    ToggleDetection,
    AcceptAllDetections,
    RejectAllDetections,
    ConvertAcceptedDetections,
    ResetMasks,
]


def _replace(mask_set: MaskSet, **changes) -> MaskSet:
    return mask_set.model_copy(update=changes)


def apply_command(mask_set: MaskSet, command: Command) -> MaskSet:
    """Return the MaskSet that results from applying ``command``."""
    if isinstance(command, AddRect):
        if command.rect.is_undersized:
            logger.debug(f"Ignoring undersized rect {command.rect}")
            return mask_set
        return _replace(mask_set, rects=mask_set.rects + (command.rect,))

    elif isinstance(command, AddStroke):
        if not command.stroke.is_valid:
            logger.debug("Ignoring brush stroke with fewer than 2 points")
            return mask_set
        return _replace(mask_set, brush=mask_set.brush + (command.stroke,))

    elif isinstance(command, SetDetections):
        detections = tuple(command.detections)
        if detections == mask_set.auto_detections:
            return mask_set
        return _replace(mask_set, auto_detections=detections)

    elif isinstance(command, ToggleDetection):
        detections = mask_set.auto_detections
        if not 0 <= command.index < len(detections):
            logger.debug(f"Ignoring toggle of missing detection {command.index}")
            return mask_set
        toggled = list(detections)
        toggled[command.index] = detections[command.index].toggled()
        return _replace(mask_set, auto_detections=tuple(toggled))

    elif isinstance(command, AcceptAllDetections):
        if not mask_set.pending_detections:
            return mask_set
        return _replace(
            mask_set,
            auto_detections=tuple(
                d if d.accepted else d.toggled() for d in mask_set.auto_detections
            ),
        )

    elif isinstance(command, RejectAllDetections):
        if not mask_set.auto_detections:
            return mask_set
        return _replace(mask_set, auto_detections=())

    elif isinstance(command, ConvertAcceptedDetections):
        accepted = mask_set.accepted_detections
        if not accepted:
            return mask_set
        return _replace(
            mask_set,
            rects=mask_set.rects + tuple(d.to_rect(command.radius) for d in accepted),
            auto_detections=mask_set.pending_detections,
        )

    elif isinstance(command, ResetMasks):
        if command.mask_set == mask_set:
            return mask_set
        return command.mask_set

    raise TypeError(f"Unknown mask command: {command!r}")

