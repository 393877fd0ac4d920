"""
Pointer-gesture interpretation for the select, box and brush tools.
"""

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..config import (
    BOX_RADIUS_RANGE,
    BRUSH_SIZE_RANGE,
    BRUSH_STRENGTH_RANGE,
    DEFAULT_BOX_RADIUS,
    DEFAULT_BRUSH_SIZE,
    DEFAULT_BRUSH_STRENGTH,
    ZOOM_RANGE,
    get_logger,
)
from ..models import BlurBrushStroke, BlurRect, Point
from .history import HistoryManager
from .mask_store import MaskStore

logger = get_logger(__name__)


class Tool(str, Enum):
    """Editor interaction modes."""

    SELECT = "select"
    BOX = "box"
    BRUSH = "brush"


class Viewport(BaseModel):
    """Zoom and pan of the editor canvas."""

    model_config = ConfigDict(validate_assignment=True)

    zoom: float = Field(default=1.0, ge=ZOOM_RANGE[0], le=ZOOM_RANGE[1])
    pan_x: float = 0.0
    pan_y: float = 0.0

    def to_image(self, screen_x: float, screen_y: float) -> Point:
        """Convert a pointer position on the canvas to image pixels."""
        return Point(x=screen_x / self.zoom - self.pan_x, y=screen_y / self.zoom - self.pan_y)


class ToolSettings(BaseModel):
    """Current slider values of the box and brush tools."""

    model_config = ConfigDict(validate_assignment=True)

    box_radius: float = Field(
        default=DEFAULT_BOX_RADIUS, ge=BOX_RADIUS_RANGE[0], le=BOX_RADIUS_RANGE[1]
    )
    brush_size: float = Field(
        default=DEFAULT_BRUSH_SIZE, ge=BRUSH_SIZE_RANGE[0], le=BRUSH_SIZE_RANGE[1]
    )
    brush_strength: float = Field(
        default=DEFAULT_BRUSH_STRENGTH,
        ge=BRUSH_STRENGTH_RANGE[0],
        le=BRUSH_STRENGTH_RANGE[1],
    )


Selection = Tuple[str, int]  # ("rect" | "detection", index)


def normalize_drag(start: Point, end: Point) -> Tuple[float, float, float, float]:
    """Drag-direction independent (x, y, w, h) of the box spanned by two points."""
    return (
        min(start.x, end.x),
        min(start.y, end.y),
        abs(end.x - start.x),
        abs(end.y - start.y),
    )


class ToolController:
    """
    Turns pointer down/move/up sequences into MaskStore mutations.

    Pointer coordinates are viewport coordinates; they are converted to image
    pixels before anything is written. Each completed box or brush gesture that
    changes the store takes exactly one history snapshot.
    """

    def __init__(
        self,
        store: MaskStore,
        history: HistoryManager,
        viewport: Optional[Viewport] = None,
        settings: Optional[ToolSettings] = None,
        tool: Tool = Tool.SELECT,
    ):
        self.store = store
        self.history = history
        self.viewport = viewport or Viewport()
        self.settings = settings or ToolSettings()
        self._tool = tool
        self._drag_start: Optional[Point] = None
        self._stroke: List[Point] = []
        self._drawing = False
        self.selection: Optional[Selection] = None

    @property
    def tool(self) -> Tool:
        return self._tool

    @property
    def is_dragging(self) -> bool:
        return self._drag_start is not None or self._drawing

    def set_tool(self, tool: Tool) -> None:
        """Switch mode; an in-flight gesture is abandoned."""
        self.cancel_gesture()
        self._tool = Tool(tool)

    def cancel_gesture(self) -> None:
        self._drag_start = None
        self._stroke = []
        self._drawing = False

    def pointer_down(self, screen_x: float, screen_y: float) -> None:
        point = self.viewport.to_image(screen_x, screen_y)

        if self._tool == Tool.SELECT:
            self.selection = self._hit_test(point)
        elif self._tool == Tool.BOX:
            self._drag_start = point
        elif self._tool == Tool.BRUSH:
            self._drawing = True
            self._stroke = [point]

    def pointer_move(self, screen_x: float, screen_y: float) -> None:
        if self._tool == Tool.BRUSH and self._drawing:
            self._stroke.append(self.viewport.to_image(screen_x, screen_y))

    def pointer_up(self, screen_x: float, screen_y: float) -> bool:
        """Finish the gesture; returns True when a region was added."""
        point = self.viewport.to_image(screen_x, screen_y)
        added = False

        if self._tool == Tool.BOX and self._drag_start is not None:
            added = self._finish_box(self._drag_start, point)
        elif self._tool == Tool.BRUSH and self._drawing:
            added = self._finish_stroke()

        self.cancel_gesture()
        if added:
            self.history.snapshot(self.store.current())
            logger.debug(f"{self._tool.value} gesture committed")
        return added

    def pointer_leave(self) -> None:
        self.cancel_gesture()

    def _finish_box(self, start: Point, end: Point) -> bool:
        x, y, w, h = normalize_drag(start, end)
        if w <= 0 or h <= 0:
            return False
        rect = BlurRect(x=x, y=y, w=w, h=h, radius=self.settings.box_radius)
        return self.store.add_rect(rect)

    def _finish_stroke(self) -> bool:
        if len(self._stroke) < 2:
            return False
        stroke = BlurBrushStroke(
            points=tuple(self._stroke),
            radius=self.settings.brush_size,
            strength=self.settings.brush_strength,
        )
        return self.store.add_stroke(stroke)

    def _hit_test(self, point: Point) -> Optional[Selection]:
        mask_set = self.store.current()
        for index in range(len(mask_set.rects) - 1, -1, -1):
            if mask_set.rects[index].contains(point.x, point.y):
                return ("rect", index)
        for index in range(len(mask_set.auto_detections) - 1, -1, -1):
            if mask_set.auto_detections[index].contains(point.x, point.y):
                return ("detection", index)
        return None
