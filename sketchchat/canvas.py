"""
Canvas Module - Freehand Drawing Surface
========================================
Owns the raster that fills the window and the pointer/touch state machine
that turns input events into continuous white strokes on black.
"""

import base64
import io
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import cv2
import numpy as np
from PIL import Image


@dataclass(frozen=True)
class StrokePoint:
    """Canvas-local coordinates, origin at the top-left corner."""
    x: float
    y: float

    def as_pixel(self) -> Tuple[int, int]:
        """Round to integer pixel coordinates for OpenCV."""
        return int(round(self.x)), int(round(self.y))


@dataclass(frozen=True)
class BoundingRect:
    """Position and size of the surface in client coordinates."""
    left: float
    top: float
    width: float
    height: float


@dataclass(frozen=True)
class PointerEvent:
    """A mouse/pen event carrying absolute client coordinates."""
    client_x: float
    client_y: float


@dataclass(frozen=True)
class TouchPoint:
    """One active touch contact."""
    client_x: float
    client_y: float


@dataclass(frozen=True)
class TouchEvent:
    """A touch event; only the first active touch is used."""
    touches: Sequence[TouchPoint] = ()


@dataclass
class DrawingState:
    """
    Stroke state machine.

    Attributes:
        is_drawing: True between pointer down and up/leave/end
        last_point: End of the previous segment (only meaningful
            while is_drawing)
    """
    is_drawing: bool = False
    last_point: StrokePoint = field(default_factory=lambda: StrokePoint(0, 0))


@dataclass(frozen=True)
class Snapshot:
    """Self-contained encoded image of the raster."""
    data: str
    mime_type: str
    width: int
    height: int

    def to_bytes(self) -> bytes:
        """Decode the base64 payload."""
        return base64.b64decode(self.data)


class DrawSurface:
    """
    Persistent raster plus the pointer-to-stroke state machine.

    Idle -> (down) -> Drawing -> (up / leave / touch end) -> Idle.
    Every move while Drawing draws one segment from the last point to the
    new one. The surface's bounding rect is queried fresh on every event,
    so scrolled or moved surfaces map coordinates correctly.
    """

    BACKGROUND_COLOR = (0, 0, 0)
    STROKE_COLOR = (255, 255, 255)
    LINE_WIDTH = 3

    def __init__(
        self,
        width: int,
        height: int,
        rect_provider: Optional[Callable[[], BoundingRect]] = None
    ):
        """
        Initialize the surface.

        Args:
            width: Raster width in pixels (viewport width)
            height: Raster height in pixels (viewport height)
            rect_provider: Returns the surface's current client rect;
                defaults to a rect at the origin with the raster size
        """
        self._rect_provider = rect_provider or self._default_rect
        self._observers: List[Callable[[], None]] = []
        self.state = DrawingState()
        self.segments_drawn = 0
        self._raster = self._allocate(width, height)

    @property
    def width(self) -> int:
        return self._raster.shape[1]

    @property
    def height(self) -> int:
        return self._raster.shape[0]

    @property
    def raster(self) -> np.ndarray:
        """Read-only view of the BGR raster."""
        view = self._raster.view()
        view.flags.writeable = False
        return view

    def _default_rect(self) -> BoundingRect:
        return BoundingRect(0, 0, self.width, self.height)

    def _allocate(self, width: int, height: int) -> np.ndarray:
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid surface size: {width}x{height}")
        raster = np.empty((height, width, 3), dtype=np.uint8)
        raster[:] = self.BACKGROUND_COLOR
        return raster

    def subscribe(self, callback: Callable[[], None]):
        """Register a callback invoked after every raster change."""
        self._observers.append(callback)

    def _notify(self):
        for callback in self._observers:
            callback()

    # Coordinate mapping
    def to_canvas_point(self, client_x: float, client_y: float) -> StrokePoint:
        """
        Convert client coordinates to canvas-local coordinates.

        Args:
            client_x: Absolute x of the event
            client_y: Absolute y of the event

        Returns:
            StrokePoint relative to the surface's current top-left
        """
        rect = self._rect_provider()
        return StrokePoint(client_x - rect.left, client_y - rect.top)

    def _touch_point(self, event: TouchEvent) -> Optional[StrokePoint]:
        if not event.touches:
            return None
        first = event.touches[0]
        return self.to_canvas_point(first.client_x, first.client_y)

    # State machine
    def _begin(self, point: StrokePoint):
        self.state.is_drawing = True
        self.state.last_point = point

    def _extend(self, point: StrokePoint):
        if not self.state.is_drawing:
            return
        self._draw_segment(self.state.last_point, point)
        self.state.last_point = point

    def _finish(self):
        self.state.is_drawing = False

    def _draw_segment(self, start: StrokePoint, end: StrokePoint):
        p1 = start.as_pixel()
        p2 = end.as_pixel()
        cv2.line(self._raster, p1, p2, self.STROKE_COLOR, self.LINE_WIDTH, cv2.LINE_AA)
        # Round caps so segments at different angles join without gaps
        radius = self.LINE_WIDTH // 2
        cv2.circle(self._raster, p1, radius, self.STROKE_COLOR, -1, cv2.LINE_AA)
        cv2.circle(self._raster, p2, radius, self.STROKE_COLOR, -1, cv2.LINE_AA)
        self.segments_drawn += 1
        self._notify()

    def pointer_down(self, event: PointerEvent):
        self._begin(self.to_canvas_point(event.client_x, event.client_y))

    def pointer_move(self, event: PointerEvent):
        if self.state.is_drawing:
            self._extend(self.to_canvas_point(event.client_x, event.client_y))

    def pointer_up(self, event: Optional[PointerEvent] = None):
        self._finish()

    def pointer_leave(self, event: Optional[PointerEvent] = None):
        self._finish()

    def touch_start(self, event: TouchEvent):
        point = self._touch_point(event)
        if point is not None:
            self._begin(point)

    def touch_move(self, event: TouchEvent):
        if not self.state.is_drawing:
            return
        point = self._touch_point(event)
        if point is not None:
            self._extend(point)

    def touch_end(self, event: Optional[TouchEvent] = None):
        self._finish()

    # Raster operations
    def resize(self, width: int, height: int):
        """
        Reallocate the raster at the new viewport size.

        Existing content is discarded, even if the size is unchanged.

        Args:
            width: New width in pixels
            height: New height in pixels
        """
        self._raster = self._allocate(width, height)
        self._notify()

    def clear(self):
        """Erase the raster to background. Drawing state is untouched."""
        self._raster[:] = self.BACKGROUND_COLOR
        self._notify()

    def has_ink(self) -> bool:
        """Check if any pixel differs from the background."""
        return bool(np.any(self._raster != np.array(self.BACKGROUND_COLOR, dtype=np.uint8)))

    def snapshot(self, image_format: str = 'PNG') -> Snapshot:
        """
        Encode the current raster as a base64 image.

        Args:
            image_format: Pillow image format

        Returns:
            Snapshot of the raster at call time
        """
        rgb = cv2.cvtColor(self._raster, cv2.COLOR_BGR2RGB)
        buffer = io.BytesIO()
        Image.fromarray(rgb).save(buffer, format=image_format)
        return Snapshot(
            data=base64.b64encode(buffer.getvalue()).decode('utf-8'),
            mime_type=f"image/{image_format.lower()}",
            width=self.width,
            height=self.height
        )
