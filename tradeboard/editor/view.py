"""
View transform (pan + zoom) for the TradeBoard canvas.

Screen coordinates are widget pixels. World coordinates are where element
geometry lives:

    world = (screen - pan_offset) / scale
"""

from PySide6.QtCore import QPointF

from tradeboard.editor.geometry import Bounds

MIN_SCALE = 0.1
MAX_SCALE = 5.0

# Ctrl+wheel zoom factor per wheel delta unit
WHEEL_ZOOM_BASE = 1.001

# Zoom button step
ZOOM_STEP = 0.1


def clamp_scale(scale: float) -> float:
    return max(MIN_SCALE, min(MAX_SCALE, scale))


class ViewTransform:
    """Pan offset and scale of one canvas."""

    def __init__(self, scale: float = 1.0, pan_offset: QPointF = None) -> None:
        self._scale = clamp_scale(scale)
        self._pan_offset = QPointF(pan_offset) if pan_offset is not None else QPointF(0, 0)

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def pan_offset(self) -> QPointF:
        return QPointF(self._pan_offset)

    @pan_offset.setter
    def pan_offset(self, value: QPointF) -> None:
        self._pan_offset = QPointF(value)

    # ─── Coordinate Conversion ────────────────────────────────────────────

    def screen_to_world(self, pos: QPointF) -> QPointF:
        """Convert widget coordinates to world coordinates."""
        return QPointF(
            (pos.x() - self._pan_offset.x()) / self._scale,
            (pos.y() - self._pan_offset.y()) / self._scale,
        )

    def world_to_screen(self, pos: QPointF) -> QPointF:
        """Convert world coordinates to widget coordinates."""
        return QPointF(
            pos.x() * self._scale + self._pan_offset.x(),
            pos.y() * self._scale + self._pan_offset.y(),
        )

    def visible_world_bounds(self, width: float, height: float) -> Bounds:
        """World-space rectangle covered by a viewport of the given size."""
        left = -self._pan_offset.x() / self._scale
        top = -self._pan_offset.y() / self._scale
        return Bounds(left, top, left + width / self._scale, top + height / self._scale)

    def viewport_center(self, width: float, height: float) -> QPointF:
        return self.screen_to_world(QPointF(width / 2, height / 2))

    # ─── Pan ──────────────────────────────────────────────────────────────

    def pan_by(self, dx: float, dy: float) -> None:
        """Translate the view by a raw screen-space delta."""
        self._pan_offset = QPointF(self._pan_offset.x() + dx, self._pan_offset.y() + dy)

    # ─── Zoom ─────────────────────────────────────────────────────────────

    def set_scale(self, scale: float, anchor: QPointF = None) -> None:
        """
        Set the zoom level, clamped to [MIN_SCALE, MAX_SCALE].

        Args:
            scale: New scale.
            anchor: Screen point to keep stationary, typically the cursor.
                    Without an anchor only the scale changes.
        """
        new_scale = clamp_scale(scale)

        if anchor is not None:
            # Keep the world point under the anchor at the same screen spot
            world = self.screen_to_world(anchor)
            self._pan_offset = QPointF(
                anchor.x() - world.x() * new_scale,
                anchor.y() - world.y() * new_scale,
            )

        self._scale = new_scale

    def zoom_at(self, wheel_delta: float, anchor: QPointF) -> None:
        """Zoom about a screen point by a wheel delta."""
        self.set_scale(self._scale * WHEEL_ZOOM_BASE ** wheel_delta, anchor)

    def zoom_in(self) -> None:
        self.set_scale(self._scale + ZOOM_STEP)

    def zoom_out(self) -> None:
        self.set_scale(self._scale - ZOOM_STEP)

    def reset(self) -> None:
        self._scale = 1.0
        self._pan_offset = QPointF(0, 0)
