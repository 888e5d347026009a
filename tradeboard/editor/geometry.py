"""
Pure geometry helpers for canvas elements.

Nothing here touches Qt or mutable state. All coordinates are world
coordinates; screen-space sizes (hit tolerance, handle size) are converted
to world units by dividing by the current view scale, so margins look the
same at every zoom level.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from tradeboard.editor.elements import (
    BOX_KINDS,
    POINT_KINDS,
    POSITION_KINDS,
    Element,
    Point,
    PositionElement,
)

# Screen-space sizes (pixels)
HIT_TOLERANCE = 10
HANDLE_SIZE = 8

# Entry line is kept visibly inside a position marker
MIN_ENTRY_RATIO = 0.05
MAX_ENTRY_RATIO = 0.95


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned bounding box."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def contains(self, other: "Bounds") -> bool:
        """True if other lies entirely inside this box (edges inclusive)."""
        return (
            other.min_x >= self.min_x and other.max_x <= self.max_x
            and other.min_y >= self.min_y and other.max_y <= self.max_y
        )

    def contains_point(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def expanded(self, margin: float) -> "Bounds":
        return Bounds(
            self.min_x - margin, self.min_y - margin,
            self.max_x + margin, self.max_y + margin,
        )

    def translated(self, dx: float, dy: float) -> "Bounds":
        return Bounds(self.min_x + dx, self.min_y + dy, self.max_x + dx, self.max_y + dy)

    def united(self, other: "Bounds") -> "Bounds":
        return Bounds(
            min(self.min_x, other.min_x), min(self.min_y, other.min_y),
            max(self.max_x, other.max_x), max(self.max_y, other.max_y),
        )

    @classmethod
    def from_corners(cls, x1: float, y1: float, x2: float, y2: float) -> "Bounds":
        """Build bounds from two arbitrary corners of a drag rectangle."""
        return cls(min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2))


class ResizeHandle(Enum):
    """
    Resize handles. Corner names carry the compass edges they move.

    N and S only exist on position markers and move one horizontal edge.
    ENTRY drags the profit/loss divider of a position marker.
    """
    NORTH_WEST = "nw"
    NORTH_EAST = "ne"
    SOUTH_WEST = "sw"
    SOUTH_EAST = "se"
    NORTH = "n"
    SOUTH = "s"
    ENTRY = "entry"

    @property
    def is_corner(self) -> bool:
        return len(self.value) == 2


CORNER_HANDLES = (
    ResizeHandle.NORTH_WEST,
    ResizeHandle.NORTH_EAST,
    ResizeHandle.SOUTH_WEST,
    ResizeHandle.SOUTH_EAST,
)


# ─── Bounds ───────────────────────────────────────────────────────────────

def compute_bounds(element: Element) -> Bounds:
    """
    Return the axis-aligned bounds of an element.

    Point-sequence kinds use their points (the origin when empty); all other
    kinds use the signed width/height box, so un-normalized geometry is
    handled correctly.
    """
    if element.kind in POINT_KINDS:
        points = element.points
        if not points:
            return Bounds(element.x, element.y, element.x, element.y)
        xs = [p.x for p in points]
        ys = [p.y for p in points]
        return Bounds(min(xs), min(ys), max(xs), max(ys))

    x, y, w, h = element.x, element.y, element.width, element.height
    return Bounds(min(x, x + w), min(y, y + h), max(x, x + w), max(y, y + h))


def union_bounds(elements: Iterable[Element]) -> Optional[Bounds]:
    """Return the union of all element bounds, or None for no elements."""
    result: Optional[Bounds] = None
    for element in elements:
        bounds = compute_bounds(element)
        result = bounds if result is None else result.united(bounds)
    return result


def points_bounds(points: Iterable[Point]) -> Optional[Bounds]:
    points = list(points)
    if not points:
        return None
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return Bounds(min(xs), min(ys), max(xs), max(ys))


# ─── Hit Testing ──────────────────────────────────────────────────────────

def is_point_inside(
    px: float,
    py: float,
    element: Element,
    scale: float = 1.0,
    tolerance: float = HIT_TOLERANCE,
) -> bool:
    """
    Test a world point against an element's bounds.

    The bounds are grown by a screen-space tolerance converted to world
    units, so the hit margin looks constant at every zoom level.
    """
    buffer = tolerance / scale
    return compute_bounds(element).expanded(buffer).contains_point(px, py)


def handle_positions(element: Element) -> Dict[ResizeHandle, Tuple[float, float]]:
    """
    Return the world position of every handle the element exposes.

    Empty for kinds that cannot be resized.
    """
    if element.kind not in BOX_KINDS:
        return {}

    bounds = compute_bounds(element)
    x1, y1, x2, y2 = bounds.min_x, bounds.min_y, bounds.max_x, bounds.max_y

    positions = {
        ResizeHandle.NORTH_WEST: (x1, y1),
        ResizeHandle.NORTH_EAST: (x2, y1),
        ResizeHandle.SOUTH_WEST: (x1, y2),
        ResizeHandle.SOUTH_EAST: (x2, y2),
    }

    if element.kind in POSITION_KINDS:
        mid_x = x1 + (x2 - x1) / 2
        entry_y = y1 + (y2 - y1) * element.entry_ratio
        positions[ResizeHandle.NORTH] = (mid_x, y1)
        positions[ResizeHandle.SOUTH] = (mid_x, y2)
        positions[ResizeHandle.ENTRY] = (x2, entry_y)

    return positions


def resize_handle_at(
    px: float,
    py: float,
    element: Element,
    scale: float = 1.0,
) -> Optional[ResizeHandle]:
    """
    Return the handle under a world point, or None.

    Corners win over the position-marker midpoint and entry handles when
    they overlap on tiny shapes.
    """
    radius = (HANDLE_SIZE / 2) / scale
    for handle, (hx, hy) in handle_positions(element).items():
        if abs(px - hx) < radius and abs(py - hy) < radius:
            return handle
    return None


# ─── Transforms ───────────────────────────────────────────────────────────

def normalize(element: Element) -> Element:
    """
    Rewrite negative extents of box-like elements.

    The origin moves to the top-left corner and width/height become
    non-negative; the covered rectangle is unchanged. Other kinds are
    returned as-is. Idempotent.
    """
    if element.kind not in BOX_KINDS:
        return element
    if element.width >= 0 and element.height >= 0:
        return element

    x, y, w, h = element.x, element.y, element.width, element.height
    return replace(
        element,
        x=x + w if w < 0 else x,
        y=y + h if h < 0 else y,
        width=abs(w),
        height=abs(h),
    )


def translate(element: Element, dx: float, dy: float) -> Element:
    """Move an element by a world delta, including every point it carries."""
    if element.kind in POINT_KINDS:
        return replace(
            element,
            x=element.x + dx,
            y=element.y + dy,
            points=tuple(p.translated(dx, dy) for p in element.points),
        )
    return replace(element, x=element.x + dx, y=element.y + dy)


def fit_to_points(element: Element) -> Element:
    """Recompute origin and extent of a point-sequence element from its points."""
    bounds = points_bounds(element.points)
    if bounds is None:
        return element
    return replace(
        element,
        x=bounds.min_x,
        y=bounds.min_y,
        width=bounds.width,
        height=bounds.height,
    )


def apply_resize(
    snapshot: Element,
    handle: ResizeHandle,
    dx: float,
    dy: float,
    pointer_y: float,
) -> Element:
    """
    Resize a snapshot by dragging one of its handles.

    Always computed from the drag-start snapshot, never from the live
    element, so repeated pointer moves do not accumulate error.

    Args:
        snapshot: The element as it was when the drag started.
        handle: The handle being dragged.
        dx: Pointer delta X since drag start (world units).
        dy: Pointer delta Y since drag start (world units).
        pointer_y: Current pointer Y, used by the entry handle.
    """
    x, y, w, h = snapshot.x, snapshot.y, snapshot.width, snapshot.height

    if handle == ResizeHandle.ENTRY:
        if not isinstance(snapshot, PositionElement) or h == 0:
            return snapshot
        ratio = (pointer_y - y) / abs(h)
        ratio = min(max(ratio, MIN_ENTRY_RATIO), MAX_ENTRY_RATIO)
        return replace(snapshot, entry_ratio=ratio)

    if handle == ResizeHandle.NORTH:
        return replace(snapshot, y=y + dy, height=h - dy)

    if handle == ResizeHandle.SOUTH:
        return replace(snapshot, height=h + dy)

    edges = handle.value
    if "e" in edges:
        w += dx
    if "s" in edges:
        h += dy
    if "w" in edges:
        x += dx
        w -= dx
    if "n" in edges:
        y += dy
        h -= dy

    return replace(snapshot, x=x, y=y, width=w, height=h)


def distance(x1: float, y1: float, x2: float, y2: float) -> float:
    return math.hypot(x2 - x1, y2 - y1)
