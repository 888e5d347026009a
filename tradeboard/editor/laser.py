"""
Laser pointer trail.

The laser never touches the scene or the history. It keeps a short buffer
of timestamped screen-space points; each segment fades linearly to zero
over LASER_LIFETIME_MS and is pruned once fully faded.
"""

import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

LASER_LIFETIME_MS = 1000.0


def _now_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class LaserPoint:
    x: float
    y: float
    timestamp: float  # milliseconds


@dataclass(frozen=True)
class LaserSegment:
    start: LaserPoint
    end: LaserPoint
    opacity: float  # 0.0 to 1.0


class LaserTrail:
    """Fading buffer of laser pointer positions."""

    def __init__(
        self,
        lifetime_ms: float = LASER_LIFETIME_MS,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._lifetime = lifetime_ms
        self._clock = clock or _now_ms
        self._points: List[LaserPoint] = []

    @property
    def points(self) -> Tuple[LaserPoint, ...]:
        return tuple(self._points)

    def add(self, x: float, y: float) -> None:
        self._points.append(LaserPoint(x, y, self._clock()))

    def prune(self) -> None:
        """Drop points older than the lifetime."""
        now = self._clock()
        self._points = [p for p in self._points if now - p.timestamp < self._lifetime]

    def is_active(self) -> bool:
        """True while at least one point is still visible."""
        self.prune()
        return bool(self._points)

    def segments(self) -> List[LaserSegment]:
        """
        Return the live segments with their current opacity.

        A segment takes the age of its newer endpoint.
        """
        self.prune()
        now = self._clock()
        result = []
        for previous, current in zip(self._points, self._points[1:]):
            age = now - current.timestamp
            opacity = max(0.0, 1.0 - age / self._lifetime)
            result.append(LaserSegment(previous, current, opacity))
        return result

    def clear(self) -> None:
        self._points = []
