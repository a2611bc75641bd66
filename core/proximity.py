"""
Nearest-mark hit testing over screen-space centroids.

Pointer coordinates are resolved to the index of the closest rendered mark
through a KD-tree, and consecutive resolutions are turned into discrete
hover-change notifications.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial import cKDTree

logger = logging.getLogger(__name__)

Point = Tuple[float, float]
HoverListener = Callable[[Optional[int], Optional[int]], None]


def centroids_from_boxes(
    boxes: Sequence[Tuple[float, float, float, float]],
    origin: Point = (0.0, 0.0),
) -> List[Point]:
    """Centre of each (x, y, width, height) box, relative to the plot origin."""
    return [
        (x + width / 2 - origin[0], y + height / 2 - origin[1])
        for x, y, width, height in boxes
    ]


class ProximityHitTester:
    """
    Maps pointer positions to the nearest mark within ``max_distance``.

    The index is rebuilt from scratch on every ``rebuild``; queries between
    rebuilds see the previous layout.
    """

    def __init__(self, max_distance: Optional[float] = 30.0, listener: Optional[HoverListener] = None):
        self.max_distance = max_distance
        self._listeners: List[HoverListener] = [listener] if listener else []
        self._tree: Optional[cKDTree] = None
        self._points = np.empty((0, 2))
        self._indices = np.empty(0, dtype=int)
        self.previous: Optional[int] = None

    def on_change(self, listener: HoverListener) -> None:
        self._listeners.append(listener)

    @property
    def size(self) -> int:
        return len(self._points)

    def rebuild(self, centroids: Sequence[Point]) -> None:
        """
        Replace the spatial index with one over ``centroids``, in mark order.

        Marks with a non-finite centroid are unreachable but keep their slot,
        so every other mark keeps its index. The last reported index is
        forgotten: after a rebuild the same index may name a different mark.
        """
        points = np.asarray(centroids, dtype="float64").reshape(-1, 2)
        finite = np.isfinite(points).all(axis=1)
        self._points = points
        self._indices = np.flatnonzero(finite)
        self._tree = cKDTree(points[finite]) if finite.any() else None
        self.previous = None
        if not finite.all():
            logger.debug("Skipped %d marks with non-finite centroids", int((~finite).sum()))
        logger.debug("Rebuilt proximity index over %d marks", len(self._indices))

    def query(self, point: Point) -> Optional[int]:
        """Index of the nearest mark, or None when none is within range."""
        if self._tree is None:
            return None
        x, y = point
        if not (np.isfinite(x) and np.isfinite(y)):
            return None
        _, nearest = self._tree.query((x, y))
        index = int(self._indices[nearest])
        if self.max_distance is None:
            return index
        dx, dy = self._points[index] - (x, y)
        if dx * dx + dy * dy < self.max_distance ** 2:
            return index
        return None

    def move(self, point: Point) -> Optional[int]:
        """Resolve ``point`` and notify listeners when the hovered mark changes."""
        index = self.query(point)
        if index != self.previous:
            previous, self.previous = self.previous, index
            for listener in self._listeners:
                listener(index, previous)
        return index

    def leave(self) -> None:
        """Pointer left the plot area."""
        if self.previous is not None:
            previous, self.previous = self.previous, None
            for listener in self._listeners:
                listener(None, previous)
