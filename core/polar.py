"""
Angular placement of a result's neighbors around it for the radial view.

Angles are in radians with 0 pointing up and increasing clockwise. The
angle source is picked once per layout: an explicit from/to table, bearings
between centroids, or even spacing in edge order.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from config.settings import ViewConfig
from core.errors import LayoutConfigurationError
from core.results import Result, ResultGraph, ResultId, lag_cutoffs

logger = logging.getLogger(__name__)

NeighborAngles = List[Tuple[ResultId, Optional[float]]]


@dataclass(frozen=True)
class ExplicitAngles:
    """Precomputed angle per (from, to) edge."""

    table: Mapping[ResultId, Mapping[ResultId, float]]


@dataclass(frozen=True)
class CentroidAngles:
    """Projected centroid per result id."""

    centroids: Mapping[ResultId, Any]


@dataclass(frozen=True)
class EvenAngles:
    pass


AngleSource = Union[ExplicitAngles, CentroidAngles, EvenAngles]


def resolve_angle_source(angle_table: Any = None, centroids: Any = None) -> AngleSource:
    """
    Pick the angle source from whichever inputs are supplied.

    Args:
        angle_table: ``[{"from", "to", "angle"}]`` records or a nested
            ``{from: {to: angle}}`` mapping
        centroids: ``[{"id", "centroid"}]`` records or an ``{id: (x, y)}`` mapping

    Returns:
        The first available source in priority order: table, centroids, even
    """
    if angle_table is not None:
        table: Dict[ResultId, Dict[ResultId, float]] = {}
        if isinstance(angle_table, Mapping):
            table = {src: dict(targets) for src, targets in angle_table.items()}
        else:
            for row in angle_table:
                table.setdefault(row["from"], {})[row["to"]] = row.get("angle")
        return ExplicitAngles(table)
    if centroids is not None:
        if isinstance(centroids, Mapping):
            return CentroidAngles(dict(centroids))
        return CentroidAngles({row["id"]: row.get("centroid") for row in centroids})
    return EvenAngles()


def bearing_angles(center: Tuple[float, float], points: Iterable[Any]) -> List[Optional[float]]:
    """Bearing from ``center`` to each point, None for missing points."""
    angles: List[Optional[float]] = []
    for point in points:
        if _is_number_pair(point):
            dx = point[0] - center[0]
            dy = point[1] - center[1]
            angles.append((math.atan2(dy, dx) + math.pi / 2) % (2 * math.pi))
        else:
            angles.append(None)
    return angles


def even_angles(count: int) -> List[float]:
    if count <= 0:
        return []
    step = 2 * math.pi / count
    return [step * i for i in range(count)]


def point_radial(angle: float, radius: float) -> Tuple[float, float]:
    """Cartesian offset for ``angle`` (0 = up, clockwise) at ``radius``."""
    return radius * math.sin(angle), -radius * math.cos(angle)


def _is_number_pair(value: Any) -> bool:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return False
    return all(
        isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)
        for v in value
    )


class PolarAngleLayout:
    """Per-neighbor angles for every valid result, computed up front."""

    def __init__(self, graph: ResultGraph, source: Optional[AngleSource] = None):
        self.graph = graph
        self.source = source or EvenAngles()
        self._angles: Dict[ResultId, NeighborAngles] = {}

        if isinstance(self.source, ExplicitAngles):
            self._from_table(self.source.table)
        elif isinstance(self.source, CentroidAngles):
            self._from_centroids(self.source.centroids)
        else:
            self._evenly()

    @classmethod
    def from_inputs(cls, graph: ResultGraph, angle_table: Any = None, centroids: Any = None) -> "PolarAngleLayout":
        return cls(graph, resolve_angle_source(angle_table, centroids))

    @property
    def strategy(self) -> str:
        if isinstance(self.source, ExplicitAngles):
            return "explicit"
        if isinstance(self.source, CentroidAngles):
            return "centroid"
        return "even"

    def angles_for(self, result_id: ResultId) -> NeighborAngles:
        return list(self._angles.get(result_id, []))

    def _from_table(self, table: Mapping[ResultId, Mapping[ResultId, float]]) -> None:
        for result in self.graph.valid_subset():
            angles = []
            for neighbor_id, _ in result.neighbor_weights:
                angle = table.get(result.id, {}).get(neighbor_id)
                if not isinstance(angle, (int, float)) or not math.isfinite(angle):
                    logger.warning("Angle table has no entry from %r to %r", result.id, neighbor_id)
                    raise LayoutConfigurationError(
                        f"Angle table supplied, but missing angle from {result.id} to {neighbor_id}",
                        focal_id=result.id,
                        neighbor_id=neighbor_id,
                    )
                angles.append((neighbor_id, float(angle)))
            self._angles[result.id] = angles

    def _from_centroids(self, centroids: Mapping[ResultId, Any]) -> None:
        results = self.graph.valid_subset()
        for result in results:
            if not _is_number_pair(centroids.get(result.id)):
                logger.warning("Centroid for %r is missing or malformed", result.id)
                raise LayoutConfigurationError(
                    f"Centroids supplied, but centroid for ID {result.id} is missing "
                    "or is not a pair of finite numbers",
                    focal_id=result.id,
                )

        for result in results:
            neighbor_ids = [neighbor_id for neighbor_id, _ in result.neighbor_weights]
            angles = bearing_angles(centroids[result.id], (centroids.get(n) for n in neighbor_ids))
            self._angles[result.id] = list(zip(neighbor_ids, angles))

    def _evenly(self) -> None:
        for result in self.graph.valid_subset():
            neighbor_ids = [neighbor_id for neighbor_id, _ in result.neighbor_weights]
            self._angles[result.id] = list(zip(neighbor_ids, even_angles(len(neighbor_ids))))


@dataclass
class RadialPoint:
    id: ResultId
    angle: float
    x: float
    y: float
    radius: float
    weight: float
    z: float
    label: Optional[str]


@dataclass
class RadialGeometry:
    """Everything the radial view needs to draw one focal result."""

    focal_id: ResultId
    lag: float
    lag_radius: float
    spokes: List[Tuple[float, float, float, float]]
    points: List[RadialPoint] = field(default_factory=list)
    lag_cutoffs: Optional[Tuple[float, float]] = None


def _linear(domain: Sequence[float], range_: Sequence[float]):
    d0, d1 = domain
    r0, r1 = range_
    if d1 == d0:
        mid = (r0 + r1) / 2
        return lambda _: mid
    return lambda v: r0 + (v - d0) * (r1 - r0) / (d1 - d0)


def radial_geometry(
    layout: PolarAngleLayout,
    result_id: ResultId,
    z_extent: Optional[Tuple[float, float]] = None,
    config: Optional[ViewConfig] = None,
) -> Optional[RadialGeometry]:
    """
    Place a focal result's neighbors on a radial z scale.

    Neighbors whose angle or z is unknown are left out of ``points`` but
    keep their spoke when an angle exists.
    """
    config = config or ViewConfig()
    result: Optional[Result] = layout.graph.get(result_id)
    if result is None or not result.valid:
        return None

    z_extent = z_extent or layout.graph.z_extent()
    outer = config.radial_size / 2 - config.radial_margin
    r_scale = _linear(z_extent, (config.inner_radius, outer))

    weights = [w for _, w in result.neighbor_weights]
    w_scale = _linear((min(weights), max(weights)) if weights else (0, 0), config.point_radius)

    spokes = []
    points = []
    for (neighbor_id, angle), slot in zip(layout.angles_for(result_id), layout.graph.neighbors_of(result_id)):
        if angle is None:
            continue
        inner_x, inner_y = point_radial(angle, config.inner_radius)
        outer_x, outer_y = point_radial(angle, outer)
        spokes.append((inner_x, inner_y, outer_x, outer_y))

        neighbor = slot.result
        if neighbor is None or neighbor.z is None:
            continue
        x, y = point_radial(angle, r_scale(neighbor.z))
        points.append(
            RadialPoint(
                id=neighbor_id,
                angle=angle,
                x=x,
                y=y,
                radius=w_scale(slot.weight),
                weight=slot.weight,
                z=neighbor.z,
                label=neighbor.label,
            )
        )

    return RadialGeometry(
        focal_id=result_id,
        lag=result.lag,
        lag_radius=r_scale(result.lag),
        spokes=spokes,
        points=points,
        lag_cutoffs=lag_cutoffs(result),
    )
