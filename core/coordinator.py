"""
View coordinator wiring the graph, hit testers, selection and radial layout.

One coordinator holds the state shared by a set of linked views. It is
passed around explicitly (e.g. kept in a UI session) instead of living in
module globals.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from config.settings import ViewConfig
from core.density import DensityCurve, curve_extent, estimate
from core.polar import PolarAngleLayout, RadialGeometry, radial_geometry
from core.proximity import Point, ProximityHitTester
from core.results import ResultGraph, ResultId
from core.selection import Scheduler, SelectionController

logger = logging.getLogger(__name__)


class ViewCoordinator:
    """Routes pointer, click and resize input into shared selection state."""

    def __init__(self, config: Optional[ViewConfig] = None, scheduler: Optional[Scheduler] = None):
        self.config = config or ViewConfig()
        self.graph = ResultGraph()
        self.selection = SelectionController(self.graph, self.config, scheduler)
        self.selection.on_redraw(self._count_redraw)
        self.layout = PolarAngleLayout(self.graph)
        self.redraw_count = 0
        self.z_curve: DensityCurve = []
        self.lag_curve: DensityCurve = []
        self._testers: Dict[str, ProximityHitTester] = {}
        self._mark_ids: Dict[str, List[ResultId]] = {}

    def _count_redraw(self) -> None:
        self.redraw_count += 1

    def load(self, raw_results: Any, angle_table: Any = None, centroids: Any = None) -> ResultGraph:
        """
        Replace the dataset wholesale.

        Raises:
            LayoutConfigurationError: if an angle or centroid table is incomplete
        """
        graph = ResultGraph.build(raw_results)
        layout = PolarAngleLayout.from_inputs(graph, angle_table=angle_table, centroids=centroids)

        valid = graph.valid_subset()
        resolution = self.config.density_resolution
        threshold = self.config.density_threshold
        self.z_curve = estimate([r.z for r in valid], resolution, threshold)
        self.lag_curve = estimate([r.lag for r in valid], resolution, threshold)

        self.graph = graph
        self.layout = layout
        for tester in self._testers.values():
            tester.rebuild([])
        self._mark_ids.clear()
        self.selection.replace_graph(graph)
        logger.info(
            "Loaded %d results (%d valid), radial layout: %s",
            len(graph), len(valid), layout.strategy,
        )
        return graph

    @property
    def z_extent(self) -> Optional[Tuple[float, float]]:
        """Shared z domain: the estimated curve's support, else the raw extent."""
        return curve_extent(self.z_curve) or self.graph.z_extent()

    def tester(self, view: str) -> ProximityHitTester:
        if view not in self._testers:
            distance = self.config.map_hover_distance if view == "map" else self.config.hover_distance
            tester = ProximityHitTester(distance)
            tester.on_change(lambda index, _previous, view=view: self._hover_index(view, index))
            self._testers[view] = tester
        return self._testers[view]

    def layout_view(self, view: str, ids: Sequence[ResultId], centroids: Sequence[Point]) -> None:
        """Rebuild a view's hit index after its marks moved (e.g. on resize)."""
        if len(ids) != len(centroids):
            raise ValueError("ids and centroids must have the same length")
        self._mark_ids[view] = list(ids)
        self.tester(view).rebuild(centroids)

    def pointer(self, view: str, point: Point) -> Optional[ResultId]:
        index = self.tester(view).move(point)
        return self._id_at(view, index)

    def leave(self, view: str) -> None:
        self.tester(view).leave()

    def _id_at(self, view: str, index: Optional[int]) -> Optional[ResultId]:
        ids = self._mark_ids.get(view, [])
        if index is None or index >= len(ids):
            return None
        return ids[index]

    def _hover_index(self, view: str, index: Optional[int]) -> None:
        self.selection.hover(self._id_at(view, index))

    def radial(self, result_id: ResultId) -> Optional[RadialGeometry]:
        return radial_geometry(self.layout, result_id, self.z_extent, self.config)
