"""
Hover focus and click selection state shared by every linked view.

The controller is the single writer of ``focus`` and ``selected``. Each
state change emits one payload-free redraw signal; views re-query
``visual_state`` rather than diffing.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from config.settings import ViewConfig
from core.results import ResultGraph, ResultId

logger = logging.getLogger(__name__)

Scheduler = Callable[[float, Callable[[], None]], Any]
RedrawListener = Callable[[], None]


class Tier(str, Enum):
    ACTIVE = "focused-or-selected"
    NEIGHBOR = "neighbor-of-focused-or-selected"
    PLAIN = "plain"


@dataclass(frozen=True)
class VisualState:
    tier: Tier
    radius: float
    opacity: float


def asyncio_scheduler(delay: float, callback: Callable[[], None]) -> Any:
    """Run ``callback`` after ``delay`` seconds on the running event loop.

    Without a running loop there is no click stream to disambiguate, so the
    callback runs immediately.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        callback()
        return None
    return loop.call_later(delay, callback)


class SelectionController:
    """
    Transient hover focus plus a persistent, click-driven selection set.

    A single click is applied only after ``click_window`` elapses without a
    further click; a double click within the window replaces it with a
    cascade selection.
    """

    def __init__(
        self,
        graph: ResultGraph,
        config: Optional[ViewConfig] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.graph = graph
        self.config = config or ViewConfig()
        self.scheduler = scheduler or asyncio_scheduler
        self.focus: Optional[ResultId] = None
        self.selected: Set[ResultId] = set()
        self._click_seq = 0
        self._listeners: List[RedrawListener] = []

    def on_redraw(self, listener: RedrawListener) -> None:
        self._listeners.append(listener)

    def _redraw(self) -> None:
        for listener in self._listeners:
            listener()

    def replace_graph(self, graph: ResultGraph) -> None:
        """Swap in a freshly loaded dataset; stale ids simply stop highlighting."""
        self.graph = graph
        self._redraw()

    # Hover

    def hover(self, result_id: Optional[ResultId]) -> None:
        if result_id == self.focus:
            return
        self.focus = result_id
        self._redraw()

    # Clicks

    def click(self) -> None:
        """Schedule the single-click effect for the current focus."""
        self._click_seq += 1
        seq = self._click_seq
        target = self.focus
        self.scheduler(self.config.click_window, lambda: self._apply_click(seq, target))

    def double_click(self) -> None:
        """Cancel any pending single click and cascade from the focus."""
        self._click_seq += 1
        if self.focus is not None:
            self.cascade_select(self.focus)

    def _apply_click(self, seq: int, target: Optional[ResultId]) -> None:
        if seq != self._click_seq:
            return
        if target is None:
            self.clear()
        else:
            self.toggle(target)

    def toggle(self, result_id: ResultId) -> None:
        if result_id in self.selected:
            self.selected.discard(result_id)
        else:
            self.selected.add(result_id)
        self._redraw()

    def clear(self) -> None:
        if not self.selected:
            return
        self.selected = set()
        self._redraw()

    def cascade_select(self, start: ResultId) -> Set[ResultId]:
        """
        Select ``start`` and flood through neighbors sharing its label.

        Spreading stops at neighbors that are already selected, dangling or
        differently labelled, so cycles in the graph terminate.

        Returns:
            Ids newly added to the selection
        """
        added = {start} - self.selected
        self.selected.add(start)

        origin = self.graph.get(start)
        label = origin.label if origin is not None else None
        if label is not None:
            stack = [start]
            while stack:
                current = stack.pop()
                for slot in self.graph.neighbors_of(current):
                    if slot.result is None or slot.id in self.selected:
                        continue
                    if slot.result.label != label:
                        continue
                    self.selected.add(slot.id)
                    added.add(slot.id)
                    stack.append(slot.id)

        logger.debug("Cascade from %r added %d results", start, len(added))
        if added:
            self._redraw()
        return added

    # Derived visual state

    def active_ids(self) -> Set[ResultId]:
        """Focus and selected ids that resolve in the current graph."""
        active = {result_id for result_id in self.selected if result_id in self.graph}
        if self.focus is not None and self.focus in self.graph:
            active.add(self.focus)
        return active

    def neighbor_ids(self) -> Set[ResultId]:
        neighbors: Set[ResultId] = set()
        for result_id in self.active_ids():
            neighbors.update(slot.id for slot in self.graph.neighbors_of(result_id))
        return neighbors

    def tier_of(self, result_id: ResultId) -> Tier:
        if result_id in self.active_ids():
            return Tier.ACTIVE
        if result_id in self.neighbor_ids():
            return Tier.NEIGHBOR
        return Tier.PLAIN

    def visual_state(self) -> Dict[ResultId, VisualState]:
        """Tier, radius and opacity for every result in the graph."""
        active = self.active_ids()
        neighbors = self.neighbor_ids()
        cfg = self.config

        if not active:
            plain = VisualState(Tier.PLAIN, cfg.r_small, cfg.point_opacity)
            return {result.id: plain for result in self.graph}

        states = {}
        for result in self.graph:
            if result.id in active:
                states[result.id] = VisualState(Tier.ACTIVE, cfg.r_big, 1.0)
            elif result.id in neighbors:
                states[result.id] = VisualState(Tier.NEIGHBOR, cfg.r_medium, 1.0)
            else:
                states[result.id] = VisualState(Tier.PLAIN, cfg.r_small, cfg.dim_opacity)
        return states
