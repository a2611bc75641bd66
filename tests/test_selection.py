"""Tests for hover focus, click selection and cascade selection."""

import asyncio

import pytest

from config.settings import ViewConfig
from core.results import ResultGraph
from core.selection import SelectionController, Tier


class TestHover:
    """Tests for transient focus."""

    def test_hover_sets_focus_without_touching_selection(self, controller):
        controller.selected.add("E")
        controller.hover("A")

        assert controller.focus == "A"
        assert controller.selected == {"E"}

    def test_repeated_hover_signals_once(self, controller):
        signals = []
        controller.on_redraw(lambda: signals.append(1))

        controller.hover("A")
        controller.hover("A")
        controller.hover(None)

        assert len(signals) == 2


class TestClicks:
    """Tests for single-click toggling and clearing."""

    def test_click_toggles_focused_result(self, controller, scheduler):
        controller.hover("A")
        controller.click()
        assert controller.selected == set()

        scheduler.fire_all()
        assert controller.selected == {"A"}

        controller.click()
        scheduler.fire_all()
        assert controller.selected == set()

    def test_click_on_empty_space_clears(self, controller, scheduler):
        controller.selected.update({"A", "D"})
        controller.hover(None)
        controller.click()
        scheduler.fire_all()

        assert controller.selected == set()

    def test_click_uses_configured_window(self, graph, scheduler):
        controller = SelectionController(graph, ViewConfig(click_window=0.35), scheduler)
        controller.click()
        assert scheduler.pending[0][0] == 0.35

    def test_double_click_cancels_pending_single_click(self, controller, scheduler):
        controller.hover("A")
        controller.click()
        controller.click()
        controller.double_click()
        scheduler.fire_all()

        assert controller.selected == {"A", "B", "C"}

    def test_stale_timer_is_noop(self, controller, scheduler):
        controller.hover("D")
        controller.click()
        controller.click()
        first, second = scheduler.pending
        first[1]()
        assert controller.selected == set()
        second[1]()
        assert controller.selected == {"D"}

    def test_each_change_emits_single_redraw(self, controller, scheduler):
        signals = []
        controller.hover("A")
        controller.on_redraw(lambda: signals.append(1))

        controller.double_click()
        assert len(signals) == 1

        controller.toggle("E")
        controller.clear()
        assert len(signals) == 3


class TestCascade:
    """Tests for label-connected flood-fill selection."""

    def test_cycle_terminates_and_selects_cluster(self, controller):
        added = controller.cascade_select("A")

        assert controller.selected == {"A", "B", "C"}
        assert added == {"A", "B", "C"}

    def test_stops_at_label_boundary(self, controller):
        controller.cascade_select("E")
        assert controller.selected == {"D", "E"}

    def test_stops_at_already_selected(self, controller):
        controller.selected.add("B")
        added = controller.cascade_select("A")
        assert added == {"A", "C"}

    def test_dangling_start_selected_alone(self, controller):
        controller.cascade_select("ghost")
        assert controller.selected == {"ghost"}

    def test_repeat_cascade_over_selected_cluster_is_silent(self, controller):
        redraws = []
        controller.on_redraw(lambda: redraws.append(1))

        controller.cascade_select("A")
        assert controller.cascade_select("B") == set()

        assert len(redraws) == 1

    def test_two_node_end_to_end(self, scheduler):
        graph = ResultGraph.build([
            {"id": "A", "z": 2.0, "lag": -1.0, "statistic": -2.0,
             "neighborWeights": [["B", 1]], "label": "High-low"},
            {"id": "B", "z": -1.0, "lag": 2.0, "statistic": -2.0,
             "neighborWeights": [["A", 1]], "label": "High-low"},
        ])
        controller = SelectionController(graph, scheduler=scheduler)
        controller.hover("A")
        controller.double_click()
        assert controller.selected == {"A", "B"}


class TestVisualState:
    """Tests for tier derivation."""

    def test_tiers_follow_focus_and_selection(self, controller):
        controller.hover("E")
        controller.selected.add("A")

        assert controller.tier_of("E") is Tier.ACTIVE
        assert controller.tier_of("A") is Tier.ACTIVE
        assert controller.tier_of("D") is Tier.NEIGHBOR
        assert controller.tier_of("B") is Tier.NEIGHBOR
        assert controller.neighbor_ids() >= {"B", "C", "D"}

    def test_visual_state_sizes_and_opacity(self, controller):
        cfg = controller.config
        idle = controller.visual_state()
        assert {s.tier for s in idle.values()} == {Tier.PLAIN}
        assert all(s.opacity == cfg.point_opacity for s in idle.values())

        controller.hover("E")
        states = controller.visual_state()
        assert states["E"].radius == cfg.r_big
        assert states["D"].radius == cfg.r_medium
        assert states["A"].opacity == cfg.dim_opacity

    def test_stale_ids_after_reload_do_not_highlight(self, controller):
        controller.selected.add("A")
        controller.replace_graph(ResultGraph.build([]))
        assert controller.visual_state() == {}
        assert controller.neighbor_ids() == set()

    def test_hovering_dangling_id_leaves_everything_plain(self, controller):
        cfg = controller.config
        controller.hover("ghost")

        states = controller.visual_state()
        assert {s.tier for s in states.values()} == {Tier.PLAIN}
        assert all(s.opacity == cfg.point_opacity for s in states.values())
        assert controller.active_ids() == set()

    def test_selected_id_missing_after_reload_does_not_dim_others(self, controller, raw_results):
        cfg = controller.config
        controller.selected.add("A")
        controller.replace_graph(ResultGraph.build(raw_results[3:]))

        states = controller.visual_state()
        assert set(states) == {"D", "E"}
        assert all(s.tier is Tier.PLAIN for s in states.values())
        assert all(s.opacity == cfg.point_opacity for s in states.values())


class TestAsyncioScheduler:
    """Tests for the default event-loop timer."""

    def test_single_click_applies_after_window(self, graph):
        async def scenario():
            controller = SelectionController(graph, ViewConfig(click_window=0.01))
            controller.hover("B")
            controller.click()
            assert controller.selected == set()
            await asyncio.sleep(0.05)
            return controller.selected

        assert asyncio.run(scenario()) == {"B"}

    def test_without_loop_applies_immediately(self, graph):
        controller = SelectionController(graph)
        controller.hover("B")
        controller.click()
        assert controller.selected == {"B"}
