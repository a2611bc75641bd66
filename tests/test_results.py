"""Tests for result validation and the neighbor graph."""

import math

import pytest

from core.results import ResultGraph, lag_cutoffs


class TestBuild:
    """Tests for building the graph from raw records."""

    def test_get_round_trips_every_id(self, raw_results, graph):
        for raw in raw_results:
            result = graph.get(raw["id"])
            assert result is not None
            assert result.id == raw["id"]
            assert result.z == raw["z"]
        assert len(graph) == len(raw_results)

    def test_invalid_record_kept_but_not_valid(self, raw_results):
        raw_results.append({"id": "broken", "z": "high", "lag": 0.1, "neighborWeights": []})
        graph = ResultGraph.build(raw_results)

        assert "broken" in graph
        assert graph.get("broken").valid is False
        assert "broken" not in [r.id for r in graph.valid_subset()]
        assert len(graph.valid_subset()) == len(raw_results) - 1

    def test_non_finite_weight_is_invalid(self):
        graph = ResultGraph.build([
            {"id": 1, "z": 0.1, "lag": 0.2, "statistic": 0.02, "neighborWeights": [[2, math.inf]]},
        ])
        assert graph.get(1).valid is False

    def test_missing_neighbor_weights_is_invalid(self):
        graph = ResultGraph.build([{"id": "x", "z": 0.1, "lag": 0.2, "statistic": 0.02}])
        assert graph.get("x").valid is False
        assert graph.valid_subset() == []

    @pytest.mark.parametrize("raw", [None, "not records", 42, {"id": "A"}])
    def test_malformed_input_gives_empty_graph(self, raw):
        graph = ResultGraph.build(raw)
        assert len(graph) == 0
        assert graph.valid_subset() == []

    def test_duplicate_id_keeps_first(self, raw_results):
        raw_results.append(dict(raw_results[0], z=-9.0))
        graph = ResultGraph.build(raw_results)
        assert graph.get("A").z == 2.0

    def test_camel_and_snake_case_aliases(self):
        graph = ResultGraph.build([
            {"id": "a", "z": 1.0, "lag": 0.5, "statistic": 0.5,
             "lower_cutoff": -0.3, "upperCutoff": 0.4, "neighbors": [["b", 1.0]]},
        ])
        result = graph.get("a")
        assert result.valid
        assert result.has_cutoffs
        assert result.neighbor_weights == [("b", 1.0)]


class TestNeighbors:
    """Tests for neighbor resolution."""

    def test_order_and_count_preserved_with_dangling_slot(self, graph):
        slots = graph.neighbors_of("D")

        assert [s.id for s in slots] == ["C", "E", "ghost"]
        assert [s.weight for s in slots] == [0.25, 1.0, 1.0]
        assert slots[0].result is graph.get("C")
        assert slots[2].result is None

    def test_unknown_id_has_no_neighbors(self, graph):
        assert graph.neighbors_of("nowhere") == []
        assert graph.neighbors_of(None) == []


class TestAggregates:
    """Tests for extents and the tabular view."""

    def test_extents_use_valid_results_only(self, raw_results):
        raw_results.append({"id": "bad", "z": 99.0, "lag": 99.0})
        graph = ResultGraph.build(raw_results)

        assert graph.z_extent() == (-1.5, 2.0)
        assert graph.lag_extent() == (-1.1, 1.9)

    def test_empty_graph_has_no_extent(self):
        assert ResultGraph().z_extent() is None

    def test_to_frame(self, graph):
        frame = graph.to_frame()
        assert len(frame) == 5
        assert frame.loc[frame["id"] == "D", "neighbor_count"].item() == 3


class TestLagCutoffs:
    """Tests for cutoff placement on the lag axis."""

    def test_sorted_even_when_raw_order_is_reversed(self):
        graph = ResultGraph.build([
            {"id": "n", "z": -2.0, "lag": 0.5, "statistic": -1.0,
             "lowerCutoff": -0.4, "upperCutoff": 0.6, "neighborWeights": []},
        ])
        low, high = lag_cutoffs(graph.get("n"))
        assert low == pytest.approx(-0.3)
        assert high == pytest.approx(0.2)

    def test_none_without_cutoffs(self, graph):
        assert lag_cutoffs(graph.get("A")) is None
