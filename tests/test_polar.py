"""Tests for neighbor angle layout and radial geometry."""

import math

import pytest

from config.settings import ViewConfig
from core.errors import LayoutConfigurationError
from core.polar import (
    CentroidAngles,
    EvenAngles,
    ExplicitAngles,
    PolarAngleLayout,
    bearing_angles,
    point_radial,
    radial_geometry,
    resolve_angle_source,
)
from core.results import ResultGraph


@pytest.fixture
def star():
    """Center result "c" with three neighbors and no outgoing edges elsewhere."""
    return ResultGraph.build([
        {"id": "c", "z": 0.5, "lag": 0.2, "statistic": 0.1,
         "neighborWeights": [["n", 1.0], ["e", 2.0], ["s", 3.0]]},
        {"id": "n", "z": 1.0, "lag": 0.0, "statistic": 0.0, "neighborWeights": []},
        {"id": "e", "z": -1.0, "lag": 0.0, "statistic": 0.0, "neighborWeights": []},
        {"id": "s", "z": 0.0, "lag": 0.0, "statistic": 0.0, "neighborWeights": []},
    ])


class TestResolveAngleSource:
    """Tests for strategy selection."""

    def test_priority_order(self):
        assert isinstance(resolve_angle_source([], {"a": (0, 0)}), ExplicitAngles)
        assert isinstance(resolve_angle_source(None, {"a": (0, 0)}), CentroidAngles)
        assert isinstance(resolve_angle_source(), EvenAngles)

    def test_record_forms(self):
        table = resolve_angle_source([{"from": "a", "to": "b", "angle": 1.0}])
        assert table.table == {"a": {"b": 1.0}}
        cents = resolve_angle_source(centroids=[{"id": "a", "centroid": [1, 2]}])
        assert cents.centroids == {"a": [1, 2]}


class TestEvenAngles:
    """Tests for the evenly spaced fallback."""

    def test_three_neighbors(self, star):
        layout = PolarAngleLayout(star)
        angles = layout.angles_for("c")

        assert layout.strategy == "even"
        assert [nid for nid, _ in angles] == ["n", "e", "s"]
        assert [a for _, a in angles] == pytest.approx([0, 2 * math.pi / 3, 4 * math.pi / 3])

    def test_no_neighbors(self, star):
        assert PolarAngleLayout(star).angles_for("n") == []


class TestExplicitAngles:
    """Tests for the precomputed angle table."""

    def test_lookup(self, star):
        table = {"c": {"n": 0.1, "e": 0.2, "s": 0.3}}
        layout = PolarAngleLayout.from_inputs(star, angle_table=table)
        assert layout.angles_for("c") == [("n", 0.1), ("e", 0.2), ("s", 0.3)]

    def test_missing_pair_names_both_ids(self, star):
        with pytest.raises(LayoutConfigurationError) as excinfo:
            PolarAngleLayout.from_inputs(star, angle_table={"c": {"n": 0.1, "e": 0.2}})

        assert excinfo.value.focal_id == "c"
        assert excinfo.value.neighbor_id == "s"
        assert "c" in str(excinfo.value) and "s" in str(excinfo.value)


class TestCentroidAngles:
    """Tests for bearings derived from projected centroids."""

    centroids = {"c": (0, 0), "n": (0, -10), "e": (10, 0), "s": (0, 10)}

    def test_up_is_zero_and_clockwise(self, star):
        layout = PolarAngleLayout.from_inputs(star, centroids=self.centroids)
        angles = dict(layout.angles_for("c"))

        assert layout.strategy == "centroid"
        assert angles["n"] == pytest.approx(0)
        assert angles["e"] == pytest.approx(math.pi / 2)
        assert angles["s"] == pytest.approx(math.pi)

    def test_missing_focal_centroid_names_id(self, star):
        centroids = dict(self.centroids)
        centroids["e"] = (float("nan"), 1.0)
        with pytest.raises(LayoutConfigurationError) as excinfo:
            PolarAngleLayout.from_inputs(star, centroids=centroids)
        assert excinfo.value.focal_id == "e"

    def test_dangling_neighbor_gets_no_angle(self):
        graph = ResultGraph.build([
            {"id": "a", "z": 1.0, "lag": 1.0, "statistic": 1.0, "neighborWeights": [["zz", 1.0]]},
        ])
        layout = PolarAngleLayout.from_inputs(graph, centroids={"a": (0, 0)})
        assert layout.angles_for("a") == [("zz", None)]


class TestHelpers:
    """Tests for the polar helpers."""

    def test_bearing_angles_skip_invalid_points(self):
        assert bearing_angles((0, 0), [(1, 0), None, ("x", 1)])[1:] == [None, None]

    def test_point_radial_up_and_right(self):
        x, y = point_radial(0, 10)
        assert (x, y) == pytest.approx((0, -10))
        x, y = point_radial(math.pi / 2, 10)
        assert (x, y) == pytest.approx((10, 0))


class TestRadialGeometry:
    """Tests for neighbor placement on the radial z scale."""

    def test_radii_follow_z_and_weight(self, star):
        config = ViewConfig()
        geometry = radial_geometry(PolarAngleLayout(star), "c", (-1.0, 1.0), config)
        outer = config.radial_size / 2 - config.radial_margin
        points = {p.id: p for p in geometry.points}

        assert math.hypot(points["n"].x, points["n"].y) == pytest.approx(outer)
        assert math.hypot(points["e"].x, points["e"].y) == pytest.approx(config.inner_radius)
        assert points["n"].radius == pytest.approx(config.point_radius[0])
        assert points["s"].radius == pytest.approx(config.point_radius[1])
        assert len(geometry.spokes) == 3

    def test_invalid_focus_has_no_geometry(self, star):
        assert radial_geometry(PolarAngleLayout(star), "missing") is None
