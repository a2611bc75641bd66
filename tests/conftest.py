"""Test fixtures and configuration for pytest."""

import pytest
import numpy as np

from config.settings import ViewConfig
from core.results import ResultGraph
from core.selection import SelectionController


class ManualScheduler:
    """Collects delayed callbacks so tests decide when timers fire."""

    def __init__(self):
        self.pending = []

    def __call__(self, delay, callback):
        self.pending.append((delay, callback))

    def fire_all(self):
        pending, self.pending = self.pending, []
        for _, callback in pending:
            callback()


def make_result(result_id, z, lag, neighbors, label="Not significant", **extra):
    record = {
        "id": result_id,
        "z": z,
        "lag": lag,
        "statistic": z * lag,
        "neighborWeights": [list(n) for n in neighbors],
        "label": label,
    }
    record.update(extra)
    return record


@pytest.fixture
def raw_results():
    """Hot-spot triangle A-B-C (cycle), cold pair D-E, plus a dangling edge."""
    return [
        make_result("A", 2.0, 1.5, [("B", 1.0), ("C", 0.5)], "High-high"),
        make_result("B", 1.8, 1.9, [("A", 1.0), ("C", 1.0)], "High-high"),
        make_result("C", 1.2, 1.7, [("A", 0.5), ("B", 1.0), ("D", 0.25)], "High-high"),
        make_result("D", -1.0, -0.8, [("C", 0.25), ("E", 1.0), ("ghost", 1.0)], "Low-low"),
        make_result("E", -1.5, -1.1, [("D", 1.0)], "Low-low"),
    ]


@pytest.fixture
def graph(raw_results):
    return ResultGraph.build(raw_results)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def controller(graph, scheduler):
    return SelectionController(graph, ViewConfig(), scheduler)


@pytest.fixture
def normal_samples():
    np.random.seed(42)
    return np.random.normal(0, 1, 200).tolist()
