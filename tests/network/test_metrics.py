"""
Tests for whole-graph metrics.
"""

import math

import pytest
import networkit as nk

from archNet.network.metrics import (
    graph_density,
    graph_transitivity,
    mean_distance,
    count_components,
    connected_components,
    calculate_graph_metrics
)
from archNet.common.id_mapper import IDMapper


def _graph(n, edges):
    graph = nk.Graph(n, weighted=True, directed=False)
    for u, v, w in edges:
        graph.addEdge(u, v, w)
    return graph


class TestGraphDensity:
    """Test graph_density()."""

    def test_complete_graph(self):
        graph = _graph(3, [(0, 1, 1.0), (1, 2, 1.0), (0, 2, 1.0)])

        assert graph_density(graph) == 1.0

    def test_path(self):
        graph = _graph(4, [(0, 1, 1.0), (1, 2, 1.0), (2, 3, 1.0)])

        assert graph_density(graph) == pytest.approx(0.5)

    @pytest.mark.parametrize("n", [0, 1])
    def test_fewer_than_two_nodes(self, n):
        assert graph_density(nk.Graph(n, weighted=True)) == 0.0

    def test_self_loops_ignored(self):
        graph = _graph(2, [(0, 0, 1.0), (0, 1, 1.0)])

        assert graph_density(graph) == 1.0


class TestTransitivityAndDistance:
    """Test graph_transitivity() and mean_distance()."""

    def test_triangle_is_fully_transitive(self):
        graph = _graph(3, [(0, 1, 1.0), (1, 2, 1.0), (0, 2, 1.0)])

        assert graph_transitivity(graph) == pytest.approx(1.0)

    def test_star_has_no_closed_triples(self):
        graph = _graph(4, [(0, 1, 1.0), (0, 2, 1.0), (0, 3, 1.0)])

        assert graph_transitivity(graph) == pytest.approx(0.0)

    def test_no_triples(self):
        graph = _graph(4, [(0, 1, 1.0), (2, 3, 1.0)])

        assert graph_transitivity(graph) == 0.0

    def test_mean_distance_path(self):
        graph = _graph(3, [(0, 1, 2.0), (1, 2, 1.0)])

        assert mean_distance(graph) == pytest.approx(4 / 3)

    def test_mean_distance_ignores_weights(self):
        heavy = _graph(3, [(0, 1, 9.0), (1, 2, 9.0)])
        light = _graph(3, [(0, 1, 1.0), (1, 2, 1.0)])

        assert mean_distance(heavy) == mean_distance(light)

    def test_mean_distance_skips_unreachable_pairs(self):
        graph = _graph(4, [(0, 1, 1.0)])

        assert mean_distance(graph) == 1.0

    def test_mean_distance_without_links(self):
        assert math.isnan(mean_distance(nk.Graph(3, weighted=True)))


class TestComponents:
    """Test count_components() and connected_components()."""

    def setup_method(self):
        self.graph = _graph(5, [(0, 1, 1.0), (1, 2, 1.0)])
        self.mapper = IDMapper.from_ids(["S1", "S2", "S3", "S4", "S5"])

    def test_count(self):
        assert count_components(self.graph) == 3

    def test_count_empty(self):
        assert count_components(nk.Graph(0)) == 0

    def test_components_ordered(self):
        components = connected_components(self.graph, self.mapper)

        assert components == [["S1", "S2", "S3"], ["S4"], ["S5"]]

    def test_components_empty(self):
        assert connected_components(nk.Graph(0), IDMapper()) == []


class TestCalculateGraphMetrics:
    """Test calculate_graph_metrics()."""

    def test_report(self):
        graph = _graph(4, [(0, 1, 2.0), (1, 2, 1.0), (0, 2, 1.0)])

        metrics = calculate_graph_metrics(graph)

        assert metrics["num_nodes"] == 4
        assert metrics["num_edges"] == 3
        assert metrics["density"] == pytest.approx(0.5)
        assert metrics["transitivity"] == pytest.approx(1.0)
        assert metrics["mean_distance"] == pytest.approx(1.0)
        assert metrics["mean_degree"] == pytest.approx(1.5)
        assert metrics["num_components"] == 2
        assert metrics["largest_component_size"] == 3
        assert metrics["is_connected"] is False
        assert metrics["num_isolates"] == 1
        assert metrics["total_weight"] == pytest.approx(4.0)

    def test_empty_graph(self):
        metrics = calculate_graph_metrics(nk.Graph(0, weighted=True))

        assert metrics["num_nodes"] == 0
        assert metrics["density"] == 0.0
        assert metrics["num_components"] == 0
        assert metrics["largest_component_size"] == 0
        assert metrics["mean_degree"] == 0.0
        assert not metrics["is_connected"]
        assert math.isnan(metrics["mean_distance"])
