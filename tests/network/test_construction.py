"""
Tests for graph construction from edge lists, matrices and assemblage tables.
"""

import warnings

import pytest
import polars as pl
import networkit as nk

from archNet.network.construction import (
    build_graph_from_edgelist,
    build_graph_from_matrix,
    build_site_network,
    get_graph_info,
    graph_to_edgelist
)
from archNet.network.copresence import build_copresence_matrix, build_edgelist
from archNet.common.exceptions import ConfigurationError, DataFormatError, ValidationError


class TestBuildGraphFromEdgelist:
    """Test build_graph_from_edgelist()."""

    def setup_method(self):
        self.edges = pl.DataFrame({
            "from": ["S1", "S2", "S1"],
            "to": ["S2", "S3", "S3"],
            "weight": [2, 1, 3],
        })

    def test_basic_graph(self):
        graph, mapper = build_graph_from_edgelist(self.edges)

        assert graph.numberOfNodes() == 3
        assert graph.numberOfEdges() == 3
        assert not graph.isDirected()
        assert graph.isWeighted()
        assert mapper.original_ids() == ["S1", "S2", "S3"]
        assert graph.weight(mapper.get_internal("S1"), mapper.get_internal("S3")) == 3.0

    def test_node_ids_follow_sorted_identifiers(self):
        edges = self.edges.reverse()

        _, mapper = build_graph_from_edgelist(edges)

        assert mapper.get_internal("S1") == 0
        assert mapper.get_internal("S3") == 2

    def test_reversed_and_repeated_pairs_merge(self):
        edges = pl.DataFrame({
            "from": ["S1", "S2", "S2"],
            "to": ["S2", "S1", "S3"],
            "weight": [1.0, 2.0, 1.0],
        })

        graph, mapper = build_graph_from_edgelist(edges)

        assert graph.numberOfEdges() == 2
        assert graph.weight(mapper.get_internal("S1"), mapper.get_internal("S2")) == 3.0

    def test_unweighted_records_count(self):
        edges = pl.DataFrame({"from": ["A", "A", "B"], "to": ["B", "B", "C"]})

        graph, mapper = build_graph_from_edgelist(edges, weight_col=None)

        assert graph.weight(mapper.get_internal("A"), mapper.get_internal("B")) == 2.0

    def test_self_loops_dropped_by_default(self):
        edges = pl.DataFrame({"from": ["A", "A"], "to": ["A", "B"], "weight": [1, 1]})

        graph, _ = build_graph_from_edgelist(edges)

        assert graph.numberOfSelfLoops() == 0
        assert graph.numberOfEdges() == 1

    def test_self_loops_kept_when_allowed(self):
        edges = pl.DataFrame({"from": ["A", "A"], "to": ["A", "B"], "weight": [1, 1]})

        graph, _ = build_graph_from_edgelist(edges, allow_self_loops=True)

        assert graph.numberOfSelfLoops() == 1

    def test_isolated_sites_from_node_list(self):
        nodes = pl.DataFrame({"node_id": ["S1", "S2", "S3", "S4"]})

        graph, mapper = build_graph_from_edgelist(self.edges, nodes=nodes)

        assert graph.numberOfNodes() == 4
        assert graph.degree(mapper.get_internal("S4")) == 0

    def test_edge_sites_missing_from_node_list_warn(self):
        nodes = pl.DataFrame({"node_id": ["S1", "S2"]})

        with pytest.warns(UserWarning, match="not in the node list"):
            graph, mapper = build_graph_from_edgelist(self.edges, nodes=nodes)

        assert "S3" in mapper
        assert graph.numberOfNodes() == 3

    def test_empty_edge_list(self):
        edges = pl.DataFrame(schema={"from": pl.String, "to": pl.String, "weight": pl.Int64})

        with pytest.warns(UserWarning, match="Empty edge list"):
            graph, mapper = build_graph_from_edgelist(edges)

        assert graph.numberOfNodes() == 0
        assert mapper.is_empty()

    def test_empty_edge_list_with_nodes(self):
        edges = pl.DataFrame(schema={"from": pl.String, "to": pl.String, "weight": pl.Int64})
        nodes = pl.DataFrame({"node_id": ["S1", "S2"]})

        graph, _ = build_graph_from_edgelist(edges, nodes=nodes)

        assert graph.numberOfNodes() == 2
        assert graph.numberOfEdges() == 0

    def test_from_csv(self, tmp_path):
        path = tmp_path / "edges.csv"
        self.edges.write_csv(path)

        graph, _ = build_graph_from_edgelist(str(path))

        assert graph.numberOfEdges() == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataFormatError, match="not found"):
            build_graph_from_edgelist(tmp_path / "absent.csv")

    def test_missing_columns(self):
        with pytest.raises(ValidationError, match="Missing required columns"):
            build_graph_from_edgelist(self.edges.drop("weight"))

    def test_negative_weights(self):
        edges = self.edges.with_columns(pl.Series("weight", [1, -1, 1]))

        with pytest.raises(ValidationError, match="negative"):
            build_graph_from_edgelist(edges)

    def test_mixed_identifier_types(self):
        edges = pl.DataFrame({"from": [1], "to": [2], "weight": [1]})
        nodes = pl.DataFrame({"node_id": ["S1"]})

        with pytest.raises(ValidationError, match="cannot be compared"):
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                build_graph_from_edgelist(edges, nodes=nodes)


class TestBuildGraphFromMatrix:
    """Test build_graph_from_matrix()."""

    def test_every_row_is_a_node(self):
        table = pl.DataFrame({
            "site": ["S1", "S2", "S3", "S4"],
            "T1": [5, 5, 0, 0],
            "T2": [0, 5, 5, 0],
            "T3": [0, 0, 0, 4],
        })
        matrix = build_copresence_matrix(table, threshold=0.5)

        graph, mapper = build_graph_from_matrix(matrix)

        assert graph.numberOfNodes() == 4
        assert graph.numberOfEdges() == 2
        assert graph.degree(mapper.get_internal("S4")) == 0

    def test_single_site_matrix(self):
        matrix = pl.DataFrame({"site": ["S1"], "S1": [0]})

        graph, _ = build_graph_from_matrix(matrix)

        assert graph.numberOfNodes() == 1
        assert graph.numberOfEdges() == 0


class TestBuildSiteNetwork:
    """Test build_site_network()."""

    def setup_method(self):
        self.table = pl.DataFrame({
            "site": ["S3", "S1", "S2", "S4"],
            "T1": [0, 5, 5, 0],
            "T2": [5, 0, 5, 0],
            "T3": [0, 0, 0, 3],
        })

    @pytest.mark.parametrize("method, threshold", [("edgelist", 0), ("matrix", 0.5)])
    def test_methods_agree(self, method, threshold):
        graph, mapper = build_site_network(self.table, threshold, method=method)

        assert mapper.original_ids() == ["S1", "S2", "S3", "S4"]
        assert graph.numberOfNodes() == 4
        assert graph_to_edgelist(graph, mapper).rows() == [
            ("S1", "S2", 1.0),
            ("S2", "S3", 1.0),
        ]

    def test_unknown_method(self):
        with pytest.raises(ConfigurationError):
            build_site_network(self.table, 0, method="bipartite")

    def test_matrix_threshold_checked(self):
        with pytest.raises(ConfigurationError):
            build_site_network(self.table, 0, method="matrix")

    def test_extra_nodes_kept(self):
        nodes = pl.DataFrame({"node_id": ["S1", "S9"]})

        graph, mapper = build_site_network(self.table, 0, nodes=nodes)

        assert graph.numberOfNodes() == 5
        assert "S9" in mapper
        assert "S4" in mapper

    def test_integer_widths_reconciled(self):
        table = self.table.with_columns(
            pl.Series("site", [3, 1, 2, 4], dtype=pl.Int32)
        )
        nodes = pl.DataFrame({"node_id": pl.Series([1, 2, 3, 4, 9], dtype=pl.Int64)})

        graph, mapper = build_site_network(table, 0, nodes=nodes)

        assert mapper.original_ids() == [1, 2, 3, 4, 9]
        assert graph.numberOfNodes() == 5
        assert graph_to_edgelist(graph, mapper).rows() == [(1, 2, 1.0), (2, 3, 1.0)]

    def test_incompatible_node_list_ids(self):
        table = self.table.with_columns(pl.Series("site", [3, 1, 2, 4], dtype=pl.Int64))
        nodes = pl.DataFrame({"node_id": ["1", "2", "3", "4"]})

        with pytest.raises(ValidationError, match="cannot be compared") as exc_info:
            build_site_network(table, 0, nodes=nodes)

        assert exc_info.value.field == "node_id"

    def test_matches_edgelist_builder(self):
        graph, mapper = build_site_network(self.table, 0)

        expected = build_edgelist(self.table).with_columns(pl.col("weight").cast(pl.Float64))

        assert graph_to_edgelist(graph, mapper).equals(expected)


class TestGraphHelpers:
    """Test get_graph_info() and graph_to_edgelist()."""

    def test_graph_info(self):
        edges = pl.DataFrame({"from": ["A", "B"], "to": ["B", "C"], "weight": [1, 1]})
        graph, mapper = build_graph_from_edgelist(edges)

        info = get_graph_info(graph, mapper)

        assert info["num_nodes"] == 3
        assert info["num_edges"] == 2
        assert info["directed"] is False
        assert info["weighted"] is True
        assert info["num_self_loops"] == 0
        assert info["density"] == pytest.approx(2 / 3)
        assert info["node_id_mapping_size"] == 3
        assert info["is_connected"]

    def test_graph_info_disconnected(self):
        edges = pl.DataFrame({"from": ["A"], "to": ["B"], "weight": [1]})
        nodes = pl.DataFrame({"node_id": ["A", "B", "C"]})
        graph, mapper = build_graph_from_edgelist(edges, nodes=nodes)

        assert not get_graph_info(graph, mapper)["is_connected"]

    def test_graph_to_edgelist_empty(self):
        from archNet.common.id_mapper import IDMapper

        edges = graph_to_edgelist(nk.Graph(2, weighted=True), IDMapper.from_ids(["A", "B"]))

        assert edges.is_empty()
        assert edges.columns == ["from", "to", "weight"]

    def test_graph_to_edgelist_empty_keeps_integer_ids(self):
        from archNet.common.id_mapper import IDMapper

        edges = graph_to_edgelist(nk.Graph(2, weighted=True), IDMapper.from_ids([1, 2]))

        assert edges.is_empty()
        assert edges.schema["from"] == pl.Int64
        assert edges.schema["to"] == pl.Int64
        assert edges.schema["weight"] == pl.Float64
