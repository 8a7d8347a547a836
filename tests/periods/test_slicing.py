"""
Tests for period slicing and per-period network construction.
"""

import pytest
import polars as pl

from archNet.periods.slicing import (
    split_by_period,
    build_period_networks,
    align_node_ids_across_periods
)
from archNet.network.construction import graph_to_edgelist
from archNet.common.exceptions import DivisionUndefinedError, ValidationError


def _two_period_table():
    return pl.DataFrame({
        "site": ["S1", "S2", "S3", "S1", "S2", "S4"],
        "period": ["Early", "Early", "Early", "Late", "Late", "Late"],
        "T1": [3, 2, 0, 1, 0, 0],
        "T2": [0, 1, 4, 1, 0, 2],
        "T3": [0, 0, 0, 0, 5, 2],
    })


class TestSplitByPeriod:
    """Test split_by_period()."""

    def setup_method(self):
        self.table = _two_period_table()

    def test_sorted_by_default(self):
        parts = split_by_period(self.table.reverse(), "period")

        assert list(parts) == ["Early", "Late"]
        assert parts["Late"].columns == ["site", "T1", "T2", "T3"]
        assert sorted(parts["Late"]["site"].to_list()) == ["S1", "S2", "S4"]

    def test_explicit_order(self):
        parts = split_by_period(self.table, "period", periods=["Late", "Early"])

        assert list(parts) == ["Late", "Early"]

    def test_subset(self):
        assert list(split_by_period(self.table, "period", periods=["Late"])) == ["Late"]

    def test_repeated_period(self):
        with pytest.raises(ValidationError, match="must not repeat"):
            split_by_period(self.table, "period", periods=["Late", "Late"])

    def test_unknown_period(self):
        with pytest.raises(ValidationError, match="No sites recorded"):
            split_by_period(self.table, "period", periods=["Middle"])

    def test_missing_column(self):
        with pytest.raises(ValidationError, match="Period column not found"):
            split_by_period(self.table, "phase")

    def test_null_period(self):
        table = self.table.with_columns(
            pl.when(pl.col("site") == "S4").then(None).otherwise(pl.col("period")).alias("period")
        )

        with pytest.raises(ValidationError, match="1 null values"):
            split_by_period(table, "period")


class TestBuildPeriodNetworks:
    """Test build_period_networks()."""

    def setup_method(self):
        self.table = _two_period_table()

    def test_one_network_per_period(self):
        networks = build_period_networks(self.table, "period", threshold=0)

        assert [period for period, _, _ in networks] == ["Early", "Late"]

        _, early, early_mapper = networks[0]
        assert early_mapper.original_ids() == ["S1", "S2", "S3"]
        assert graph_to_edgelist(early, early_mapper).rows() == [
            ("S1", "S2", 1.0),
            ("S2", "S3", 1.0),
        ]

        _, late, late_mapper = networks[1]
        assert late_mapper.original_ids() == ["S1", "S2", "S4"]
        assert graph_to_edgelist(late, late_mapper).rows() == [
            ("S1", "S4", 1.0),
            ("S2", "S4", 1.0),
        ]

    def test_matrix_method(self):
        by_counts = build_period_networks(self.table, "period", threshold=0)
        by_share = build_period_networks(self.table, "period", threshold=0.25, method="matrix")

        for (_, g1, m1), (_, g2, m2) in zip(by_counts, by_share):
            assert graph_to_edgelist(g1, m1).equals(graph_to_edgelist(g2, m2))

    def test_integer_periods_not_treated_as_types(self):
        table = self.table.with_columns(
            pl.when(pl.col("period") == "Early").then(1100).otherwise(1150).alias("period")
        )

        networks = build_period_networks(table, "period", threshold=0)

        assert [period for period, _, _ in networks] == [1100, 1150]
        assert networks[0][1].numberOfEdges() == 2

    def test_shared_node_list(self):
        nodes = pl.DataFrame({"node_id": ["S1", "S2", "S3", "S4"]})

        networks = build_period_networks(self.table, "period", threshold=0, nodes=nodes)

        assert all(graph.numberOfNodes() == 4 for _, graph, _ in networks)

    def test_error_names_period(self):
        table = pl.concat([
            self.table,
            pl.DataFrame({"site": ["S5"], "period": ["Late"], "T1": [0], "T2": [0], "T3": [0]}),
        ])

        with pytest.raises(DivisionUndefinedError) as exc_info:
            build_period_networks(table, "period", threshold=0.5, method="matrix")

        assert exc_info.value.context["period"] == "Late"
        assert exc_info.value.sites == ["S5"]

    def test_node_list_id_mismatch_names_period(self):
        nodes = pl.DataFrame({"node_id": [1, 2, 3, 4]})

        with pytest.raises(ValidationError, match="cannot be compared") as exc_info:
            build_period_networks(self.table, "period", threshold=0, nodes=nodes)

        assert exc_info.value.context["period"] == "Early"


class TestAlignNodeIds:
    """Test align_node_ids_across_periods()."""

    def test_presence_flags(self):
        networks = build_period_networks(_two_period_table(), "period", threshold=0)

        aligned = align_node_ids_across_periods(networks)

        assert aligned.columns == ["node_id", "Early", "Late"]
        assert aligned.rows() == [
            ("S1", True, True),
            ("S2", True, True),
            ("S3", True, False),
            ("S4", False, True),
        ]

    def test_empty(self):
        with pytest.raises(ValidationError, match="cannot be empty"):
            align_node_ids_across_periods([])
