"""
Tests for the co-presence builders.

Covers the two builders (matrix and edge list), their agreement under
equivalent thresholds, and the structural guarantees of their outputs:
symmetry before truncation, no self loops, no repeated pairs, deterministic
output and bounded weights.
"""

import numpy as np
import pytest
import polars as pl

from archNet.network.copresence import (
    build_copresence_matrix,
    build_edgelist,
    matrix_to_edgelist,
    matrix_values
)
from archNet.common.exceptions import (
    ConfigurationError,
    DivisionUndefinedError,
    ValidationError
)


def _sample_table():
    """Rows are out of order; every row's non-zero counts are equal.

    With at most two non-zero types per site, proportional presence at 0.5
    and raw presence above 0 mark exactly the same cells.
    """
    return pl.DataFrame({
        "site": ["S4", "S1", "S5", "S2", "S3"],
        "T1": [7, 5, 0, 3, 0],
        "T2": [0, 5, 0, 0, 4],
        "T3": [0, 0, 2, 3, 4],
    })


class TestScenarios:
    """Small tables with known networks."""

    def setup_method(self):
        self.table = pl.DataFrame({
            "site": ["S1", "S2", "S3"],
            "T1": [5, 5, 0],
            "T2": [0, 5, 5],
        })

    def test_three_site_edgelist(self):
        edges = build_edgelist(self.table, presence_threshold=0)

        assert edges.columns == ["from", "to", "weight"]
        assert edges.rows() == [("S1", "S2", 1), ("S2", "S3", 1)]
        assert edges["weight"].dtype == pl.Int64

    def test_three_site_matrix(self):
        matrix = build_copresence_matrix(self.table, threshold=0.5)

        assert matrix.columns == ["site", "S1", "S2", "S3"]
        assert matrix["site"].to_list() == ["S1", "S2", "S3"]
        assert matrix.select(["S1", "S2", "S3"]).rows() == [(0, 1, 0), (0, 0, 1), (0, 0, 0)]

    def test_single_site(self):
        table = pl.DataFrame({"site": ["S1"], "T1": [4], "T2": [1]})

        edges = build_edgelist(table, presence_threshold=0.5)
        matrix = build_copresence_matrix(table, threshold=0.5)

        assert edges.is_empty()
        assert edges.columns == ["from", "to", "weight"]
        assert matrix.shape == (1, 2)
        assert matrix["S1"].to_list() == [0]

    def test_zero_sum_row_in_matrix_builder(self):
        table = pl.DataFrame({"site": ["S1", "S2"], "T1": [3, 0], "T2": [1, 0]})

        with pytest.raises(DivisionUndefinedError) as exc_info:
            build_copresence_matrix(table, threshold=0.1)

        assert exc_info.value.sites == ["S2"]

    def test_zero_sum_row_in_edgelist_builder(self):
        """Raw counts need no division; an empty site is simply unlinked."""
        table = pl.DataFrame({"site": ["S1", "S2", "S3"], "T1": [3, 0, 2], "T2": [1, 0, 0]})

        edges = build_edgelist(table)

        assert edges.rows() == [("S1", "S3", 1)]

    def test_no_shared_types(self):
        table = pl.DataFrame({"site": ["A", "B"], "T1": [1, 0], "T2": [0, 1]})

        assert build_edgelist(table).is_empty()
        assert matrix_to_edgelist(build_copresence_matrix(table, 1.0)).is_empty()


class TestBuilderAgreement:
    """Both builders describe the same pairs and weights."""

    def setup_method(self):
        self.table = _sample_table()

    def test_same_pairs_and_weights(self):
        matrix = build_copresence_matrix(self.table, threshold=0.5)

        from_matrix = matrix_to_edgelist(matrix)
        from_counts = build_edgelist(self.table, presence_threshold=0)

        assert from_matrix.equals(from_counts)

    def test_expected_pairs(self):
        edges = build_edgelist(self.table)

        assert edges.rows() == [
            ("S1", "S2", 1),
            ("S1", "S3", 1),
            ("S1", "S4", 1),
            ("S2", "S3", 1),
            ("S2", "S4", 1),
            ("S2", "S5", 1),
            ("S3", "S5", 1),
        ]

    def test_integer_site_ids(self):
        table = self.table.with_columns(
            pl.Series("site", [40, 10, 50, 20, 30])
        )

        from_matrix = matrix_to_edgelist(build_copresence_matrix(table, threshold=0.5))
        from_counts = build_edgelist(table)

        assert from_matrix.equals(from_counts)
        assert from_counts["from"].dtype == pl.Int64
        assert from_counts.row(0) == (10, 20, 1)

    def test_integer_ids_ordered_numerically(self):
        table = pl.DataFrame({"site": [10, 9], "T1": [1, 1]})

        assert build_edgelist(table).rows() == [(9, 10, 1)]
        assert build_copresence_matrix(table, 1.0).columns == ["site", "9", "10"]


class TestMatrixStructure:
    """Structural properties of the co-presence matrix."""

    def setup_method(self):
        self.table = _sample_table()

    def test_symmetric_before_truncation(self):
        matrix = build_copresence_matrix(self.table, threshold=0.5, truncate=False)
        values, _ = matrix_values(matrix)

        np.testing.assert_array_equal(values, values.T)

    def test_diagonal_counts_types_before_truncation(self):
        matrix = build_copresence_matrix(self.table, threshold=0.5, truncate=False)
        values, sites = matrix_values(matrix)

        assert sites == ["S1", "S2", "S3", "S4", "S5"]
        assert np.diag(values).tolist() == [2, 2, 2, 1, 1]

    def test_truncated_is_strict_upper_triangle(self):
        matrix = build_copresence_matrix(self.table, threshold=0.5)
        values, _ = matrix_values(matrix)

        assert np.all(np.diag(values) == 0)
        assert np.all(np.tril(values) == 0)

    def test_full_and_truncated_give_same_edges(self):
        full = build_copresence_matrix(self.table, threshold=0.5, truncate=False)
        truncated = build_copresence_matrix(self.table, threshold=0.5)

        assert matrix_to_edgelist(full).equals(matrix_to_edgelist(truncated))

    def test_higher_threshold_removes_links(self):
        table = pl.DataFrame({"site": ["A", "B"], "T1": [9, 5], "T2": [1, 5]})

        low = build_copresence_matrix(table, threshold=0.1)
        high = build_copresence_matrix(table, threshold=0.2)

        assert low["B"].to_list() == [2, 0]
        assert high["B"].to_list() == [1, 0]

    def test_site_named_like_site_column(self):
        table = pl.DataFrame({"site": ["site", "S2"], "T1": [1, 1]})

        with pytest.raises(ValidationError, match="clashes"):
            build_copresence_matrix(table, threshold=0.5)


class TestEdgelistStructure:
    """Structural properties of the edge list."""

    def setup_method(self):
        self.table = _sample_table()

    def test_no_self_loops(self):
        edges = build_edgelist(self.table)

        assert edges.filter(pl.col("from") == pl.col("to")).is_empty()

    def test_pairs_oriented_and_unique(self):
        edges = build_edgelist(self.table)

        assert (edges["from"] < edges["to"]).all()
        assert not edges.select(["from", "to"]).is_duplicated().any()

    def test_weight_bounds(self):
        table = pl.DataFrame({
            "site": ["A", "B", "C"],
            "T1": [1, 1, 1],
            "T2": [1, 1, 0],
            "T3": [1, 1, 0],
        })

        edges = build_edgelist(table)

        assert edges["weight"].min() >= 1
        assert edges["weight"].max() <= 3
        assert edges.filter((pl.col("from") == "A") & (pl.col("to") == "B"))["weight"].item() == 3

    def test_raw_threshold_is_strict(self):
        table = pl.DataFrame({"site": ["A", "B"], "T1": [2, 3]})

        assert build_edgelist(table, presence_threshold=2).is_empty()
        assert build_edgelist(table, presence_threshold=1).rows() == [("A", "B", 1)]

    def test_idempotent(self):
        first = build_edgelist(self.table)
        second = build_edgelist(self.table)

        assert first.equals(second)
        assert build_copresence_matrix(self.table, 0.5).equals(build_copresence_matrix(self.table, 0.5))

    def test_row_order_does_not_matter(self):
        shuffled = self.table.reverse()

        assert build_edgelist(shuffled).equals(build_edgelist(self.table))
        assert build_copresence_matrix(shuffled, 0.5).equals(build_copresence_matrix(self.table, 0.5))

    def test_input_not_mutated(self):
        before = self.table.clone()

        build_edgelist(self.table)
        build_copresence_matrix(self.table, 0.5)

        assert self.table.equals(before)

    def test_explicit_type_columns(self):
        edges = build_edgelist(self.table, type_cols=["T1"])

        assert edges.rows() == [("S1", "S2", 1), ("S1", "S4", 1), ("S2", "S4", 1)]


class TestBuilderErrors:
    """Invalid thresholds and tables."""

    def setup_method(self):
        self.table = _sample_table()

    @pytest.mark.parametrize("threshold", [0, 0.0, -0.5, 1.5, float("nan")])
    def test_matrix_threshold_range(self, threshold):
        with pytest.raises(ConfigurationError):
            build_copresence_matrix(self.table, threshold=threshold)

    def test_edgelist_negative_threshold(self):
        with pytest.raises(ConfigurationError):
            build_edgelist(self.table, presence_threshold=-1)

    def test_empty_table(self):
        with pytest.raises(ValidationError, match="no rows"):
            build_edgelist(self.table.head(0))
        with pytest.raises(ValidationError, match="no rows"):
            build_copresence_matrix(self.table.head(0), 0.5)

    def test_no_type_columns(self):
        with pytest.raises(ValidationError, match="No numeric type columns"):
            build_edgelist(self.table.select("site"))

    def test_duplicate_sites(self):
        table = self.table.with_columns(pl.Series("site", ["S1", "S1", "S5", "S2", "S3"]))

        with pytest.raises(ValidationError, match="duplicate"):
            build_edgelist(table)

    def test_null_site(self):
        table = self.table.with_columns(pl.Series("site", ["S4", None, "S5", "S2", "S3"]))

        with pytest.raises(ValidationError, match="null"):
            build_copresence_matrix(table, 0.5)

    def test_float_site_ids(self):
        table = self.table.with_columns(pl.Series("site", [4.0, 1.0, 5.0, 2.0, 3.0]))

        with pytest.raises(ValidationError, match="strings or integers"):
            build_edgelist(table)


class TestMatrixConversion:
    """matrix_values() and matrix_to_edgelist() on hand-written matrices."""

    def test_float_weights(self):
        matrix = pl.DataFrame({
            "site": ["A", "B"],
            "A": [0.0, 0.0],
            "B": [0.5, 0.0],
        })

        edges = matrix_to_edgelist(matrix)

        assert edges.rows() == [("A", "B", 0.5)]
        assert edges["weight"].dtype == pl.Float64

    def test_lower_triangle_ignored(self):
        matrix = pl.DataFrame({
            "site": ["A", "B"],
            "A": [0, 9],
            "B": [0, 0],
        })

        assert matrix_to_edgelist(matrix).is_empty()

    def test_unsorted_rows_oriented(self):
        matrix = pl.DataFrame({
            "site": ["B", "A"],
            "B": [0, 0],
            "A": [2, 0],
        })

        assert matrix_to_edgelist(matrix).rows() == [("A", "B", 2)]

    def test_columns_must_match_labels(self):
        matrix = pl.DataFrame({"site": ["A", "B"], "A": [0, 0], "C": [1, 0]})

        with pytest.raises(ValidationError, match="do not match"):
            matrix_values(matrix)

    def test_missing_site_column(self):
        with pytest.raises(ValidationError, match="Site column not found"):
            matrix_values(pl.DataFrame({"A": [0]}))
