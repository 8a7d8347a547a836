"""
Co-presence networks from assemblage tables.

Two sites are linked when they share artefact types; the link weight is the
number of shared types. This module offers two equivalent views of that
relationship:

- build_copresence_matrix(): a square site x site matrix holding the shared
  type counts in its strict upper triangle
- build_edgelist(): a sparse list of (from, to, weight) records, one per
  linked pair

The builders differ in how "present" is decided. The matrix builder uses type
proportions (count / site total >= threshold); the edge list builder uses raw
counts (count > threshold). Given thresholds that yield the same presence
matrix, both describe exactly the same pairs and weights.

Sites are always ordered by their identifiers (lexically for strings,
numerically for integers), never by incoming row order. That ordering decides
which triangle of the matrix is kept and which site of a pair is ``from``.
"""

from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
import polars as pl

from archNet.assemblage.table import (
    resolve_type_columns,
    proportional_presence,
)
from archNet.common.exceptions import ValidationError, require_in_range
from archNet.common.validators import validate_assemblage_table, validate_site_identifiers
from archNet.common.logging_config import get_logger, log_function_entry, LoggingTimer

logger = get_logger(__name__)

EDGE_SOURCE_COL = "from"
EDGE_TARGET_COL = "to"
EDGE_WEIGHT_COL = "weight"

# Working column names for the long-form presence table
_TYPE_COL = "__type"
_COUNT_COL = "__count"
_PRESENT_COL = "__present"


def build_copresence_matrix(
    table: pl.DataFrame,
    threshold: float,
    site_col: str = "site",
    type_cols: Optional[Sequence[str]] = None,
    truncate: bool = True
) -> pl.DataFrame:
    """
    Build a site x site matrix of shared type counts.

    Parameters
    ----------
    table : pl.DataFrame
        Assemblage table, one row per site
    threshold : float
        Minimum proportion of a site's total count for a type to be present,
        in (0, 1]
    site_col : str, default "site"
        Name of the site identifier column
    type_cols : Sequence[str], optional
        Names of the type count columns. If None, every numeric column other
        than the site column is used.
    truncate : bool, default True
        If True, zero the diagonal and lower triangle so each unordered pair
        appears exactly once. If False, return the full symmetric matrix with
        each site's own type count on the diagonal.

    Returns
    -------
    pl.DataFrame
        First column ``site_col`` holds the site identifiers in sorted order;
        one Int64 column per site (named ``str(site_id)``) follows in the same
        order. Cell (i, j) is the number of types present at both sites.

    Raises
    ------
    ConfigurationError
        If threshold is not in (0, 1]
    ValidationError
        If the table is empty, columns are missing or not numeric, counts are
        negative, or site identifiers are null, duplicated or not orderable
    DivisionUndefinedError
        If a site's counts sum to zero (its proportions are undefined)

    Examples
    --------
    >>> table = pl.DataFrame({
    ...     "site": ["S1", "S2", "S3"],
    ...     "T1": [5, 5, 0],
    ...     "T2": [0, 5, 5],
    ... })
    >>> matrix = build_copresence_matrix(table, threshold=0.5)
    >>> matrix.select(["S1", "S2", "S3"]).rows()
    [(0, 1, 0), (0, 0, 1), (0, 0, 0)]

    Notes
    -----
    Steps:
    1. Order sites by identifier
    2. Divide each row by its total and mark types at or above the threshold
    3. Multiply the 0/1 presence matrix by its transpose, counting for every
       pair of sites the types present at both
    4. Zero the diagonal and lower triangle (unless truncate=False)

    Sites with a zero total are rejected rather than dropped; use
    archNet.assemblage.drop_empty_sites() first to exclude them explicitly.
    """
    log_function_entry("build_copresence_matrix", n_sites=getattr(table, "height", None),
                       threshold=threshold, truncate=truncate)

    require_in_range(threshold, "threshold", 0.0, 1.0, low_inclusive=False)
    type_cols = resolve_type_columns(table, site_col, type_cols)
    validate_assemblage_table(table, site_col, type_cols)

    with LoggingTimer("build_copresence_matrix", {"sites": table.height, "types": len(type_cols)}):
        ordered = table.select([site_col] + type_cols).sort(site_col)
        sites = ordered[site_col].to_list()
        _check_matrix_labels(sites, site_col)

        presence = proportional_presence(ordered, threshold, site_col, type_cols)
        presence_values = presence.select(type_cols).to_numpy().astype(np.int64)

        shared = presence_values @ presence_values.T

        if truncate:
            shared = np.triu(shared, k=1)

        matrix = _matrix_frame(sites, shared, site_col, ordered[site_col].dtype)

    logger.info("Built co-presence matrix: %d sites, %d linked pairs",
                len(sites), int(np.count_nonzero(np.triu(shared, k=1))))

    return matrix


def build_edgelist(
    table: pl.DataFrame,
    presence_threshold: float = 0,
    site_col: str = "site",
    type_cols: Optional[Sequence[str]] = None
) -> pl.DataFrame:
    """
    Build a weighted edge list of sites that share types.

    Parameters
    ----------
    table : pl.DataFrame
        Assemblage table, one row per site
    presence_threshold : float, default 0
        A type is present at a site when its raw count is strictly greater
        than this value. Must be >= 0.
    site_col : str, default "site"
        Name of the site identifier column
    type_cols : Sequence[str], optional
        Names of the type count columns. If None, every numeric column other
        than the site column is used.

    Returns
    -------
    pl.DataFrame
        Columns ``from``, ``to`` (site identifiers, ``from < to``) and
        ``weight`` (Int64, number of types present at both sites), sorted by
        (from, to). Pairs sharing no type are omitted.

    Raises
    ------
    ConfigurationError
        If presence_threshold is negative
    ValidationError
        If the table is empty, columns are missing or not numeric, counts are
        negative, or site identifiers are null, duplicated or not orderable

    Examples
    --------
    >>> table = pl.DataFrame({
    ...     "site": ["S1", "S2", "S3"],
    ...     "T1": [5, 5, 0],
    ...     "T2": [0, 5, 5],
    ... })
    >>> build_edgelist(table, presence_threshold=0).rows()
    [('S1', 'S2', 1), ('S2', 'S3', 1)]

    Notes
    -----
    Steps:
    1. Reshape the table to long form (site, type, count)
    2. Mark each (site, type) as present when count > presence_threshold
    3. Pair every site with every later site in identifier order
    4. Join both sites' presence for each type; a type contributes 1 when
       present at both
    5. Sum contributions per pair and drop pairs with weight 0

    Time Complexity: O(n^2 * m) for n sites and m types.
    """
    log_function_entry("build_edgelist", n_sites=getattr(table, "height", None),
                       presence_threshold=presence_threshold)

    require_in_range(presence_threshold, "presence_threshold", 0.0, float("inf"))
    type_cols = resolve_type_columns(table, site_col, type_cols)
    validate_assemblage_table(table, site_col, type_cols)

    if site_col in (_TYPE_COL, _COUNT_COL, _PRESENT_COL):
        raise ValidationError("Reserved column name used as site column", field=site_col)

    with LoggingTimer("build_edgelist", {"sites": table.height, "types": len(type_cols)}):
        long_counts = (
            table
            .select([pl.col(site_col)] + [pl.col(col).cast(pl.Float64) for col in type_cols])
            .unpivot(index=site_col, on=type_cols, variable_name=_TYPE_COL, value_name=_COUNT_COL)
        )

        presence = long_counts.select(
            pl.col(site_col),
            pl.col(_TYPE_COL),
            (pl.col(_COUNT_COL) > presence_threshold).cast(pl.Int64).alias(_PRESENT_COL)
        )

        sites = table.select(site_col)
        pairs = (
            sites.rename({site_col: EDGE_SOURCE_COL})
            .join(sites.rename({site_col: EDGE_TARGET_COL}), how="cross")
            .filter(pl.col(EDGE_SOURCE_COL) < pl.col(EDGE_TARGET_COL))
        )
        logger.debug("Enumerated %d site pairs", pairs.height)

        source_presence = presence.rename({site_col: EDGE_SOURCE_COL, _PRESENT_COL: "__present_from"})
        target_presence = presence.rename({site_col: EDGE_TARGET_COL, _PRESENT_COL: "__present_to"})

        edges = (
            pairs
            .join(source_presence, on=EDGE_SOURCE_COL)
            .join(target_presence, on=[EDGE_TARGET_COL, _TYPE_COL])
            .group_by([EDGE_SOURCE_COL, EDGE_TARGET_COL])
            .agg((pl.col("__present_from") * pl.col("__present_to")).sum().alias(EDGE_WEIGHT_COL))
            .filter(pl.col(EDGE_WEIGHT_COL) > 0)
            .select(
                pl.col(EDGE_SOURCE_COL),
                pl.col(EDGE_TARGET_COL),
                pl.col(EDGE_WEIGHT_COL).cast(pl.Int64)
            )
            .sort([EDGE_SOURCE_COL, EDGE_TARGET_COL])
        )

    logger.info("Built edge list: %d sites, %d edges", table.height, edges.height)

    return edges


def matrix_values(matrix: pl.DataFrame, site_col: str = "site") -> Tuple[np.ndarray, List[Any]]:
    """
    Split a co-presence matrix DataFrame into a numpy array and its site labels.

    Raises
    ------
    ValidationError
        If the site column is missing, the site columns do not match the row
        labels, or the matrix is not square
    """
    if site_col not in matrix.columns:
        raise ValidationError(
            "Site column not found in matrix",
            field=site_col,
            details={"available_columns": matrix.columns}
        )

    validate_site_identifiers(matrix, site_col)
    sites = matrix[site_col].to_list()
    labels = [str(site) for site in sites]

    if sorted(col for col in matrix.columns if col != site_col) != sorted(labels):
        raise ValidationError(
            "Matrix columns do not match its site labels",
            field="matrix",
            expected="one column per site, named after the site"
        )

    values = matrix.select(labels).to_numpy()
    if not np.issubdtype(values.dtype, np.number):
        raise ValidationError("Matrix cells must be numeric", field="matrix")

    return values, sites


def matrix_to_edgelist(matrix: pl.DataFrame, site_col: str = "site") -> pl.DataFrame:
    """
    Convert a co-presence matrix into an edge list.

    Every non-zero cell above the diagonal becomes one record; each record is
    oriented so that ``from`` is the smaller identifier. Cells on and below the
    diagonal are ignored, so full symmetric matrices and truncated ones give the
    same result.

    Returns
    -------
    pl.DataFrame
        Columns ``from``, ``to``, ``weight``, sorted by (from, to)

    Examples
    --------
    >>> matrix = build_copresence_matrix(table, threshold=0.5)
    >>> matrix_to_edgelist(matrix).equals(build_edgelist(table, presence_threshold=0))
    True
    """
    values, sites = matrix_values(matrix, site_col)
    upper = np.triu(values, k=1)
    rows, cols = np.nonzero(upper)

    sources, targets = [], []
    for i, j in zip(rows.tolist(), cols.tolist()):
        a, b = sites[i], sites[j]
        sources.append(min(a, b))
        targets.append(max(a, b))

    id_dtype = matrix[site_col].dtype
    weight_values = upper[rows, cols]
    weight_dtype = pl.Int64 if np.issubdtype(upper.dtype, np.integer) else pl.Float64

    return pl.DataFrame({
        EDGE_SOURCE_COL: pl.Series(sources, dtype=id_dtype),
        EDGE_TARGET_COL: pl.Series(targets, dtype=id_dtype),
        EDGE_WEIGHT_COL: pl.Series(weight_values.tolist(), dtype=weight_dtype),
    }).sort([EDGE_SOURCE_COL, EDGE_TARGET_COL])


def _check_matrix_labels(sites: List[Any], site_col: str) -> None:
    """Site labels become column names; they must not collide with the site column."""
    if site_col in {str(site) for site in sites}:
        raise ValidationError(
            f"A site is named '{site_col}', which clashes with the site column of the matrix",
            field=site_col
        )


def _matrix_frame(sites: List[Any], values: np.ndarray, site_col: str, id_dtype: pl.DataType) -> pl.DataFrame:
    columns = [pl.Series(site_col, sites, dtype=id_dtype)]
    for j, site in enumerate(sites):
        columns.append(pl.Series(str(site), values[:, j], dtype=pl.Int64))
    return pl.DataFrame(columns)
