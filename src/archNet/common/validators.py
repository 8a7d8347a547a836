"""
Input validation utilities for the archNet library.

This module checks assemblage tables, edge lists and node lists before any
computation starts, so that bad input fails loudly instead of producing a
silently wrong network.
"""

from typing import List, Optional, Sequence
import warnings

import polars as pl

from .exceptions import ValidationError


def validate_site_identifiers(df: pl.DataFrame, id_col: str) -> None:
    """
    Check that a column can serve as a set of site identifiers.

    Identifiers must be non-null, pairwise distinct and totally ordered, since
    pair orientation (``from`` < ``to``) is decided by comparing them. String
    and integer columns qualify; floating point, categorical, nested and
    object columns do not.

    Parameters
    ----------
    df : pl.DataFrame
        Table containing the identifier column
    id_col : str
        Name of the identifier column

    Raises
    ------
    ValidationError
        If the column is missing, has nulls or duplicates, or has a dtype
        without a usable total order
    """
    if id_col not in df.columns:
        raise ValidationError(
            "Identifier column not found",
            field=id_col,
            details={"available_columns": df.columns}
        )

    series = df[id_col]
    dtype = series.dtype

    if not (dtype == pl.String or dtype.is_integer()):
        raise ValidationError(
            f"Identifiers must be strings or integers to be totally ordered, got {dtype}",
            field=id_col,
            expected="String or integer column",
            details={"dtype": str(dtype)}
        )

    null_count = series.null_count()
    if null_count > 0:
        raise ValidationError(
            f"Column contains {null_count} null identifiers",
            field=id_col,
            details={"null_count": null_count, "total_rows": len(df)}
        )

    duplicated = series.filter(series.is_duplicated()).unique().sort().to_list()
    if duplicated:
        raise ValidationError(
            f"Found {len(duplicated)} duplicate identifiers",
            field=id_col,
            value=duplicated[:10],
            expected="unique identifiers",
            details={"duplicate_count": len(duplicated)}
        )


def validate_assemblage_table(
    df: pl.DataFrame,
    site_col: str,
    type_cols: Sequence[str]
) -> None:
    """
    Validate an assemblage table (sites x types count matrix).

    Parameters
    ----------
    df : pl.DataFrame
        Assemblage table with one row per site
    site_col : str
        Name of the site identifier column
    type_cols : Sequence[str]
        Names of the type count columns

    Raises
    ------
    ValidationError
        If the table has no rows or no type columns, a named column is
        missing, a type column is not numeric, counts are null, NaN, infinite
        or negative, or site identifiers are invalid

    Examples
    --------
    >>> df = pl.DataFrame({"site": ["A", "B"], "T1": [3, 0], "T2": [1, 4]})
    >>> validate_assemblage_table(df, "site", ["T1", "T2"])  # passes

    Notes
    -----
    Rows whose counts sum to zero pass validation. They are legal input for
    the raw-threshold edge list and are rejected only where a proportion is
    required.
    """
    if not isinstance(df, pl.DataFrame):
        raise ValidationError(
            f"Assemblage table must be a polars DataFrame, got {type(df).__name__}",
            field="table"
        )

    if df.height == 0:
        raise ValidationError("Assemblage table has no rows", field="table")

    type_cols = list(type_cols)
    if not type_cols:
        raise ValidationError("Assemblage table has no type columns", field="type_cols")

    if site_col in type_cols:
        raise ValidationError(
            "Site column cannot also be a type column",
            field=site_col
        )

    duplicated_types = sorted({col for col in type_cols if type_cols.count(col) > 1})
    if duplicated_types:
        raise ValidationError(
            "Type columns listed more than once",
            field="type_cols",
            value=duplicated_types
        )

    missing_cols = [col for col in [site_col] + type_cols if col not in df.columns]
    if missing_cols:
        raise ValidationError(
            f"Missing required columns: {missing_cols}",
            field="columns",
            details={"available_columns": df.columns, "missing": missing_cols}
        )

    validate_site_identifiers(df, site_col)

    for col in type_cols:
        series = df[col]

        if not series.dtype.is_numeric():
            raise ValidationError(
                f"Type column must be numeric, got {series.dtype}",
                field=col,
                details={"dtype": str(series.dtype)}
            )

        null_count = series.null_count()
        if null_count > 0:
            raise ValidationError(
                f"Type column contains {null_count} null counts",
                field=col,
                details={"null_count": null_count}
            )

        if series.dtype.is_float():
            if series.is_nan().any() or series.is_infinite().any():
                raise ValidationError(
                    "Type column contains NaN or infinite counts",
                    field=col
                )

        negative_count = int((series < 0).sum())
        if negative_count > 0:
            raise ValidationError(
                f"Type column contains {negative_count} negative counts",
                field=col,
                details={"min_count": series.min(), "negative_count": negative_count}
            )


def validate_edgelist_dataframe(
    df: pl.DataFrame,
    source_col: str = "from",
    target_col: str = "to",
    weight_col: Optional[str] = None,
    allow_self_loops: bool = True,
    allow_duplicates: bool = True
) -> None:
    """
    Validate an edge list DataFrame before graph construction.

    Parameters
    ----------
    df : pl.DataFrame
        Edge list DataFrame to validate
    source_col : str, default "from"
        Name of the source site column
    target_col : str, default "to"
        Name of the target site column
    weight_col : str, optional
        Name of the edge weight column (if present)
    allow_self_loops : bool, default True
        Whether to allow edges from a site to itself
    allow_duplicates : bool, default True
        Whether to allow repeated source-target pairs

    Raises
    ------
    ValidationError
        If the DataFrame fails any validation checks

    Notes
    -----
    An empty edge list is valid here: a period in which no two sites share a
    type is a legitimate, edgeless network.
    """
    required_cols = [source_col, target_col]
    all_required_cols = required_cols + ([weight_col] if weight_col is not None else [])

    missing_cols = [col for col in all_required_cols if col not in df.columns]
    if missing_cols:
        raise ValidationError(
            f"Missing required columns: {missing_cols}",
            field="columns",
            details={"available_columns": df.columns, "missing": missing_cols}
        )

    if df.is_empty():
        return

    for col in required_cols:
        null_count = df[col].null_count()
        if null_count > 0:
            raise ValidationError(
                f"Column contains {null_count} null values",
                field=col,
                details={"null_count": null_count, "total_rows": len(df)}
            )

    if df[source_col].dtype != df[target_col].dtype:
        raise ValidationError(
            f"Source and target columns have different dtypes: "
            f"{df[source_col].dtype} vs {df[target_col].dtype}",
            field="edges"
        )

    if weight_col is not None:
        weight_series = df[weight_col]

        if not weight_series.dtype.is_numeric():
            raise ValidationError(
                f"Weight column must be numeric, got {weight_series.dtype}",
                field=weight_col,
                details={"dtype": str(weight_series.dtype)}
            )

        null_count = weight_series.null_count()
        if null_count > 0:
            raise ValidationError(
                f"Weight column contains {null_count} null values",
                field=weight_col
            )

        negative_count = int((weight_series < 0).sum())
        if negative_count > 0:
            raise ValidationError(
                f"Weight column contains {negative_count} negative values. "
                f"Minimum weight: {weight_series.min()}",
                field=weight_col,
                details={"min_weight": weight_series.min(), "negative_count": negative_count}
            )

    if not allow_self_loops:
        self_loop_count = int((df[source_col] == df[target_col]).sum())
        if self_loop_count > 0:
            raise ValidationError(
                f"Found {self_loop_count} self-loops (edges from a site to itself)",
                field="edges",
                details={"self_loop_count": self_loop_count}
            )

    if not allow_duplicates:
        duplicate_count = int(df.select([source_col, target_col]).is_duplicated().sum())
        if duplicate_count > 0:
            raise ValidationError(
                f"Found {duplicate_count} duplicate edges (same source-target pairs)",
                field="edges",
                details={"duplicate_count": duplicate_count}
            )


def validate_node_list(
    df: pl.DataFrame,
    id_col: str = "node_id",
    required_cols: Optional[List[str]] = None
) -> None:
    """
    Validate a node list used to decorate site graphs.

    Parameters
    ----------
    df : pl.DataFrame
        Node list, one row per site
    id_col : str, default "node_id"
        Name of the site identifier column
    required_cols : List[str], optional
        Further columns that must be present (e.g. coordinates for a
        geographic layout)

    Raises
    ------
    ValidationError
        If the node list is empty, columns are missing, or identifiers are
        null or duplicated
    """
    if df.is_empty():
        raise ValidationError("Node list is empty", field="nodes")

    missing_cols = [col for col in required_cols or [] if col not in df.columns]
    if missing_cols:
        raise ValidationError(
            f"Node list is missing columns: {missing_cols}",
            field="columns",
            details={"available_columns": df.columns, "missing": missing_cols}
        )

    validate_site_identifiers(df, id_col)

    for col in required_cols or []:
        null_count = df[col].null_count()
        if null_count > 0:
            warnings.warn(
                f"Node list column '{col}' has {null_count} null values; "
                "affected sites will be skipped where the column is needed."
            )
