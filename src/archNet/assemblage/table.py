"""
Assemblage table loading and selection.

An assemblage table has one row per site and one numeric column per artefact
type, holding counts. This module loads such tables from CSV files or
DataFrames, selects the type columns by name, restricts tables to a period,
and derives the two presence matrices used by the network builders:

- proportional presence: a type is present when its share of the site's total
  count reaches a threshold in (0, 1]
- raw presence: a type is present when its count exceeds a threshold >= 0

The two rules are deliberately kept separate; they answer different questions
and give different networks for the same table.
"""

from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

import polars as pl

from archNet.common.exceptions import (
    ValidationError,
    DataFormatError,
    DivisionUndefinedError,
    require_in_range
)
from archNet.common.validators import validate_assemblage_table
from archNet.common.logging_config import get_logger, log_function_entry

logger = get_logger(__name__)


def load_assemblage_table(
    source: Union[str, Path, pl.DataFrame],
    site_col: str = "site",
    type_cols: Optional[Sequence[str]] = None,
    period_col: Optional[str] = None
) -> pl.DataFrame:
    """
    Load and validate an assemblage table.

    Parameters
    ----------
    source : Union[str, Path, pl.DataFrame]
        Path to a CSV file or a DataFrame already in memory
    site_col : str, default "site"
        Name of the site identifier column
    type_cols : Sequence[str], optional
        Names of the type count columns. If None, every numeric column other
        than the site and period columns is used.
    period_col : str, optional
        Name of a period column to keep alongside the counts

    Returns
    -------
    pl.DataFrame
        New DataFrame with the site column, the period column (if given) and
        the type columns, in that order

    Raises
    ------
    DataFormatError
        If the file cannot be read or source has an unsupported type
    ValidationError
        If the table fails validation

    Examples
    --------
    >>> table = load_assemblage_table(
    ...     "ceramics.csv",
    ...     site_col="SWSN_Site",
    ...     type_cols=select_type_range(pl.read_csv("ceramics.csv"), "Tusayan_BW", "Kayenta_BW"),
    ...     period_col="period"
    ... )

    Notes
    -----
    Site identifiers must be unique within the returned table. When a table
    holds several periods for the same site, split it by period first (see
    archNet.periods.split_by_period) or load one period at a time.
    """
    log_function_entry("load_assemblage_table", source=type(source).__name__,
                       site_col=site_col, period_col=period_col)

    df = _read_table(source)

    exclude = [period_col] if period_col is not None else []
    if period_col is not None and period_col not in df.columns:
        raise ValidationError(
            "Period column not found",
            field=period_col,
            details={"available_columns": df.columns}
        )

    resolved_types = resolve_type_columns(df, site_col, type_cols, exclude=exclude)

    selected = [site_col] + exclude + resolved_types
    table = df.select(selected)

    if period_col is None:
        validate_assemblage_table(table, site_col, resolved_types)
    else:
        # Sites repeat across periods; check uniqueness within each period
        for _, part in table.group_by(period_col, maintain_order=True):
            validate_assemblage_table(part, site_col, resolved_types)

    logger.info("Loaded assemblage table: %d sites, %d types",
                table.height, len(resolved_types))

    return table


def _read_table(source: Union[str, Path, pl.DataFrame]) -> pl.DataFrame:
    """Read a CSV path into a DataFrame, or pass a DataFrame through."""
    if isinstance(source, pl.DataFrame):
        return source

    if isinstance(source, (str, Path)):
        file_path = Path(source)

        if not file_path.exists():
            raise DataFormatError(
                f"Assemblage file not found: {source}",
                format_type="CSV",
                file_path=str(source)
            )

        logger.debug("Reading assemblage table from %s", file_path)
        try:
            return pl.read_csv(file_path)
        except (pl.exceptions.ComputeError, OSError) as e:
            raise DataFormatError(
                f"Failed to parse CSV file: {e}",
                format_type="CSV",
                file_path=str(source),
                cause=e
            )

    raise DataFormatError(
        f"Invalid assemblage source type: {type(source)}. Expected path or pl.DataFrame",
        format_type="DataFrame"
    )


def resolve_type_columns(
    df: pl.DataFrame,
    site_col: str = "site",
    type_cols: Optional[Sequence[str]] = None,
    exclude: Optional[Sequence[str]] = None
) -> List[str]:
    """
    Decide which columns of a table hold type counts.

    Parameters
    ----------
    df : pl.DataFrame
        Assemblage table
    site_col : str, default "site"
        Name of the site identifier column
    type_cols : Sequence[str], optional
        Explicit type column names. They are checked against the schema and
        returned in the given order.
    exclude : Sequence[str], optional
        Columns never treated as types when inferring (e.g. a period column)

    Returns
    -------
    List[str]
        Type column names

    Raises
    ------
    ValidationError
        If named columns are missing, or no numeric type column is found
    """
    if type_cols is not None:
        type_cols = list(type_cols)
        missing = [col for col in type_cols if col not in df.columns]
        if missing:
            raise ValidationError(
                f"Type columns not found in table: {missing}",
                field="type_cols",
                details={"available_columns": df.columns, "missing": missing}
            )
        return type_cols

    skip = {site_col, *(exclude or [])}
    inferred = [
        name for name, dtype in df.schema.items()
        if name not in skip and dtype.is_numeric()
    ]

    if not inferred:
        raise ValidationError(
            "No numeric type columns found",
            field="type_cols",
            details={"available_columns": df.columns}
        )

    logger.debug("Inferred %d type columns", len(inferred))
    return inferred


def select_type_range(df: pl.DataFrame, first: str, last: str) -> List[str]:
    """
    Names of the columns from ``first`` to ``last`` inclusive.

    Lets callers describe a block of type columns by its bounding names
    rather than by position.

    Examples
    --------
    >>> df = pl.DataFrame({"site": ["A"], "T1": [1], "T2": [0], "T3": [2], "notes": ["x"]})
    >>> select_type_range(df, "T1", "T3")
    ['T1', 'T2', 'T3']
    """
    columns = df.columns
    for name in (first, last):
        if name not in columns:
            raise ValidationError(
                "Column not found",
                field=name,
                details={"available_columns": columns}
            )

    start, end = columns.index(first), columns.index(last)
    if start > end:
        raise ValidationError(
            f"Column '{first}' comes after '{last}'",
            field="type_cols",
            expected="first column before last column"
        )

    return columns[start:end + 1]


def select_period(df: pl.DataFrame, period_col: str, period: Any) -> pl.DataFrame:
    """
    Rows of a single period, without the period column.

    Raises
    ------
    ValidationError
        If the period column is missing or no row belongs to the period
    """
    if period_col not in df.columns:
        raise ValidationError(
            "Period column not found",
            field=period_col,
            details={"available_columns": df.columns}
        )

    subset = df.filter(pl.col(period_col) == period).drop(period_col)
    if subset.is_empty():
        raise ValidationError(
            f"No sites recorded for period {period!r}",
            field=period_col,
            value=period
        )

    return subset


def drop_empty_sites(
    df: pl.DataFrame,
    site_col: str = "site",
    type_cols: Optional[Sequence[str]] = None
) -> pl.DataFrame:
    """
    Remove sites whose counts sum to zero.

    Never applied implicitly: the proportional presence rule rejects such
    sites, and callers who prefer to drop them do so explicitly here.
    """
    type_cols = resolve_type_columns(df, site_col, type_cols)
    total = pl.sum_horizontal([pl.col(col) for col in type_cols])
    kept = df.filter(total > 0)

    dropped = df.height - kept.height
    if dropped:
        logger.info("Dropped %d sites with no recorded types", dropped)

    return kept


def proportional_presence(
    df: pl.DataFrame,
    threshold: float,
    site_col: str = "site",
    type_cols: Optional[Sequence[str]] = None
) -> pl.DataFrame:
    """
    Presence matrix from type proportions.

    A type is present at a site (1) when its count divided by the site's
    total count is at least ``threshold``, absent (0) otherwise.

    Parameters
    ----------
    df : pl.DataFrame
        Assemblage table
    threshold : float
        Minimum proportion for presence, in (0, 1]
    site_col : str, default "site"
        Name of the site identifier column
    type_cols : Sequence[str], optional
        Type column names; inferred when None

    Returns
    -------
    pl.DataFrame
        Site column followed by one Int64 0/1 column per type, rows in input
        order

    Raises
    ------
    ConfigurationError
        If threshold is outside (0, 1]
    ValidationError
        If the table is invalid
    DivisionUndefinedError
        If any site's counts sum to zero

    Examples
    --------
    >>> df = pl.DataFrame({"site": ["A", "B"], "T1": [9, 2], "T2": [1, 2]})
    >>> proportional_presence(df, 0.2)["T2"].to_list()
    [0, 1]
    """
    require_in_range(threshold, "threshold", 0.0, 1.0, low_inclusive=False)
    type_cols = resolve_type_columns(df, site_col, type_cols)
    validate_assemblage_table(df, site_col, type_cols)

    total = pl.sum_horizontal([pl.col(col) for col in type_cols])

    zero_sites = df.filter(total == 0)[site_col].to_list()
    if zero_sites:
        raise DivisionUndefinedError(
            f"Cannot compute type proportions: {len(zero_sites)} sites have no recorded types",
            sites=zero_sites
        )

    return df.select(
        [pl.col(site_col)] +
        [((pl.col(col) / total) >= threshold).cast(pl.Int64).alias(col) for col in type_cols]
    )


def raw_presence(
    df: pl.DataFrame,
    threshold: float = 0,
    site_col: str = "site",
    type_cols: Optional[Sequence[str]] = None
) -> pl.DataFrame:
    """
    Presence matrix from raw counts.

    A type is present at a site (1) when its count is strictly greater than
    ``threshold``. With the default threshold of 0 any recorded item counts.

    Raises
    ------
    ConfigurationError
        If threshold is negative
    ValidationError
        If the table is invalid
    """
    require_in_range(threshold, "presence_threshold", 0.0, float("inf"))
    type_cols = resolve_type_columns(df, site_col, type_cols)
    validate_assemblage_table(df, site_col, type_cols)

    return df.select(
        [pl.col(site_col)] +
        [(pl.col(col) > threshold).cast(pl.Int64).alias(col) for col in type_cols]
    )
