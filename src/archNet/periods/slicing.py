"""
Period slicing for multi-phase assemblage tables.

A multi-period table records the same sites in several chronological phases,
one row per (site, period). This module splits such a table by period and
builds one site network per period, each from that period's counts alone.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import polars as pl
import networkit as nk

from archNet.assemblage.nodes import NODE_ID_COL
from archNet.assemblage.table import resolve_type_columns, select_period
from archNet.network.construction import build_site_network
from archNet.common.id_mapper import IDMapper
from archNet.common.exceptions import NetworkAnalysisError, ValidationError
from archNet.common.logging_config import get_logger, log_function_entry, LoggingTimer

logger = get_logger(__name__)

PeriodNetwork = Tuple[Any, nk.Graph, IDMapper]


def split_by_period(
    table: pl.DataFrame,
    period_col: str,
    periods: Optional[Sequence[Any]] = None
) -> Dict[Any, pl.DataFrame]:
    """
    Split a multi-period table into one sub-table per period.

    Parameters
    ----------
    table : pl.DataFrame
        Assemblage table with a period column
    period_col : str
        Name of the period column
    periods : Sequence[Any], optional
        Periods to extract, in the order wanted (e.g. chronological labels
        that do not sort alphabetically). Defaults to every period in sorted
        order.

    Returns
    -------
    Dict[Any, pl.DataFrame]
        Period label to sub-table without the period column, in period order

    Raises
    ------
    ValidationError
        If the period column is missing or has nulls, or a requested period
        has no rows

    Examples
    --------
    >>> parts = split_by_period(table, "period", periods=["Pueblo I", "Pueblo II"])
    >>> list(parts)
    ['Pueblo I', 'Pueblo II']
    """
    if period_col not in table.columns:
        raise ValidationError(
            "Period column not found",
            field=period_col,
            details={"available_columns": table.columns}
        )

    null_count = table[period_col].null_count()
    if null_count > 0:
        raise ValidationError(
            f"Period column contains {null_count} null values; every row must belong to a period",
            field=period_col,
            details={"null_count": null_count, "total_rows": table.height}
        )

    if periods is None:
        periods = table[period_col].unique().sort().to_list()
    elif len(set(periods)) != len(periods):
        raise ValidationError("Periods must not repeat", field="periods", value=list(periods))

    parts = {period: select_period(table, period_col, period) for period in periods}

    logger.debug("Split table into %d periods", len(parts))
    return parts


def build_period_networks(
    table: pl.DataFrame,
    period_col: str,
    threshold: float,
    method: str = "edgelist",
    site_col: str = "site",
    type_cols: Optional[Sequence[str]] = None,
    periods: Optional[Sequence[Any]] = None,
    nodes: Optional[pl.DataFrame] = None
) -> List[PeriodNetwork]:
    """
    Build one co-presence network per period.

    Parameters
    ----------
    table : pl.DataFrame
        Multi-period assemblage table
    period_col : str
        Name of the period column
    threshold : float
        Presence threshold passed to build_site_network() for every period
    method : str, default "edgelist"
        "edgelist" (raw count threshold) or "matrix" (proportion threshold)
    site_col : str, default "site"
        Name of the site identifier column
    type_cols : Sequence[str], optional
        Type columns; inferred once for the whole table when None
    periods : Sequence[Any], optional
        Periods to build, in order; defaults to all periods sorted
    nodes : pl.DataFrame, optional
        Node list applied to every period; its sites become nodes of every
        period network, so node sets line up across periods

    Returns
    -------
    List[Tuple[Any, nk.Graph, IDMapper]]
        (period, graph, id_mapper) per period, in period order

    Raises
    ------
    NetworkAnalysisError
        Any error raised while building a period's network, with the period
        added to its context
    """
    log_function_entry("build_period_networks", period_col=period_col,
                       threshold=threshold, method=method)

    type_cols = resolve_type_columns(table, site_col, type_cols, exclude=[period_col])
    parts = split_by_period(table, period_col, periods)

    networks = []
    with LoggingTimer("build_period_networks", {"periods": len(parts)}):
        for period, part in parts.items():
            try:
                graph, mapper = build_site_network(
                    part, threshold, method=method, site_col=site_col,
                    type_cols=type_cols, nodes=nodes
                )
            except NetworkAnalysisError as e:
                raise e.add_context(period=period)

            logger.info("Period %s: %d sites, %d links",
                        period, graph.numberOfNodes(), graph.numberOfEdges())
            networks.append((period, graph, mapper))

    return networks


def align_node_ids_across_periods(period_networks: Sequence[PeriodNetwork]) -> pl.DataFrame:
    """
    Union of sites over all periods with a presence flag per period.

    Returns
    -------
    pl.DataFrame
        ``node_id`` plus one Boolean column per period (named ``str(period)``),
        sorted by ``node_id``

    Examples
    --------
    >>> align_node_ids_across_periods(networks)
    shape: (3, 3)
    ┌─────────┬───────┬───────┐
    │ node_id ┆ Early ┆ Late  │
    ╞═════════╪═══════╪═══════╡
    │ S1      ┆ true  ┆ false │
    │ S2      ┆ true  ┆ true  │
    │ S3      ┆ false ┆ true  │
    └─────────┴───────┴───────┘
    """
    if not period_networks:
        raise ValidationError("period_networks cannot be empty", field="period_networks")

    members = {period: set(mapper.original_ids()) for period, _, mapper in period_networks}
    all_sites = sorted(set().union(*members.values()))

    data = {NODE_ID_COL: all_sites}
    for period, sites in members.items():
        data[str(period)] = pl.Series([site in sites for site in all_sites], dtype=pl.Boolean)

    return pl.DataFrame(data)
