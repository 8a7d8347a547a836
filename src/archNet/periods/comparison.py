"""
Comparison of site networks across periods.

Works on the (period, graph, id_mapper) triples from build_period_networks():
graph-level metrics per period, node centralities over the full
site x period grid, rank agreement of centralities between two periods, and
overlap of the link sets of two networks.
"""

from typing import Any, Dict, Sequence, Union

import polars as pl

from archNet.assemblage.nodes import NODE_ID_COL
from archNet.network.analysis import extract_centrality, score_correlations
from archNet.network.construction import graph_to_edgelist
from archNet.network.copresence import EDGE_SOURCE_COL, EDGE_TARGET_COL
from archNet.network.metrics import calculate_graph_metrics
from archNet.common.validators import validate_edgelist_dataframe
from archNet.common.exceptions import ValidationError
from archNet.common.logging_config import get_logger, LoggingTimer
from archNet.periods.slicing import PeriodNetwork

logger = get_logger(__name__)

PERIOD_COL = "period"
PRESENT_COL = "present"


def _require_networks(period_networks: Sequence[PeriodNetwork]) -> None:
    if not period_networks:
        raise ValidationError("period_networks cannot be empty", field="period_networks")


def compare_period_metrics(period_networks: Sequence[PeriodNetwork]) -> pl.DataFrame:
    """
    Graph-level metrics for every period, one row per period in input order.

    Columns are ``period`` followed by the keys of calculate_graph_metrics().

    Examples
    --------
    >>> summary = compare_period_metrics(build_period_networks(table, "period", 0))
    >>> summary.select("period", "density", "num_components")
    """
    _require_networks(period_networks)

    rows = []
    with LoggingTimer("compare_period_metrics", {"periods": len(period_networks)}):
        for period, graph, mapper in period_networks:
            rows.append({PERIOD_COL: period, **calculate_graph_metrics(graph, mapper)})

    return pl.DataFrame(rows)


def extract_period_centrality(
    period_networks: Sequence[PeriodNetwork],
    metrics: Sequence[str] = ("degree", "strength")
) -> pl.DataFrame:
    """
    Node centralities across periods on the full site x period grid.

    Parameters
    ----------
    period_networks : Sequence[Tuple[Any, nk.Graph, IDMapper]]
        Output of build_period_networks()
    metrics : Sequence[str], default ("degree", "strength")
        Centrality metrics (see extract_centrality)

    Returns
    -------
    pl.DataFrame
        Columns ``node_id``, ``period``, ``present`` and one Float64 column per
        metric. Every site seen in any period appears in every period; where a
        site is not a node of that period's network, ``present`` is False and
        the metrics are 0.0. Rows follow period input order, then ``node_id``.

    Raises
    ------
    ValidationError
        If period_networks is empty
    ConfigurationError
        If a metric is unknown
    """
    _require_networks(period_networks)
    metrics = list(metrics)

    logger.info("Extracting centrality from %d periods, metrics=%s", len(period_networks), metrics)

    with LoggingTimer("extract_period_centrality"):
        period_frames = []
        for order, (period, graph, mapper) in enumerate(period_networks):
            if graph.numberOfNodes() == 0:
                logger.warning("Empty graph for period %s, no sites to score", period)
                continue

            centrality_df = extract_centrality(graph, mapper, metrics=metrics, normalized=True)
            centrality_df = centrality_df.rename(
                {f"{metric}_centrality": metric for metric in metrics}
            ).with_columns(
                pl.lit(order).alias("__order"),
                pl.lit(True).alias(PRESENT_COL)
            )
            period_frames.append(centrality_df)

        periods = pl.DataFrame({
            "__order": list(range(len(period_networks))),
            PERIOD_COL: [period for period, _, _ in period_networks],
        }).with_columns(pl.col("__order").cast(pl.Int32))

        if not period_frames:
            schema = {NODE_ID_COL: pl.String, PERIOD_COL: periods[PERIOD_COL].dtype,
                      PRESENT_COL: pl.Boolean}
            schema.update({metric: pl.Float64 for metric in metrics})
            return pl.DataFrame(schema=schema)

        combined = pl.concat(period_frames, how="vertical").with_columns(
            pl.col("__order").cast(pl.Int32)
        )
        all_nodes = combined.select(NODE_ID_COL).unique()

        # Complete grid: all sites x all periods
        grid = all_nodes.join(periods, how="cross")
        result = grid.join(combined, on=[NODE_ID_COL, "__order"], how="left")

        result = (
            result
            .with_columns(
                pl.col(PRESENT_COL).fill_null(False),
                *[pl.col(metric).fill_null(0.0) for metric in metrics]
            )
            .sort(["__order", NODE_ID_COL])
            .select([NODE_ID_COL, PERIOD_COL, PRESENT_COL, *metrics])
        )

    logger.info("Extracted period centrality: %d sites, %d periods",
                all_nodes.height, len(period_networks))

    return result


def compare_period_centrality(
    period_centrality: pl.DataFrame,
    period_a: Any,
    period_b: Any,
    metric: str = "degree"
) -> Dict[str, float]:
    """
    Agreement of one centrality between two periods.

    Only sites that are nodes of both period networks are compared.

    Returns
    -------
    Dict[str, float]
        ``pearson``, ``spearman`` and ``n_sites``. Correlations that are
        undefined (fewer than two shared sites, constant scores) are 0.0.

    Raises
    ------
    ValidationError
        If the metric column or either period is missing
    """
    required = [NODE_ID_COL, PERIOD_COL, PRESENT_COL, metric]
    missing = [col for col in required if col not in period_centrality.columns]
    if missing:
        raise ValidationError(
            f"Period centrality table is missing columns: {missing}",
            field="period_centrality",
            details={"available_columns": period_centrality.columns}
        )

    known = set(period_centrality[PERIOD_COL].to_list())
    for period in (period_a, period_b):
        if period not in known:
            raise ValidationError("Period not found", field=PERIOD_COL, value=period)

    def scores(period: Any) -> pl.DataFrame:
        return period_centrality.filter(
            (pl.col(PERIOD_COL) == period) & pl.col(PRESENT_COL)
        ).select(NODE_ID_COL, pl.col(metric))

    shared = scores(period_a).join(scores(period_b), on=NODE_ID_COL, suffix="_b").sort(NODE_ID_COL)

    result = score_correlations(shared[metric].to_numpy(), shared[f"{metric}_b"].to_numpy())
    n_sites = result.pop("n_nodes")
    result["n_sites"] = n_sites

    logger.debug("Compared %s between %s and %s over %d shared sites",
                 metric, period_a, period_b, n_sites)
    return result


def _edge_set(edges: pl.DataFrame) -> set:
    validate_edgelist_dataframe(edges, EDGE_SOURCE_COL, EDGE_TARGET_COL)
    return {
        (min(a, b), max(a, b))
        for a, b in zip(edges[EDGE_SOURCE_COL].to_list(), edges[EDGE_TARGET_COL].to_list())
    }


def edge_overlap(
    edgelist_a: Union[pl.DataFrame, PeriodNetwork],
    edgelist_b: Union[pl.DataFrame, PeriodNetwork]
) -> Dict[str, Union[int, float]]:
    """
    Overlap of the links of two networks, ignoring weights and orientation.

    Each argument is an edge list with ``from``/``to`` columns or a
    (period, graph, id_mapper) triple.

    Returns
    -------
    Dict[str, Union[int, float]]
        ``shared``, ``only_a``, ``only_b`` and ``jaccard`` (shared over
        union; 1.0 when both networks have no links)

    Examples
    --------
    >>> a = pl.DataFrame({"from": ["S1", "S2"], "to": ["S2", "S3"], "weight": [1, 1]})
    >>> b = pl.DataFrame({"from": ["S1"], "to": ["S2"], "weight": [2]})
    >>> edge_overlap(a, b)
    {'shared': 1, 'only_a': 1, 'only_b': 0, 'jaccard': 0.5}
    """
    sets = []
    for edges in (edgelist_a, edgelist_b):
        if isinstance(edges, tuple):
            _, graph, mapper = edges
            edges = graph_to_edgelist(graph, mapper)
        sets.append(_edge_set(edges))

    set_a, set_b = sets
    shared = len(set_a & set_b)
    union = len(set_a | set_b)

    return {
        "shared": shared,
        "only_a": len(set_a - set_b),
        "only_b": len(set_b - set_a),
        "jaccard": shared / union if union else 1.0,
    }
