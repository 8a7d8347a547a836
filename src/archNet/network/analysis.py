"""
Network analysis module for the archNet library.

This module computes node centralities for site networks. Centralities built
on shortest paths (betweenness, closeness) count hops and ignore co-presence
weights, because a heavier edge means more similar sites, not a longer path.
Strength, eigenvector and PageRank use the weights.
"""

from typing import List, Dict, Any, Optional, Sequence
import warnings

import polars as pl
import networkit as nk
import numpy as np
from scipy.stats import spearmanr

from archNet.common.id_mapper import IDMapper
from archNet.common.exceptions import (
    ComputationError,
    ConfigurationError,
    ValidationError,
    validate_parameter,
    require_positive
)
from archNet.common.logging_config import get_logger, log_function_entry, LoggingTimer

logger = get_logger(__name__)

# Available centrality metrics and their implementations
AVAILABLE_METRICS = [
    "degree", "strength", "eigenvector", "betweenness", "closeness", "pagerank"
]

DEFAULT_METRICS = ("degree", "strength", "eigenvector", "betweenness")


def extract_centrality(
    graph: nk.Graph,
    id_mapper: IDMapper,
    metrics: Sequence[str] = DEFAULT_METRICS,
    normalized: bool = True
) -> pl.DataFrame:
    """
    Calculate centrality metrics for all sites of a network.

    Parameters
    ----------
    graph : nk.Graph
        Site network for which to calculate centrality metrics
    id_mapper : IDMapper
        Mapping between site identifiers and node ids
    metrics : Sequence[str], default ("degree", "strength", "eigenvector", "betweenness")
        Centrality metrics to calculate. Available options:
        - "degree": number of linked sites
        - "strength": sum of co-presence weights on a site's links
        - "eigenvector": importance based on the importance of linked sites
        - "betweenness": share of shortest hop paths passing through a site
        - "closeness": harmonic closeness over hop distances
        - "pagerank": random-walk probability over weighted links
    normalized : bool, default True
        Whether to scale scores so they are comparable across networks of
        different sizes. Degree is divided by N - 1; strength, eigenvector
        and PageRank by their maximum; betweenness and closeness use the
        networkit normalisation.

    Returns
    -------
    pl.DataFrame
        ``node_id`` plus one ``{metric}_centrality`` Float64 column per
        requested metric, sorted by ``node_id``

    Raises
    ------
    ConfigurationError
        If no metric or an unknown metric is requested
    ComputationError
        If a centrality calculation fails

    Examples
    --------
    >>> graph, mapper = build_site_network(table, threshold=0)
    >>> centrality_df = extract_centrality(graph, mapper, ["degree", "strength"])
    >>> centrality_df.columns
    ['node_id', 'degree_centrality', 'strength_centrality']

    Notes
    -----
    Isolated sites get 0.0 for every metric except PageRank, which gives
    them the teleport share before normalisation.
    """
    metrics = list(metrics)
    log_function_entry("extract_centrality",
                       n_nodes=graph.numberOfNodes(),
                       metrics=metrics,
                       normalized=normalized)

    _validate_centrality_parameters(metrics)

    if graph.numberOfNodes() == 0:
        warnings.warn("Empty graph provided. Returning empty DataFrame.")
        schema = {"node_id": pl.String}
        schema.update({f"{metric}_centrality": pl.Float64 for metric in metrics})
        return pl.DataFrame(schema=schema)

    with LoggingTimer("extract_centrality", {"metrics": metrics, "nodes": graph.numberOfNodes()}):
        try:
            centrality_data = _calculate_centralities(graph, metrics, normalized)
            result_df = _create_centrality_dataframe(centrality_data, id_mapper)

            logger.info("Centrality calculation completed: %d nodes, %d metrics",
                        len(result_df), len(metrics))

            return result_df

        except Exception as e:
            if isinstance(e, (ConfigurationError, ComputationError)):
                raise
            raise ComputationError(
                f"Centrality calculation failed: {str(e)}",
                operation="extract_centrality",
                error_type="computation",
                resource_info={"nodes": graph.numberOfNodes(), "edges": graph.numberOfEdges()},
                cause=e
            )


def _validate_centrality_parameters(metrics: List[str]) -> None:
    if not metrics:
        raise ConfigurationError(
            "At least one centrality metric must be specified",
            parameter="metrics",
            valid_options=AVAILABLE_METRICS,
            function="extract_centrality"
        )

    for metric in metrics:
        validate_parameter(metric, AVAILABLE_METRICS, "metrics", "extract_centrality")


def _calculate_centralities(
    graph: nk.Graph,
    metrics: List[str],
    normalized: bool
) -> Dict[str, np.ndarray]:
    """Calculate each requested metric in turn."""
    centrality_data = {}

    for metric in metrics:
        logger.debug("Calculating %s centrality", metric)
        with LoggingTimer(f"{metric}_centrality", {"nodes": graph.numberOfNodes()}):
            centrality_data[metric] = _calculate_single_centrality(graph, metric, normalized)

    return centrality_data


def _scale_by_max(values: np.ndarray) -> np.ndarray:
    max_val = np.max(values) if len(values) > 0 else 0.0
    return values / max_val if max_val > 0 else values


def _calculate_single_centrality(
    graph: nk.Graph,
    metric: str,
    normalized: bool
) -> np.ndarray:
    """
    Calculate a single centrality metric using networkit.

    Returns
    -------
    np.ndarray
        Centrality values indexed by node id

    Raises
    ------
    ComputationError
        If the networkit algorithm fails
    """
    n = graph.numberOfNodes()
    has_edges = graph.numberOfEdges() > 0

    try:
        if metric == "degree":
            values = np.array([graph.degree(v) for v in graph.iterNodes()], dtype=float)
            if normalized and n > 1:
                values = values / (n - 1)

        elif metric == "strength":
            values = np.array([graph.weightedDegree(v) for v in graph.iterNodes()], dtype=float)
            if normalized:
                values = _scale_by_max(values)

        elif metric == "eigenvector":
            if not has_edges:
                values = np.zeros(n)
            else:
                ec = nk.centrality.EigenvectorCentrality(graph)
                ec.run()
                values = np.array(ec.scores(), dtype=float)
                if normalized:
                    values = _scale_by_max(values)

        elif metric == "betweenness":
            bc = nk.centrality.Betweenness(nk.graphtools.toUnweighted(graph), normalized=normalized)
            bc.run()
            values = np.array(bc.scores(), dtype=float)

        elif metric == "closeness":
            cc = nk.centrality.HarmonicCloseness(nk.graphtools.toUnweighted(graph), normalized=normalized)
            cc.run()
            values = np.array(cc.scores(), dtype=float)

        elif metric == "pagerank":
            pr = nk.centrality.PageRank(graph, 0.85)
            pr.run()
            values = np.array(pr.scores(), dtype=float)
            if normalized:
                values = _scale_by_max(values)

        else:
            raise ValueError(f"Unknown centrality metric: {metric}")

    except Exception as e:
        raise ComputationError(
            f"Failed to calculate {metric} centrality: {str(e)}",
            operation=f"calculate_{metric}",
            error_type="numerical" if "convergence" in str(e).lower() else "computation",
            cause=e
        )

    # Eigenvector iterations on disconnected graphs can leave NaN entries
    values = np.nan_to_num(values, nan=0.0, posinf=1.0, neginf=0.0)
    return np.clip(values, 0.0, None)


def _create_centrality_dataframe(
    centrality_data: Dict[str, np.ndarray],
    id_mapper: IDMapper
) -> pl.DataFrame:
    """Build the node_id / centrality DataFrame, sorted by node_id."""
    n_nodes = id_mapper.size()
    df_data = {"node_id": id_mapper.get_original_batch(list(range(n_nodes)))}

    for metric, values in centrality_data.items():
        if len(values) != n_nodes:
            raise ComputationError(
                f"{metric} returned {len(values)} scores for {n_nodes} nodes",
                operation=f"calculate_{metric}",
                error_type="shape_mismatch"
            )
        df_data[f"{metric}_centrality"] = pl.Series(values.tolist(), dtype=pl.Float64)

    return pl.DataFrame(df_data).sort("node_id")


def get_centrality_summary(centrality_df: pl.DataFrame) -> Dict[str, Any]:
    """
    Get summary statistics for centrality measures.

    Examples
    --------
    >>> summary = get_centrality_summary(extract_centrality(graph, mapper, ["degree"]))
    >>> summary["degree_centrality"]["max"]
    1.0
    """
    summary = {}

    centrality_cols = [col for col in centrality_df.columns if col.endswith("_centrality")]

    for col in centrality_cols:
        values = centrality_df[col]

        summary[col] = {
            "count": len(values),
            "mean": float(values.mean()),
            "std": float(values.std()),
            "min": float(values.min()),
            "max": float(values.max()),
            "median": float(values.median()),
            "q25": float(values.quantile(0.25)),
            "q75": float(values.quantile(0.75))
        }

    return summary


def _require_metric_column(centrality_df: pl.DataFrame, metric: str) -> None:
    if metric not in centrality_df.columns:
        available_metrics = [col for col in centrality_df.columns if col.endswith("_centrality")]
        raise ValidationError(
            f"Metric '{metric}' not found in DataFrame. "
            f"Available metrics: {available_metrics}",
            field=metric,
            expected=available_metrics
        )


def identify_central_nodes(
    centrality_df: pl.DataFrame,
    metric: str = "degree_centrality",
    top_k: int = 10,
    threshold: Optional[float] = None
) -> List[Any]:
    """
    Identify the most central sites for one centrality metric.

    Parameters
    ----------
    centrality_df : pl.DataFrame
        DataFrame returned by extract_centrality()
    metric : str, default "degree_centrality"
        Centrality column to rank by
    top_k : int, default 10
        Number of sites to return
    threshold : float, optional
        If given, only sites with centrality >= threshold are returned

    Returns
    -------
    List[Any]
        Site identifiers in descending order of centrality; ties keep
        identifier order
    """
    _require_metric_column(centrality_df, metric)
    require_positive(top_k, "top_k")

    result = centrality_df.sort([metric, "node_id"], descending=[True, False])

    if threshold is not None:
        result = result.filter(pl.col(metric) >= threshold)

    return result.head(top_k)["node_id"].to_list()


def compare_centrality_metrics(
    centrality_df: pl.DataFrame,
    metric1: str,
    metric2: str
) -> Dict[str, float]:
    """
    Compare two centrality metrics by Pearson and Spearman correlation.

    Correlations that are undefined (constant columns, fewer than two
    sites) are reported as 0.0.

    Examples
    --------
    >>> correlation = compare_centrality_metrics(
    ...     centrality_df, "degree_centrality", "betweenness_centrality"
    ... )
    >>> print(f"Pearson correlation: {correlation['pearson']:.3f}")
    """
    _require_metric_column(centrality_df, metric1)
    _require_metric_column(centrality_df, metric2)

    values1 = centrality_df[metric1].to_numpy()
    values2 = centrality_df[metric2].to_numpy()

    return score_correlations(values1, values2)


def score_correlations(values1: np.ndarray, values2: np.ndarray) -> Dict[str, float]:
    """Pearson and Spearman correlation of two score arrays; undefined results map to 0.0."""
    n = len(values1)
    if n < 2 or np.std(values1) == 0 or np.std(values2) == 0:
        return {"pearson": 0.0, "spearman": 0.0, "n_nodes": n}

    pearson_corr = np.corrcoef(values1, values2)[0, 1]
    spearman_corr, _ = spearmanr(values1, values2)

    return {
        "pearson": float(pearson_corr) if not np.isnan(pearson_corr) else 0.0,
        "spearman": float(spearman_corr) if not np.isnan(spearman_corr) else 0.0,
        "n_nodes": n
    }
