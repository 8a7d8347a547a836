"""
Plotting for site networks and period summaries.

Requires the ``viz`` extra (matplotlib and networkx). The module is not
imported by ``archNet.network`` so the core library works without them.
"""

from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

import matplotlib.pyplot as plt
import networkx as nx
import networkit as nk
import polars as pl

from archNet.common.id_mapper import IDMapper
from archNet.common.exceptions import ValidationError, validate_parameter
from archNet.common.logging_config import get_logger
from archNet.assemblage.nodes import NODE_ID_COL, NAME_COL
from archNet.network.analysis import extract_centrality

logger = get_logger(__name__)

LAYOUTS = ["spring", "circular", "kamada_kawai", "geographic"]

MIN_NODE_SIZE = 100
MAX_NODE_SIZE = 1200


def to_networkx(graph: nk.Graph, id_mapper: IDMapper) -> nx.Graph:
    """Copy a site network into a networkx graph keyed by site identifier."""
    nx_graph = nx.Graph()
    nx_graph.add_nodes_from(id_mapper.get_original_batch(list(graph.iterNodes())))
    for u, v in graph.iterEdges():
        nx_graph.add_edge(id_mapper.get_original(u), id_mapper.get_original(v),
                          weight=graph.weight(u, v))
    return nx_graph


def _geographic_positions(
    nx_graph: nx.Graph,
    nodes: Optional[pl.DataFrame]
) -> Dict[object, Tuple[float, float]]:
    if nodes is None or not {"longitude", "latitude"} <= set(nodes.columns):
        raise ValidationError(
            "Geographic layout needs a node list with longitude and latitude columns",
            field="nodes"
        )

    coords = {
        row[NODE_ID_COL]: (row["longitude"], row["latitude"])
        for row in nodes.iter_rows(named=True)
        if row["longitude"] is not None and row["latitude"] is not None
    }
    missing = [site for site in nx_graph.nodes if site not in coords]
    if missing:
        raise ValidationError(
            f"{len(missing)} sites have no coordinates",
            field="nodes",
            value=missing[:10]
        )
    return {site: coords[site] for site in nx_graph.nodes}


def _node_sizes(
    graph: nk.Graph,
    id_mapper: IDMapper,
    nx_graph: nx.Graph,
    size_by: Optional[str]
) -> Union[float, list]:
    if size_by is None or graph.numberOfNodes() == 0:
        return float(MIN_NODE_SIZE)

    column = f"{size_by}_centrality"
    scores = extract_centrality(graph, id_mapper, metrics=[size_by], normalized=True)
    lookup = dict(zip(scores[NODE_ID_COL].to_list(), scores[column].to_list()))
    top = max(lookup.values()) or 1.0

    return [MIN_NODE_SIZE + (MAX_NODE_SIZE - MIN_NODE_SIZE) * lookup[site] / top
            for site in nx_graph.nodes]


def plot_site_network(
    graph: nk.Graph,
    id_mapper: IDMapper,
    nodes: Optional[pl.DataFrame] = None,
    layout: str = "spring",
    size_by: Optional[str] = "degree",
    ax: Optional[plt.Axes] = None,
    output_path: Optional[Union[str, Path]] = None,
    seed: int = 42
) -> plt.Axes:
    """
    Draw a site network.

    Parameters
    ----------
    graph : nk.Graph
        Site network
    id_mapper : IDMapper
        Mapping between site identifiers and node ids
    nodes : pl.DataFrame, optional
        Node list; its ``name`` column labels the sites and its
        ``longitude``/``latitude`` columns drive the geographic layout
    layout : str, default "spring"
        "spring", "circular", "kamada_kawai" or "geographic"
    size_by : str, optional, default "degree"
        Centrality metric that scales node sizes; None for uniform sizes
    ax : plt.Axes, optional
        Axes to draw on; a new figure is created when None
    output_path : str or Path, optional
        Save the figure here
    seed : int, default 42
        Seed for the spring layout

    Returns
    -------
    plt.Axes
        The axes drawn on

    Raises
    ------
    ConfigurationError
        If layout is unknown
    ValidationError
        If the geographic layout lacks coordinates for some site
    """
    validate_parameter(layout, LAYOUTS, "layout", "plot_site_network")

    nx_graph = to_networkx(graph, id_mapper)

    if layout == "spring":
        pos = nx.spring_layout(nx_graph, seed=seed)
    elif layout == "circular":
        pos = nx.circular_layout(nx_graph)
    elif layout == "kamada_kawai":
        pos = nx.kamada_kawai_layout(nx_graph) if nx_graph.number_of_nodes() > 0 else {}
    else:
        pos = _geographic_positions(nx_graph, nodes)

    if ax is None:
        _, ax = plt.subplots(figsize=(10, 8))

    weights = [data["weight"] for _, _, data in nx_graph.edges(data=True)]
    top_weight = max(weights, default=1.0)
    edge_widths = [0.5 + 3.0 * w / top_weight for w in weights]

    labels = None
    if nodes is not None and NAME_COL in nodes.columns:
        names = dict(zip(nodes[NODE_ID_COL].to_list(), nodes[NAME_COL].to_list()))
        labels = {site: names.get(site, str(site)) for site in nx_graph.nodes}

    nx.draw_networkx_nodes(
        nx_graph, pos, ax=ax,
        node_size=_node_sizes(graph, id_mapper, nx_graph, size_by),
        node_color="#48dbfb",
        linewidths=1,
        edgecolors="black"
    )
    nx.draw_networkx_edges(nx_graph, pos, ax=ax, width=edge_widths, alpha=0.4, edge_color="black")
    nx.draw_networkx_labels(nx_graph, pos, labels=labels, ax=ax, font_size=8)

    if layout == "geographic":
        ax.set_xlabel("Longitude")
        ax.set_ylabel("Latitude")
    else:
        ax.set_axis_off()

    if output_path is not None:
        ax.figure.savefig(output_path, dpi=300, bbox_inches="tight")
        logger.info("Saved network plot to %s", output_path)

    return ax


def plot_period_metrics(
    metrics_df: pl.DataFrame,
    metrics: Sequence[str] = ("density", "transitivity", "mean_distance"),
    ax: Optional[plt.Axes] = None,
    output_path: Optional[Union[str, Path]] = None,
    period_col: str = "period"
) -> plt.Axes:
    """
    Line plot of graph-level metrics across periods.

    ``metrics_df`` is the output of compare_period_metrics(); periods are
    plotted in row order.
    """
    missing = [col for col in [period_col, *metrics] if col not in metrics_df.columns]
    if missing:
        raise ValidationError(
            f"Metrics table is missing columns: {missing}",
            field="metrics",
            details={"available_columns": metrics_df.columns}
        )

    if ax is None:
        _, ax = plt.subplots(figsize=(8, 5))

    periods = [str(p) for p in metrics_df[period_col].to_list()]
    for metric in metrics:
        ax.plot(periods, metrics_df[metric].to_list(), marker="o", label=metric)

    ax.set_xlabel("Period")
    ax.set_ylabel("Value")
    ax.legend()

    if output_path is not None:
        ax.figure.savefig(output_path, dpi=300, bbox_inches="tight")
        logger.info("Saved period metrics plot to %s", output_path)

    return ax
