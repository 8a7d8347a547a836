"""
Whole-graph metrics for site networks.

Each metric is a small function over a networkit graph; calculate_graph_metrics
combines them into a single report. Path-based metrics use hop counts and
ignore co-presence weights.
"""

import math
import sys
from typing import Any, Dict, List, Optional

import networkit as nk

from archNet.common.id_mapper import IDMapper
from archNet.common.exceptions import ComputationError
from archNet.common.logging_config import get_logger, log_function_entry, LoggingTimer

logger = get_logger(__name__)

# networkit reports unreachable nodes with the largest double
_UNREACHABLE = sys.float_info.max


def graph_density(graph: nk.Graph) -> float:
    """
    Share of possible site pairs that are linked: 2E / (N (N - 1)).

    Returns 0.0 for graphs with fewer than two nodes. Self loops are not
    counted as links.
    """
    n = graph.numberOfNodes()
    if n < 2:
        return 0.0
    edges = graph.numberOfEdges() - graph.numberOfSelfLoops()
    return 2.0 * edges / (n * (n - 1))


def _connected_triples(graph: nk.Graph) -> int:
    total = 0
    for node in graph.iterNodes():
        degree = sum(1 for neighbor in graph.iterNeighbors(node) if neighbor != node)
        total += degree * (degree - 1) // 2
    return total


def graph_transitivity(graph: nk.Graph) -> float:
    """
    Global clustering coefficient (share of connected triples that close).

    Returns 0.0 when the graph has no connected triple.

    Raises
    ------
    ComputationError
        If networkit fails
    """
    if _connected_triples(graph) == 0:
        return 0.0

    try:
        value = nk.globals.ClusteringCoefficient.exactGlobal(graph)
    except Exception as e:
        raise ComputationError(
            f"Failed to compute transitivity: {str(e)}",
            operation="graph_transitivity",
            error_type="algorithm",
            cause=e
        )

    return float(value)


def mean_distance(graph: nk.Graph) -> float:
    """
    Mean shortest-path length in hops over reachable pairs of distinct nodes.

    Returns
    -------
    float
        Mean distance, or ``nan`` when no two nodes are connected

    Examples
    --------
    >>> g = nk.Graph(3, weighted=True)
    >>> g.addEdge(0, 1, 2.0); g.addEdge(1, 2, 1.0)
    >>> mean_distance(g)
    1.3333333333333333
    """
    total = 0.0
    pairs = 0

    try:
        for source in graph.iterNodes():
            bfs = nk.distance.BFS(graph, source)
            bfs.run()
            for target, distance in enumerate(bfs.getDistances()):
                if target == source or not math.isfinite(distance) or distance >= _UNREACHABLE:
                    continue
                total += distance
                pairs += 1
    except Exception as e:
        raise ComputationError(
            f"Failed to compute mean distance: {str(e)}",
            operation="mean_distance",
            error_type="algorithm",
            cause=e
        )

    if pairs == 0:
        return float("nan")
    return total / pairs


def _component_node_lists(graph: nk.Graph) -> List[List[int]]:
    try:
        cc = nk.components.ConnectedComponents(graph)
        cc.run()
        return cc.getComponents()
    except Exception as e:
        raise ComputationError(
            f"Failed to compute connected components: {str(e)}",
            operation="connected_components",
            error_type="algorithm",
            cause=e
        )


def count_components(graph: nk.Graph) -> int:
    """Number of connected components, isolated nodes included."""
    if graph.numberOfNodes() == 0:
        return 0
    return len(_component_node_lists(graph))


def connected_components(graph: nk.Graph, id_mapper: IDMapper) -> List[List[Any]]:
    """
    Connected components as lists of site identifiers.

    Each component is sorted by identifier; components are ordered largest
    first, ties broken by their smallest identifier.

    Examples
    --------
    >>> connected_components(graph, mapper)
    [['S1', 'S2', 'S3'], ['S4']]
    """
    if graph.numberOfNodes() == 0:
        return []

    components = [
        sorted(id_mapper.get_original_batch(list(component)))
        for component in _component_node_lists(graph)
    ]
    components.sort(key=lambda c: (-len(c), c[0]))
    return components


def calculate_graph_metrics(
    graph: nk.Graph,
    id_mapper: Optional[IDMapper] = None
) -> Dict[str, Any]:
    """
    Graph-level summary of a site network.

    Parameters
    ----------
    graph : nk.Graph
        Site network
    id_mapper : IDMapper, optional
        Unused by the metrics themselves; accepted so callers can pass the
        (graph, mapper) pair returned by the builders unchanged

    Returns
    -------
    Dict[str, Any]
        ``num_nodes``, ``num_edges``, ``density``, ``transitivity``,
        ``mean_distance``, ``mean_degree``, ``num_components``,
        ``largest_component_size``, ``is_connected``, ``num_isolates`` and
        ``total_weight``
    """
    log_function_entry("calculate_graph_metrics",
                       nodes=graph.numberOfNodes(), edges=graph.numberOfEdges())

    with LoggingTimer("calculate_graph_metrics", {"nodes": graph.numberOfNodes()}):
        n = graph.numberOfNodes()
        degrees = [graph.degree(node) for node in graph.iterNodes()]
        components = _component_node_lists(graph) if n > 0 else []

        metrics = {
            "num_nodes": n,
            "num_edges": graph.numberOfEdges(),
            "density": graph_density(graph),
            "transitivity": graph_transitivity(graph),
            "mean_distance": mean_distance(graph),
            "mean_degree": sum(degrees) / n if n > 0 else 0.0,
            "num_components": len(components),
            "largest_component_size": max((len(c) for c in components), default=0),
            "is_connected": len(components) == 1,
            "num_isolates": sum(1 for d in degrees if d == 0),
            "total_weight": float(graph.totalEdgeWeight()),
        }

    logger.info("Graph metrics: %d nodes, %d edges, density %.3f, %d components",
                metrics["num_nodes"], metrics["num_edges"], metrics["density"],
                metrics["num_components"])

    return metrics
