"""
Site network construction and analysis module.

This module provides core network analysis capabilities:
- Co-presence matrices and edge lists from assemblage tables
- Graph construction from edge lists, matrices and assemblage tables
- Centrality measure calculations (degree, strength, eigenvector, betweenness, closeness, pagerank)
- Graph-level metrics (density, transitivity, mean distance, components)
- Graph export to GEXF, GraphML, CSV and Parquet

Plotting lives in ``archNet.network.visualization`` and needs the ``viz`` extra.
"""

# Co-presence builders
from .copresence import (
    build_copresence_matrix,
    build_edgelist,
    matrix_to_edgelist,
    matrix_values
)

# Network construction functions
from .construction import (
    build_graph_from_edgelist,
    build_graph_from_matrix,
    build_site_network,
    get_graph_info,
    graph_to_edgelist
)

# Network analysis functions
from .analysis import (
    extract_centrality,
    get_centrality_summary,
    identify_central_nodes,
    compare_centrality_metrics
)

# Graph-level metrics
from .metrics import (
    graph_density,
    graph_transitivity,
    mean_distance,
    connected_components,
    count_components,
    calculate_graph_metrics
)

from .export import export_graph, write_edgelist, write_copresence_matrix
