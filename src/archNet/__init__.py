"""
archNet - co-presence networks of archaeological sites.

Builds site networks from artefact assemblage tables: two sites are linked
when they share artefact types, weighted by how many they share.

Modules:
    common: Shared utilities for ID mapping, validation, errors and logging
    assemblage: Loading assemblage tables, presence rules and node lists
    network: Co-presence builders, graph construction, metrics and export
    periods: Per-period networks and their comparison
"""

__version__ = "0.1.0"

from .common import IDMapper, setup_logging
from .assemblage import load_assemblage_table, build_node_list
from .network import (
    build_copresence_matrix,
    build_edgelist,
    build_site_network,
    extract_centrality,
    calculate_graph_metrics,
    export_graph
)
from .periods import build_period_networks, compare_period_metrics
