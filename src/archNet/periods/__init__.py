"""
Period analysis: splitting multi-period tables and comparing period networks.
"""

from .slicing import (
    split_by_period,
    build_period_networks,
    align_node_ids_across_periods
)
from .comparison import (
    compare_period_metrics,
    extract_period_centrality,
    compare_period_centrality,
    edge_overlap
)
