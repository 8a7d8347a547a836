"""
Assemblage tables: loading, type and period selection, presence rules and
node lists.
"""

from .table import (
    load_assemblage_table,
    resolve_type_columns,
    select_type_range,
    select_period,
    drop_empty_sites,
    proportional_presence,
    raw_presence
)
from .nodes import build_node_list, node_list_from_table, node_ids

__all__ = [
    "load_assemblage_table",
    "resolve_type_columns",
    "select_type_range",
    "select_period",
    "drop_empty_sites",
    "proportional_presence",
    "raw_presence",
    "build_node_list",
    "node_list_from_table",
    "node_ids",
]
