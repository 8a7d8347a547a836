"""
Common utilities for the archNet library.

This module provides shared functionality used across all other modules:
- Custom exception hierarchy
- Input validation for assemblage tables, edge lists and node lists
- Logging configuration
- ID mapping between site identifiers and networkit node ids
"""

from .exceptions import (
    NetworkAnalysisError,
    ValidationError,
    GraphConstructionError,
    ConfigurationError,
    ComputationError,
    DivisionUndefinedError,
    DataFormatError,
    validate_parameter,
    require_positive,
    require_in_range
)

from .id_mapper import IDMapper
from .validators import (
    validate_site_identifiers,
    validate_assemblage_table,
    validate_edgelist_dataframe,
    validate_node_list
)

from .logging_config import (
    setup_logging,
    get_logger,
    configure_external_library_logging,
    log_function_entry,
    log_performance_metric,
    LoggingTimer,
    JSONFormatter,
    PerformanceFilter
)
