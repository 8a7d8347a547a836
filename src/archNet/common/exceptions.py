"""
Custom exception hierarchy for the archNet library.

This module defines the exceptions raised while turning assemblage tables into
co-presence networks and analysing them. Every exception carries a readable
message plus optional structured details, so callers can either show the error
to a user or inspect it programmatically.

Input problems are split in two families:
- ValidationError: the data itself is unusable (empty tables, missing columns,
  duplicate site identifiers, negative counts)
- ConfigurationError: a parameter value is unusable (threshold out of range,
  unknown metric or layout name)
"""

from typing import Dict, Any, Optional, List, Union, Sequence
import numbers
import traceback


class NetworkAnalysisError(Exception):
    """
    Base exception for all archNet errors.

    Catching this class catches every error raised deliberately by the library.

    Parameters
    ----------
    message : str
        Human-readable error message describing what went wrong
    details : Dict[str, Any], optional
        Additional structured information about the error
    cause : Exception, optional
        The underlying exception that caused this error
    context : Dict[str, Any], optional
        Additional context about the operation that failed

    Attributes
    ----------
    message : str
        The error message
    details : Dict[str, Any]
        Additional error details
    cause : Exception, optional
        The underlying cause
    context : Dict[str, Any]
        Operation context

    Examples
    --------
    >>> raise NetworkAnalysisError("Graph construction failed")
    >>> raise NetworkAnalysisError(
    ...     "Invalid network size",
    ...     details={"sites": 0, "types": 12}
    ... )
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        self.message = message
        self.details = details or {}
        self.cause = cause
        self.context = context or {}

        full_message = message

        if self.details:
            detail_parts = []
            for key, value in self.details.items():
                if isinstance(value, (list, dict)) and len(str(value)) > 100:
                    # Truncate long collections
                    detail_parts.append(f"{key}=<{type(value).__name__} with {len(value)} items>")
                else:
                    detail_parts.append(f"{key}={value}")

            if detail_parts:
                full_message += f" (Details: {', '.join(detail_parts)})"

        if self.context:
            context_parts = [f"{k}={v}" for k, v in self.context.items()]
            if context_parts:
                full_message += f" (Context: {', '.join(context_parts)})"

        super().__init__(full_message)

        if cause is not None:
            self.__cause__ = cause

    def add_context(self, **kwargs: Any) -> 'NetworkAnalysisError':
        """
        Add additional context to the exception.

        Returns
        -------
        NetworkAnalysisError
            Self, for method chaining

        Examples
        --------
        >>> error = NetworkAnalysisError("Failed")
        >>> error.add_context(operation="build_edgelist", period="Late")
        """
        self.context.update(kwargs)
        return self

    def get_debug_info(self) -> Dict[str, Any]:
        """Return all available error information as a dictionary."""
        return {
            "exception_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "traceback": traceback.format_exc() if hasattr(self, '__traceback__') else None
        }


class ValidationError(NetworkAnalysisError):
    """
    Exception raised for input data that cannot be processed.

    Raised for empty assemblage tables, missing or non-numeric type columns,
    null, duplicate or non-orderable site identifiers and negative counts.

    Parameters
    ----------
    message : str
        Descriptive error message explaining the validation failure
    field : str, optional
        Name of the field or column that failed validation
    value : Any, optional
        The invalid value that caused the error
    expected : str, optional
        Description of what was expected
    details : Dict[str, Any], optional
        Additional details about the validation failure

    Examples
    --------
    >>> raise ValidationError("Site column contains null values", field="site")
    >>> raise ValidationError(
    ...     "Duplicate site identifiers",
    ...     field="site",
    ...     value=["Pueblo A"],
    ...     expected="unique identifiers"
    ... )
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        expected: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> None:
        self.field = field
        self.value = value
        self.expected = expected

        enhanced_details = details or {}
        if field is not None:
            enhanced_details["field"] = field
        if value is not None:
            enhanced_details["invalid_value"] = value
        if expected is not None:
            enhanced_details["expected"] = expected

        if field:
            enhanced_message = f"Validation error in field '{field}': {message}"
        else:
            enhanced_message = f"Validation error: {message}"

        super().__init__(enhanced_message, details=enhanced_details, **kwargs)


class GraphConstructionError(NetworkAnalysisError):
    """
    Exception raised while building networkit graphs from edge lists or matrices.

    Parameters
    ----------
    message : str
        Description of the graph construction error
    graph_type : str, optional
        Type of graph being constructed (e.g., "weighted", "unweighted")
    node_count : int, optional
        Number of nodes in the graph when error occurred
    edge_count : int, optional
        Number of edges processed when error occurred
    operation : str, optional
        Specific operation that failed (e.g., "add_edges", "create_id_mapping")

    Examples
    --------
    >>> raise GraphConstructionError(
    ...     "Failed to add edges to graph",
    ...     operation="add_edges",
    ...     edge_count=150
    ... )
    """

    def __init__(
        self,
        message: str,
        graph_type: Optional[str] = None,
        node_count: Optional[int] = None,
        edge_count: Optional[int] = None,
        operation: Optional[str] = None,
        **kwargs
    ) -> None:
        self.graph_type = graph_type
        self.node_count = node_count
        self.edge_count = edge_count
        self.operation = operation

        context = {}
        if graph_type:
            context["graph_type"] = graph_type
        if node_count is not None:
            context["node_count"] = node_count
        if edge_count is not None:
            context["edge_count"] = edge_count
        if operation:
            context["operation"] = operation

        super().__init__(message, context=context, **kwargs)


class ConfigurationError(NetworkAnalysisError):
    """
    Exception raised for invalid parameter values.

    Thresholds outside their allowed range, unknown centrality metrics,
    unknown layouts and unknown construction methods all end up here, before
    any computation starts.

    Parameters
    ----------
    message : str
        Description of the configuration error
    parameter : str, optional
        Name of the problematic parameter
    value : Any, optional
        The invalid parameter value
    valid_options : List[Any], optional
        List of valid options for the parameter
    function : str, optional
        Name of the function where the error occurred

    Examples
    --------
    >>> raise ConfigurationError(
    ...     "Invalid construction method",
    ...     parameter="method",
    ...     value="bipartite",
    ...     valid_options=["edgelist", "matrix"]
    ... )
    """

    def __init__(
        self,
        message: str,
        parameter: Optional[str] = None,
        value: Optional[Any] = None,
        valid_options: Optional[List[Any]] = None,
        function: Optional[str] = None,
        **kwargs
    ) -> None:
        self.parameter = parameter
        self.value = value
        self.valid_options = valid_options
        self.function = function

        details = kwargs.get('details', {})
        if parameter:
            details["parameter"] = parameter
        if value is not None:
            details["invalid_value"] = value
        if valid_options:
            details["valid_options"] = valid_options
        if function:
            details["function"] = function

        enhanced_message = message
        if parameter and valid_options:
            enhanced_message += f". Valid options for '{parameter}': {valid_options}"

        kwargs["details"] = details
        super().__init__(enhanced_message, **kwargs)


class ComputationError(NetworkAnalysisError):
    """
    Exception raised when a computation fails.

    Parameters
    ----------
    message : str
        Description of the computational error
    operation : str, optional
        The computational operation that failed
    error_type : str, optional
        Type of computational error (e.g., "numerical", "export")
    resource_info : Dict[str, Any], optional
        Information about the data being processed when the error occurred

    Examples
    --------
    >>> raise ComputationError(
    ...     "Eigenvector centrality failed",
    ...     operation="calculate_eigenvector",
    ...     error_type="numerical"
    ... )
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        error_type: Optional[str] = None,
        resource_info: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> None:
        self.operation = operation
        self.error_type = error_type
        self.resource_info = resource_info or {}

        context = kwargs.get('context', {})
        if operation:
            context["operation"] = operation
        if error_type:
            context["error_type"] = error_type

        details = kwargs.get('details', {})
        details.update(self.resource_info)

        kwargs["details"] = details
        kwargs["context"] = context

        super().__init__(message, **kwargs)


class DivisionUndefinedError(ComputationError):
    """
    Exception raised when a row total of zero reaches a proportional calculation.

    Dividing a site's counts by a zero row total has no defined result. Instead
    of letting NaN values flow into the co-presence matrix, the offending sites
    are reported to the caller.

    Parameters
    ----------
    message : str
        Description of the error
    sites : Sequence[Any], optional
        Identifiers of the sites whose counts sum to zero

    Examples
    --------
    >>> raise DivisionUndefinedError(
    ...     "Cannot compute type proportions",
    ...     sites=["LA 1234"]
    ... )
    """

    def __init__(
        self,
        message: str,
        sites: Optional[Sequence[Any]] = None,
        **kwargs
    ) -> None:
        self.sites = list(sites) if sites is not None else []

        details = kwargs.get('details', {})
        if self.sites:
            details["zero_sum_sites"] = self.sites
            details["zero_sum_count"] = len(self.sites)

        kwargs["details"] = details
        kwargs.setdefault("operation", "row_proportions")
        kwargs.setdefault("error_type", "division_undefined")
        super().__init__(message, **kwargs)


class DataFormatError(ValidationError):
    """
    Exception raised for unreadable files and unsupported input types.

    Parameters
    ----------
    message : str
        Description of the format error
    format_type : str, optional
        Expected format (e.g., "CSV", "DataFrame")
    file_path : str, optional
        Path to the problematic file
    line_number : int, optional
        Line number where error occurred (for file parsing)

    Examples
    --------
    >>> raise DataFormatError(
    ...     "Assemblage file not found",
    ...     format_type="CSV",
    ...     file_path="/data/ceramics.csv"
    ... )
    """

    def __init__(
        self,
        message: str,
        format_type: Optional[str] = None,
        file_path: Optional[str] = None,
        line_number: Optional[int] = None,
        **kwargs
    ) -> None:
        details = kwargs.get('details', {})

        if format_type:
            details["format_type"] = format_type
        if file_path:
            details["file_path"] = file_path
        if line_number is not None:
            details["line_number"] = line_number

        kwargs["details"] = details
        super().__init__(message, **kwargs)


# Convenience functions for common error patterns

def validate_parameter(
    value: Any,
    valid_options: List[Any],
    parameter_name: str,
    function_name: Optional[str] = None
) -> None:
    """
    Validate that a parameter value is in the list of valid options.

    Raises
    ------
    ConfigurationError
        If value is not in valid_options
    """
    if value not in valid_options:
        raise ConfigurationError(
            f"Invalid value for parameter '{parameter_name}': {value}",
            parameter=parameter_name,
            value=value,
            valid_options=valid_options,
            function=function_name
        )


def require_positive(
    value: Union[int, float],
    parameter_name: str,
    allow_zero: bool = False
) -> None:
    """
    Validate that a numeric parameter is positive.

    Parameters
    ----------
    value : Union[int, float]
        The numeric value to validate
    parameter_name : str
        Name of the parameter
    allow_zero : bool, default False
        Whether to allow zero values

    Raises
    ------
    ConfigurationError
        If value is not positive (or non-negative if allow_zero=True)
    """
    if allow_zero and value < 0:
        raise ConfigurationError(
            f"Parameter '{parameter_name}' must be non-negative, got {value}",
            parameter=parameter_name,
            value=value
        )
    elif not allow_zero and value <= 0:
        raise ConfigurationError(
            f"Parameter '{parameter_name}' must be positive, got {value}",
            parameter=parameter_name,
            value=value
        )


def require_in_range(
    value: Union[int, float],
    parameter_name: str,
    low: float,
    high: float,
    low_inclusive: bool = True,
    high_inclusive: bool = True
) -> None:
    """
    Validate that a numeric parameter lies within an interval.

    Parameters
    ----------
    value : Union[int, float]
        The numeric value to validate
    parameter_name : str
        Name of the parameter
    low, high : float
        Interval bounds
    low_inclusive, high_inclusive : bool, default True
        Whether each bound belongs to the interval

    Raises
    ------
    ConfigurationError
        If value is not a real number or falls outside the interval

    Examples
    --------
    >>> require_in_range(0.1, "threshold", 0.0, 1.0, low_inclusive=False)
    >>> require_in_range(0.0, "threshold", 0.0, 1.0, low_inclusive=False)  # doctest: +SKIP
    ConfigurationError: Parameter 'threshold' must be in (0.0, 1.0], got 0.0
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(
            f"Parameter '{parameter_name}' must be a number, got {type(value).__name__}",
            parameter=parameter_name,
            value=value
        )

    above_low = value >= low if low_inclusive else value > low
    below_high = value <= high if high_inclusive else value < high

    # NaN fails both comparisons
    if not (above_low and below_high):
        interval = (
            f"{'[' if low_inclusive else '('}{low}, "
            f"{high}{']' if high_inclusive else ')'}"
        )
        raise ConfigurationError(
            f"Parameter '{parameter_name}' must be in {interval}, got {value}",
            parameter=parameter_name,
            value=value
        )
