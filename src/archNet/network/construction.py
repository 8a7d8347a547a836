"""
Network construction module for the archNet library.

This module builds undirected, weighted networkit graphs from co-presence edge
lists or matrices while preserving the original site identifiers through an
IDMapper. Sites from a node list that share nothing with any other site still
become (isolated) nodes, so that graph-level metrics such as density are
computed over every site of the assemblage.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
import warnings

import polars as pl
import networkit as nk

from archNet.assemblage.nodes import NODE_ID_COL, node_list_from_table
from archNet.common.id_mapper import IDMapper
from archNet.common.exceptions import (
    NetworkAnalysisError,
    GraphConstructionError,
    ValidationError,
    DataFormatError,
    validate_parameter
)
from archNet.common.validators import validate_edgelist_dataframe, validate_node_list
from archNet.common.logging_config import get_logger, log_function_entry, LoggingTimer
from archNet.network.copresence import (
    EDGE_SOURCE_COL,
    EDGE_TARGET_COL,
    EDGE_WEIGHT_COL,
    build_copresence_matrix,
    build_edgelist,
    matrix_to_edgelist,
    matrix_values,
)

logger = get_logger(__name__)

CONSTRUCTION_METHODS = ["edgelist", "matrix"]


def build_graph_from_edgelist(
    edgelist: Union[str, Path, pl.DataFrame],
    source_col: str = EDGE_SOURCE_COL,
    target_col: str = EDGE_TARGET_COL,
    weight_col: Optional[str] = EDGE_WEIGHT_COL,
    nodes: Optional[pl.DataFrame] = None,
    node_id_col: str = NODE_ID_COL,
    allow_self_loops: bool = False
) -> Tuple[nk.Graph, IDMapper]:
    """
    Construct an undirected, weighted networkit graph from an edge list.

    Parameters
    ----------
    edgelist : Union[str, Path, pl.DataFrame]
        Path to a CSV file or DataFrame containing edge data
    source_col : str, default "from"
        Name of the source site column
    target_col : str, default "to"
        Name of the target site column
    weight_col : str, optional, default "weight"
        Name of the edge weight column. If None, every record has weight 1
        and repeated pairs add up.
    nodes : pl.DataFrame, optional
        Node list. Every site in it becomes a node, whether or not it has
        edges.
    node_id_col : str, default "node_id"
        Identifier column of the node list
    allow_self_loops : bool, default False
        If False, records linking a site to itself are dropped

    Returns
    -------
    graph : nk.Graph
        Undirected weighted graph
    id_mapper : IDMapper
        Mapping between site identifiers and node ids; node ids follow the
        sorted order of the identifiers

    Raises
    ------
    ValidationError
        If the edge list or node list is invalid, or their identifiers cannot
        be compared
    DataFormatError
        If the input file cannot be read
    GraphConstructionError
        If networkit fails to build the graph

    Examples
    --------
    >>> edges = pl.DataFrame({"from": ["S1", "S2"], "to": ["S2", "S3"], "weight": [1, 1]})
    >>> graph, mapper = build_graph_from_edgelist(edges)
    >>> graph.numberOfNodes(), graph.numberOfEdges()
    (3, 2)

    Notes
    -----
    Records for the same unordered pair, in either orientation, are merged
    into one edge whose weight is the sum of their weights.
    """
    log_function_entry("build_graph_from_edgelist",
                       edgelist=type(edgelist).__name__,
                       has_nodes=nodes is not None)

    with LoggingTimer("build_graph_from_edgelist"):
        try:
            df = _load_edge_list(edgelist)

            validate_edgelist_dataframe(df, source_col, target_col, weight_col)
            if nodes is not None:
                validate_node_list(nodes, node_id_col)

            processed = _process_edges(df, source_col, target_col, weight_col, allow_self_loops)

            id_mapper = _create_id_mapping(processed, nodes, node_id_col)

            if id_mapper.is_empty():
                warnings.warn("Empty edge list provided. Creating empty graph.")
                return nk.Graph(0, weighted=True, directed=False), id_mapper

            graph = _construct_graph(processed, id_mapper)

            logger.info("Graph construction completed: %d nodes, %d edges",
                        graph.numberOfNodes(), graph.numberOfEdges())

            return graph, id_mapper

        except Exception as e:
            if isinstance(e, NetworkAnalysisError):
                raise
            raise GraphConstructionError(
                f"Unexpected error during graph construction: {str(e)}",
                operation="build_graph_from_edgelist",
                cause=e
            )


def build_graph_from_matrix(
    matrix: pl.DataFrame,
    site_col: str = "site"
) -> Tuple[nk.Graph, IDMapper]:
    """
    Construct a graph from a co-presence matrix.

    Every row of the matrix becomes a node; non-zero cells above the diagonal
    become weighted edges.

    Examples
    --------
    >>> matrix = build_copresence_matrix(table, threshold=0.1)
    >>> graph, mapper = build_graph_from_matrix(matrix)
    """
    _, sites = matrix_values(matrix, site_col)
    edges = matrix_to_edgelist(matrix, site_col)
    nodes = pl.DataFrame({NODE_ID_COL: pl.Series(sites, dtype=matrix[site_col].dtype)})

    return build_graph_from_edgelist(edges, nodes=nodes)


def build_site_network(
    table: pl.DataFrame,
    threshold: float,
    method: str = "edgelist",
    site_col: str = "site",
    type_cols: Optional[Sequence[str]] = None,
    nodes: Optional[pl.DataFrame] = None
) -> Tuple[nk.Graph, IDMapper]:
    """
    Build a co-presence graph straight from an assemblage table.

    Parameters
    ----------
    table : pl.DataFrame
        Assemblage table
    threshold : float
        Presence threshold. Interpreted by the chosen method: a raw count
        (count > threshold) for "edgelist", a proportion (share >= threshold,
        in (0, 1]) for "matrix".
    method : str, default "edgelist"
        "edgelist" uses build_edgelist(); "matrix" uses
        build_copresence_matrix()
    site_col : str, default "site"
        Name of the site identifier column
    type_cols : Sequence[str], optional
        Names of the type count columns
    nodes : pl.DataFrame, optional
        Node list with a ``node_id`` column. Sites of the table missing from
        it are added.

    Returns
    -------
    Tuple[nk.Graph, IDMapper]
        Graph with one node per site

    Raises
    ------
    ConfigurationError
        If method is unknown or the threshold is invalid for it
    """
    validate_parameter(method, CONSTRUCTION_METHODS, "method", "build_site_network")

    if method == "edgelist":
        edges = build_edgelist(table, threshold, site_col=site_col, type_cols=type_cols)
    else:
        matrix = build_copresence_matrix(table, threshold, site_col=site_col, type_cols=type_cols)
        edges = matrix_to_edgelist(matrix, site_col)

    table_nodes = node_list_from_table(table, site_col).select(NODE_ID_COL)
    if nodes is not None:
        validate_node_list(nodes, NODE_ID_COL)
        table_nodes, listed = _align_node_id_dtypes(table_nodes, nodes.select(NODE_ID_COL))
        extra = table_nodes.join(listed, on=NODE_ID_COL, how="anti")
        all_nodes = pl.concat([listed, extra])
    else:
        all_nodes = table_nodes

    return build_graph_from_edgelist(edges, nodes=all_nodes)


def _align_node_id_dtypes(
    table_nodes: pl.DataFrame,
    listed: pl.DataFrame
) -> Tuple[pl.DataFrame, pl.DataFrame]:
    """
    Bring the table's sites and the node list to one identifier dtype.

    Integer identifiers of different widths are widened to Int64; any other
    mismatch cannot be compared.

    Raises
    ------
    ValidationError
        If the table and node list identifiers are of incompatible types
    """
    table_dtype = table_nodes[NODE_ID_COL].dtype
    listed_dtype = listed[NODE_ID_COL].dtype

    if table_dtype == listed_dtype:
        return table_nodes, listed

    if table_dtype.is_integer() and listed_dtype.is_integer():
        widen = pl.col(NODE_ID_COL).cast(pl.Int64)
        return table_nodes.with_columns(widen), listed.with_columns(widen)

    raise ValidationError(
        f"Site identifiers of table ({table_dtype}) and node list ({listed_dtype}) "
        "cannot be compared; use the same identifier type throughout",
        field="node_id",
        details={"table_dtype": str(table_dtype), "node_list_dtype": str(listed_dtype)}
    )


def _load_edge_list(edgelist: Union[str, Path, pl.DataFrame]) -> pl.DataFrame:
    """Load edge list from a CSV path or return the DataFrame unchanged."""
    if isinstance(edgelist, pl.DataFrame):
        return edgelist

    if isinstance(edgelist, (str, Path)):
        file_path = Path(edgelist)

        if not file_path.exists():
            raise DataFormatError(
                f"Edge list file not found: {edgelist}",
                format_type="CSV",
                file_path=str(edgelist)
            )

        logger.debug("Loading edge list from file: %s", edgelist)
        try:
            return pl.read_csv(file_path)
        except (pl.exceptions.ComputeError, OSError) as e:
            raise DataFormatError(
                f"Failed to parse CSV file: {str(e)}",
                format_type="CSV",
                file_path=str(edgelist),
                cause=e
            )

    raise DataFormatError(
        f"Invalid edgelist type: {type(edgelist)}. Expected path or pl.DataFrame",
        format_type="DataFrame"
    )


def _process_edges(
    df: pl.DataFrame,
    source_col: str,
    target_col: str,
    weight_col: Optional[str],
    allow_self_loops: bool
) -> pl.DataFrame:
    """
    Normalise edges to canonical (from, to, weight) records.

    Orients each record so the smaller identifier comes first, drops self
    loops if requested and sums weights of repeated pairs.
    """
    source, target = pl.col(source_col), pl.col(target_col)
    weight = pl.col(weight_col).cast(pl.Float64) if weight_col is not None else pl.lit(1.0)

    processed = df.select(
        pl.when(source <= target).then(source).otherwise(target).alias(EDGE_SOURCE_COL),
        pl.when(source <= target).then(target).otherwise(source).alias(EDGE_TARGET_COL),
        weight.alias(EDGE_WEIGHT_COL)
    )

    if not allow_self_loops:
        initial_count = processed.height
        processed = processed.filter(pl.col(EDGE_SOURCE_COL) != pl.col(EDGE_TARGET_COL))
        removed_count = initial_count - processed.height
        if removed_count > 0:
            logger.info("Removed %d self-loop edges", removed_count)

    merged = (
        processed
        .group_by([EDGE_SOURCE_COL, EDGE_TARGET_COL])
        .agg(pl.col(EDGE_WEIGHT_COL).sum())
        .sort([EDGE_SOURCE_COL, EDGE_TARGET_COL])
    )

    if merged.height < processed.height:
        logger.debug("Merged %d repeated site pairs", processed.height - merged.height)

    return merged


def _create_id_mapping(
    edges: pl.DataFrame,
    nodes: Optional[pl.DataFrame],
    node_id_col: str
) -> IDMapper:
    """
    Map every site from the edges and the node list to a node id.

    Raises
    ------
    ValidationError
        If edge and node identifiers cannot be compared with each other
    """
    edge_ids = set(edges[EDGE_SOURCE_COL].to_list()) | set(edges[EDGE_TARGET_COL].to_list())
    node_list_ids = set(nodes[node_id_col].to_list()) if nodes is not None else set()

    if nodes is not None:
        missing = edge_ids - node_list_ids
        if missing:
            shown = sorted(map(str, missing))[:5]
            warnings.warn(
                f"{len(missing)} sites appear in edges but not in the node list "
                f"(e.g. {shown}); adding them as nodes."
            )

    try:
        id_mapper = IDMapper.from_ids(edge_ids | node_list_ids)
    except TypeError as e:
        raise ValidationError(
            "Site identifiers of edges and node list cannot be compared; "
            "use the same identifier type throughout",
            field="node_id",
            cause=e
        )

    logger.debug("Created ID mapping for %d sites", id_mapper.size())
    return id_mapper


def _construct_graph(edges: pl.DataFrame, id_mapper: IDMapper) -> nk.Graph:
    """Construct the networkit graph from canonical edges."""
    try:
        graph = nk.Graph(id_mapper.size(), weighted=True, directed=False)

        for row in edges.iter_rows(named=True):
            graph.addEdge(
                id_mapper.get_internal(row[EDGE_SOURCE_COL]),
                id_mapper.get_internal(row[EDGE_TARGET_COL]),
                float(row[EDGE_WEIGHT_COL])
            )

        return graph

    except Exception as e:
        raise GraphConstructionError(
            f"Failed to construct networkit graph: {str(e)}",
            operation="construct_graph",
            graph_type="weighted",
            node_count=id_mapper.size(),
            edge_count=edges.height,
            cause=e
        )


def get_graph_info(graph: nk.Graph, id_mapper: IDMapper) -> Dict[str, Any]:
    """
    Get basic information about a constructed graph.

    Examples
    --------
    >>> graph, mapper = build_site_network(table, threshold=0)
    >>> info = get_graph_info(graph, mapper)
    >>> print(f"Sites: {info['num_nodes']}, Links: {info['num_edges']}")
    """
    from archNet.network.metrics import graph_density, count_components

    return {
        "num_nodes": graph.numberOfNodes(),
        "num_edges": graph.numberOfEdges(),
        "directed": graph.isDirected(),
        "weighted": graph.isWeighted(),
        "num_self_loops": graph.numberOfSelfLoops(),
        "density": graph_density(graph),
        "node_id_mapping_size": id_mapper.size(),
        "is_connected": graph.numberOfNodes() > 0 and count_components(graph) == 1,
    }


def graph_to_edgelist(graph: nk.Graph, id_mapper: IDMapper) -> pl.DataFrame:
    """
    Edges of a site graph as a (from, to, weight) DataFrame with site identifiers.

    Records are oriented so ``from`` is the smaller identifier and sorted by
    (from, to).
    """
    sources: List[Any] = []
    targets: List[Any] = []
    weights: List[float] = []

    for u, v in graph.iterEdges():
        a, b = id_mapper.get_original(u), id_mapper.get_original(v)
        sources.append(min(a, b))
        targets.append(max(a, b))
        weights.append(graph.weight(u, v))

    if not sources:
        id_dtype = pl.Series(id_mapper.original_ids()).dtype
        if id_dtype == pl.Null:
            id_dtype = pl.String
        return pl.DataFrame(schema={EDGE_SOURCE_COL: id_dtype, EDGE_TARGET_COL: id_dtype,
                                    EDGE_WEIGHT_COL: pl.Float64})

    return pl.DataFrame({
        EDGE_SOURCE_COL: sources,
        EDGE_TARGET_COL: targets,
        EDGE_WEIGHT_COL: pl.Series(weights, dtype=pl.Float64),
    }).sort([EDGE_SOURCE_COL, EDGE_TARGET_COL])
