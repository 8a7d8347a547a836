"""
Network export module for the archNet library.

This module writes site networks to GEXF, GraphML, CSV edge lists and Parquet,
keeping the original site identifiers and optionally joining node-list
metadata and centrality scores. It also persists the raw builder outputs
(edge lists and co-presence matrices) as CSV.
"""

import os
from pathlib import Path
from typing import List, Dict, Optional, Union
import xml.etree.ElementTree as ET
from xml.dom import minidom

import polars as pl
import networkit as nk
import numpy as np

from archNet.common.id_mapper import IDMapper
from archNet.common.exceptions import (
    NetworkAnalysisError,
    ComputationError,
    ValidationError
)
from archNet.common.validators import validate_edgelist_dataframe
from archNet.common.logging_config import get_logger, log_function_entry, LoggingTimer
from archNet.assemblage.nodes import NODE_ID_COL, NAME_COL
from archNet.network.construction import graph_to_edgelist
from archNet.network.copresence import (
    EDGE_SOURCE_COL,
    EDGE_TARGET_COL,
    EDGE_WEIGHT_COL,
    matrix_values
)

logger = get_logger(__name__)

# Supported export formats
SUPPORTED_FORMATS = ["gexf", "graphml", "edgelist", "parquet"]

GEXF_NAMESPACE = "http://www.gexf.net/1.2draft"
GRAPHML_NAMESPACE = "http://graphml.graphdrawing.org/xmlns"
CREATOR = "archNet"


def export_graph(
    graph: nk.Graph,
    id_mapper: IDMapper,
    output_path: Union[str, Path],
    format: str = "gexf",
    metadata: Optional[pl.DataFrame] = None,
    include_metrics: Optional[List[str]] = None,
    overwrite: bool = False
) -> str:
    """
    Export a site network with metadata to a file.

    Parameters
    ----------
    graph : nk.Graph
        Site network to export
    id_mapper : IDMapper
        Mapping between site identifiers and node ids
    output_path : Union[str, Path]
        Path for the output file. An extension matching the format is added
        when the path has none.
    format : str, default "gexf"
        Export format, one of:
        - "gexf": Gephi Exchange Format, typed node attributes
        - "graphml": GraphML, typed node attributes
        - "edgelist": CSV edge list; node attributes are joined as
          ``from_<col>`` / ``to_<col>`` columns
        - "parquet": ``<base>_nodes.parquet`` and ``<base>_edges.parquet``
    metadata : pl.DataFrame, optional
        Node list with a ``node_id`` column matching the site identifiers,
        e.g. from build_node_list(). A ``name`` column becomes the node label.
    include_metrics : List[str], optional
        Centrality metrics to calculate and attach (see extract_centrality)
    overwrite : bool, default False
        Replace an existing file. If False, an existing file is an error.

    Returns
    -------
    str
        Path of the written file (the base path for Parquet)

    Raises
    ------
    ValidationError
        If format or metadata are invalid, or the file exists and overwrite
        is False
    ConfigurationError
        If an unknown centrality metric is requested
    ComputationError
        If writing fails

    Examples
    --------
    >>> nodes = build_node_list(sites, name_col="label")
    >>> export_graph(graph, mapper, "chaco_ad1100.gexf", metadata=nodes,
    ...              include_metrics=["degree", "strength"])
    'chaco_ad1100.gexf'
    """
    log_function_entry(
        "export_graph",
        graph_nodes=graph.numberOfNodes(),
        graph_edges=graph.numberOfEdges(),
        format=format,
        output_path=str(output_path),
        has_metadata=metadata is not None,
        include_metrics=include_metrics
    )

    _validate_export_parameters(format, output_path, metadata, include_metrics)

    output_path = _prepare_output_path(output_path, format, overwrite)

    with LoggingTimer("export_graph", {"format": format, "nodes": graph.numberOfNodes(),
                                       "edges": graph.numberOfEdges()}):
        try:
            if graph.numberOfNodes() == 0:
                logger.warning("Empty graph provided. Creating empty export file.")
                node_data = pl.DataFrame(schema={NODE_ID_COL: pl.String})
            else:
                node_data = _prepare_node_data(graph, id_mapper, metadata, include_metrics)

            edge_data = graph_to_edgelist(graph, id_mapper)

            if format == "gexf":
                _export_gexf(node_data, edge_data, output_path)
            elif format == "graphml":
                _export_graphml(node_data, edge_data, output_path)
            elif format == "edgelist":
                _export_edgelist(node_data, edge_data, output_path)
            elif format == "parquet":
                _export_parquet(node_data, edge_data, output_path)

            logger.info("Graph exported successfully to %s", output_path)
            return output_path

        except Exception as e:
            if isinstance(e, NetworkAnalysisError):
                raise
            raise ComputationError(
                f"Graph export failed: {str(e)}",
                operation="export_graph",
                error_type="export_failure",
                context={"format": format, "output_path": output_path},
                cause=e
            )


def _validate_export_parameters(
    format: str,
    output_path: Union[str, Path],
    metadata: Optional[pl.DataFrame],
    include_metrics: Optional[List[str]]
) -> None:
    """Validate export parameters."""
    if format not in SUPPORTED_FORMATS:
        raise ValidationError(
            f"Unsupported export format: {format}. "
            f"Supported formats: {SUPPORTED_FORMATS}",
            field="format",
            value=format,
            expected=SUPPORTED_FORMATS
        )

    if not isinstance(output_path, (str, Path)) or not str(output_path):
        raise ValidationError("output_path must be a non-empty string or Path", field="output_path")

    if metadata is not None:
        if not isinstance(metadata, pl.DataFrame):
            raise ValidationError("metadata must be a Polars DataFrame", field="metadata")
        if NODE_ID_COL not in metadata.columns:
            raise ValidationError(
                f"metadata DataFrame must contain '{NODE_ID_COL}' column",
                field="metadata",
                details={"available_columns": metadata.columns}
            )

    if include_metrics is not None:
        from archNet.network.analysis import _validate_centrality_parameters
        _validate_centrality_parameters(list(include_metrics))


def _prepare_output_path(output_path: Union[str, Path], format: str, overwrite: bool) -> str:
    """Add a default extension, refuse to clobber files and create the parent directory."""
    path = Path(output_path)
    if not path.suffix:
        path = path.with_suffix(".csv" if format == "edgelist" else f".{format}")

    if format == "parquet":
        base = path.with_suffix("")
        targets = [Path(f"{base}_nodes.parquet"), Path(f"{base}_edges.parquet")]
    else:
        targets = [path]

    existing = [str(target) for target in targets if target.exists()]
    if existing and not overwrite:
        raise ValidationError(
            f"File already exists: {existing[0]}. Use overwrite=True to replace it.",
            field="output_path",
            value=existing[0]
        )

    os.makedirs(path.parent, exist_ok=True)

    return str(path)


def _prepare_node_data(
    graph: nk.Graph,
    id_mapper: IDMapper,
    metadata: Optional[pl.DataFrame],
    include_metrics: Optional[List[str]]
) -> pl.DataFrame:
    """Node table: site identifiers, then metadata, then centralities."""
    original_ids = id_mapper.get_original_batch(list(graph.iterNodes()))
    node_data = pl.DataFrame({NODE_ID_COL: original_ids})

    if metadata is not None:
        logger.debug("Adding metadata with %d columns", metadata.width)

        missing_in_metadata = set(original_ids) - set(metadata[NODE_ID_COL].to_list())
        if missing_in_metadata:
            shown = sorted(map(str, missing_in_metadata))[:5]
            logger.warning(
                "Metadata missing for %d sites: %s%s",
                len(missing_in_metadata), shown, "..." if len(missing_in_metadata) > 5 else ""
            )

        node_data = node_data.join(metadata, on=NODE_ID_COL, how="left")

    if include_metrics:
        from archNet.network.analysis import extract_centrality

        logger.debug("Calculating centrality metrics: %s", include_metrics)
        centrality_df = extract_centrality(graph, id_mapper, metrics=include_metrics, normalized=True)
        node_data = node_data.join(centrality_df, on=NODE_ID_COL, how="left")

    return node_data.sort(NODE_ID_COL)


def _attribute_type(dtype: pl.DataType, integer: str, floating: str, boolean: str) -> str:
    if dtype.is_integer():
        return integer
    if dtype.is_float():
        return floating
    if dtype == pl.Boolean:
        return boolean
    return "string"


def _format_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _write_xml(root: ET.Element, output_path: str) -> None:
    xml_str = ET.tostring(root, encoding='unicode')
    pretty_xml = minidom.parseString(xml_str).toprettyxml(indent="  ")

    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(pretty_xml)


def _export_gexf(node_data: pl.DataFrame, edge_data: pl.DataFrame, output_path: str) -> None:
    """Export graph to GEXF format."""
    gexf = ET.Element("gexf", xmlns=GEXF_NAMESPACE, version="1.2")

    meta = ET.SubElement(gexf, "meta", lastmodifieddate=str(np.datetime64('today')))
    ET.SubElement(meta, "creator").text = CREATOR
    ET.SubElement(meta, "description").text = "Site co-presence network"

    graph_elem = ET.SubElement(gexf, "graph", mode="static", defaultedgetype="undirected")

    attributes = ET.SubElement(graph_elem, "attributes", **{"class": "node"})
    attr_map = {}
    for attr_id, (col, dtype) in enumerate(
        (col, dtype) for col, dtype in node_data.schema.items() if col != NODE_ID_COL
    ):
        ET.SubElement(attributes, "attribute", id=str(attr_id), title=col,
                      type=_attribute_type(dtype, "integer", "double", "boolean"))
        attr_map[col] = str(attr_id)

    nodes_elem = ET.SubElement(graph_elem, "nodes")
    for row in node_data.iter_rows(named=True):
        node_id = str(row[NODE_ID_COL])
        label = row.get(NAME_COL) or node_id
        node_elem = ET.SubElement(nodes_elem, "node", id=node_id, label=str(label))

        if attr_map:
            attvalues = ET.SubElement(node_elem, "attvalues")
            for col, attr_id in attr_map.items():
                value = row.get(col)
                if value is not None:
                    ET.SubElement(attvalues, "attvalue", **{"for": attr_id, "value": _format_value(value)})

    edges_elem = ET.SubElement(graph_elem, "edges")
    for i, row in enumerate(edge_data.iter_rows(named=True)):
        ET.SubElement(edges_elem, "edge", id=str(i),
                      source=str(row[EDGE_SOURCE_COL]),
                      target=str(row[EDGE_TARGET_COL]),
                      weight=str(row[EDGE_WEIGHT_COL]))

    _write_xml(gexf, output_path)


def _export_graphml(node_data: pl.DataFrame, edge_data: pl.DataFrame, output_path: str) -> None:
    """Export graph to GraphML format."""
    graphml = ET.Element("graphml", xmlns=GRAPHML_NAMESPACE)

    key_map = {}
    for key_id, (col, dtype) in enumerate(
        (col, dtype) for col, dtype in node_data.schema.items() if col != NODE_ID_COL
    ):
        ET.SubElement(graphml, "key", id=f"n{key_id}",
                      **{"for": "node", "attr.name": col,
                         "attr.type": _attribute_type(dtype, "long", "double", "boolean")})
        key_map[col] = f"n{key_id}"

    ET.SubElement(graphml, "key", id="weight", **{"for": "edge", "attr.name": "weight", "attr.type": "double"})

    graph_elem = ET.SubElement(graphml, "graph", id="G", edgedefault="undirected")

    for row in node_data.iter_rows(named=True):
        node_elem = ET.SubElement(graph_elem, "node", id=str(row[NODE_ID_COL]))

        for col, key_id in key_map.items():
            value = row.get(col)
            if value is not None:
                ET.SubElement(node_elem, "data", key=key_id).text = _format_value(value)

    for i, row in enumerate(edge_data.iter_rows(named=True)):
        edge_elem = ET.SubElement(graph_elem, "edge", id=f"e{i}",
                                  source=str(row[EDGE_SOURCE_COL]),
                                  target=str(row[EDGE_TARGET_COL]))
        ET.SubElement(edge_elem, "data", key="weight").text = str(row[EDGE_WEIGHT_COL])

    _write_xml(graphml, output_path)


def _export_edgelist(node_data: pl.DataFrame, edge_data: pl.DataFrame, output_path: str) -> None:
    """Export graph to CSV, joining node attributes onto both endpoints."""
    attribute_cols = [col for col in node_data.columns if col != NODE_ID_COL]
    if not attribute_cols or edge_data.is_empty():
        edge_data.write_csv(output_path)
        return

    enriched = edge_data
    for endpoint in (EDGE_SOURCE_COL, EDGE_TARGET_COL):
        endpoint_attrs = node_data.rename(
            {NODE_ID_COL: endpoint, **{col: f"{endpoint}_{col}" for col in attribute_cols}}
        )
        enriched = enriched.join(endpoint_attrs, on=endpoint, how="left")

    enriched.write_csv(output_path)


def _export_parquet(node_data: pl.DataFrame, edge_data: pl.DataFrame, output_path: str) -> None:
    """Export graph to Parquet format with separate node and edge files."""
    base_path = Path(output_path).with_suffix("")

    nodes_path = f"{base_path}_nodes.parquet"
    node_data.write_parquet(nodes_path)

    edges_path = f"{base_path}_edges.parquet"
    edge_data.write_parquet(edges_path)

    logger.info("Parquet export created: %s and %s", nodes_path, edges_path)


def write_edgelist(edgelist: pl.DataFrame, output_path: Union[str, Path]) -> str:
    """
    Write a co-presence edge list to CSV.

    Raises
    ------
    ValidationError
        If the edge list lacks ``from``/``to``/``weight`` columns
    ComputationError
        If the file cannot be written
    """
    validate_edgelist_dataframe(edgelist, EDGE_SOURCE_COL, EDGE_TARGET_COL, EDGE_WEIGHT_COL)
    return _write_csv(edgelist, output_path, "write_edgelist")


def write_copresence_matrix(
    matrix: pl.DataFrame,
    output_path: Union[str, Path],
    site_col: str = "site"
) -> str:
    """
    Write a co-presence matrix to CSV, one row per site with its label first.

    Raises
    ------
    ValidationError
        If the matrix is not square or its labels do not match its columns
    ComputationError
        If the file cannot be written
    """
    matrix_values(matrix, site_col)
    return _write_csv(matrix, output_path, "write_copresence_matrix")


def _write_csv(df: pl.DataFrame, output_path: Union[str, Path], operation: str) -> str:
    path = Path(output_path)
    try:
        os.makedirs(path.parent, exist_ok=True)
        df.write_csv(path)
    except OSError as e:
        raise ComputationError(
            f"Failed to write {path}: {str(e)}",
            operation=operation,
            error_type="io",
            cause=e
        )

    logger.info("Wrote %d rows to %s", df.height, path)
    return str(path)
