"""
Node lists for site networks.

A node list describes each site independently of any one period's edges: its
identifier, a display name and optional attributes such as a feature number
and coordinates. Node lists decorate graphs on export and drive the
geographic layout when plotting.
"""

from typing import List, Optional, Sequence

import polars as pl

from archNet.common.exceptions import ValidationError
from archNet.common.validators import validate_node_list, validate_site_identifiers
from archNet.common.logging_config import get_logger

logger = get_logger(__name__)

NODE_ID_COL = "node_id"
NAME_COL = "name"


def build_node_list(
    df: pl.DataFrame,
    id_col: str = "site",
    name_col: Optional[str] = None,
    feature_col: Optional[str] = None,
    longitude_col: Optional[str] = None,
    latitude_col: Optional[str] = None,
    attribute_cols: Optional[Sequence[str]] = None
) -> pl.DataFrame:
    """
    Build a node list from a table of site records.

    Parameters
    ----------
    df : pl.DataFrame
        One row per site
    id_col : str, default "site"
        Column holding the site identifier
    name_col : str, optional
        Column holding a display name. Defaults to the identifier.
    feature_col : str, optional
        Column holding a feature number, copied to ``feature_no``
    longitude_col, latitude_col : str, optional
        Coordinate columns, copied to ``longitude`` and ``latitude`` as Float64
    attribute_cols : Sequence[str], optional
        Extra columns copied unchanged

    Returns
    -------
    pl.DataFrame
        Columns ``node_id``, ``name``, then whichever of ``feature_no``,
        ``longitude``, ``latitude`` were requested, then the extra attributes

    Raises
    ------
    ValidationError
        If columns are missing, only one coordinate column is given, or site
        identifiers are null or duplicated

    Examples
    --------
    >>> sites = pl.DataFrame({
    ...     "site": ["LA 1", "LA 2"],
    ...     "label": ["Pueblo Alto", "Kin Kletso"],
    ...     "x": [-107.9, -107.97],
    ...     "y": [36.07, 36.06],
    ... })
    >>> nodes = build_node_list(sites, name_col="label", longitude_col="x", latitude_col="y")
    >>> nodes.columns
    ['node_id', 'name', 'longitude', 'latitude']
    """
    if (longitude_col is None) != (latitude_col is None):
        raise ValidationError(
            "Longitude and latitude columns must be given together",
            field="coordinates"
        )

    requested = [id_col, name_col, feature_col, longitude_col, latitude_col, *(attribute_cols or [])]
    missing = [col for col in requested if col is not None and col not in df.columns]
    if missing:
        raise ValidationError(
            f"Node source table is missing columns: {missing}",
            field="columns",
            details={"available_columns": df.columns, "missing": missing}
        )

    validate_site_identifiers(df, id_col)

    columns = [
        pl.col(id_col).alias(NODE_ID_COL),
        (pl.col(name_col) if name_col is not None else pl.col(id_col)).cast(pl.String).alias(NAME_COL),
    ]
    if feature_col is not None:
        columns.append(pl.col(feature_col).alias("feature_no"))
    if longitude_col is not None:
        columns.append(pl.col(longitude_col).cast(pl.Float64).alias("longitude"))
        columns.append(pl.col(latitude_col).cast(pl.Float64).alias("latitude"))

    reserved = {NODE_ID_COL, NAME_COL, "feature_no", "longitude", "latitude"}
    for col in attribute_cols or []:
        if col in reserved:
            raise ValidationError(
                f"Attribute column name '{col}' clashes with a node list column",
                field=col
            )
        columns.append(pl.col(col))

    nodes = df.select(columns)
    logger.debug("Built node list with %d sites and %d columns", nodes.height, nodes.width)
    return nodes


def node_list_from_table(table: pl.DataFrame, site_col: str = "site") -> pl.DataFrame:
    """Minimal node list (identifier and name) for every site of an assemblage table."""
    return build_node_list(table, id_col=site_col)


def node_ids(nodes: pl.DataFrame, id_col: str = NODE_ID_COL) -> List:
    """Validated, sorted site identifiers of a node list."""
    validate_node_list(nodes, id_col)
    return nodes[id_col].sort().to_list()
