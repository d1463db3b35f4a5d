"""
Vector utilities for WGS84 GeoJSON output.
"""

import json
import logging
from pathlib import Path
from typing import Any

import geopandas as gpd
from shapely.errors import ShapelyError
from shapely.geometry import shape

logger = logging.getLogger(__name__)


def features_to_geodataframe(collection: dict[str, Any]) -> tuple[gpd.GeoDataFrame, list[int]]:
    """
    Convert a WGS84 FeatureCollection to a GeoDataFrame.

    Geometries that shapely cannot build (unsupported types such as
    ``Curve``, malformed coordinates) become null geometries so the other
    features still convert.

    Parameters
    ----------
    collection : dict[str, Any]
        GeoJSON FeatureCollection without a ``crs`` member

    Returns
    -------
    tuple[gpd.GeoDataFrame, list[int]]
        GeoDataFrame in EPSG:4326 with one row per feature, and the indexes
        of features whose geometry was dropped
    """
    features = collection.get("features") or []
    if not features:
        return gpd.GeoDataFrame(geometry=[], crs="EPSG:4326"), []

    rows: list[dict[str, Any]] = []
    dropped: list[int] = []
    for index, feature in enumerate(features):
        geometry = feature.get("geometry")
        try:
            geom = shape(geometry) if geometry else None
        except (ShapelyError, ValueError, TypeError, KeyError, IndexError) as e:
            logger.warning("Dropping geometry of feature %d: %s", index, e)
            geom = None
            dropped.append(index)
        rows.append({**(feature.get("properties") or {}), "geometry": geom})

    return gpd.GeoDataFrame(rows, geometry="geometry", crs="EPSG:4326"), dropped


def save_feature_collection(collection: dict[str, Any], output_path: str) -> str:
    """
    Save a FeatureCollection as a GeoJSON file.

    Parameters
    ----------
    collection : dict[str, Any]
        GeoJSON FeatureCollection
    output_path : str
        Output file path

    Returns
    -------
    str
        Path to saved file
    """
    with Path(output_path).open("w", encoding="utf-8") as f:
        json.dump(collection, f, ensure_ascii=False)
    return output_path


def save_geodataframe_as_parquet(
    gdf: gpd.GeoDataFrame,
    output_path: str,
) -> str:
    """
    Save GeoDataFrame as GeoParquet.

    Attribute columns whose values differ in type between features are
    written as strings.

    Parameters
    ----------
    gdf : gpd.GeoDataFrame
        GeoDataFrame to save
    output_path : str
        Output file path

    Returns
    -------
    str
        Path to saved file
    """
    coerce_mixed_columns(gdf).to_parquet(Path(output_path))
    return output_path


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and value != value)


def _to_text(value: Any) -> str | None:
    if _is_missing(value):
        return None
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def coerce_mixed_columns(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """
    Convert attribute columns holding values of more than one type to strings.

    WFS properties are untyped JSON, so one feature may carry ``12`` where
    another carries ``"A-12"``. Arrow requires a single type per column.

    Parameters
    ----------
    gdf : gpd.GeoDataFrame
        GeoDataFrame to check

    Returns
    -------
    gpd.GeoDataFrame
        Copy with mixed columns as strings (missing values stay null), or
        the input itself if no column is mixed
    """
    mixed = []
    for column in gdf.columns:
        if column == gdf.geometry.name or gdf[column].dtype != object:
            continue
        types = {type(value) for value in gdf[column] if not _is_missing(value)}
        if len(types) > 1:
            mixed.append(column)

    if not mixed:
        return gdf

    logger.warning("Writing mixed-type columns as strings: %s", ", ".join(map(str, mixed)))
    coerced = gdf.copy()
    for column in mixed:
        coerced[column] = coerced[column].map(_to_text)
    return coerced


def get_vector_metadata(gdf: gpd.GeoDataFrame) -> dict[str, Any]:
    """
    Extract metadata from GeoDataFrame.

    Parameters
    ----------
    gdf : gpd.GeoDataFrame
        GeoDataFrame

    Returns
    -------
    dict[str, Any]
        Dictionary with metadata
    """
    bounds = gdf.total_bounds.tolist() if len(gdf) > 0 else None

    return {
        "count": len(gdf),
        "columns": [str(c) for c in gdf.columns],
        "crs": str(gdf.crs) if gdf.crs else None,
        "bounds": bounds,
        "geometry_types": gdf.geometry.geom_type.value_counts().to_dict() if len(gdf) > 0 else {},
    }
