"""
Reprojection of GeoJSON FeatureCollections to WGS84.

GeoJSON (RFC 7946) is implicitly WGS84 lon/lat, but WFS services often deliver
GeoJSON in regional projections announced by a legacy ``crs`` member. This
module detects that CRS, transforms every position of every geometry, and
drops the ``crs`` member.
"""

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from pyproj import Transformer

from .errors import UnresolvableCRSError
from .projections import DEFAULT_REGISTRY, WGS84, ProjectionRegistry, is_wgs84, normalize_crs_name

logger = logging.getLogger(__name__)

ProjectionTransform = Callable[[float, float], tuple[float, float]]

GEOMETRY_TYPES = (
    "Point",
    "LineString",
    "Polygon",
    "MultiPoint",
    "MultiLineString",
    "MultiPolygon",
    "GeometryCollection",
)

# Nesting depth of position arrays per geometry type
_COORDINATE_DEPTHS = {
    "Point": 0,
    "LineString": 1,
    "MultiPoint": 1,
    "Polygon": 2,
    "MultiLineString": 2,
    "MultiPolygon": 3,
}


@dataclass(frozen=True)
class CRSDetection:
    """
    Source CRS of a FeatureCollection.

    Parameters
    ----------
    crs : str
        Normalized identifier
    origin : str
        "override" when given by the caller, "member" when read from the
        ``crs`` member, "assumed" when WGS84 was assumed because no ``crs``
        member exists
    """

    crs: str
    origin: str

    @property
    def assumed(self) -> bool:
        return self.origin == "assumed"


def _crs_member_name(crs_member: Any) -> str | None:
    if isinstance(crs_member, str):
        return crs_member
    if isinstance(crs_member, dict):
        properties = crs_member.get("properties") or {}
        name = properties.get("name") if isinstance(properties, dict) else None
        if isinstance(name, str):
            return name
    return None


def detect_source_crs(collection: dict[str, Any], source_crs: str | None = None) -> CRSDetection:
    """
    Determine the source CRS of a FeatureCollection.

    Parameters
    ----------
    collection : dict[str, Any]
        GeoJSON FeatureCollection
    source_crs : str or None, optional
        Explicit CRS overriding the ``crs`` member

    Returns
    -------
    CRSDetection
        Normalized CRS and where it came from

    Raises
    ------
    UnresolvableCRSError
        If the override or the ``crs`` member cannot be normalized
    """
    if source_crs is not None:
        normalized = normalize_crs_name(source_crs)
        if normalized is None:
            raise UnresolvableCRSError(f"Unrecognised source CRS: {source_crs}", crs=source_crs)
        return CRSDetection(normalized, "override")

    crs_member = collection.get("crs")
    if crs_member is None:
        if _looks_projected(collection):
            logger.warning(
                "No crs member but coordinates exceed lon/lat range; "
                "assuming WGS84 anyway, pass source_crs to reproject"
            )
        else:
            logger.warning("No crs member, assuming WGS84")
        return CRSDetection(WGS84, "assumed")

    name = _crs_member_name(crs_member)
    normalized = normalize_crs_name(name) if name else None
    if normalized is None:
        raise UnresolvableCRSError(f"Unrecognised crs member: {crs_member!r}", crs=name)

    return CRSDetection(normalized, "member")


def iter_positions(geometry: dict[str, Any] | None) -> Iterator[list[float]]:
    """
    Yield every position of a geometry.

    Parameters
    ----------
    geometry : dict[str, Any] or None
        GeoJSON geometry

    Yields
    ------
    list[float]
        Positions in document order
    """
    if not geometry:
        return

    geometry_type = geometry.get("type")
    if geometry_type == "GeometryCollection":
        for child in geometry.get("geometries") or []:
            yield from iter_positions(child)
        return

    depth = _COORDINATE_DEPTHS.get(geometry_type)
    if depth is None:
        return

    def walk(value: Any, level: int) -> Iterator[list[float]]:
        if level == 0:
            yield value
        else:
            for item in value:
                yield from walk(item, level - 1)

    yield from walk(geometry.get("coordinates") or [], depth)


def _looks_projected(collection: dict[str, Any]) -> bool:
    # Diagnostic only: never used to choose a CRS
    for feature in collection.get("features") or []:
        if not isinstance(feature, dict):
            continue
        for position in iter_positions(feature.get("geometry")):
            if len(position) >= 2:
                return abs(position[0]) > 180 or abs(position[1]) > 90
    return False


def build_transform(source_crs: str, registry: ProjectionRegistry | None = None) -> ProjectionTransform:
    """
    Build a transform from a source CRS to WGS84 lon/lat.

    Parameters
    ----------
    source_crs : str
        Normalized identifier
    registry : ProjectionRegistry or None, optional
        Projection registry (default ``DEFAULT_REGISTRY``)

    Returns
    -------
    ProjectionTransform
        Pure function mapping (x, y) to (lon, lat)

    Raises
    ------
    UnresolvableCRSError
        If the registry cannot resolve the CRS
    """
    registry = registry or DEFAULT_REGISTRY
    transformer = Transformer.from_crs(
        registry.resolve(source_crs),
        registry.resolve(WGS84),
        always_xy=True,
    )

    def transform(x: float, y: float) -> tuple[float, float]:
        lon, lat = transformer.transform(x, y)
        return float(lon), float(lat)

    return transform


def _transform_position(position: list[float], transform: ProjectionTransform) -> list[float]:
    if len(position) < 2:
        return list(position)
    x, y = transform(position[0], position[1])
    # Altitude and further members are kept as-is
    return [x, y, *position[2:]]


def _transform_coordinates(value: Any, depth: int, transform: ProjectionTransform) -> Any:
    if depth == 0:
        return _transform_position(value, transform)
    return [_transform_coordinates(item, depth - 1, transform) for item in value]


def transform_geometry(
    geometry: dict[str, Any] | None,
    transform: ProjectionTransform,
) -> dict[str, Any] | None:
    """
    Transform the coordinates of a geometry.

    Parameters
    ----------
    geometry : dict[str, Any] or None
        GeoJSON geometry
    transform : ProjectionTransform
        Position transform

    Returns
    -------
    dict[str, Any] or None
        New geometry with transformed positions; None for a null geometry.
        Unsupported geometry types are returned unchanged.
    """
    if not geometry:
        return None

    geometry_type = geometry.get("type")

    if geometry_type == "GeometryCollection":
        children = (transform_geometry(child, transform) for child in geometry.get("geometries") or [])
        return {
            **geometry,
            "geometries": [child for child in children if child is not None],
        }

    depth = _COORDINATE_DEPTHS.get(geometry_type)
    if depth is None:
        logger.warning("Unknown geometry type %r, passing through unchanged", geometry_type)
        return geometry

    return {
        **geometry,
        "coordinates": _transform_coordinates(geometry.get("coordinates") or [], depth, transform),
    }


def _strip_crs(collection: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in collection.items() if key != "crs"}


def reproject_to_wgs84(
    collection: dict[str, Any],
    source_crs: str | None = None,
    registry: ProjectionRegistry | None = None,
) -> dict[str, Any]:
    """
    Reproject a FeatureCollection to WGS84.

    The input is never mutated. Feature count, properties and geometry
    nesting are preserved; the ``crs`` member is removed.

    Parameters
    ----------
    collection : dict[str, Any]
        GeoJSON FeatureCollection, optionally with a legacy ``crs`` member
    source_crs : str or None, optional
        Explicit source CRS overriding the ``crs`` member
    registry : ProjectionRegistry or None, optional
        Projection registry (default ``DEFAULT_REGISTRY``)

    Returns
    -------
    dict[str, Any]
        New FeatureCollection in WGS84 lon/lat

    Raises
    ------
    UnresolvableCRSError
        If the source CRS cannot be resolved
    """
    detection = detect_source_crs(collection, source_crs)

    if is_wgs84(detection.crs):
        logger.debug("Source CRS %s is WGS84, no transformation needed", detection.crs)
        return _strip_crs(collection)

    logger.info("Transforming from %s to %s", detection.crs, WGS84)
    transform = build_transform(detection.crs, registry)

    reprojected = _strip_crs(collection)
    reprojected["features"] = [
        {**feature, "geometry": transform_geometry(feature.get("geometry"), transform)}
        if isinstance(feature, dict)
        else feature
        for feature in collection.get("features") or []
    ]
    return reprojected
