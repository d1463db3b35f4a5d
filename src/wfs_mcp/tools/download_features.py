"""
Download features tool for WFS services.
"""

import re
from pathlib import Path
from typing import Any

import geopandas as gpd
import httpx

from ..core import (
    WFSClient,
    WFSEndpoint,
    detect_source_crs,
    get_settings,
    normalize_wfs_url,
    reproject_to_wgs84,
)
from ..core.vector_utils import (
    features_to_geodataframe,
    get_vector_metadata,
    save_feature_collection,
    save_geodataframe_as_parquet,
)

# Top-level members describing a single page rather than the whole result
PAGE_MEMBERS = ("features", "numberReturned", "links", "next", "previous")


async def fetch_all_features(
    client: WFSClient,
    endpoint: WFSEndpoint,
    type_name: str,
    page_size: int,
    max_features: int,
    number_matched: int = 0,
) -> dict[str, Any]:
    """
    Fetch pages sequentially and merge them into one FeatureCollection.

    Paging stops at an empty or short page, once ``number_matched`` features
    have been read, or when ``max_features`` is reached.

    Parameters
    ----------
    client : WFSClient
        WFS client
    endpoint : WFSEndpoint
        Normalized service endpoint
    type_name : str
        Feature type name
    page_size : int
        Features requested per page
    max_features : int
        Maximum number of features to collect
    number_matched : int, optional
        Advertised total from a hits request, 0 if unknown

    Returns
    -------
    dict[str, Any]
        FeatureCollection with the top-level members of the first page
        (including any ``crs`` member) and the features of all pages
    """
    features: list[dict[str, Any]] = []
    first_page: dict[str, Any] | None = None
    start_index = 0

    while len(features) < max_features:
        count = min(page_size, max_features - len(features))
        page = await client.get_features(endpoint, type_name, count=count, start_index=start_index)
        if first_page is None:
            first_page = page

        page_features = page["features"]
        features.extend(page_features)
        start_index += len(page_features)

        if len(page_features) < count:
            break
        if number_matched and start_index >= number_matched:
            break

    merged = {key: value for key, value in (first_page or {}).items() if key not in PAGE_MEMBERS}
    merged["type"] = "FeatureCollection"
    merged["features"] = features
    return merged


def _safe_filename(type_name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", type_name).strip("_") or "features"


def _write_outputs(
    collection: dict[str, Any],
    gdf: gpd.GeoDataFrame,
    raw_path: Path,
    parquet_path: Path,
) -> None:
    """Write both files to temporary paths and move them into place only if both succeed."""
    raw_tmp = raw_path.with_name(f".{raw_path.name}.part")
    parquet_tmp = parquet_path.with_name(f".{parquet_path.name}.part")

    try:
        save_geodataframe_as_parquet(gdf, str(parquet_tmp))
        save_feature_collection(collection, str(raw_tmp))
    except BaseException:
        raw_tmp.unlink(missing_ok=True)
        parquet_tmp.unlink(missing_ok=True)
        raise

    parquet_tmp.replace(parquet_path)
    raw_tmp.replace(raw_path)


async def download_features(
    url: str,
    type_name: str | None = None,
    output_dir: str = ".",
    max_features: int | None = None,
    page_size: int | None = None,
    source_crs: str | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """
    Download features from a WFS service as WGS84 GeoJSON and GeoParquet.

    Parameters
    ----------
    url : str
        WFS service URL, with or without GetCapabilities parameters
    type_name : str or None, optional
        Feature type to download. Defaults to the first advertised type.
    output_dir : str, optional
        Directory to save outputs (default ".")
    max_features : int or None, optional
        Maximum number of features (default from settings, 10000)
    page_size : int or None, optional
        Features per GetFeature request (default from settings, 1000)
    source_crs : str or None, optional
        Source CRS overriding the one declared by the service, e.g.
        "EPSG:25833" for services that omit the ``crs`` member
    http_client : httpx.AsyncClient or None, optional
        HTTP client to use; created and closed here if not given

    Returns
    -------
    dict[str, Any]
        Dictionary containing:
        - raw: Path to the GeoJSON file (WGS84)
        - parquet: Path to the GeoParquet file
        - type_name: Downloaded feature type
        - metadata: Dict with count, bounds, CRS details, etc.
        - warnings: List of any warnings (e.g., truncated download)

    Raises
    ------
    UrlParseError
        If the URL is malformed
    NetworkError
        On transport failure or HTTP error status
    InvalidResponseError
        If the service does not return GeoJSON
    UnresolvableCRSError
        If the source CRS is not known
    """
    settings = get_settings()
    max_features = max_features or settings.max_features
    page_size = page_size or settings.page_size
    warnings_list: list[str] = []

    endpoint = normalize_wfs_url(url)

    async with WFSClient(http_client=http_client, settings=settings) as client:
        if type_name is None:
            capabilities = await client.get_capabilities(endpoint)
            type_name = capabilities.feature_types[0].name
            if len(capabilities.feature_types) > 1:
                warnings_list.append(
                    f"No type_name given. Using first of {len(capabilities.feature_types)} "
                    f"feature types: {type_name}"
                )

        number_matched = await client.get_feature_count(endpoint, type_name)
        collection = await fetch_all_features(
            client,
            endpoint,
            type_name,
            page_size=page_size,
            max_features=max_features,
            number_matched=number_matched,
        )

    if number_matched > max_features:
        warnings_list.append(
            f"Service reports {number_matched} features; only the first {max_features} were downloaded."
        )

    detection = detect_source_crs(collection, source_crs)
    if detection.assumed:
        warnings_list.append("Service declared no CRS. Coordinates were assumed to be WGS84.")

    wgs84 = reproject_to_wgs84(collection, source_crs=detection.crs)
    gdf, dropped = features_to_geodataframe(wgs84)
    if dropped:
        warnings_list.append(
            f"{len(dropped)} feature(s) have geometries that cannot be converted; "
            "they are kept in the GeoJSON but have no geometry in the GeoParquet."
        )

    # Create output directory
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    base_name = _safe_filename(type_name)
    raw_path = output_path / f"{base_name}.geojson"
    parquet_path = output_path / f"{base_name}.parquet"
    _write_outputs(wgs84, gdf, raw_path, parquet_path)

    metadata = get_vector_metadata(gdf)
    metadata.update(
        {
            "type_name": type_name,
            "base_url": endpoint.base_url,
            "preserved_params": dict(endpoint.preserved_params),
            "number_matched": number_matched,
            "source_crs": detection.crs,
            "crs_origin": detection.origin,
        },
    )

    result: dict[str, Any] = {
        "raw": str(raw_path),
        "parquet": str(parquet_path),
        "type_name": type_name,
        "metadata": metadata,
    }

    if warnings_list:
        result["warnings"] = warnings_list

    return result
