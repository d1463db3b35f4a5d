"""
List feature types tool for WFS services.
"""

from dataclasses import asdict
from typing import Any

import httpx

from ..core import WFSClient, normalize_wfs_url


async def list_feature_types(
    url: str,
    http_client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """
    Discover the feature types offered by a WFS service.

    Parameters
    ----------
    url : str
        WFS service URL, with or without GetCapabilities parameters
    http_client : httpx.AsyncClient or None, optional
        HTTP client to use; created and closed here if not given

    Returns
    -------
    dict[str, Any]
        Dictionary containing:
        - base_url: Service URL without query string
        - preserved_params: Routing parameters kept for every request
        - feature_types: List of dicts with name, title, abstract, default_crs
        - output_formats: Advertised output formats
        - supports_geojson: Whether a JSON output format is advertised
    """
    endpoint = normalize_wfs_url(url)

    async with WFSClient(http_client=http_client) as client:
        capabilities = await client.get_capabilities(endpoint)

    output_formats = list(capabilities.output_formats)

    return {
        "base_url": endpoint.base_url,
        "preserved_params": dict(endpoint.preserved_params),
        "feature_types": [asdict(ft) for ft in capabilities.feature_types],
        "output_formats": output_formats,
        "supports_geojson": any("json" in fmt.lower() for fmt in output_formats),
    }
