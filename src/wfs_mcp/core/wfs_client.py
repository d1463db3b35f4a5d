"""
Async WFS 2.0.0 client for GetCapabilities and GetFeature requests.
"""

import logging
import re
from types import TracebackType
from typing import Any

import httpx

from .capabilities import Capabilities, parse_capabilities
from .config import WFSSettings, get_settings
from .endpoint import WFSEndpoint
from .errors import InvalidResponseError, NetworkError, RequestTimeoutError, UrlParseError, WFSError

logger = logging.getLogger(__name__)

WFS_VERSION = "2.0.0"
GEOJSON_OUTPUT_FORMAT = "application/json"

_NUMBER_MATCHED = re.compile(r'numberMatched="(\d+)"')


class WFSClient:
    """
    Client for WFS 2.0.0 services.

    The underlying ``httpx.AsyncClient`` is either injected, in which case
    the caller owns its lifecycle, or created here and closed by ``aclose``
    (or on leaving ``async with``). The client keeps no per-endpoint state,
    so one instance can serve concurrent requests to unrelated feature types.

    Parameters
    ----------
    http_client : httpx.AsyncClient or None, optional
        HTTP client to issue requests with
    timeout : float or None, optional
        Per-request timeout in seconds (default from settings, 30s)
    user_agent : str or None, optional
        User-Agent header (default from settings)
    settings : WFSSettings or None, optional
        Settings to read defaults from (default ``get_settings()``)
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
        settings: WFSSettings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.timeout = timeout if timeout is not None else settings.timeout
        self.user_agent = user_agent or settings.user_agent
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(follow_redirects=True)

    async def __aenter__(self) -> "WFSClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if it was created by this instance."""
        if self._owns_client:
            await self._client.aclose()

    async def _get(
        self,
        endpoint: WFSEndpoint,
        protocol_params: dict[str, str],
        stage: str,
    ) -> httpx.Response:
        request_url = endpoint.request_url(protocol_params)
        logger.debug("WFS %s request: %s", stage, request_url)

        try:
            response = await self._client.get(
                endpoint.base_url,
                params=endpoint.build_params(protocol_params),
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.InvalidURL as e:
            raise UrlParseError(
                f"Invalid WFS request URL: {e}",
                stage=stage,
                url=request_url,
            ) from e
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                f"{stage} request timed out after {self.timeout:g}s - "
                "WFS service may be slow or unavailable",
                stage=stage,
                url=request_url,
            ) from e
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"HTTP {e.response.status_code}: {e.response.reason_phrase}",
                stage=stage,
                url=request_url,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(
                f"{stage} request failed: {e}",
                stage=stage,
                url=request_url,
            ) from e

        return response

    async def get_capabilities(self, endpoint: WFSEndpoint) -> Capabilities:
        """
        Discover the feature types offered by a WFS service.

        Parameters
        ----------
        endpoint : WFSEndpoint
            Normalized service endpoint

        Returns
        -------
        Capabilities
            Advertised feature types (never empty) and output formats

        Raises
        ------
        NetworkError
            On transport failure or HTTP error status
        RequestTimeoutError
            If the request exceeds the timeout
        InvalidResponseError
            If the body is not well-formed XML
        EmptyCapabilitiesError
            If no feature types could be parsed
        """
        params = {"SERVICE": "WFS", "REQUEST": "GetCapabilities"}
        response = await self._get(endpoint, params, stage="capabilities")
        return parse_capabilities(response.content, url=endpoint.request_url(params))

    async def get_feature_count(self, endpoint: WFSEndpoint, type_name: str) -> int:
        """
        Get the advertised number of features without fetching them.

        The count is a hint: any failure is logged and reported as 0.

        Parameters
        ----------
        endpoint : WFSEndpoint
            Normalized service endpoint
        type_name : str
            Feature type name

        Returns
        -------
        int
            ``numberMatched`` reported by the service, or 0 if unavailable
        """
        params = {
            "SERVICE": "WFS",
            "REQUEST": "GetFeature",
            "VERSION": WFS_VERSION,
            "TYPENAMES": type_name,
            "RESULTTYPE": "hits",
        }

        try:
            response = await self._get(endpoint, params, stage="hits")
            body = response.text

            match = _NUMBER_MATCHED.search(body)
            if match:
                return int(match.group(1))

            # Some servers answer hits requests with JSON
            data = response.json()
            if isinstance(data, dict) and data.get("numberMatched") is not None:
                return int(data["numberMatched"])
        except (WFSError, ValueError, TypeError) as e:
            logger.warning("Could not get feature count for %s: %s", type_name, e)
            return 0

        logger.warning("No numberMatched in hits response for %s", type_name)
        return 0

    async def get_features(
        self,
        endpoint: WFSEndpoint,
        type_name: str,
        count: int = 1000,
        start_index: int = 0,
    ) -> dict[str, Any]:
        """
        Fetch one page of features as GeoJSON.

        Geometries and properties are returned as delivered by the service;
        reprojection is a separate step. Pagination is done by repeated calls
        with increasing ``start_index``.

        Parameters
        ----------
        endpoint : WFSEndpoint
            Normalized service endpoint
        type_name : str
            Feature type name
        count : int, optional
            Page size (default 1000)
        start_index : int, optional
            Zero-based index of the first feature (default 0)

        Returns
        -------
        dict[str, Any]
            GeoJSON FeatureCollection for the requested page

        Raises
        ------
        ValueError
            If count or start_index is out of range
        NetworkError
            On transport failure or HTTP error status
        RequestTimeoutError
            If the request exceeds the timeout
        InvalidResponseError
            If the response is not a JSON FeatureCollection
        """
        if count < 1:
            raise ValueError("count must be at least 1")
        if start_index < 0:
            raise ValueError("start_index must not be negative")

        params = {
            "SERVICE": "WFS",
            "REQUEST": "GetFeature",
            "VERSION": WFS_VERSION,
            "TYPENAMES": type_name,
            "OUTPUTFORMAT": GEOJSON_OUTPUT_FORMAT,
            "COUNT": str(count),
            "STARTINDEX": str(start_index),
        }
        request_url = endpoint.request_url(params)
        response = await self._get(endpoint, params, stage="features")

        content_type = response.headers.get("content-type", "")
        if "json" not in content_type.lower():
            raise InvalidResponseError(
                f"Expected JSON response, got: {content_type or 'no content type'}",
                stage="features",
                url=request_url,
            )

        try:
            geojson = response.json()
        except ValueError as e:
            raise InvalidResponseError(
                f"Invalid JSON in GetFeature response: {e}", stage="features", url=request_url
            ) from e

        if not isinstance(geojson, dict) or geojson.get("type") != "FeatureCollection":
            raise InvalidResponseError(
                "Invalid GeoJSON: expected FeatureCollection", stage="features", url=request_url
            )
        if not isinstance(geojson.get("features"), list):
            raise InvalidResponseError(
                "Invalid GeoJSON: FeatureCollection without features array",
                stage="features",
                url=request_url,
            )

        return geojson
