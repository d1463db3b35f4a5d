"""
Tests for the async WFS client against a simulated service.
"""

import asyncio

import httpx
import pytest
from conftest import FakeWFS, make_point_features

from wfs_mcp.core.capabilities import LookupStrategy
from wfs_mcp.core.config import WFSSettings
from wfs_mcp.core.endpoint import WFSEndpoint, normalize_wfs_url
from wfs_mcp.core.errors import (
    EmptyCapabilitiesError,
    InvalidResponseError,
    NetworkError,
    RequestTimeoutError,
    UrlParseError,
)
from wfs_mcp.core.wfs_client import WFSClient

ENDPOINT = normalize_wfs_url(
    "https://energieatlas.berlin.de/public/ogcsl.ashx?nodeId=298&Service=WFS&request=GetCapabilities"
)


def _run(coro):
    return asyncio.run(coro)


async def _with_client(fake: FakeWFS, call):
    async with fake.client() as http_client:
        client = WFSClient(http_client=http_client)
        return await call(client)


def test_get_capabilities_sends_routing_params(fake_wfs: FakeWFS) -> None:
    capabilities = _run(_with_client(fake_wfs, lambda c: c.get_capabilities(ENDPOINT)))

    assert capabilities.lookup is LookupStrategy.NAMESPACED
    assert capabilities.feature_types[0].name == "kita:kitas"

    params = fake_wfs.requests[0].url.params
    assert params["SERVICE"] == "WFS"
    assert params["REQUEST"] == "GetCapabilities"
    assert params["nodeId"] == "298"
    assert fake_wfs.requests[0].url.path == "/public/ogcsl.ashx"


def test_get_capabilities_empty_raises() -> None:
    fake = FakeWFS(capabilities="<WFS_Capabilities><FeatureTypeList/></WFS_Capabilities>")

    with pytest.raises(EmptyCapabilitiesError):
        _run(_with_client(fake, lambda c: c.get_capabilities(ENDPOINT)))


def test_get_features_request_parameters(fake_wfs: FakeWFS) -> None:
    page = _run(
        _with_client(fake_wfs, lambda c: c.get_features(ENDPOINT, "kita:kitas", count=5, start_index=2))
    )

    assert page["type"] == "FeatureCollection"
    assert [f["properties"]["index"] for f in page["features"]] == [2, 3, 4, 5, 6]

    params = fake_wfs.requests[0].url.params
    assert params["SERVICE"] == "WFS"
    assert params["REQUEST"] == "GetFeature"
    assert params["VERSION"] == "2.0.0"
    assert params["TYPENAMES"] == "kita:kitas"
    assert params["OUTPUTFORMAT"] == "application/json"
    assert params["COUNT"] == "5"
    assert params["STARTINDEX"] == "2"
    assert params["nodeId"] == "298"


def test_get_features_default_window(fake_wfs: FakeWFS) -> None:
    _run(_with_client(fake_wfs, lambda c: c.get_features(ENDPOINT, "kita:kitas")))

    params = fake_wfs.requests[0].url.params
    assert params["COUNT"] == "1000"
    assert params["STARTINDEX"] == "0"


def test_pages_are_disjoint(fake_wfs: FakeWFS) -> None:
    async def fetch_two(client: WFSClient):
        first = await client.get_features(ENDPOINT, "kita:kitas", count=5, start_index=0)
        second = await client.get_features(ENDPOINT, "kita:kitas", count=5, start_index=5)
        return first, second

    first, second = _run(_with_client(fake_wfs, fetch_two))

    first_ids = {f["id"] for f in first["features"]}
    second_ids = {f["id"] for f in second["features"]}
    assert len(first_ids) == 5
    assert len(second_ids) == 5
    assert first_ids.isdisjoint(second_ids)


def test_geometry_and_crs_pass_through_unmodified(fake_wfs: FakeWFS) -> None:
    page = _run(_with_client(fake_wfs, lambda c: c.get_features(ENDPOINT, "kita:kitas", count=1)))

    assert page["crs"]["properties"]["name"] == "urn:ogc:def:crs:EPSG::25833"
    assert page["features"][0]["geometry"]["coordinates"] == [390000.0, 5819000.0]


def test_empty_page_is_valid() -> None:
    fake = FakeWFS(features=make_point_features(3))

    page = _run(_with_client(fake, lambda c: c.get_features(ENDPOINT, "kita:kitas", start_index=10)))

    assert page["features"] == []


def test_non_json_content_type_raises() -> None:
    fake = FakeWFS(feature_content_type="text/xml; subtype=gml/3.2")

    with pytest.raises(InvalidResponseError) as excinfo:
        _run(_with_client(fake, lambda c: c.get_features(ENDPOINT, "kita:kitas")))

    assert excinfo.value.stage == "features"
    assert "nodeId=298" in excinfo.value.url


@pytest.mark.parametrize(
    "body",
    [
        b'{"type": "Feature", "geometry": null, "properties": {}}',
        b'{"type": "FeatureCollection"}',
        b"[1, 2, 3]",
        b"not json at all",
    ],
)
def test_invalid_feature_collection_raises(make_client, body: bytes) -> None:
    """Test bodies that are not a GeoJSON FeatureCollection.

    Parameters
    ----------
    make_client : callable
        Fixture building a mocked ``httpx.AsyncClient``.
    body : bytes
        Response body.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body, headers={"content-type": "application/json"})

    async def call():
        async with make_client(handler) as http_client:
            return await WFSClient(http_client=http_client).get_features(ENDPOINT, "x")

    with pytest.raises(InvalidResponseError):
        _run(call())


def test_http_error_maps_to_network_error(make_client) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="Service Unavailable")

    async def call():
        async with make_client(handler) as http_client:
            return await WFSClient(http_client=http_client).get_capabilities(ENDPOINT)

    with pytest.raises(NetworkError) as excinfo:
        _run(call())

    assert excinfo.value.status_code == 503
    assert excinfo.value.stage == "capabilities"
    assert "REQUEST=GetCapabilities" in excinfo.value.url


def test_transport_error_maps_to_network_error(make_client) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def call():
        async with make_client(handler) as http_client:
            return await WFSClient(http_client=http_client).get_features(ENDPOINT, "x")

    with pytest.raises(NetworkError) as excinfo:
        _run(call())

    assert not isinstance(excinfo.value, RequestTimeoutError)
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


def test_timeout_maps_to_request_timeout_error(make_client) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async def call():
        async with make_client(handler) as http_client:
            client = WFSClient(http_client=http_client, timeout=0.5)
            return await client.get_features(ENDPOINT, "x")

    with pytest.raises(RequestTimeoutError) as excinfo:
        _run(call())

    assert "0.5s" in str(excinfo.value)
    assert isinstance(excinfo.value, TimeoutError)


def test_timeout_and_user_agent_are_sent(make_client) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"type": "FeatureCollection", "features": []})

    async def call():
        async with make_client(handler) as http_client:
            client = WFSClient(http_client=http_client, timeout=12, user_agent="test-agent/1.0")
            return await client.get_features(ENDPOINT, "x")

    _run(call())

    assert seen[0].headers["User-Agent"] == "test-agent/1.0"
    assert seen[0].extensions["timeout"]["read"] == 12


def test_defaults_come_from_settings() -> None:
    settings = WFSSettings(timeout=7, user_agent="from-settings")

    async def call():
        client = WFSClient(settings=settings)
        try:
            return client.timeout, client.user_agent
        finally:
            await client.aclose()

    assert _run(call()) == (7, "from-settings")


def test_injected_client_is_not_closed(make_client) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"type": "FeatureCollection", "features": []})

    async def call():
        async with make_client(handler) as http_client:
            async with WFSClient(http_client=http_client) as client:
                await client.get_features(ENDPOINT, "x")
            return http_client.is_closed

    assert _run(call()) is False


def test_feature_count_from_xml(fake_wfs: FakeWFS) -> None:
    count = _run(_with_client(fake_wfs, lambda c: c.get_feature_count(ENDPOINT, "kita:kitas")))

    assert count == 12
    params = fake_wfs.requests[0].url.params
    assert params["RESULTTYPE"] == "hits"
    assert params["VERSION"] == "2.0.0"
    assert params["TYPENAMES"] == "kita:kitas"
    assert params["nodeId"] == "298"


def test_feature_count_from_json() -> None:
    fake = FakeWFS(hits_body='{"type": "FeatureCollection", "numberMatched": 2934, "features": []}')

    count = _run(_with_client(fake, lambda c: c.get_feature_count(ENDPOINT, "kita:kitas")))

    assert count == 2934


@pytest.mark.parametrize(
    "hits_body",
    [
        '<wfs:FeatureCollection numberMatched="unknown" numberReturned="0"/>',
        "<ServiceExceptionReport>oops</ServiceExceptionReport>",
        '{"numberMatched": "many"}',
    ],
)
def test_feature_count_defaults_to_zero(hits_body: str) -> None:
    """Test that unusable hits responses yield 0.

    Parameters
    ----------
    hits_body : str
        Hits response body.
    """
    fake = FakeWFS(hits_body=hits_body)

    count = _run(_with_client(fake, lambda c: c.get_feature_count(ENDPOINT, "kita:kitas")))

    assert count == 0


def test_feature_count_swallows_network_errors(make_client) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="Internal Server Error")

    async def call():
        async with make_client(handler) as http_client:
            return await WFSClient(http_client=http_client).get_feature_count(ENDPOINT, "x")

    assert _run(call()) == 0


@pytest.mark.parametrize(("count", "start_index"), [(0, 0), (10, -1)])
def test_invalid_window_raises(fake_wfs: FakeWFS, count: int, start_index: int) -> None:
    """Test that invalid pagination windows are rejected.

    Parameters
    ----------
    fake_wfs : FakeWFS
        Simulated service.
    count : int
        Page size.
    start_index : int
        Start index.
    """
    with pytest.raises(ValueError):
        _run(
            _with_client(
                fake_wfs,
                lambda c: c.get_features(ENDPOINT, "kita:kitas", count=count, start_index=start_index),
            )
        )


def test_timeout_is_caught_as_builtin_timeout(make_client) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    async def call():
        async with make_client(handler) as http_client:
            try:
                await WFSClient(http_client=http_client).get_capabilities(ENDPOINT)
            except TimeoutError as e:
                return e
        return None

    error = _run(call())

    assert isinstance(error, RequestTimeoutError)
    assert error.stage == "capabilities"


def test_invalid_endpoint_url_raises_url_parse_error(fake_wfs: FakeWFS) -> None:
    endpoint = WFSEndpoint("http://example.org:notaport/wfs")

    with pytest.raises(UrlParseError) as excinfo:
        _run(_with_client(fake_wfs, lambda c: c.get_features(endpoint, "kita:kitas")))

    assert excinfo.value.stage == "features"
    assert excinfo.value.url.startswith("http://example.org:notaport/wfs?")
    assert fake_wfs.requests == []
