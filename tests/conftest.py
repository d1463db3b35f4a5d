"""
Test configuration and fixtures.

WFS services are simulated with ``httpx.MockTransport`` so the unit tests run
offline. Tests against live services are marked ``integration``.
"""

import copy
import json
from collections.abc import Callable

import httpx
import pytest

NAMESPACED_CAPABILITIES = """<?xml version="1.0" encoding="UTF-8"?>
<wfs:WFS_Capabilities version="2.0.0"
    xmlns:wfs="http://www.opengis.net/wfs/2.0"
    xmlns:ows="http://www.opengis.net/ows/1.1"
    xmlns:xlink="http://www.w3.org/1999/xlink">
  <ows:OperationsMetadata>
    <ows:Operation name="GetFeature">
      <ows:Parameter name="outputFormat">
        <ows:AllowedValues>
          <ows:Value>application/gml+xml; version=3.2</ows:Value>
          <ows:Value>application/json</ows:Value>
        </ows:AllowedValues>
      </ows:Parameter>
    </ows:Operation>
  </ows:OperationsMetadata>
  <wfs:FeatureTypeList>
    <wfs:FeatureType>
      <wfs:Name>kita:kitas</wfs:Name>
      <wfs:Title>  Kindertagesstätten  </wfs:Title>
      <wfs:Abstract>Kitas in Berlin</wfs:Abstract>
      <wfs:DefaultCRS>urn:ogc:def:crs:EPSG::25833</wfs:DefaultCRS>
    </wfs:FeatureType>
    <wfs:FeatureType>
      <wfs:Name>kita:bezirke</wfs:Name>
      <wfs:Title>Bezirke</wfs:Title>
    </wfs:FeatureType>
  </wfs:FeatureTypeList>
</wfs:WFS_Capabilities>
"""

UNNAMESPACED_CAPABILITIES = """<?xml version="1.0" encoding="UTF-8"?>
<WFS_Capabilities version="2.0.0">
  <FeatureTypeList>
    <FeatureType>
      <Name>kita:kitas</Name>
      <Title>Kindertagesstätten</Title>
      <Abstract>Kitas in Berlin</Abstract>
      <DefaultCRS>urn:ogc:def:crs:EPSG::25833</DefaultCRS>
    </FeatureType>
    <FeatureType>
      <Name>kita:bezirke</Name>
      <Title>Bezirke</Title>
    </FeatureType>
  </FeatureTypeList>
  <outputFormat>application/json</outputFormat>
</WFS_Capabilities>
"""

EMPTY_CAPABILITIES = """<?xml version="1.0" encoding="UTF-8"?>
<wfs:WFS_Capabilities version="2.0.0" xmlns:wfs="http://www.opengis.net/wfs/2.0">
  <wfs:FeatureTypeList/>
</wfs:WFS_Capabilities>
"""

EPSG_25833_CRS = {"type": "name", "properties": {"name": "urn:ogc:def:crs:EPSG::25833"}}


def make_point_features(n: int) -> list[dict]:
    """Create ``n`` EPSG:25833 point features around central Berlin."""
    return [
        {
            "type": "Feature",
            "id": f"kitas.{i}",
            "geometry": {"type": "Point", "coordinates": [390000.0 + i * 10, 5819000.0 + i * 10]},
            "properties": {"index": i, "name": f"Kita {i}"},
        }
        for i in range(n)
    ]


class FakeWFS:
    """
    Minimal WFS 2.0 service for ``httpx.MockTransport``.

    Records every request so tests can inspect the query parameters.
    """

    def __init__(
        self,
        features: list[dict] | None = None,
        capabilities: str = NAMESPACED_CAPABILITIES,
        crs: dict | None = EPSG_25833_CRS,
        hits_body: str | None = None,
        feature_content_type: str = "application/json; subtype=geojson",
    ) -> None:
        self.features = features if features is not None else make_point_features(12)
        self.capabilities = capabilities
        self.crs = crs
        self.hits_body = hits_body
        self.feature_content_type = feature_content_type
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params

        if params.get("REQUEST") == "GetCapabilities":
            return httpx.Response(
                200, text=self.capabilities, headers={"content-type": "text/xml"}
            )

        if params.get("REQUEST") == "GetFeature" and params.get("RESULTTYPE") == "hits":
            body = self.hits_body
            if body is None:
                body = (
                    '<wfs:FeatureCollection xmlns:wfs="http://www.opengis.net/wfs/2.0" '
                    f'numberMatched="{len(self.features)}" numberReturned="0"/>'
                )
            return httpx.Response(200, text=body, headers={"content-type": "text/xml"})

        if params.get("REQUEST") == "GetFeature":
            start = int(params.get("STARTINDEX", "0"))
            count = int(params.get("COUNT", "1000"))
            page = copy.deepcopy(self.features[start : start + count])
            body = {
                "type": "FeatureCollection",
                "features": page,
                "numberMatched": len(self.features),
                "numberReturned": len(page),
            }
            if self.crs is not None:
                body["crs"] = self.crs
            return httpx.Response(
                200,
                content=json.dumps(body).encode(),
                headers={"content-type": self.feature_content_type},
            )

        return httpx.Response(400, text="Unknown request")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def fake_wfs() -> FakeWFS:
    return FakeWFS()


@pytest.fixture
def make_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make
