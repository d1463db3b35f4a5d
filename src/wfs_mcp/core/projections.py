"""
Registry of known source coordinate reference systems.
"""

import re
from types import MappingProxyType

from pyproj import CRS
from pyproj.exceptions import CRSError

from .errors import UnresolvableCRSError

WGS84 = "EPSG:4326"
CRS84 = "OGC:CRS84"

# PROJ definitions for CRS commonly served by German WFS deployments.
# EPSG:4326 and CRS84 are geographic lon/lat and never transformed.
KNOWN_PROJECTIONS: dict[str, str] = {
    # ETRS89 / UTM zone 33N (Berlin, Brandenburg)
    "EPSG:25833": "+proj=utm +zone=33 +ellps=GRS80 +towgs84=0,0,0,0,0,0,0 +units=m +no_defs",
    # ETRS89 / UTM zone 32N (western Germany)
    "EPSG:25832": "+proj=utm +zone=32 +ellps=GRS80 +towgs84=0,0,0,0,0,0,0 +units=m +no_defs",
    # WGS 84 / Pseudo-Mercator
    "EPSG:3857": (
        "+proj=merc +a=6378137 +b=6378137 +lat_ts=0 +lon_0=0 +x_0=0 +y_0=0 "
        "+k=1 +units=m +nadgrids=@null +wktext +no_defs"
    ),
    WGS84: "+proj=longlat +datum=WGS84 +no_defs",
    CRS84: "+proj=longlat +datum=WGS84 +no_defs",
}

_URN_EPSG = re.compile(r"urn:ogc:def:crs:EPSG:[^:]*:(\d+)", re.IGNORECASE)
_EPSG = re.compile(r"EPSG:{1,2}(\d+)", re.IGNORECASE)
_OPENGIS_EPSG = re.compile(r"opengis\.net/def/crs/EPSG/[^/]+/(\d+)", re.IGNORECASE)


def normalize_crs_name(name: str) -> str | None:
    """
    Normalize a CRS name to ``EPSG:<code>`` or the CRS84 marker.

    Examples:
        "urn:ogc:def:crs:EPSG::25833" → "EPSG:25833"
        "EPSG:25833" → "EPSG:25833"
        "urn:ogc:def:crs:OGC:1.3:CRS84" → "OGC:CRS84"

    Parameters
    ----------
    name : str
        CRS name as found in a GeoJSON ``crs`` member or capabilities document

    Returns
    -------
    str or None
        Normalized identifier, or None if the name is not recognised
    """
    name = name.strip()

    if "CRS84" in name.upper():
        return CRS84

    for pattern in (_URN_EPSG, _OPENGIS_EPSG, _EPSG):
        match = pattern.search(name)
        if match:
            return f"EPSG:{int(match.group(1))}"

    return None


def is_wgs84(crs: str) -> bool:
    """Check whether a normalized identifier is WGS84 lon/lat."""
    return crs in (WGS84, CRS84)


class ProjectionRegistry:
    """
    Read-only lookup from CRS identifiers to pyproj CRS objects.

    Identifiers are looked up in the explicit definition table first, then in
    the PROJ EPSG database for other ``EPSG:<code>`` identifiers.

    Parameters
    ----------
    definitions : dict[str, str] or None, optional
        Identifier to PROJ string mapping. Defaults to ``KNOWN_PROJECTIONS``.
    use_epsg_database : bool, optional
        Whether to fall back to the PROJ EPSG database (default True)
    """

    def __init__(
        self,
        definitions: dict[str, str] | None = None,
        use_epsg_database: bool = True,
    ) -> None:
        self._definitions = MappingProxyType(dict(definitions or KNOWN_PROJECTIONS))
        self.use_epsg_database = use_epsg_database

    @property
    def identifiers(self) -> list[str]:
        """Identifiers with an explicit definition."""
        return sorted(self._definitions)

    def __contains__(self, crs: str) -> bool:
        return crs in self._definitions

    def resolve(self, crs: str) -> CRS:
        """
        Resolve an identifier to a pyproj CRS.

        Parameters
        ----------
        crs : str
            Normalized identifier (``EPSG:<code>`` or ``OGC:CRS84``)

        Returns
        -------
        CRS
            Resolved coordinate reference system

        Raises
        ------
        UnresolvableCRSError
            If no definition is known for the identifier
        """
        definition = self._definitions.get(crs)

        try:
            if definition is not None:
                return CRS.from_proj4(definition)
            if self.use_epsg_database and _EPSG.fullmatch(crs):
                return CRS.from_user_input(crs)
        except CRSError as e:
            raise UnresolvableCRSError(f"Cannot resolve CRS {crs}: {e}", crs=crs) from e

        raise UnresolvableCRSError(f"No projection definition known for {crs}", crs=crs)


DEFAULT_REGISTRY = ProjectionRegistry()
