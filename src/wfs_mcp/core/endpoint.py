"""
WFS endpoint normalization.

Separates WFS protocol parameters from service-specific routing parameters
(e.g. a gateway's ``nodeId``) so the latter survive every protocol request.
"""

from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .errors import UrlParseError

# Query keys owned by the WFS protocol, compared upper-cased
RESERVED_WFS_PARAMS = frozenset(
    {
        "SERVICE",
        "REQUEST",
        "VERSION",
        "TYPENAME",
        "TYPENAMES",
        "OUTPUTFORMAT",
        "COUNT",
        "STARTINDEX",
        "RESULTTYPE",
    }
)

ALLOWED_SCHEMES = ("http", "https")


def is_reserved_param(key: str) -> bool:
    """
    Check whether a query key belongs to the WFS protocol.

    Parameters
    ----------
    key : str
        Query parameter name in any casing

    Returns
    -------
    bool
        True if the key is a reserved WFS keyword
    """
    return key.strip().upper() in RESERVED_WFS_PARAMS


@dataclass(frozen=True)
class WFSEndpoint:
    """
    A WFS service endpoint.

    Parameters
    ----------
    base_url : str
        Scheme, host and path of the service, without query string
    preserved_params : tuple[tuple[str, str], ...]
        Non-protocol query parameters, in original order
    """

    base_url: str
    preserved_params: tuple[tuple[str, str], ...] = ()

    def build_params(self, protocol_params: dict[str, str]) -> list[tuple[str, str]]:
        """
        Merge protocol parameters with the preserved routing parameters.

        Parameters
        ----------
        protocol_params : dict[str, str]
            WFS protocol parameters for one request

        Returns
        -------
        list[tuple[str, str]]
            Ordered query parameters, protocol parameters first
        """
        return [*protocol_params.items(), *self.preserved_params]

    def request_url(self, protocol_params: dict[str, str]) -> str:
        """
        Build a full request URL for a set of protocol parameters.

        Parameters
        ----------
        protocol_params : dict[str, str]
            WFS protocol parameters for one request

        Returns
        -------
        str
            Request URL including preserved routing parameters
        """
        return f"{self.base_url}?{urlencode(self.build_params(protocol_params))}"


def normalize_wfs_url(url: str) -> WFSEndpoint:
    """
    Normalize a resource URL into a WFS endpoint.

    Query parameters matching the reserved WFS keyword set (case-insensitive)
    are dropped; all others are kept in their original order.

    Examples:
        "https://energieatlas.berlin.de/public/ogcsl.ashx?nodeId=298&Service=WFS"
        → base_url "https://energieatlas.berlin.de/public/ogcsl.ashx",
          preserved_params (("nodeId", "298"),)

    Parameters
    ----------
    url : str
        Resource URL, possibly carrying WFS query parameters

    Returns
    -------
    WFSEndpoint
        Normalized endpoint

    Raises
    ------
    UrlParseError
        If the URL is malformed or not an HTTP(S) URL
    """
    if not isinstance(url, str) or not url.strip():
        raise UrlParseError(f"Invalid WFS URL: {url!r}", stage="normalize", url=str(url))

    try:
        parts = urlsplit(url.strip())
        # Accessing the port validates it
        _ = parts.port
    except ValueError as e:
        raise UrlParseError(f"Invalid WFS URL: {url}", stage="normalize", url=url) from e

    if parts.scheme.lower() not in ALLOWED_SCHEMES or not parts.netloc:
        raise UrlParseError(f"Invalid WFS URL: {url}", stage="normalize", url=url)

    preserved = tuple(
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if not is_reserved_param(key)
    )
    base_url = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))

    return WFSEndpoint(base_url=base_url, preserved_params=preserved)


def is_wfs_url(url: str) -> bool:
    """
    Check whether a URL looks like a WFS service endpoint.

    Parameters
    ----------
    url : str
        Resource URL

    Returns
    -------
    bool
        True if the query declares a WFS service or GetCapabilities request,
        or the path contains a ``wfs`` segment
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return False

    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        upper_key = key.upper()
        if upper_key == "SERVICE" and value.upper() == "WFS":
            return True
        if upper_key == "REQUEST" and value.upper() == "GETCAPABILITIES":
            return True

    segments = [s.lower() for s in parts.path.split("/") if s]
    return "wfs" in segments
