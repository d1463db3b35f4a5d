"""
Core WFS access and reprojection for the WFS MCP server.
"""

from wfs_mcp.core.capabilities import (
    Capabilities,
    FeatureTypeDescriptor,
    FeatureTypeLookup,
    LookupStrategy,
    find_feature_type_elements,
    parse_capabilities,
)
from wfs_mcp.core.config import WFSSettings, get_settings
from wfs_mcp.core.endpoint import (
    RESERVED_WFS_PARAMS,
    WFSEndpoint,
    is_reserved_param,
    is_wfs_url,
    normalize_wfs_url,
)
from wfs_mcp.core.errors import (
    EmptyCapabilitiesError,
    InvalidResponseError,
    NetworkError,
    RequestTimeoutError,
    UnresolvableCRSError,
    UrlParseError,
    WFSError,
)
from wfs_mcp.core.projections import (
    CRS84,
    DEFAULT_REGISTRY,
    KNOWN_PROJECTIONS,
    WGS84,
    ProjectionRegistry,
    is_wgs84,
    normalize_crs_name,
)
from wfs_mcp.core.reproject import (
    CRSDetection,
    build_transform,
    detect_source_crs,
    iter_positions,
    reproject_to_wgs84,
    transform_geometry,
)
from wfs_mcp.core.wfs_client import WFSClient

__all__ = [
    "CRS84",
    "DEFAULT_REGISTRY",
    "KNOWN_PROJECTIONS",
    "RESERVED_WFS_PARAMS",
    "WGS84",
    "CRSDetection",
    "Capabilities",
    "EmptyCapabilitiesError",
    "FeatureTypeDescriptor",
    "FeatureTypeLookup",
    "InvalidResponseError",
    "LookupStrategy",
    "NetworkError",
    "ProjectionRegistry",
    "RequestTimeoutError",
    "UnresolvableCRSError",
    "UrlParseError",
    "WFSClient",
    "WFSEndpoint",
    "WFSError",
    "WFSSettings",
    "build_transform",
    "detect_source_crs",
    "find_feature_type_elements",
    "get_settings",
    "is_reserved_param",
    "is_wfs_url",
    "is_wgs84",
    "iter_positions",
    "normalize_crs_name",
    "normalize_wfs_url",
    "parse_capabilities",
    "reproject_to_wgs84",
    "transform_geometry",
]
