"""
MCP server entry point for WFS tools.
"""

import logging
import sys

from mcp.server.fastmcp import FastMCP
from mcp.types import TextContent

from wfs_mcp.core import WFSError, get_settings
from wfs_mcp.tools.download_features import download_features
from wfs_mcp.tools.list_feature_types import list_feature_types

logger = logging.getLogger(__name__)

# Initialize server
mcp = FastMCP("wfs-mcp")


def _format_error(action: str, url: str, error: Exception) -> str:
    offending = error.url if isinstance(error, WFSError) and error.url else url
    stage = f" during {error.stage}" if isinstance(error, WFSError) and error.stage else ""
    return (
        f"Error {action}{stage}: {error!s}\n\n"
        f"Resource: {offending}\n"
        "You can try downloading the data manually from this URL."
    )


@mcp.tool()
async def list_feature_types_tool(url: str) -> list[TextContent]:
    """
    List the feature types offered by a WFS service.

    Parameters
    ----------
    url : str
        WFS service URL. GetCapabilities parameters are allowed and
        service-specific parameters (e.g. nodeId) are kept.

    Returns
    -------
    list[TextContent]
        Feature type names, titles and output formats
    """
    try:
        result = await list_feature_types(url)
    except Exception as e:
        logger.exception("list_feature_types failed for %s", url)
        return [TextContent(type="text", text=_format_error("listing feature types", url, e))]

    lines = [f"WFS service: {result['base_url']}"]
    if result["preserved_params"]:
        lines.append(f"Preserved parameters: {result['preserved_params']}")
    lines.append("")
    lines.append(f"Feature types ({len(result['feature_types'])}):")
    for ft in result["feature_types"]:
        lines.append(f"- {ft['name']}: {ft['title']}")
        if ft["abstract"]:
            lines.append(f"  {ft['abstract']}")
    lines.append("")
    lines.append(f"Output formats: {', '.join(result['output_formats']) or 'not advertised'}")

    return [TextContent(type="text", text="\n".join(lines))]


@mcp.tool()
async def download_features_tool(
    url: str,
    type_name: str | None = None,
    output_dir: str = ".",
    max_features: int | None = None,
    source_crs: str | None = None,
) -> list[TextContent]:
    """
    Download WFS features as WGS84 GeoJSON.

    Pages through the feature type, reprojects coordinates from the CRS
    declared by the service to WGS84, and saves GeoJSON and GeoParquet files.

    Parameters
    ----------
    url : str
        WFS service URL
    type_name : str or None, optional
        Feature type name. Defaults to the first advertised feature type.
    output_dir : str, optional
        Directory to save outputs
    max_features : int or None, optional
        Maximum number of features to download
    source_crs : str or None, optional
        Source CRS override such as "EPSG:25833"

    Returns
    -------
    list[TextContent]
        File paths and metadata
    """
    try:
        result = await download_features(
            url=url,
            type_name=type_name,
            output_dir=output_dir,
            max_features=max_features,
            source_crs=source_crs,
        )
    except Exception as e:
        logger.exception("download_features failed for %s", url)
        return [TextContent(type="text", text=_format_error("downloading features", url, e))]

    response = f"""Successfully downloaded features:

GeoJSON: {result["raw"]}
GeoParquet: {result["parquet"]}
Feature type: {result["type_name"]}
Count: {result["metadata"]["count"]}

Metadata:
{result["metadata"]}
"""
    if result.get("warnings"):
        response += "\nWarnings:\n" + "\n".join(f"- {w}" for w in result["warnings"]) + "\n"

    return [TextContent(type="text", text=response)]


def main() -> None:
    """
    Main server entry point.

    Configures logging on stderr (stdout carries the MCP protocol) and runs
    the FastMCP server until interrupted.

    Returns
    -------
    None
        The server runs indefinitely until interrupted
    """
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    mcp.run()


if __name__ == "__main__":
    main()
