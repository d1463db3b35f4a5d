"""
WFS MCP Server.

A Model Context Protocol (MCP) server for discovering and downloading
vector features from OGC WFS 2.0.0 services as WGS84 GeoJSON.
"""

from wfs_mcp import core, tools

__all__ = ["core", "tools"]
