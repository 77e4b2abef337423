"""Microsoft Graph access for drive items."""

from onedrive_files_mcp.graph.client import (
    GRAPH_BASE_URL,
    ROOT_ITEM_ID,
    GraphClient,
    child_path,
    escape_odata,
    item_path,
)

__all__ = [
    "GRAPH_BASE_URL",
    "ROOT_ITEM_ID",
    "GraphClient",
    "child_path",
    "escape_odata",
    "item_path",
]
