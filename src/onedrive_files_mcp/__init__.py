"""OneDrive Files MCP Server.

List, upload and download OneDrive / SharePoint files through an MCP tool
server or an HTTP REST API with Server-Sent Events notifications.
"""

from onedrive_files_mcp.__version__ import __version__

__all__ = ["__version__"]
