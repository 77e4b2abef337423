"""MCP server implementation for OneDrive / SharePoint files.

Provides 3 tools:
- listFiles: Paginated folder listing sorted by name
- uploadFile: Upload from a local path or base64 content
- downloadFile: Download by ID or by name under a folder path

Transport: Stdio
Authentication: Caller-supplied Microsoft Graph bearer token per call
"""

from onedrive_files_mcp.server.files_mcp_server import FilesMCPServer, ToolResult, main

__all__ = ["FilesMCPServer", "ToolResult", "main"]
