"""HTTP REST and SSE push front-end."""

from onedrive_files_mcp.web.app import create_http_app
from onedrive_files_mcp.web.events import EventBroadcaster, PushChannel, format_sse
from onedrive_files_mcp.web.runner import FilesHTTPServer, build_http_server, find_available_port

__all__ = [
    "EventBroadcaster",
    "FilesHTTPServer",
    "PushChannel",
    "build_http_server",
    "create_http_app",
    "find_available_port",
    "format_sse",
]
