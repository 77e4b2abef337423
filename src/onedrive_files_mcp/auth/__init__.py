"""Bearer authentication for the OneDrive files server.

Callers authenticate every request with a Microsoft Graph access token they
obtained themselves: as an ``Authorization: Bearer`` header over HTTP, or as
the ``accessToken`` argument of an MCP tool.

Quick Start:
    ```python
    from onedrive_files_mcp.auth import authenticate, extract_bearer_token

    token = extract_bearer_token(request.headers.get("authorization"))
    raw = authenticate(token)
    ```
"""

from onedrive_files_mcp.auth.bearer import authenticate, extract_bearer_token, get_status
from onedrive_files_mcp.auth.models import EXPIRY_BUFFER_SECONDS, AccessToken, TokenStatus

__all__ = [
    "AccessToken",
    "TokenStatus",
    "EXPIRY_BUFFER_SECONDS",
    "authenticate",
    "extract_bearer_token",
    "get_status",
]
