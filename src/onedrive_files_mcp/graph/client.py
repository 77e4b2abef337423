"""Microsoft Graph API client authenticated with caller-supplied tokens."""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from onedrive_files_mcp.errors import AuthenticationError, NotFoundError, RemoteOperationError

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
DRIVE_ROOT = "/me/drive/root"
ROOT_ITEM_ID = "root"


def item_path(item_id: str) -> str:
    """Graph path of a drive item addressed by identifier."""
    if item_id == ROOT_ITEM_ID:
        return DRIVE_ROOT
    return f"/me/drive/items/{quote(item_id, safe='!')}"


def child_path(parent_id: str | None, name: str) -> str:
    """Graph path of a named child under a folder (root when parent_id is None)."""
    parent = item_path(parent_id) if parent_id else DRIVE_ROOT
    return f"{parent}:/{quote(name, safe='')}"


def escape_odata(value: str) -> str:
    """Escape a string literal for use inside an OData $filter expression."""
    return value.replace("'", "''")


class GraphClient:
    """Thin async client for Microsoft Graph drive endpoints.

    The bearer token is passed per call since every request to this service
    carries its own. One pooled ``httpx.AsyncClient`` is shared by all
    requests.

    Attributes:
        base_url: Graph API base URL without trailing slash.
    """

    def __init__(
        self,
        base_url: str = GRAPH_BASE_URL,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Graph API base URL.
            timeout: Request timeout in seconds.
            http_client: Pre-built client to use instead of creating one.
        """
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http_client = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create shared HTTP client with connection pooling.

        Returns:
            Shared httpx.AsyncClient instance.
        """
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                http2=True,
                follow_redirects=True,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                timeout=httpx.Timeout(self._timeout, connect=10.0),
            )
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and release resources."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def make_request(
        self,
        method: str,
        path: str,
        access_token: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated request expecting a JSON body.

        Args:
            method: HTTP method (GET, POST, etc.).
            path: Path relative to the base URL (must start with '/').
            access_token: Caller's bearer token.
            params: Optional query parameters.
            json_data: Optional JSON body data.

        Returns:
            JSON response as a dictionary (empty for 204 responses).

        Raises:
            AuthenticationError: If Graph rejects the token.
            NotFoundError: If the addressed resource does not exist.
            RemoteOperationError: For any other failure.
        """
        response = await self._send(
            method,
            path,
            access_token,
            params=params,
            json=json_data,
            headers={"Accept": "application/json"},
        )
        if response.status_code == 204 or not response.content:
            return {}
        result: dict[str, Any] = response.json()
        return result

    async def make_delete_request(self, path: str, access_token: str) -> None:
        """Make an authenticated DELETE request.

        Args:
            path: Path relative to the base URL.
            access_token: Caller's bearer token.
        """
        await self._send("DELETE", path, access_token)

    async def make_raw_request(
        self,
        method: str,
        path: str,
        access_token: str,
        params: dict[str, Any] | None = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make an authenticated request returning the raw response.

        Redirects are followed, which is how Graph serves ``/content``.

        Args:
            method: HTTP method.
            path: Path relative to the base URL.
            access_token: Caller's bearer token.
            params: Optional query parameters.
            content: Optional raw body content.
            headers: Optional additional headers.

        Returns:
            Raw httpx.Response object.
        """
        return await self._send(
            method,
            path,
            access_token,
            params=params,
            content=content,
            headers=headers,
            follow_redirects=True,
        )

    async def _send(
        self,
        method: str,
        path: str,
        access_token: str,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        client = await self._get_http_client()

        request_headers = {"Authorization": f"Bearer {access_token}"}
        if headers:
            request_headers.update(headers)

        url = f"{self.base_url}{path}"
        logger.debug(f"Graph {method} {path}")
        try:
            response = await client.request(method, url, headers=request_headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Graph {method} {path} failed: {e}")
            raise RemoteOperationError(f"Request to Microsoft Graph failed: {e}") from e

        self._raise_for_status(response)
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        """Translate a non-2xx Graph response into the error taxonomy."""
        if response.is_success:
            return

        try:
            body = response.json()
        except ValueError:
            body = None

        detail = response.reason_phrase
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            detail = body["error"].get("message") or detail

        status = response.status_code
        logger.warning(f"Graph returned {status}: {detail}")

        if status == 401:
            raise AuthenticationError(f"Access token rejected by Microsoft Graph: {detail}")
        if status == 404:
            raise NotFoundError(detail or "Item not found")
        raise RemoteOperationError(
            f"Graph API error {status}: {detail}",
            status_code=status,
            details=body,
        )
