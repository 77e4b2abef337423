"""Unit tests for the uvicorn runner helpers."""

import socket
from collections.abc import Iterator
from unittest.mock import AsyncMock, patch

import pytest
from starlette.applications import Starlette

from onedrive_files_mcp.config import ServerConfig
from onedrive_files_mcp.web import EventBroadcaster, FilesHTTPServer, build_http_server
from onedrive_files_mcp.web.runner import find_available_port


@pytest.fixture
def occupied_port() -> Iterator[int]:
    """A localhost port held by a listening socket for the test's duration."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        sock.listen(1)
        yield sock.getsockname()[1]


@pytest.mark.unit
class TestFindAvailablePort:
    """Tests for find_available_port."""

    def test_port_zero_is_left_to_the_os(self) -> None:
        assert find_available_port("127.0.0.1", 0, 1) == 0

    def test_should_skip_port_in_use(self, occupied_port: int) -> None:
        """Verify the next free port after an occupied one is returned."""
        port = find_available_port("127.0.0.1", occupied_port, 20)

        assert port > occupied_port

    def test_should_fail_when_range_exhausted(self, occupied_port: int) -> None:
        with pytest.raises(OSError, match="No free port"):
            find_available_port("127.0.0.1", occupied_port, 1)


@pytest.mark.unit
class TestBuildHttpServer:
    """Tests for build_http_server and FilesHTTPServer."""

    def test_overrides_take_precedence(
        self, http_app: Starlette, broadcaster: EventBroadcaster, server_config: ServerConfig
    ) -> None:
        server = build_http_server(http_app, broadcaster, server_config, host="0.0.0.0", port=0)

        assert isinstance(server, FilesHTTPServer)
        assert server.config.host == "0.0.0.0"
        assert server.config.port == 0

    @pytest.mark.asyncio
    async def test_shutdown_closes_push_channels_first(
        self, http_app: Starlette, broadcaster: EventBroadcaster, server_config: ServerConfig
    ) -> None:
        """Verify open SSE streams are ended before uvicorn drains connections."""
        channel = broadcaster.register()
        server = build_http_server(http_app, broadcaster, server_config, port=0)

        with patch("uvicorn.Server.shutdown", new_callable=AsyncMock) as mock_shutdown:
            await server.shutdown()

        assert channel.closed
        assert len(broadcaster) == 0
        mock_shutdown.assert_awaited_once()
