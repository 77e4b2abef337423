"""Run the HTTP front-end under uvicorn."""

import errno
import logging
import socket

import uvicorn
from starlette.applications import Starlette

from onedrive_files_mcp.config import ServerConfig
from onedrive_files_mcp.web.events import EventBroadcaster

logger = logging.getLogger(__name__)


def find_available_port(host: str, start_port: int, attempts: int) -> int:
    """Return the first port starting at start_port that can be bound on host.

    Port 0 is returned as-is so the OS picks one.

    Raises:
        OSError: If every port in the range is in use, or binding fails for
            another reason.
    """
    if start_port == 0:
        return 0

    for port in range(start_port, start_port + attempts):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            try:
                sock.bind((host, port))
            except OSError as e:
                if e.errno != errno.EADDRINUSE:
                    raise
                logger.warning(f"Port {port} is in use, trying port {port + 1}...")
                continue
        return port

    raise OSError(
        errno.EADDRINUSE,
        f"No free port in {start_port}-{start_port + attempts - 1} on {host}",
    )


class FilesHTTPServer(uvicorn.Server):
    """uvicorn server that ends open push channels before draining connections."""

    def __init__(self, config: uvicorn.Config, broadcaster: EventBroadcaster) -> None:
        super().__init__(config)
        self.broadcaster = broadcaster

    async def shutdown(self, sockets: list[socket.socket] | None = None) -> None:
        self.broadcaster.close_all()
        await super().shutdown(sockets=sockets)


def build_http_server(
    app: Starlette,
    broadcaster: EventBroadcaster,
    config: ServerConfig,
    host: str | None = None,
    port: int | None = None,
) -> FilesHTTPServer:
    """Bind-check a port and wrap the app in a uvicorn server.

    Args:
        app: Starlette application.
        broadcaster: Push registry whose channels are closed on shutdown.
        config: Server configuration.
        host: Overrides config.host.
        port: Overrides config.port.

    Returns:
        Server ready for ``await server.serve()``.
    """
    bind_host = host or config.host
    bind_port = find_available_port(
        bind_host, config.port if port is None else port, config.port_attempts
    )
    logger.info(f"Files HTTP server listening on http://{bind_host}:{bind_port}")

    uvicorn_config = uvicorn.Config(
        app,
        host=bind_host,
        port=bind_port,
        log_level=config.log_level.lower(),
        log_config=None,
    )
    return FilesHTTPServer(uvicorn_config, broadcaster)
