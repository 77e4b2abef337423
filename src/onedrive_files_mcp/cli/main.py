"""Command-line interface for onedrive-files-mcp."""

import asyncio
import logging
import sys

import click

from onedrive_files_mcp.__version__ import __version__
from onedrive_files_mcp.config import ServerConfig, load_config
from onedrive_files_mcp.errors import FilesError


def _load_config_or_exit() -> ServerConfig:
    try:
        config = load_config()
    except FilesError as e:
        click.echo(f"❌ {e.message}", err=True)
        sys.exit(1)

    # stdout carries MCP JSON-RPC, so logs go to stderr
    logging.basicConfig(
        level=config.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return config


async def run_all(config: ServerConfig, host: str | None = None, port: int | None = None) -> None:
    """Run the MCP stdio server and the HTTP server in one event loop.

    Both share one FileService and one EventBroadcaster, so uploads made
    through MCP tools are pushed to SSE clients. When either side stops the
    other is shut down too.
    """
    from onedrive_files_mcp.server import FilesMCPServer
    from onedrive_files_mcp.services import file_service_from_config
    from onedrive_files_mcp.web import EventBroadcaster, build_http_server, create_http_app

    service = file_service_from_config(config)
    broadcaster = EventBroadcaster(max_queue_size=config.push_queue_size)
    mcp_server = FilesMCPServer(service, broadcaster=broadcaster)
    http_server = build_http_server(
        create_http_app(service, broadcaster, config), broadcaster, config, host=host, port=port
    )

    mcp_task = asyncio.create_task(mcp_server.serve(), name="mcp-stdio")
    http_task = asyncio.create_task(http_server.serve(), name="http")
    try:
        done, pending = await asyncio.wait({mcp_task, http_task}, return_when=asyncio.FIRST_COMPLETED)
        http_server.should_exit = True
        mcp_task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            task.result()
    finally:
        await service.close()


async def run_http(config: ServerConfig, host: str | None = None, port: int | None = None) -> None:
    """Run the HTTP server alone."""
    from onedrive_files_mcp.services import file_service_from_config
    from onedrive_files_mcp.web import EventBroadcaster, build_http_server, create_http_app

    service = file_service_from_config(config)
    broadcaster = EventBroadcaster(max_queue_size=config.push_queue_size)
    http_server = build_http_server(
        create_http_app(service, broadcaster, config), broadcaster, config, host=host, port=port
    )
    try:
        await http_server.serve()
    finally:
        await service.close()


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """OneDrive Files MCP Server - OneDrive / SharePoint files for MCP and HTTP clients.

    Tools exposed over MCP:
    - listFiles (paginated folder listing)
    - uploadFile (local path or base64 content)
    - downloadFile (by ID or by name, to disk or inline)

    The HTTP API adds get/delete by ID and a /events SSE channel.
    Every request carries the caller's Microsoft Graph access token.
    """
    pass


@main.command()
@click.option("--host", default=None, help="HTTP bind address (default: ONEDRIVE_FILES_HOST)")
@click.option("--port", type=int, default=None, help="HTTP port (default: ONEDRIVE_FILES_PORT)")
def serve(host: str | None, port: int | None) -> None:
    """Start the MCP stdio server and the HTTP server together.

    Uploads through the MCP tools are broadcast to SSE clients.
    """
    config = _load_config_or_exit()
    try:
        click.echo("Starting OneDrive files MCP + HTTP server...", err=True)
        asyncio.run(run_all(config, host=host, port=port))
    except KeyboardInterrupt:
        click.echo("\nServer stopped.", err=True)
    except Exception as e:
        click.echo(f"❌ Server error: {e}", err=True)
        sys.exit(1)


@main.command()
def mcp() -> None:
    """Start the MCP server over stdio.

    This command is typically invoked by an MCP client such as Claude Desktop.
    """
    from onedrive_files_mcp.server import FilesMCPServer
    from onedrive_files_mcp.services import file_service_from_config

    config = _load_config_or_exit()
    try:
        click.echo("Starting OneDrive files MCP server...", err=True)
        click.echo("Server provides 3 tools: listFiles, uploadFile, downloadFile", err=True)
        server = FilesMCPServer(file_service_from_config(config))
        asyncio.run(server.run())
    except KeyboardInterrupt:
        click.echo("\nServer stopped.", err=True)
    except Exception as e:
        click.echo(f"❌ Server error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.option("--host", default=None, help="HTTP bind address (default: ONEDRIVE_FILES_HOST)")
@click.option("--port", type=int, default=None, help="HTTP port (default: ONEDRIVE_FILES_PORT)")
def http(host: str | None, port: int | None) -> None:
    """Start the HTTP REST + SSE server only."""
    config = _load_config_or_exit()
    try:
        asyncio.run(run_http(config, host=host, port=port))
    except KeyboardInterrupt:
        click.echo("\nServer stopped.", err=True)
    except Exception as e:
        click.echo(f"❌ Server error: {e}", err=True)
        sys.exit(1)


@main.command("config")
def show_config() -> None:
    """Show the effective configuration.

    Values come from ONEDRIVE_FILES_* environment variables (PORT is also
    honoured) and fall back to built-in defaults.
    """
    config = _load_config_or_exit()

    click.echo("Configuration:")
    for name, value in config.model_dump().items():
        click.echo(f"  {name}: {value}")


if __name__ == "__main__":
    main()
