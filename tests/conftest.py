"""Shared pytest fixtures for onedrive-files-mcp tests.

This module wires the in-memory Graph drive from ``fakes.py`` into the
Graph client, the file operations facade and both front-ends.
"""

from collections.abc import Iterator

import httpx
import pytest
from starlette.applications import Starlette
from starlette.testclient import TestClient

from onedrive_files_mcp.config import ServerConfig
from onedrive_files_mcp.graph.client import GRAPH_BASE_URL, GraphClient
from onedrive_files_mcp.server import FilesMCPServer
from onedrive_files_mcp.services import FileService
from onedrive_files_mcp.web import EventBroadcaster, create_http_app

from fakes import FakeGraphDrive


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def fake_drive() -> FakeGraphDrive:
    """Create an empty fake drive."""
    return FakeGraphDrive()


@pytest.fixture
def graph_client(fake_drive: FakeGraphDrive) -> GraphClient:
    """Create a GraphClient whose HTTP traffic is served by the fake drive."""
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(fake_drive.handler),
        follow_redirects=True,
    )
    return GraphClient(base_url=GRAPH_BASE_URL, http_client=http_client)


@pytest.fixture
def file_service(graph_client: GraphClient) -> FileService:
    """Create a FileService backed by the fake drive."""
    return FileService(graph_client)


@pytest.fixture
def broadcaster() -> EventBroadcaster:
    """Create an empty push-channel registry."""
    return EventBroadcaster(max_queue_size=10)


@pytest.fixture
def server_config() -> ServerConfig:
    """Production-mode configuration."""
    return ServerConfig()


@pytest.fixture
def dev_config() -> ServerConfig:
    """Development-mode configuration (error details enabled)."""
    return ServerConfig(environment="development")


# =============================================================================
# Front-end Fixtures
# =============================================================================


@pytest.fixture
def mcp_server(file_service: FileService, broadcaster: EventBroadcaster) -> FilesMCPServer:
    """Create a FilesMCPServer attached to the broadcaster."""
    return FilesMCPServer(file_service, broadcaster=broadcaster)


@pytest.fixture
def http_app(
    file_service: FileService, broadcaster: EventBroadcaster, server_config: ServerConfig
) -> Starlette:
    """Create the Starlette app in production mode."""
    return create_http_app(file_service, broadcaster, server_config)


@pytest.fixture
def http_client(http_app: Starlette) -> Iterator[TestClient]:
    """Create a TestClient for the app with its lifespan running."""
    with TestClient(http_app) as client:
        yield client
