"""OneDrive / SharePoint files MCP server.

This MCP server exposes three tools (listFiles, uploadFile, downloadFile)
over stdio. Every call carries the caller's Microsoft Graph access token;
the server never obtains, refreshes or stores tokens itself.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from onedrive_files_mcp.auth import AccessToken, authenticate
from onedrive_files_mcp.config import load_config
from onedrive_files_mcp.formatting import (
    format_download_result,
    format_page,
    format_upload_result,
)
from onedrive_files_mcp.models import PushEvent
from onedrive_files_mcp.schemas import (
    DownloadFileArgs,
    ListFilesArgs,
    ToolAuthArgs,
    UploadFileArgs,
    parse_model,
    tool_input_schema,
)
from onedrive_files_mcp.services import FileService, file_service_from_config

if TYPE_CHECKING:
    from onedrive_files_mcp.web.events import EventBroadcaster

logger = logging.getLogger(__name__)

SERVER_NAME = "onedrive-files"


@dataclass
class ToolResult:
    """Outcome of one tool call: a text block plus structured metadata."""

    text: str
    metadata: dict[str, Any] = field(default_factory=dict)


class FilesMCPServer:
    """MCP server for OneDrive / SharePoint file operations.

    Attributes:
        server: MCP Server instance.
        service: File operations facade shared with the HTTP front-end.
        broadcaster: Push registry notified of uploads, when both
            front-ends run in one process.
    """

    def __init__(
        self,
        service: FileService,
        broadcaster: "EventBroadcaster | None" = None,
    ) -> None:
        self.server = Server(SERVER_NAME)
        self.service = service
        self.broadcaster = broadcaster
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Register MCP tool handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            """List available tools."""
            return [
                Tool(
                    name="listFiles",
                    description="List files and folders from OneDrive/SharePoint",
                    inputSchema=tool_input_schema(ListFilesArgs),
                ),
                Tool(
                    name="uploadFile",
                    description=(
                        "Upload a file to OneDrive/SharePoint from a local path "
                        "or from base64 content"
                    ),
                    inputSchema=tool_input_schema(UploadFileArgs),
                ),
                Tool(
                    name="downloadFile",
                    description=(
                        "Download a file from OneDrive/SharePoint by ID, or by name "
                        "under an optional parent folder path"
                    ),
                    inputSchema=tool_input_schema(DownloadFileArgs),
                ),
            ]

        @self.server.call_tool(validate_input=False)
        async def call_tool(
            name: str, arguments: dict[str, Any]
        ) -> tuple[list[TextContent], dict[str, Any]]:
            """Handle tool calls."""
            try:
                result = await self._dispatch_tool(name, arguments)
            except Exception:
                logger.exception(f"Error calling tool {name}")
                raise
            return [TextContent(type="text", text=result.text)], result.metadata

    async def _dispatch_tool(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        """Dispatch tool call to appropriate handler.

        Args:
            name: Tool name.
            arguments: Tool arguments.

        Returns:
            Text and metadata of the tool result.

        Raises:
            ValueError: If tool name is not recognized.
        """
        handlers = {
            "listFiles": self._list_files,
            "uploadFile": self._upload_file,
            "downloadFile": self._download_file,
        }

        handler = handlers.get(name)
        if handler is None:
            raise ValueError(f"Unknown tool: {name}")

        return await handler(arguments)

    @staticmethod
    def _authenticate(args: ToolAuthArgs) -> str:
        token = AccessToken.from_epoch_ms(args.access_token, args.token_expires_at)
        logger.info(f"Processing tool call with token suffix: {token.suffix}")
        return authenticate(token)

    async def _list_files(self, arguments: dict[str, Any]) -> ToolResult:
        """List the children of a folder, one page at a time.

        Args:
            arguments: Tool arguments containing:
                - accessToken: Graph access token (required)
                - folderId: Folder to list (default: drive root)
                - pageSize: Items per page, 1-200 (default: 100)
                - nextPageToken: Cursor from a previous call

        Returns:
            Formatted listing with nextPageToken and itemCount metadata.
        """
        args = parse_model(ListFilesArgs, arguments, "listFiles arguments")
        access_token = self._authenticate(args)

        page = await self.service.list_files(
            access_token,
            folder_id=args.folder_id,
            page_size=args.page_size,
            next_page_token=args.next_page_token,
        )

        return ToolResult(
            text=format_page(page),
            metadata={"nextPageToken": page.next_page_token, "itemCount": len(page.items)},
        )

    async def _upload_file(self, arguments: dict[str, Any]) -> ToolResult:
        """Upload a local file or base64 content.

        Args:
            arguments: Tool arguments containing:
                - accessToken: Graph access token (required)
                - filePath: Local file to upload
                - fileName: Name for the remote file (required without filePath)
                - fileContent: Base64 content (required without filePath)
                - parentFolderId / parentFolderName: Destination folder
                - conflictBehavior: fail, replace or rename (default: rename)

        Returns:
            Confirmation text with the created item's metadata.
        """
        args = parse_model(UploadFileArgs, arguments, "uploadFile arguments")
        access_token = self._authenticate(args)

        result = await self.service.upload_file(access_token, args)

        if self.broadcaster is not None:
            self.broadcaster.broadcast(PushEvent(type="file_created", data=result.to_api()))

        return ToolResult(
            text=format_upload_result(result),
            metadata={
                "fileId": result.id,
                "webUrl": result.web_url,
                "fileName": result.name,
                "fileSize": result.size,
                "mimeType": result.mime_type,
            },
        )

    async def _download_file(self, arguments: dict[str, Any]) -> ToolResult:
        """Download a file by ID or by name.

        Args:
            arguments: Tool arguments containing:
                - accessToken: Graph access token (required)
                - fileId: ID of the file (preferred)
                - fileName: Name of the file, or the saved name with fileId
                - parentFolderName: Folder path used with fileName
                - outputPath: Local file or directory to save to

        Returns:
            Confirmation text; metadata carries filePath when saved, or the
            base64 content otherwise.
        """
        args = parse_model(DownloadFileArgs, arguments, "downloadFile arguments")
        access_token = self._authenticate(args)

        result = await self.service.download_file(access_token, args)

        if result.saved_path is not None:
            metadata: dict[str, Any] = {
                "fileName": result.file_name,
                "filePath": result.saved_path,
                "mimeType": result.mime_type,
            }
        else:
            metadata = {
                "fileName": result.file_name,
                "mimeType": result.mime_type,
                "fileSize": result.size,
                "content": result.to_api()["content"],
            }
        return ToolResult(text=format_download_result(result), metadata=metadata)

    async def serve(self) -> None:
        """Serve MCP over stdio until the client disconnects."""
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )

    async def run(self) -> None:
        """Run the MCP server using stdio transport."""
        try:
            await self.serve()
        finally:
            await self.service.close()


def main() -> None:
    """Entry point for the OneDrive files MCP server."""
    server = FilesMCPServer(file_service_from_config(load_config()))
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
