"""File operations on OneDrive / SharePoint drives.

The facade composes path resolution with Graph calls and reshapes the
results into the models of :mod:`onedrive_files_mcp.models`. It is shared
by the MCP and HTTP front-ends and holds no per-request state.
"""

import asyncio
import base64
import binascii
import logging
import re
from pathlib import Path
from typing import Any
from urllib.parse import unquote

from pydantic import ValidationError as PydanticValidationError

from onedrive_files_mcp.config import ServerConfig
from onedrive_files_mcp.errors import NotFoundError, RemoteOperationError, ValidationError
from onedrive_files_mcp.graph.client import DRIVE_ROOT, GraphClient, child_path, item_path
from onedrive_files_mcp.models import (
    DEFAULT_MIME_TYPE,
    DownloadResult,
    DriveItem,
    InlineContent,
    Page,
    SavedFile,
    UploadResult,
)
from onedrive_files_mcp.schemas import DEFAULT_PAGE_SIZE, DownloadFileRequest, UploadFileRequest
from onedrive_files_mcp.services.path_resolver import PathResolver

logger = logging.getLogger(__name__)

ITEM_FIELDS = "id,name,size,webUrl,createdDateTime,lastModifiedDateTime,file,folder,parentReference"
SKIP_TOKEN_PATTERN = re.compile(r"[&?]\$skiptoken=([^&]+)")
ODATA_NEXT_LINK = "@odata.nextLink"
CONFLICT_BEHAVIOR_PARAM = "@microsoft.graph.conflictBehavior"


def extract_skip_token(next_link: str | None) -> str | None:
    """Pull the continuation cursor out of an ``@odata.nextLink`` URL.

    Returns:
        The decoded ``$skiptoken`` value, or None when there is no next page.
    """
    if not next_link:
        return None
    match = SKIP_TOKEN_PATTERN.search(next_link)
    if match is None:
        logger.warning("nextLink without $skiptoken; treating listing as complete")
        return None
    return unquote(match.group(1))


def resolve_output_path(output_path: str, file_name: str) -> Path:
    """Decide where a download is written.

    A path without a file extension is a directory and gets ``file_name``
    appended; anything else is the exact target file.
    """
    target = Path(output_path).expanduser()
    if not target.suffix:
        target = target / file_name
    return target.resolve()


def _read_local_file(file_path: str) -> tuple[bytes, str]:
    path = Path(file_path).expanduser().resolve()
    return path.read_bytes(), path.name


def _write_local_file(target: Path, content: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)


class FileService:
    """List, fetch, upload, download and delete drive items.

    Attributes:
        graph: Graph client used for every remote call.
        resolver: Folder path resolver sharing the same client.
    """

    def __init__(self, graph: GraphClient) -> None:
        self.graph = graph
        self.resolver = PathResolver(graph)

    async def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        await self.graph.close()

    # =========================================================================
    # Listing and metadata
    # =========================================================================

    async def list_files(
        self,
        access_token: str,
        folder_id: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        next_page_token: str | None = None,
    ) -> Page:
        """List the immediate children of a folder, sorted by name.

        Args:
            access_token: Caller's bearer token.
            folder_id: Folder to list; the drive root when omitted.
            page_size: Items per page, at least 1.
            next_page_token: Cursor from a previous page, passed through verbatim.

        Returns:
            One page of items and the cursor for the next one, if any.

        Raises:
            ValidationError: If page_size is not positive.
        """
        if page_size < 1:
            raise ValidationError(f"pageSize must be a positive integer, got {page_size}")

        path = f"{item_path(folder_id)}/children" if folder_id else f"{DRIVE_ROOT}/children"
        params: dict[str, Any] = {
            "$top": page_size,
            "$select": ITEM_FIELDS,
            "$orderby": "name",
        }
        if next_page_token:
            params["$skiptoken"] = next_page_token

        try:
            response = await self.graph.make_request("GET", path, access_token, params=params)
        except RemoteOperationError as e:
            raise e.with_context("Failed to list files") from e

        items = []
        for raw in response.get("value", []):
            try:
                items.append(DriveItem.model_validate(raw))
            except PydanticValidationError:
                logger.warning(f"Skipping item without a single file/folder facet: {raw.get('id')}")

        page = Page(items=items, next_page_token=extract_skip_token(response.get(ODATA_NEXT_LINK)))
        logger.info(f"Listed {len(page.items)} items (has_more={page.has_more})")
        return page

    async def get_item(self, access_token: str, item_id: str) -> DriveItem:
        """Fetch the metadata of a single item.

        Raises:
            NotFoundError: If no item has this identifier, or the item is
                neither a file nor a folder.
        """
        try:
            response = await self.graph.make_request(
                "GET", item_path(item_id), access_token, params={"$select": ITEM_FIELDS}
            )
        except NotFoundError as e:
            raise NotFoundError(f"Item '{item_id}' not found") from e
        except RemoteOperationError as e:
            raise e.with_context("Failed to get file") from e

        try:
            return DriveItem.model_validate(response)
        except PydanticValidationError as e:
            raise NotFoundError(f"Item '{item_id}' is not a file or folder") from e

    # =========================================================================
    # Upload
    # =========================================================================

    async def upload_file(self, access_token: str, request: UploadFileRequest) -> UploadResult:
        """Upload a file as a single in-memory payload.

        Content comes from ``file_path`` when given (its basename is the
        default name, overridden by ``file_name``); otherwise from the
        base64 ``file_content`` with ``file_name``.

        Args:
            access_token: Caller's bearer token.
            request: Validated upload parameters.

        Returns:
            Identifier, URL, name, size and MIME type of the created item.

        Raises:
            ValidationError: If no name or content can be determined, the
                local file cannot be read, or the content is not base64.
            NotFoundError: If parent_folder_name does not resolve.
            AmbiguousPathError: If parent_folder_name is ambiguous.
        """
        content, file_name = await self._resolve_upload_source(request)

        if request.parent_folder_id:
            parent_id: str | None = request.parent_folder_id
        else:
            parent_id = await self.resolver.resolve(access_token, request.parent_folder_name)

        logger.info(
            f"Uploading '{file_name}' ({len(content)} bytes) "
            f"conflictBehavior={request.conflict_behavior}"
        )
        try:
            response = await self.graph.make_raw_request(
                "PUT",
                f"{child_path(parent_id, file_name)}:/content",
                access_token,
                params={CONFLICT_BEHAVIOR_PARAM: request.conflict_behavior},
                content=content,
                headers={"Content-Type": "application/octet-stream"},
            )
        except RemoteOperationError as e:
            raise e.with_context("Failed to upload file") from e

        item: dict[str, Any] = response.json()
        return UploadResult(
            id=item["id"],
            web_url=item.get("webUrl"),
            name=item.get("name", file_name),
            size=item.get("size", len(content)),
            mime_type=(item.get("file") or {}).get("mimeType") or DEFAULT_MIME_TYPE,
        )

    async def _resolve_upload_source(self, request: UploadFileRequest) -> tuple[bytes, str]:
        file_name = request.file_name
        content: bytes | None = None

        if request.file_path:
            loop = asyncio.get_running_loop()
            try:
                content, local_name = await loop.run_in_executor(
                    None, _read_local_file, request.file_path
                )
            except OSError as e:
                raise ValidationError(
                    f"Failed to read file '{request.file_path}': {e.strerror or e}"
                ) from e
            file_name = file_name or local_name
        elif request.file_content:
            try:
                content = base64.b64decode(request.file_content, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValidationError("fileContent is not valid base64") from e

        if not file_name:
            raise ValidationError("File name is required when filePath is not provided")
        if content is None:
            raise ValidationError("File content is required when filePath is not provided")
        return content, file_name

    # =========================================================================
    # Download
    # =========================================================================

    async def download_file(self, access_token: str, request: DownloadFileRequest) -> DownloadResult:
        """Download a file by identifier, or by name under a folder path.

        The identifier wins when both are supplied; ``file_name`` then only
        renames the saved copy.

        Args:
            access_token: Caller's bearer token.
            request: Validated download parameters.

        Returns:
            A result whose location is the saved absolute path when
            ``output_path`` was given, or the base64 content otherwise.

        Raises:
            ValidationError: If neither file_id nor file_name is given, or the
                local copy cannot be written.
            NotFoundError: If the file does not exist or is a folder.
        """
        if request.file_id:
            metadata = await self._get_file_metadata(access_token, request.file_id)
            file_name = request.file_name or metadata.name
        elif request.file_name:
            metadata = await self._find_file_by_name(
                access_token, request.file_name, request.parent_folder_name
            )
            file_name = metadata.name
        else:
            raise ValidationError("Either fileId or fileName is required")

        try:
            response = await self.graph.make_raw_request(
                "GET", f"{item_path(metadata.id)}/content", access_token
            )
        except RemoteOperationError as e:
            raise e.with_context(f"Failed to download file '{file_name}'") from e
        content = response.content

        if request.output_path:
            target = resolve_output_path(request.output_path, file_name)
            loop = asyncio.get_running_loop()
            try:
                await loop.run_in_executor(None, _write_local_file, target, content)
            except OSError as e:
                raise ValidationError(
                    f"Failed to save file to '{target}': {e.strerror or e}"
                ) from e
            logger.info(f"Saved '{file_name}' ({len(content)} bytes) to {target}")
            location: SavedFile | InlineContent = SavedFile(path=str(target))
        else:
            location = InlineContent(content=base64.b64encode(content).decode("ascii"))

        return DownloadResult(
            file_name=file_name,
            mime_type=metadata.mime_type,
            size=len(content),
            location=location,
        )

    async def _get_file_metadata(self, access_token: str, file_id: str) -> DriveItem:
        try:
            item = await self.get_item(access_token, file_id)
        except NotFoundError as e:
            raise NotFoundError(f"File '{file_id}' not found") from e
        if not item.is_file:
            raise NotFoundError(f"Item '{file_id}' is not a file")
        return item

    async def _find_file_by_name(
        self, access_token: str, file_name: str, parent_folder_name: str | None
    ) -> DriveItem:
        parent_id = await self.resolver.resolve(access_token, parent_folder_name)
        try:
            response = await self.graph.make_request(
                "GET",
                child_path(parent_id, file_name),
                access_token,
                params={"$select": ITEM_FIELDS},
            )
        except NotFoundError as e:
            raise NotFoundError(f"File '{file_name}' not found") from e
        except RemoteOperationError as e:
            raise e.with_context(f"Failed to download file '{file_name}'") from e

        if not response.get("file"):
            raise NotFoundError(f"File '{file_name}' not found")
        return DriveItem.model_validate(response)

    # =========================================================================
    # Delete
    # =========================================================================

    async def delete_file(self, access_token: str, item_id: str) -> None:
        """Delete an item.

        Raises:
            NotFoundError: If the item does not exist, including when it was
                already deleted.
        """
        try:
            await self.graph.make_delete_request(item_path(item_id), access_token)
        except NotFoundError as e:
            raise NotFoundError(f"Item '{item_id}' not found") from e
        except RemoteOperationError as e:
            raise e.with_context("Failed to delete file") from e
        logger.info(f"Deleted item {item_id}")


def file_service_from_config(config: ServerConfig) -> FileService:
    """Construct a FileService from a ServerConfig."""
    graph = GraphClient(base_url=config.graph_base_url, timeout=config.request_timeout)
    return FileService(graph)
