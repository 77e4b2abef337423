"""File operations shared by the MCP and HTTP front-ends."""

from onedrive_files_mcp.services.file_service import (
    FileService,
    extract_skip_token,
    file_service_from_config,
    resolve_output_path,
)
from onedrive_files_mcp.services.path_resolver import PathResolver, split_path

__all__ = [
    "FileService",
    "PathResolver",
    "extract_skip_token",
    "file_service_from_config",
    "resolve_output_path",
    "split_path",
]
