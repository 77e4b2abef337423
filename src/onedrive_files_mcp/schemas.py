"""Request schemas validated at the boundary of each front-end.

Each model accepts the camelCase names used on the wire as well as the
snake_case attribute names. The MCP tool argument models double as the
source of the tools' JSON input schemas.
"""

from typing import Any, Literal, TypeVar

from pydantic import BaseModel, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from onedrive_files_mcp.errors import validation_error_from

ConflictBehavior = Literal["fail", "replace", "rename"]

DEFAULT_PAGE_SIZE = 100
TOOL_MAX_PAGE_SIZE = 200
HTTP_MAX_PAGE_SIZE = 1000

ModelT = TypeVar("ModelT", bound=BaseModel)


class ToolAuthArgs(BaseModel):
    """Authentication fields carried by every MCP tool call."""

    access_token: str = Field(
        ...,
        alias="accessToken",
        min_length=1,
        description="Microsoft Graph API access token (Files.ReadWrite scope)",
    )
    token_expires_at: int | None = Field(
        default=None,
        alias="tokenExpiresAt",
        description="Token expiry as epoch milliseconds (optional)",
    )

    model_config = {"populate_by_name": True}


class ListFilesQuery(BaseModel):
    """Query parameters of GET /api/files."""

    folder_id: str | None = Field(
        default=None,
        alias="folderId",
        description="ID of the folder to list. Lists the root when omitted.",
    )
    page_size: int = Field(
        default=DEFAULT_PAGE_SIZE,
        alias="pageSize",
        gt=0,
        le=HTTP_MAX_PAGE_SIZE,
        description=f"Number of items per page (1-{HTTP_MAX_PAGE_SIZE})",
    )
    next_page_token: str | None = Field(
        default=None,
        alias="nextPageToken",
        description="Token to retrieve the next page of results",
    )

    model_config = {"populate_by_name": True}


class ListFilesArgs(ToolAuthArgs):
    """Arguments of the listFiles tool."""

    folder_id: str | None = Field(
        default=None,
        alias="folderId",
        description="ID of the folder to list. Lists the root when omitted.",
    )
    page_size: int = Field(
        default=DEFAULT_PAGE_SIZE,
        alias="pageSize",
        gt=0,
        le=TOOL_MAX_PAGE_SIZE,
        description=f"Number of items per page (1-{TOOL_MAX_PAGE_SIZE})",
    )
    next_page_token: str | None = Field(
        default=None,
        alias="nextPageToken",
        description="Token to retrieve the next page of results",
    )


class UploadFileRequest(BaseModel):
    """Upload parameters shared by POST /api/files and the uploadFile tool.

    Either ``file_path`` or both ``file_name`` and ``file_content`` must end
    up providing a name and content; that check happens in the facade
    because reading ``file_path`` is part of resolving the precedence.
    """

    file_path: str | None = Field(
        default=None,
        alias="filePath",
        description="Local file path to upload (alternative to fileContent)",
    )
    file_name: str | None = Field(
        default=None,
        alias="fileName",
        description="Name of the file (required if filePath not provided)",
    )
    file_content: str | None = Field(
        default=None,
        alias="fileContent",
        description="Base64-encoded file content (required if filePath not provided)",
    )
    parent_folder_id: str | None = Field(
        default=None,
        alias="parentFolderId",
        description="ID of the parent folder (takes precedence over parentFolderName)",
    )
    parent_folder_name: str | None = Field(
        default=None,
        alias="parentFolderName",
        description='Name/path of the parent folder (e.g., "Documents/Reports")',
    )
    conflict_behavior: ConflictBehavior = Field(
        default="rename",
        alias="conflictBehavior",
        description="What to do if a file with the same name exists",
    )

    model_config = {"populate_by_name": True}


class UploadFileArgs(ToolAuthArgs, UploadFileRequest):
    """Arguments of the uploadFile tool."""


class DownloadFileRequest(BaseModel):
    """Download parameters.

    A file is addressed either by ``file_id`` or by ``file_name`` under
    ``parent_folder_name``. When both are given the identifier wins and
    ``file_name`` only renames the saved copy.
    """

    file_id: str | None = Field(
        default=None,
        alias="fileId",
        description="ID of the file to download (preferred)",
    )
    file_name: str | None = Field(
        default=None,
        alias="fileName",
        description="Name of the file to download, or the name to save it under with fileId",
    )
    parent_folder_name: str | None = Field(
        default=None,
        alias="parentFolderName",
        description='Name/path of the parent folder (e.g., "Documents/Reports")',
    )
    output_path: str | None = Field(
        default=None,
        alias="outputPath",
        description="Local path to save the file to; returns base64 content when omitted",
    )

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _require_address(self) -> "DownloadFileRequest":
        if not self.file_id and not self.file_name:
            raise ValueError("either fileId or fileName is required")
        return self


class DownloadFileArgs(ToolAuthArgs, DownloadFileRequest):
    """Arguments of the downloadFile tool."""


class DownloadFileBody(BaseModel):
    """JSON body of POST /api/files/{id}/download."""

    output_path: str | None = Field(default=None, alias="outputPath")
    file_name: str | None = Field(default=None, alias="fileName")

    model_config = {"populate_by_name": True}


def parse_model(model: type[ModelT], data: Any, context: str) -> ModelT:
    """Validate raw input against a schema.

    Args:
        model: Schema class.
        data: Raw mapping from the transport (tool arguments, query, body).
        context: What is being validated, used in the error message.

    Returns:
        The validated model instance.

    Raises:
        ValidationError: Listing every invalid field.
    """
    try:
        return model.model_validate(data if data is not None else {})
    except PydanticValidationError as e:
        raise validation_error_from(e, context) from e


def tool_input_schema(model: type[BaseModel]) -> dict[str, Any]:
    """JSON schema for an MCP tool's arguments, using the wire names."""
    schema = model.model_json_schema(by_alias=True)
    schema.pop("title", None)
    schema.pop("description", None)
    return schema
