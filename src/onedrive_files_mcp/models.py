"""Data models for drive items and operation results.

This module defines Pydantic models mirroring the Microsoft Graph
driveItem resource, plus the transient result objects returned by the
file operations facade.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, model_validator

DEFAULT_MIME_TYPE = "application/octet-stream"


class FileFacet(BaseModel):
    """File facet of a drive item.

    Attributes:
        mime_type: MIME type reported by the remote store.
        hashes: Optional content hashes (quickXorHash, sha1Hash, ...).
    """

    mime_type: str | None = Field(default=None, alias="mimeType")
    hashes: dict[str, str] | None = Field(default=None)

    model_config = {"populate_by_name": True}


class FolderFacet(BaseModel):
    """Folder facet of a drive item."""

    child_count: int = Field(default=0, alias="childCount")

    model_config = {"populate_by_name": True}


class ParentReference(BaseModel):
    """Back-reference to the folder containing an item."""

    drive_id: str | None = Field(default=None, alias="driveId")
    id: str | None = Field(default=None)
    path: str | None = Field(default=None)

    model_config = {"populate_by_name": True}


class DriveItem(BaseModel):
    """A file or folder in the remote store.

    Exactly one of ``file`` and ``folder`` is present.

    Attributes:
        id: Opaque identifier, unique within the drive.
        name: Display name, unique among siblings.
        web_url: Browser-navigable URL.
        size: Byte count.
        created_date_time: Creation timestamp (ISO-8601 string).
        last_modified_date_time: Last modification timestamp (ISO-8601 string).
        file: File facet, present for files.
        folder: Folder facet, present for folders.
        parent_reference: Containing folder reference.
    """

    id: str
    name: str
    web_url: str | None = Field(default=None, alias="webUrl")
    size: int | None = Field(default=None)
    created_date_time: str | None = Field(default=None, alias="createdDateTime")
    last_modified_date_time: str | None = Field(default=None, alias="lastModifiedDateTime")
    file: FileFacet | None = Field(default=None)
    folder: FolderFacet | None = Field(default=None)
    parent_reference: ParentReference | None = Field(default=None, alias="parentReference")

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _check_single_facet(self) -> "DriveItem":
        if (self.file is None) == (self.folder is None):
            raise ValueError("a drive item must carry exactly one of 'file' or 'folder'")
        return self

    @property
    def is_file(self) -> bool:
        """Return True if this item is a file."""
        return self.file is not None

    @property
    def is_folder(self) -> bool:
        """Return True if this item is a folder."""
        return self.folder is not None

    @property
    def mime_type(self) -> str:
        """MIME type of a file item, falling back to application/octet-stream."""
        if self.file is not None and self.file.mime_type:
            return self.file.mime_type
        return DEFAULT_MIME_TYPE

    def to_api(self) -> dict[str, Any]:
        """Serialize using the Graph field names, omitting absent fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Page(BaseModel):
    """One page of a folder listing.

    Attributes:
        items: Items in name-ascending order as returned by the remote query.
        next_page_token: Opaque continuation cursor; None at end of sequence.
    """

    items: list[DriveItem] = Field(default_factory=list)
    next_page_token: str | None = Field(default=None, alias="nextPageToken")

    model_config = {"populate_by_name": True}

    @property
    def has_more(self) -> bool:
        """True when another page can be requested."""
        return self.next_page_token is not None


class UploadResult(BaseModel):
    """Outcome of a single upload."""

    id: str
    web_url: str | None = Field(default=None, alias="webUrl")
    name: str
    size: int | None = Field(default=None)
    mime_type: str = Field(default=DEFAULT_MIME_TYPE, alias="mimeType")

    model_config = {"populate_by_name": True}

    def to_api(self) -> dict[str, Any]:
        """Serialize using camelCase field names."""
        return self.model_dump(by_alias=True)


class SavedFile(BaseModel):
    """Download location variant: content written to local disk."""

    kind: Literal["saved"] = "saved"
    path: str


class InlineContent(BaseModel):
    """Download location variant: content returned as base64."""

    kind: Literal["inline"] = "inline"
    content: str


DownloadLocation = Annotated[SavedFile | InlineContent, Field(discriminator="kind")]


class DownloadResult(BaseModel):
    """Outcome of a single download.

    Attributes:
        file_name: Name of the downloaded (or saved) file.
        mime_type: MIME type of the remote file.
        size: Number of content bytes.
        location: Where the content ended up, saved to disk or inline.
    """

    file_name: str = Field(alias="fileName")
    mime_type: str = Field(default=DEFAULT_MIME_TYPE, alias="mimeType")
    size: int = Field(default=0)
    location: DownloadLocation

    model_config = {"populate_by_name": True}

    @property
    def saved_path(self) -> str | None:
        """Absolute path of the saved file, if the content went to disk."""
        if isinstance(self.location, SavedFile):
            return self.location.path
        return None

    def to_api(self) -> dict[str, Any]:
        """Serialize to the response shape: ``filePath`` or ``content``, never both."""
        data: dict[str, Any] = {
            "fileName": self.file_name,
            "mimeType": self.mime_type,
            "size": self.size,
        }
        if isinstance(self.location, SavedFile):
            data["filePath"] = self.location.path
        else:
            data["content"] = self.location.content
        return data


PushEventType = Literal["file_created", "file_deleted", "file_updated", "error"]


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class PushEvent(BaseModel):
    """Notification broadcast to every open push channel."""

    type: PushEventType
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=utc_timestamp)
