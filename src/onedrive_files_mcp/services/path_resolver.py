"""Resolve slash-separated folder paths to drive item identifiers."""

import logging

from onedrive_files_mcp.errors import AmbiguousPathError, NotFoundError
from onedrive_files_mcp.graph.client import ROOT_ITEM_ID, GraphClient, escape_odata, item_path

logger = logging.getLogger(__name__)


def split_path(folder_path: str | None) -> list[str]:
    """Split a folder path into segments, dropping empty ones.

    Leading, trailing, and repeated slashes are therefore ignored:
    ``"/Documents//Reports/"`` yields ``["Documents", "Reports"]``.
    """
    if not folder_path:
        return []
    return [segment for segment in folder_path.split("/") if segment]


class PathResolver:
    """Walks a folder path one segment at a time from the drive root.

    Each segment costs one sequential Graph call; folder trees are expected
    to be shallow.
    """

    def __init__(self, graph: GraphClient) -> None:
        self.graph = graph

    async def resolve(self, access_token: str, folder_path: str | None) -> str | None:
        """Resolve a folder path to the identifier of its last folder.

        Args:
            access_token: Caller's bearer token.
            folder_path: Path such as ``"Documents/Reports"``.

        Returns:
            The folder identifier, or None meaning "use the drive root" when
            the path is empty. No remote call is made for an empty path.

        Raises:
            NotFoundError: If a segment has no matching folder.
            AmbiguousPathError: If a segment matches more than one folder.
        """
        segments = split_path(folder_path)
        if not segments:
            return None

        current_id = ROOT_ITEM_ID
        for segment in segments:
            response = await self.graph.make_request(
                "GET",
                f"{item_path(current_id)}/children",
                access_token,
                params={
                    "$filter": f"name eq '{escape_odata(segment)}' and folder ne null",
                    "$select": "id",
                },
            )
            matches = response.get("value") or []

            if not matches:
                raise NotFoundError(f"Folder '{segment}' not found in path '{folder_path}'")
            if len(matches) > 1:
                raise AmbiguousPathError(
                    f"Folder '{segment}' is ambiguous in path '{folder_path}': "
                    f"{len(matches)} folders share that name"
                )

            current_id = matches[0]["id"]
            logger.debug(f"Resolved segment '{segment}' to {current_id}")

        logger.info(f"Resolved folder path '{folder_path}' to {current_id}")
        return current_id
