"""Unit tests for folder path resolution."""

import pytest

from onedrive_files_mcp.errors import AmbiguousPathError, NotFoundError
from onedrive_files_mcp.services.path_resolver import PathResolver, split_path

from fakes import ACCESS_TOKEN, FakeGraphDrive


@pytest.fixture
def resolver(graph_client) -> PathResolver:
    return PathResolver(graph_client)


@pytest.mark.unit
class TestSplitPath:
    """Tests for split_path."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            (None, []),
            ("", []),
            ("/", []),
            ("Documents", ["Documents"]),
            ("Documents/Reports", ["Documents", "Reports"]),
            ("/Documents//Reports/", ["Documents", "Reports"]),
        ],
    )
    def test_should_drop_empty_segments(self, path: str | None, expected: list[str]) -> None:
        assert split_path(path) == expected


@pytest.mark.unit
class TestPathResolver:
    """Tests for PathResolver.resolve."""

    @pytest.mark.asyncio
    async def test_empty_path_resolves_to_root_without_remote_call(
        self, resolver: PathResolver, fake_drive: FakeGraphDrive
    ) -> None:
        """Verify an empty path means root and costs no request."""
        assert await resolver.resolve(ACCESS_TOKEN, "") is None
        assert await resolver.resolve(ACCESS_TOKEN, None) is None
        assert await resolver.resolve(ACCESS_TOKEN, "///") is None
        assert fake_drive.requests == []

    @pytest.mark.asyncio
    async def test_should_walk_segments_from_root(
        self, resolver: PathResolver, fake_drive: FakeGraphDrive
    ) -> None:
        """Verify each segment is resolved under the previous folder."""
        documents = fake_drive.add_folder("Documents")
        reports = fake_drive.add_folder("Reports", parent_id=documents)

        assert await resolver.resolve(ACCESS_TOKEN, "Documents/Reports") == reports

        paths = [r.url.path for r in fake_drive.requests]
        assert paths == [
            "/v1.0/me/drive/root/children",
            f"/v1.0/me/drive/items/{documents}/children",
        ]
        assert fake_drive.requests[0].url.params["$select"] == "id"

    @pytest.mark.asyncio
    async def test_redundant_slashes_resolve_like_clean_path(
        self, resolver: PathResolver, fake_drive: FakeGraphDrive
    ) -> None:
        """Verify leading, trailing and doubled slashes are ignored."""
        documents = fake_drive.add_folder("Documents")
        reports = fake_drive.add_folder("Reports", parent_id=documents)

        assert await resolver.resolve(ACCESS_TOKEN, "/Documents//Reports/") == reports

    @pytest.mark.asyncio
    async def test_should_match_folders_only(
        self, resolver: PathResolver, fake_drive: FakeGraphDrive
    ) -> None:
        """Verify a file with the segment's name does not satisfy the segment."""
        fake_drive.add_file("Archive", b"not a folder")

        with pytest.raises(NotFoundError, match="Folder 'Archive' not found in path 'Archive'"):
            await resolver.resolve(ACCESS_TOKEN, "Archive")

    @pytest.mark.asyncio
    async def test_missing_segment_names_segment_and_path(
        self, resolver: PathResolver, fake_drive: FakeGraphDrive
    ) -> None:
        """Verify the error names the missing segment and stops walking."""
        fake_drive.add_folder("Documents")

        with pytest.raises(NotFoundError) as exc_info:
            await resolver.resolve(ACCESS_TOKEN, "Documents/Missing/Deeper")

        assert exc_info.value.message == (
            "Folder 'Missing' not found in path 'Documents/Missing/Deeper'"
        )
        assert len(fake_drive.requests) == 2

    @pytest.mark.asyncio
    async def test_ambiguous_segment_is_reported(
        self, resolver: PathResolver, fake_drive: FakeGraphDrive
    ) -> None:
        """Verify two folders answering one segment raise AmbiguousPathError."""
        fake_drive.add_folder("Shared")
        fake_drive.add_folder("shared")

        with pytest.raises(AmbiguousPathError, match="'Shared'"):
            await resolver.resolve(ACCESS_TOKEN, "Shared")

    @pytest.mark.asyncio
    async def test_quotes_in_names_are_escaped(
        self, resolver: PathResolver, fake_drive: FakeGraphDrive
    ) -> None:
        """Verify single quotes are doubled inside the OData filter."""
        folder = fake_drive.add_folder("Bob's Files")

        assert await resolver.resolve(ACCESS_TOKEN, "Bob's Files") == folder
        assert fake_drive.requests[0].url.params["$filter"] == (
            "name eq 'Bob''s Files' and folder ne null"
        )
