"""Version information for onedrive-files-mcp."""

from importlib.metadata import PackageNotFoundError, version


def _get_version() -> str:
    """Get version from installed package metadata or fallback to hardcoded."""
    try:
        return version("onedrive-files-mcp")
    except PackageNotFoundError:
        return "0.1.0"


__version__ = _get_version()
