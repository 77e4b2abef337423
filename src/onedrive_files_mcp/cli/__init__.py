"""Command-line interface for onedrive-files-mcp."""
