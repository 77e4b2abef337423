"""Human-readable renderings of drive items and operation results."""

from datetime import datetime

from onedrive_files_mcp.models import DownloadResult, DriveItem, Page, UploadResult

SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]


def format_file_size(size: int | None) -> str:
    """Format a byte count with binary units, e.g. ``1536 -> "1.5 KB"``."""
    if not size:
        return "0 B"
    value = float(size)
    index = 0
    while value >= 1024 and index < len(SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {SIZE_UNITS[index]}"


def format_date(value: str | None) -> str:
    """Render an ISO-8601 timestamp as local time; unparseable values pass through."""
    if not value:
        return "unknown"
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def format_drive_item(item: DriveItem) -> str:
    lines = [f"[{'File' if item.is_file else 'Folder'}] {item.name}", f"  URL: {item.web_url}"]
    if item.file is not None:
        lines.append(f"  Size: {format_file_size(item.size)}")
    if item.folder is not None:
        lines.append(f"  Items: {item.folder.child_count}")
    lines.append(f"  Created: {format_date(item.created_date_time)}")
    lines.append(f"  Modified: {format_date(item.last_modified_date_time)}")
    return "\n".join(lines)


def format_page(page: Page) -> str:
    """Plain-text listing used as the listFiles tool output."""
    if not page.items:
        return "No files or folders found."

    body = "\n\n".join(format_drive_item(item) for item in page.items)
    text = f"Found {len(page.items)} items:\n\n{body}"
    if page.has_more:
        text += "\n\nThere are more items available. Use the nextPageToken to fetch the next page."
    return text


def format_drive_item_markdown(item: DriveItem) -> str:
    kind = "File" if item.is_file else "Folder"
    lines = [f"### {item.name} ({kind})", f"- [Open in Browser]({item.web_url})"]
    if item.file is not None:
        lines.append(f"- Size: {format_file_size(item.size)}")
    if item.folder is not None:
        lines.append(f"- Items: {item.folder.child_count}")
    lines.append(f"- Created: {format_date(item.created_date_time)}")
    lines.append(f"- Modified: {format_date(item.last_modified_date_time)}")
    return "\n".join(lines)


def format_page_markdown(page: Page) -> str:
    """Markdown listing carried in the HTTP list response metadata."""
    if not page.items:
        return "## No files or folders found"
    body = "\n\n".join(format_drive_item_markdown(item) for item in page.items)
    return f"## File Listing ({len(page.items)} items)\n\n{body}"


def format_upload_result(result: UploadResult) -> str:
    return (
        "✅ File uploaded successfully!\n"
        f"  Name: {result.name}\n"
        f"  Size: {format_file_size(result.size)}\n"
        f"  Type: {result.mime_type}\n"
        f"  URL: {result.web_url}"
    )


def format_download_result(result: DownloadResult) -> str:
    text = (
        "✅ File downloaded successfully!\n"
        f"  Name: {result.file_name}\n"
        f"  Type: {result.mime_type}\n"
    )
    if result.saved_path is not None:
        return text + f"  Saved to: {result.saved_path}"
    return text + f"  Size: {format_file_size(result.size)}"
