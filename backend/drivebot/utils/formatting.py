"""
Small text helpers for rendering Drive data.
"""
from datetime import datetime
from typing import Optional

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]

FOLDER_ICON = "📁"


def format_file_size(size: Optional[int]) -> str:
    """Human readable size, e.g. 1536 -> '1.5 KB'."""
    if size is None:
        return "Unknown"
    if size <= 0:
        return "0 Bytes"
    
    index = 0
    value = float(size)
    while value >= 1024 and index < len(_SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {_SIZE_UNITS[index]}"


def format_date(value: Optional[str]) -> str:
    """Format an RFC 3339 timestamp from the Drive API."""
    if not value:
        return "Unknown"
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return dt.strftime("%d %b %Y, %H:%M")


def file_icon(mime_type: Optional[str]) -> str:
    """Emoji for a MIME type."""
    if not mime_type:
        return "📄"
    
    if mime_type == "application/vnd.google-apps.folder":
        return FOLDER_ICON
    if mime_type.startswith("image/"):
        return "🖼️"
    if mime_type.startswith("video/"):
        return "🎥"
    if mime_type.startswith("audio/"):
        return "🎵"
    if "pdf" in mime_type:
        return "📕"
    if "document" in mime_type or "word" in mime_type:
        return "📝"
    if "spreadsheet" in mime_type or "excel" in mime_type:
        return "📊"
    if "presentation" in mime_type or "powerpoint" in mime_type:
        return "📋"
    if "zip" in mime_type or "archive" in mime_type:
        return "📦"
    if mime_type.startswith("text/"):
        return "📃"
    return "📄"


def truncate(text: str, max_length: int = 50) -> str:
    """Shorten text to max_length, ending with '...' when cut."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def format_duration(seconds: float) -> str:
    """Uptime style duration: '2d 3h 4m 5s'."""
    seconds = int(seconds)
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{seconds}s")
    return " ".join(parts)
