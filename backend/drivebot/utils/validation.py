"""
Input validation for uploads, verification codes and search queries.

All checks run before any network call and raise ValidationError with
the violated constraint so the router can explain it to the user.
"""
import re
from typing import Iterable, Optional
from urllib.parse import parse_qs, urlparse

from drivebot.utils.errors import ValidationError

MAX_FILE_NAME_LENGTH = 255
MAX_QUERY_LENGTH = 200

INVALID_FILE_NAME_CHARS = re.compile(r'[<>:"/\\|?*]')
RESERVED_FILE_NAMES = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{i}" for i in range(1, 10)]
    + [f"LPT{i}" for i in range(1, 10)]
)
PROHIBITED_QUERY_TERMS = ("xxx", "porn", "adult", "explicit")

_CODE_PATTERN = re.compile(r"code=([^&\s#]+)")


def validate_file_size(size: int, max_bytes: int) -> None:
    """
    Reject payloads larger than the upload ceiling.
    
    Raises:
        ValidationError: size exceeds max_bytes
    """
    if size > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise ValidationError(
            f"File is too large. The maximum upload size is {limit_mb:g} MB.",
            constraint="max_size",
        )


def validate_file_name(name: Optional[str]) -> None:
    """
    Reject names Drive would accept but that break downloads on common
    filesystems.
    
    Raises:
        ValidationError: empty, reserved, too long or with forbidden characters
    """
    if not name or not name.strip():
        raise ValidationError("File name cannot be empty.", constraint="empty_name")
    
    if INVALID_FILE_NAME_CHARS.search(name):
        raise ValidationError(
            'File name cannot contain any of these characters: < > : " / \\ | ? *',
            constraint="invalid_characters",
        )
    
    if name.upper() in RESERVED_FILE_NAMES:
        raise ValidationError(f"'{name}' is a reserved file name.", constraint="reserved_name")
    
    if len(name) > MAX_FILE_NAME_LENGTH:
        raise ValidationError(
            f"File name is too long (max {MAX_FILE_NAME_LENGTH} characters).",
            constraint="name_length",
        )


def validate_attachment_url(url: str, allowed_hosts: Iterable[str]) -> None:
    """
    Only fetch attachments over https from the chat platform's own hosts.
    
    Raises:
        ValidationError: other scheme, or host not in allowed_hosts
    """
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    allowed = {h.lower() for h in allowed_hosts}
    
    if parsed.scheme != "https" or host not in allowed:
        raise ValidationError(
            "Attachments can only be uploaded from the chat platform.",
            constraint="attachment_host",
        )


def extract_auth_code(raw: Optional[str]) -> str:
    """
    Pull the authorization code out of user input.
    
    Accepts either the bare code or the whole redirect URL the browser
    landed on.
    
    Args:
        raw: Text the user pasted
        
    Returns:
        Trimmed, non-empty authorization code
        
    Raises:
        ValidationError: No usable code in the input
    """
    text = (raw or "").strip()
    code = text
    
    if "code=" in text:
        values = parse_qs(urlparse(text).query).get("code")
        if values:
            code = values[0]
        else:
            match = _CODE_PATTERN.search(text)
            code = match.group(1) if match else ""
    
    code = code.strip()
    if not code:
        raise ValidationError(
            "Please provide the verification code or the full URL you were redirected to.",
            constraint="missing_code",
        )
    return code


def validate_search_query(query: Optional[str]) -> str:
    """
    Check a search query and return it trimmed.
    
    Raises:
        ValidationError: empty, too long or containing a prohibited term
    """
    text = (query or "").strip()
    
    if not text:
        raise ValidationError("Search query cannot be empty.", constraint="empty_query")
    
    if len(text) > MAX_QUERY_LENGTH:
        raise ValidationError(
            f"Search query is too long (max {MAX_QUERY_LENGTH} characters).",
            constraint="query_length",
        )
    
    lowered = text.lower()
    if any(term in lowered for term in PROHIBITED_QUERY_TERMS):
        raise ValidationError(
            "Search query contains inappropriate content.",
            constraint="prohibited_content",
        )
    
    return text
