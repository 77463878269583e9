"""
Download chat attachments so they can be re-uploaded to Drive.

Only https URLs on the chat platform's CDN hosts (ATTACHMENT_HOSTS) are
fetched. Redirects are followed, but every hop is checked against the
same list before it is sent.
"""
from typing import Iterable, Optional

import httpx

from drivebot.utils.logger import get_logger
from drivebot.utils.errors import RemoteServiceError
from drivebot.utils.validation import validate_attachment_url, validate_file_size

logger = get_logger(__name__)


async def download_attachment(
    url: str,
    max_bytes: int,
    allowed_hosts: Iterable[str] = (),
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bytes:
    """
    Fetch attachment bytes, refusing anything over max_bytes.
    
    The declared attachment size is checked before this is called; the
    streamed length is checked again here because the declared size comes
    from the client.
    
    Raises:
        ValidationError: URL (or a redirect target) not allowed, or body exceeds max_bytes
        RemoteServiceError: Download failed
    """
    allowed_hosts = list(allowed_hosts)
    
    async def check_target(request: httpx.Request) -> None:
        validate_attachment_url(str(request.url), allowed_hosts)
    
    chunks = []
    received = 0
    
    async with httpx.AsyncClient(
        follow_redirects=True,
        event_hooks={"request": [check_target]},
        transport=transport,
    ) as client:
        try:
            async with client.stream("GET", url, timeout=60.0) as response:
                if response.status_code != 200:
                    logger.error(f"Attachment download failed: {response.status_code}")
                    raise RemoteServiceError("chat platform", "Couldn't download the attachment.")
                
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    validate_file_size(received, max_bytes)
                    chunks.append(chunk)
        except httpx.RequestError as e:
            logger.error(f"Attachment download request failed: {e}")
            raise RemoteServiceError("chat platform", "Couldn't download the attachment.")
    
    return b"".join(chunks)
