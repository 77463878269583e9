"""
Shared FastAPI dependencies.
"""
import time

from fastapi import Depends, HTTPException, Request

from drivebot.context import AppContext
from drivebot.utils.logger import get_logger
from drivebot.utils.signing import SIGNATURE_HEADER, TIMESTAMP_HEADER, verify_signature

logger = get_logger(__name__)


def get_context(request: Request) -> AppContext:
    """The AppContext built at startup."""
    return request.app.state.context


def _rejected(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"error": True, "code": code, "message": message},
    )


async def verify_platform_request(
    request: Request,
    context: AppContext = Depends(get_context),
) -> None:
    """
    Only the chat platform adapter may call interaction endpoints.

    The adapter is the one that authenticated the chat user, so the
    user_id it sends is trusted only when the request carries a valid
    signature made with INTERACTION_SECRET.

    Raises:
        HTTPException: 401 if the signature is missing, stale or wrong
    """
    signature = request.headers.get(SIGNATURE_HEADER)
    timestamp = request.headers.get(TIMESTAMP_HEADER)
    if not signature or not timestamp:
        raise _rejected("AUTH_REQUIRED", "Signed request required")

    try:
        sent_at = int(timestamp)
    except ValueError:
        raise _rejected("INVALID_SIGNATURE", "Malformed signature timestamp")

    if abs(time.time() - sent_at) > context.settings.interaction_max_skew_seconds:
        raise _rejected("INVALID_SIGNATURE", "Signature timestamp outside the allowed window")

    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    body = await request.body()

    if not verify_signature(
        context.settings.interaction_secret, signature, timestamp, request.method, target, body
    ):
        logger.warning(f"Rejected unsigned or forged request to {request.url.path}")
        raise _rejected("INVALID_SIGNATURE", "Invalid request signature")
