"""
Authentication routes for Google OAuth.

Linking Flow:
1. `/drive link` (or a signed GET /api/auth/url from the adapter)
   builds an OAuth URL whose `state` is a signed token naming the chat user
2. User grants Drive access on Google
3. Google redirects to GET /api/auth/callback with code and state
4. Valid state: the code is exchanged and the user is linked here
5. Missing/invalid state: the page shows the code so the user can run
   `/drive verify <code>` in chat
"""
import html

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from drivebot.context import AppContext
from drivebot.routes.dependencies import get_context, verify_platform_request
from drivebot.utils.logger import get_logger
from drivebot.utils.errors import AppError, AuthExchangeError

router = APIRouter()
logger = get_logger(__name__)

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{title}</title></head>
<body style="font-family: sans-serif; max-width: 36rem; margin: 4rem auto; text-align: center;">
<h1>{title}</h1>
{body}
</body>
</html>"""


def _page(title: str, body: str, status_code: int = 200) -> HTMLResponse:
    return HTMLResponse(PAGE_TEMPLATE.format(title=html.escape(title), body=body), status_code=status_code)


@router.get("/url", dependencies=[Depends(verify_platform_request)])
async def get_auth_url(user_id: str, context: AppContext = Depends(get_context)):
    """
    Get the Google OAuth URL for a chat user.
    
    Returns:
        { auth_url: "https://accounts.google.com/..." }
    """
    return {"auth_url": context.auth.get_oauth_url(user_id)}


@router.get("/callback", response_class=HTMLResponse)
async def oauth_callback(
    code: str = None,
    state: str = None,
    error: str = None,
    context: AppContext = Depends(get_context),
):
    """
    Handle Google OAuth callback.
    
    Query params:
        code: Authorization code from Google (on success)
        state: Signed state from our OAuth URL
        error: Error from Google (on denial)
    """
    # Handle user denial or OAuth errors
    if error:
        logger.warning(f"OAuth error: {error}")
        return _page(
            "Authorization cancelled",
            f"<p>Google reported: <code>{html.escape(error)}</code></p>"
            "<p>Run <code>/drive link</code> in chat to try again.</p>",
            status_code=400,
        )
    
    if not code:
        logger.warning("OAuth callback missing code")
        return _page("Missing code", "<p>No authorization code was received.</p>", status_code=400)
    
    user_id = context.auth.verify_state(state)
    if user_id is None:
        return _page(
            "Almost done",
            "<p>Copy this code and run <code>/drive verify</code> in chat:</p>"
            f"<pre style=\"word-break: break-all; white-space: pre-wrap;\">{html.escape(code)}</pre>",
        )
    
    try:
        await context.vault.store(user_id, code)
    except AuthExchangeError as e:
        if e.code_rejected:
            return _page(
                "Code expired",
                "<p>This authorization code was already used or has expired.</p>"
                "<p>Run <code>/drive link</code> in chat to get a new link.</p>",
                status_code=400,
            )
        return _page("Linking failed", f"<p>{html.escape(e.message)}</p>", status_code=400)
    except AppError as e:
        logger.error(f"OAuth callback failed [{e.code}]: {e.message}")
        return _page("Linking failed", f"<p>{html.escape(e.message)}</p>", status_code=502)
    
    logger.info(f"Linked user {user_id} from OAuth callback")
    return _page(
        "Google Drive linked",
        "<p>You can close this tab and go back to chat.</p>",
    )
