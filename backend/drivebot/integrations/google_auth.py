"""
Google OAuth client integration.

This module handles:
1. Generating OAuth authorization URLs
2. Exchanging authorization codes for tokens
3. Refreshing expired access tokens

Each method makes exactly one HTTP attempt.
"""
import httpx
from typing import Optional
from urllib.parse import urlencode

from drivebot.config import Settings
from drivebot.models.credential import TokenSet
from drivebot.utils.logger import get_logger
from drivebot.utils.errors import AuthError, AuthExchangeError

logger = get_logger(__name__)

# Google OAuth endpoints
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


class GoogleOAuthClient:
    """
    Identity provider client for Google Drive linking.
    
    Usage:
        oauth = GoogleOAuthClient(settings)
        url = oauth.get_oauth_url(state)
        tokens = await oauth.exchange_code(code)
        tokens = await oauth.refresh(refresh_token)
    """
    
    def __init__(self, settings: Settings):
        self.client_id = settings.google_client_id
        self.client_secret = settings.google_client_secret
        self.redirect_uri = settings.google_redirect_uri
        self.scopes = settings.google_scopes
    
    def get_oauth_url(self, state: Optional[str] = None) -> str:
        """
        Generate Google OAuth authorization URL.
        
        The user opens this URL to grant Drive access. Google then
        redirects to our callback with a code.
        
        Args:
            state: Opaque value echoed back to the callback
            
        Returns:
            OAuth authorization URL string
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "access_type": "offline",  # Request refresh token
            "prompt": "select_account consent",  # Force consent to get refresh token
            "include_granted_scopes": "true",
        }
        if state:
            params["state"] = state
        
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"
    
    async def exchange_code(self, code: str) -> TokenSet:
        """
        Exchange authorization code for access and refresh tokens.
        
        Args:
            code: Authorization code from Google callback
            
        Returns:
            TokenSet with plaintext tokens
            
        Raises:
            AuthExchangeError: Google rejected the code; `code_rejected`
                tells an expired/used code apart from other failures
            AuthError: Google could not be reached
        """
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
        }
        
        payload = await self._post_token(data, "code exchange")
        logger.info("Successfully exchanged code for tokens")
        
        return TokenSet(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),  # May not be present on re-auth
            expires_in=payload.get("expires_in", 3600),
        )
    
    async def refresh(self, refresh_token: str) -> TokenSet:
        """
        Get a new access token with the refresh token.
        
        Args:
            refresh_token: The refresh token from initial auth
            
        Returns:
            TokenSet; refresh_token is the new one when Google rotated it,
            otherwise the one passed in
            
        Raises:
            AuthExchangeError: Refresh token revoked or expired
            AuthError: Google could not be reached
        """
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        
        payload = await self._post_token(data, "token refresh")
        logger.info("Successfully refreshed access token")
        
        return TokenSet(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or refresh_token,
            expires_in=payload.get("expires_in", 3600),
        )
    
    async def _post_token(self, data: dict, operation: str) -> dict:
        """POST to the token endpoint and map error responses."""
        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(GOOGLE_TOKEN_URL, data=data, timeout=30.0)
            except httpx.RequestError as e:
                logger.error(f"OAuth {operation} request failed: {e}")
                raise AuthError("Failed to connect to Google for authentication")
        
        if response.status_code != 200:
            try:
                error_data = response.json()
            except ValueError:
                error_data = {}
            error_code = error_data.get("error", "")
            
            # Never log the code or tokens, only Google's error fields
            logger.warning(
                f"OAuth {operation} failed: {response.status_code} {error_code}"
            )
            raise AuthExchangeError(error_code, error_data.get("error_description", ""))
        
        return response.json()
