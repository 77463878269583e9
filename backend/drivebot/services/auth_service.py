"""
Authentication service.

This module orchestrates the Drive linking flow:
1. Build an OAuth URL whose `state` is a signed, short-lived JWT naming
   the chat user
2. On the OAuth callback, verify that state and link the user directly
3. Otherwise the user pastes the code into `/drive verify`
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from drivebot.config import Settings
from drivebot.integrations.google_auth import GoogleOAuthClient
from drivebot.services.credential_vault import CredentialVault
from drivebot.utils.logger import get_logger
from drivebot.utils.validation import extract_auth_code

logger = get_logger(__name__)

STATE_PURPOSE = "drive-link"
STATE_ALGORITHM = "HS256"


class AuthService:
    """
    Usage:
        auth = AuthService(settings, oauth, vault)
        url = auth.get_oauth_url(user_id)
        user_id = auth.verify_state(state)
        await auth.link(user_id, code_or_url)
    """
    
    def __init__(self, settings: Settings, oauth: GoogleOAuthClient, vault: CredentialVault):
        self.settings = settings
        self.oauth = oauth
        self.vault = vault
    
    def create_state(self, user_id: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "purpose": STATE_PURPOSE,
            "iat": now,
            "exp": now + timedelta(minutes=self.settings.oauth_state_ttl_minutes),
        }
        return jwt.encode(payload, self.settings.signing_secret, algorithm=STATE_ALGORITHM)
    
    def verify_state(self, state: Optional[str]) -> Optional[str]:
        """
        Return the chat user id from a state we issued, or None.
        """
        if not state:
            return None
        try:
            payload = jwt.decode(
                state,
                self.settings.signing_secret,
                algorithms=[STATE_ALGORITHM],
            )
        except jwt.ExpiredSignatureError:
            logger.warning("OAuth state expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid OAuth state: {e}")
            return None
        
        if payload.get("purpose") != STATE_PURPOSE or not payload.get("sub"):
            logger.warning("OAuth state has the wrong shape")
            return None
        return payload["sub"]
    
    def get_oauth_url(self, user_id: str) -> str:
        """OAuth URL for one chat user."""
        url = self.oauth.get_oauth_url(self.create_state(user_id))
        logger.info(f"Generated OAuth URL for user {user_id}")
        return url
    
    async def link(self, user_id: str, code_or_url: str) -> None:
        """
        Extract the code and store the user's credential.
        
        Raises:
            ValidationError: No code found; nothing was sent to Google
            AuthExchangeError: Google rejected the code
        """
        code = extract_auth_code(code_or_url)
        await self.vault.store(user_id, code)
