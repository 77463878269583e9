"""
Credential vault.

This module handles:
1. Exchanging an authorization code and storing the encrypted tokens
2. Returning a usable credential, refreshing it first when expired
3. Unlinking users
4. Evicting credentials that can no longer be used or decrypted

Plaintext tokens only exist inside this module and only for the span
of a single call.
"""
import asyncio
from typing import Awaitable, Callable, Dict, Optional

from drivebot.integrations.google_auth import GoogleOAuthClient
from drivebot.models.credential import Credential, TokenSet
from drivebot.services.session_service import SessionStore
from drivebot.utils.clock import Clock, epoch_millis
from drivebot.utils.encryption import TokenCipher
from drivebot.utils.logger import get_logger
from drivebot.utils.errors import AppError, AuthError, CredentialCorruptedError, NotAuthenticatedError

logger = get_logger(__name__)

# Treat tokens as expired slightly early so a call never starts with a dying token
EXPIRY_SKEW_SECONDS = 60

PostLinkHook = Callable[[str], Awaitable[object]]


class CredentialVault:
    """
    Per-user OAuth credentials, encrypted at rest.
    
    Usage:
        vault = CredentialVault(sessions, cipher, oauth)
        await vault.store(user_id, code)
        token = await vault.get_access_token(user_id)
        vault.unlink(user_id)
    """
    
    def __init__(
        self,
        sessions: SessionStore,
        cipher: TokenCipher,
        oauth: GoogleOAuthClient,
        clock: Clock = epoch_millis,
        post_link: Optional[PostLinkHook] = None,
    ):
        self.sessions = sessions
        self.cipher = cipher
        self.oauth = oauth
        self.clock = clock
        self.post_link = post_link
        self._refreshing: Dict[str, asyncio.Future] = {}
    
    async def store(self, user_id: str, authorization_code: str) -> Credential:
        """
        Exchange a one-time code and link the user.
        
        Args:
            user_id: Chat user id
            authorization_code: Code from the OAuth redirect
            
        Returns:
            The stored (encrypted) credential
            
        Raises:
            AuthExchangeError: Code invalid, expired or already used
        """
        tokens = await self.oauth.exchange_code(authorization_code)
        
        session = self.sessions.get_or_create(user_id)
        previous = session.credential
        credential = self._encrypt(tokens, previous)
        
        session.credential = credential
        session.linked = True
        # Folder ids may belong to a different Google account now
        session.resource_cache.clear()
        logger.info(f"Linked Google Drive for user {user_id}")
        
        if self.post_link is not None:
            try:
                await self.post_link(user_id)
            except AppError as e:
                # The link itself succeeded; folders get provisioned on first upload
                logger.warning(f"Post-link provisioning failed for user {user_id}: {e.code}")
        
        return credential
    
    async def get(self, user_id: str) -> Optional[Credential]:
        """
        Get a non-expired credential, refreshing it if needed.
        
        Concurrent callers for the same user share one refresh call.
        
        Returns:
            Credential, or None when the user is not linked or the refresh
            failed (the credential is evicted in that case)
            
        Raises:
            CredentialCorruptedError: Stored refresh token undecryptable;
                the credential has been evicted
        """
        session = self.sessions.get(user_id)
        if session is None or session.credential is None:
            return None
        
        credential = session.credential
        if not credential.is_expired(self.clock()):
            return credential
        
        pending = self._refreshing.get(user_id)
        if pending is None:
            pending = asyncio.ensure_future(self._refresh(user_id, credential))
            self._refreshing[user_id] = pending
            pending.add_done_callback(lambda done: self._clear_refresh(user_id, done))
        
        return await asyncio.shield(pending)
    
    async def get_access_token(self, user_id: str) -> str:
        """
        Decrypt the current access token for one API call.
        
        Raises:
            NotAuthenticatedError: User not linked (or refresh failed)
            CredentialCorruptedError: Ciphertext unreadable; user evicted
        """
        credential = await self.get(user_id)
        if credential is None:
            raise NotAuthenticatedError()
        
        try:
            return self.cipher.decrypt(credential.access_token_cipher)
        except CredentialCorruptedError:
            logger.warning(f"Access token for user {user_id} failed to decrypt; unlinking")
            self._evict(user_id, credential)
            raise
    
    def unlink(self, user_id: str) -> bool:
        """
        Remove the credential and cached folders. Safe to call repeatedly.
        
        Returns:
            True if the user was linked
        """
        was_linked = self.is_linked(user_id)
        self._refreshing.pop(user_id, None)
        self.sessions.discard(user_id)
        if was_linked:
            logger.info(f"Unlinked Google Drive for user {user_id}")
        return was_linked
    
    def is_linked(self, user_id: str) -> bool:
        session = self.sessions.get(user_id)
        return session is not None and session.linked and session.credential is not None
    
    # =========================================================================
    # INTERNALS
    # =========================================================================
    
    async def _refresh(self, user_id: str, credential: Credential) -> Optional[Credential]:
        if credential.refresh_token_cipher is None:
            logger.warning(f"No refresh token for user {user_id}; unlinking")
            self._evict(user_id, credential)
            return None
        
        try:
            refresh_token = self.cipher.decrypt(credential.refresh_token_cipher)
        except CredentialCorruptedError:
            logger.warning(f"Refresh token for user {user_id} failed to decrypt; unlinking")
            self._evict(user_id, credential)
            raise
        
        try:
            tokens = await self.oauth.refresh(refresh_token)
        except AuthError as e:
            logger.warning(f"Token refresh failed for user {user_id} ({e.code}); unlinking")
            self._evict(user_id, credential)
            return None
        
        refreshed = self._encrypt(tokens, credential)
        session = self.sessions.get(user_id)
        
        # Unlinked or relinked while we were waiting: keep whatever is there now
        if session is None or session.credential is not credential:
            return session.credential if session is not None else None
        
        session.credential = refreshed
        logger.info(f"Refreshed access token for user {user_id}")
        return refreshed
    
    def _clear_refresh(self, user_id: str, done: asyncio.Future) -> None:
        if self._refreshing.get(user_id) is done:
            del self._refreshing[user_id]
    
    def _evict(self, user_id: str, credential: Credential) -> None:
        session = self.sessions.get(user_id)
        if session is not None and session.credential is credential:
            self.sessions.discard(user_id)
    
    def _encrypt(self, tokens: TokenSet, previous: Optional[Credential] = None) -> Credential:
        if tokens.refresh_token:
            refresh_cipher = self.cipher.encrypt(tokens.refresh_token)
        else:
            # Google omits the refresh token on some re-consents; keep the old one
            refresh_cipher = previous.refresh_token_cipher if previous else None
        
        lifetime_ms = max(tokens.expires_in - EXPIRY_SKEW_SECONDS, 0) * 1000
        return Credential(
            access_token_cipher=self.cipher.encrypt(tokens.access_token),
            refresh_token_cipher=refresh_cipher,
            expiry_epoch_millis=self.clock() + lifetime_ms,
        )
