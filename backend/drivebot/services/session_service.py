"""
Session management service.

This module handles:
1. Lazily creating per-user sessions
2. Discarding them on unlink (credential and cached folders go with it)
3. Caching the provisioned Drive folder ids per user
4. Mapping MIME types to upload categories

Sessions are stored in-memory only; a restart forgets every link.
"""
import asyncio
from typing import Awaitable, Callable, Dict, Optional

from drivebot.models.session import UserSession
from drivebot.utils.logger import get_logger

logger = get_logger(__name__)

# Upload categories, one Drive subfolder each
IMAGES = "Images"
DOCUMENTS = "Documents"
ARCHIVES = "Archives"
OTHERS = "Others"
CATEGORIES = (IMAGES, DOCUMENTS, ARCHIVES, OTHERS)

# resource_cache key of the top-level upload folder
ROOT_FOLDER_KEY = "root"

Provisioner = Callable[[], Awaitable[Dict[str, str]]]


def categorize(mime_type: Optional[str]) -> str:
    """
    Pick the upload category for a MIME type.
    
    Rules are checked in order, first match wins:
    image/* -> Images; document, pdf or text/* -> Documents;
    zip, archive or compressed -> Archives; anything else -> Others.
    """
    mime = (mime_type or "").lower()
    
    if mime.startswith("image/"):
        return IMAGES
    if "document" in mime or "pdf" in mime or mime.startswith("text/"):
        return DOCUMENTS
    if "zip" in mime or "archive" in mime or "compressed" in mime:
        return ARCHIVES
    return OTHERS


def folder_for(mime_type: Optional[str], cache: Dict[str, str]) -> Optional[str]:
    """Folder id for a MIME type's category, falling back to the upload root."""
    return cache.get(categorize(mime_type)) or cache.get(ROOT_FOLDER_KEY)


class SessionStore:
    """
    Process-wide map of user id -> UserSession.
    
    Usage:
        store = SessionStore()
        session = store.get_or_create(user_id)
        folders = await store.get_or_create_resource_cache(user_id, provision)
        store.discard(user_id)
    """
    
    def __init__(self):
        self._sessions: Dict[str, UserSession] = {}
        self._provisioning: Dict[str, asyncio.Future] = {}
    
    def get(self, user_id: str) -> Optional[UserSession]:
        return self._sessions.get(user_id)
    
    def get_or_create(self, user_id: str) -> UserSession:
        session = self._sessions.get(user_id)
        if session is None:
            session = UserSession(user_id=user_id)
            self._sessions[user_id] = session
        return session
    
    def discard(self, user_id: str) -> bool:
        """
        Forget a user's session.
        
        Returns:
            True if there was a session to remove
        """
        self._provisioning.pop(user_id, None)
        return self._sessions.pop(user_id, None) is not None
    
    def __len__(self) -> int:
        return len(self._sessions)
    
    def linked_count(self) -> int:
        return sum(1 for s in self._sessions.values() if s.linked)
    
    async def get_or_create_resource_cache(self, user_id: str, provision: Provisioner) -> Dict[str, str]:
        """
        Return the user's category -> folder id map, provisioning it once.
        
        Concurrent callers for the same user share a single provisioning
        run. The cache is the only record of what was provisioned, so a
        restart will provision a fresh set of folders.
        
        Args:
            user_id: Chat user id
            provision: Coroutine factory creating the folders remotely
            
        Returns:
            The cached mapping
        """
        session = self.get_or_create(user_id)
        if session.resource_cache:
            return session.resource_cache
        
        pending = self._provisioning.get(user_id)
        if pending is None:
            pending = asyncio.ensure_future(provision())
            self._provisioning[user_id] = pending
            logger.info(f"Provisioning Drive folders for user {user_id}")
        
        try:
            folders = await asyncio.shield(pending)
        finally:
            if self._provisioning.get(user_id) is pending and pending.done():
                del self._provisioning[user_id]
        
        # An unlink during provisioning leaves `session` detached; nothing is resurrected
        if not session.resource_cache:
            session.resource_cache.update(folders)
        return session.resource_cache
