"""
Drive service - business logic layer for Drive operations.

This module provides:
1. Folder provisioning for new links (upload root + one folder per category)
2. Folder browsing with parent lookup for the Back control
3. Fuzzy name resolution for command arguments
4. Upload, share, delete and account status

The service sits between the command handlers and DriveClient. It is
shared by all users; every method takes the chat user id and fetches a
fresh access token from the vault for that call.
"""
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional

from drivebot.config import Settings
from drivebot.integrations.drive_client import DriveClient
from drivebot.models.drive import AccountInfo, Attachment, DriveFile, DriveListing
from drivebot.services.credential_vault import CredentialVault
from drivebot.services.session_service import (
    CATEGORIES, ROOT_FOLDER_KEY, SessionStore, categorize, folder_for,
)
from drivebot.utils.logger import get_logger
from drivebot.utils.errors import DriveError, RemoteQuotaError, RemoteServiceError, ResourceNotFoundError
from drivebot.utils.validation import validate_attachment_url, validate_file_name, validate_file_size

logger = get_logger(__name__)

DriveClientFactory = Callable[[str], DriveClient]
AttachmentFetcher = Callable[[str, int], Awaitable[bytes]]


@dataclass
class FolderView:
    """A folder listing plus where Back should go (None = root)."""
    listing: DriveListing
    folder: Optional[DriveFile] = None
    parent_id: Optional[str] = None


@dataclass
class UploadResult:
    file: DriveFile
    category: str


def match_by_name(entries: List[DriveFile], query: str) -> Optional[DriveFile]:
    """
    Case-insensitive lookup: an exact name match wins, otherwise the
    first entry whose name contains the query.
    """
    needle = query.strip().lower()
    if not needle:
        return None
    
    for entry in entries:
        if entry.name.lower() == needle:
            return entry
    for entry in entries:
        if needle in entry.name.lower():
            return entry
    return None


class DriveService:
    """
    Usage:
        service = DriveService(settings, vault, sessions, DriveClient, download_attachment)
        view = await service.list_folder(user_id)
        result = await service.upload(user_id, attachment)
    """
    
    def __init__(
        self,
        settings: Settings,
        vault: CredentialVault,
        sessions: SessionStore,
        client_factory: DriveClientFactory,
        fetch_attachment: AttachmentFetcher,
    ):
        self.settings = settings
        self.vault = vault
        self.sessions = sessions
        self.client_factory = client_factory
        self.fetch_attachment = fetch_attachment
    
    async def _client(self, user_id: str) -> DriveClient:
        access_token = await self.vault.get_access_token(user_id)
        return self.client_factory(access_token)
    
    # =========================================================================
    # PROVISIONING
    # =========================================================================
    
    async def ensure_folders(self, user_id: str) -> Dict[str, str]:
        """Return the user's category folders, creating them on first use."""
        client = await self._client(user_id)
        return await self.sessions.get_or_create_resource_cache(
            user_id, lambda: self._provision(client)
        )
    
    async def _provision(self, client: DriveClient) -> Dict[str, str]:
        root_id = await client.create_folder(self.settings.upload_root_folder)
        folders = {ROOT_FOLDER_KEY: root_id}
        for category in CATEGORIES:
            folders[category] = await client.create_folder(category, root_id)
        return folders
    
    # =========================================================================
    # BROWSING
    # =========================================================================
    
    async def list_folder(self, user_id: str, folder_id: Optional[str] = None) -> FolderView:
        """
        List a folder (root when folder_id is None).
        
        The folder's own metadata is optional: if it cannot be fetched the
        view still renders, with Back pointing at root.
        """
        client = await self._client(user_id)
        listing = await client.list_children(folder_id)
        
        if folder_id is None:
            return FolderView(listing=listing)
        
        folder = None
        try:
            folder = await client.get_metadata(folder_id, "id,name,mimeType,parents")
        except (RemoteServiceError, RemoteQuotaError) as e:
            logger.warning(f"Parent lookup for folder {folder_id} failed: {e.code}")
        
        parent_id = folder.parents[0] if folder and folder.parents else None
        return FolderView(listing=listing, folder=folder, parent_id=parent_id)
    
    async def find_folder(self, user_id: str, name: str) -> DriveFile:
        """
        Resolve a folder name among the folders visible to the bot.
        
        Raises:
            ResourceNotFoundError: No folder matches
        """
        client = await self._client(user_id)
        folders = [f for f in await client.list_all() if f.is_folder]
        match = match_by_name(folders, name)
        if match is None:
            raise ResourceNotFoundError(name, kind="folder")
        return match
    
    async def find_file(self, user_id: str, name: str) -> DriveFile:
        """
        Resolve a file name the user typed.
        
        Raises:
            ResourceNotFoundError: No file matches
        """
        client = await self._client(user_id)
        files = [f for f in await client.list_all() if not f.is_folder]
        match = match_by_name(files, name)
        if match is None:
            raise ResourceNotFoundError(name)
        return match
    
    async def file_info(self, user_id: str, file_id: str) -> DriveFile:
        """
        Raises:
            ResourceNotFoundError: The id no longer exists
        """
        client = await self._client(user_id)
        file = await client.get_metadata(file_id)
        if file is None:
            raise ResourceNotFoundError(file_id)
        return file
    
    # =========================================================================
    # MUTATIONS
    # =========================================================================
    
    async def upload(self, user_id: str, attachment: Attachment) -> UploadResult:
        """
        Copy a chat attachment into the user's category folder.
        
        Size, name and source URL are validated before any network call.
        
        Raises:
            ValidationError: Too large, bad file name or untrusted URL
        """
        validate_file_size(attachment.size, self.settings.max_upload_bytes)
        validate_file_name(attachment.name)
        validate_attachment_url(attachment.url, self.settings.attachment_hosts)
        
        folders = await self.ensure_folders(user_id)
        data = await self.fetch_attachment(attachment.url, self.settings.max_upload_bytes)
        
        mime_type = attachment.content_type or "application/octet-stream"
        category = categorize(mime_type)
        parent_id = folder_for(mime_type, folders)
        if parent_id is None:
            raise DriveError("Upload folders are missing. Please link your account again.")
        
        client = await self._client(user_id)
        try:
            uploaded = await client.upload(parent_id, data, attachment.name, mime_type)
        except ResourceNotFoundError:
            # Folder was deleted in Drive; provision again on the next upload
            session = self.sessions.get(user_id)
            if session is not None:
                session.resource_cache.clear()
            raise DriveError("Your upload folder was removed from Drive. Please try the upload again.")
        return UploadResult(file=uploaded, category=category)
    
    async def share(self, user_id: str, file_id: str) -> DriveFile:
        """
        Make a file public (anyone with the link can view).
        
        Returns:
            File metadata including the view and download links
        """
        client = await self._client(user_id)
        await client.create_public_permission(file_id)
        
        file = await client.get_metadata(file_id, "id,name,mimeType,size,webViewLink,webContentLink")
        if file is None:
            raise ResourceNotFoundError(file_id)
        return file
    
    async def delete(self, user_id: str, file_id: str) -> None:
        client = await self._client(user_id)
        await client.delete(file_id)
    
    async def account_info(self, user_id: str) -> Optional[AccountInfo]:
        """
        Profile and quota for the status view; None if the lookup fails.
        """
        client = await self._client(user_id)
        try:
            return await client.get_account_info()
        except (RemoteServiceError, RemoteQuotaError) as e:
            logger.warning(f"Account info lookup failed for user {user_id}: {e.code}")
            return None
