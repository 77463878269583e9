"""
Google Drive API client integration.

This module handles direct communication with the Drive v3 API:
1. Folder creation and listing
2. Multipart uploads
3. Deletion and public sharing
4. File metadata and account/quota lookups

Every call is a single attempt; nothing here retries.

Drive API Reference: https://developers.google.com/drive/api/reference/rest/v3
"""
import json
import uuid
from typing import List, Optional
from urllib.parse import quote

import httpx

from drivebot.models.drive import (
    AccountInfo, DriveFile, DriveListing, DriveUser, StorageQuota, FOLDER_MIME_TYPE,
)
from drivebot.utils.logger import get_logger
from drivebot.utils.errors import DriveError, DriveTokenRejectedError, RemoteQuotaError, ResourceNotFoundError

logger = get_logger(__name__)

DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_BASE = "https://www.googleapis.com/upload/drive/v3"

FILE_FIELDS = "id,name,mimeType,size,createdTime,modifiedTime,webViewLink,webContentLink,parents"
LIST_PAGE_SIZE = 50

# 403 reasons that mean "slow down" rather than "not allowed"
RATE_LIMIT_REASONS = {"rateLimitExceeded", "userRateLimitExceeded"}


def escape_query_value(value: str) -> str:
    """Escape a literal for use inside single quotes in a Drive `q` query."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _file_path(file_id: str) -> str:
    return "/files/" + quote(file_id, safe="")


class DriveClient:
    """
    Drive API client bound to one user's access token.
    
    Usage:
        client = DriveClient(access_token)
        listing = await client.list_children()
        folder_id = await client.create_folder("Images", parent_id)
        file = await client.upload(folder_id, data, "cat.png", "image/png")
    """
    
    def __init__(self, access_token: str):
        self.headers = {"Authorization": f"Bearer {access_token}"}
    
    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: dict = None,
        json_data: dict = None,
        content: bytes = None,
        extra_headers: dict = None,
        base_url: str = DRIVE_API_BASE,
    ) -> Optional[dict]:
        """
        Make an authenticated request to the Drive API.
        
        Handles common error cases:
        - 401: Token expired/invalid
        - 403: Rate limited or permission denied
        - 404: Returns None
        - 429: Rate limited
        
        Returns:
            Response JSON dict ({} for empty bodies), or None on 404
            
        Raises:
            DriveTokenRejectedError: Token rejected
            RemoteQuotaError: Rate limit exceeded
            DriveError: Any other API or transport failure
        """
        url = f"{base_url}{endpoint}"
        headers = dict(self.headers)
        if extra_headers:
            headers.update(extra_headers)
        
        async with httpx.AsyncClient() as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=headers,
                    params=params,
                    json=json_data,
                    content=content,
                    timeout=60.0,
                )
            except httpx.RequestError as e:
                logger.error(f"Drive API request failed: {method} {endpoint} - {e}")
                raise DriveError("Google Drive is unreachable. Please try again later.")
        
        if 200 <= response.status_code < 300:
            if response.status_code == 204 or not response.content:
                return {}
            return response.json()
        
        if response.status_code == 404:
            return None
        
        if response.status_code == 401:
            logger.warning("Drive API: Token expired or invalid")
            raise DriveTokenRejectedError()
        
        if response.status_code == 429:
            logger.warning("Drive API: Rate limited")
            raise RemoteQuotaError("Google Drive API")
        
        error = self._error_payload(response)
        reasons = {e.get("reason") for e in error.get("errors", [])}
        
        if response.status_code == 403:
            if reasons & RATE_LIMIT_REASONS:
                logger.warning("Drive API: Rate limited (403)")
                raise RemoteQuotaError("Google Drive API")
            if "storageQuotaExceeded" in reasons:
                raise DriveError("Your Google Drive storage is full.")
            logger.warning(f"Drive API: Permission denied {reasons}")
            raise DriveError("Google Drive permission denied. Please link your account again.")
        
        logger.error(f"Drive API error: {response.status_code} - {error.get('message', '')}")
        raise DriveError(f"Google Drive API error: {response.status_code}")
    
    def _error_payload(self, response: httpx.Response) -> dict:
        try:
            return response.json().get("error", {}) or {}
        except (ValueError, AttributeError):
            return {}
    
    # =========================================================================
    # FOLDERS
    # =========================================================================
    
    async def create_folder(self, name: str, parent_id: Optional[str] = None) -> str:
        """
        Create a folder.
        
        Args:
            name: Folder name
            parent_id: Parent folder id, or None for My Drive root
            
        Returns:
            New folder id
        """
        body = {"name": name, "mimeType": FOLDER_MIME_TYPE}
        if parent_id:
            body["parents"] = [parent_id]
        
        result = await self._make_request("POST", "/files", params={"fields": "id,name"}, json_data=body)
        if not result or "id" not in result:
            raise DriveError(f"Failed to create folder '{name}'.")
        
        logger.info(f"Created Drive folder {result['id']}")
        return result["id"]
    
    async def list_children(self, folder_id: Optional[str] = None) -> DriveListing:
        """
        List non-trashed children of a folder, folders first.
        
        Args:
            folder_id: Folder id, or None for My Drive root
            
        Returns:
            DriveListing split into folders and files
            
        Raises:
            ResourceNotFoundError: Folder does not exist
        """
        parent = escape_query_value(folder_id) if folder_id else "root"
        params = {
            "q": f"trashed = false and '{parent}' in parents",
            "fields": f"nextPageToken, files({FILE_FIELDS})",
            "orderBy": "folder,name",
            "pageSize": LIST_PAGE_SIZE,
        }
        
        result = await self._make_request("GET", "/files", params=params)
        if result is None:
            raise ResourceNotFoundError(folder_id or "root", kind="folder")
        
        entries = [self._parse_file(item) for item in result.get("files", [])]
        return DriveListing(
            folder_id=folder_id,
            folders=[f for f in entries if f.is_folder],
            files=[f for f in entries if not f.is_folder],
        )
    
    async def list_all(self, page_size: int = 100) -> List[DriveFile]:
        """
        Every non-trashed file and folder the app can see, recently
        modified first. With the drive.file scope that is everything
        this bot uploaded or created.
        """
        params = {
            "q": "trashed = false",
            "fields": f"files({FILE_FIELDS})",
            "orderBy": "modifiedTime desc",
            "pageSize": page_size,
        }
        result = await self._make_request("GET", "/files", params=params) or {}
        return [self._parse_file(item) for item in result.get("files", [])]
    
    # =========================================================================
    # FILES
    # =========================================================================
    
    async def upload(self, parent_id: str, data: bytes, name: str, mime_type: str) -> DriveFile:
        """
        Upload bytes as a new file with a multipart/related request.
        
        Args:
            parent_id: Destination folder id
            data: File content
            name: File name
            mime_type: Content type stored on the Drive file
            
        Returns:
            Metadata of the created file
        """
        boundary = f"drivebot-{uuid.uuid4().hex}"
        metadata = json.dumps({"name": name, "parents": [parent_id]})
        
        body = b"".join([
            f"--{boundary}\r\n".encode(),
            b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
            metadata.encode("utf-8"),
            f"\r\n--{boundary}\r\n".encode(),
            f"Content-Type: {mime_type}\r\n\r\n".encode(),
            data,
            f"\r\n--{boundary}--\r\n".encode(),
        ])
        
        result = await self._make_request(
            "POST",
            "/files",
            params={"uploadType": "multipart", "fields": FILE_FIELDS},
            content=body,
            extra_headers={"Content-Type": f"multipart/related; boundary={boundary}"},
            base_url=DRIVE_UPLOAD_BASE,
        )
        if result is None:
            raise ResourceNotFoundError(parent_id, kind="folder")
        
        uploaded = self._parse_file(result)
        logger.info(f"Uploaded file {uploaded.id} ({len(data)} bytes)")
        return uploaded
    
    async def delete(self, file_id: str) -> None:
        """
        Permanently delete a file or folder.
        
        Raises:
            ResourceNotFoundError: Nothing with this id
        """
        result = await self._make_request("DELETE", _file_path(file_id))
        if result is None:
            raise ResourceNotFoundError(file_id)
        logger.info(f"Deleted Drive file {file_id}")
    
    async def create_public_permission(self, file_id: str) -> None:
        """
        Make a file readable by anyone with the link.
        
        Raises:
            ResourceNotFoundError: Nothing with this id
        """
        result = await self._make_request(
            "POST",
            f"{_file_path(file_id)}/permissions",
            json_data={"role": "reader", "type": "anyone"},
        )
        if result is None:
            raise ResourceNotFoundError(file_id)
        logger.info(f"Shared Drive file {file_id} publicly")
    
    async def get_metadata(self, file_id: str, fields: str = FILE_FIELDS) -> Optional[DriveFile]:
        """
        Fetch metadata for one file.
        
        Returns:
            DriveFile or None if it does not exist
        """
        if "id" not in fields.split(","):
            fields = f"id,{fields}"
        result = await self._make_request("GET", _file_path(file_id), params={"fields": fields})
        if result is None:
            return None
        return self._parse_file(result)
    
    async def get_account_info(self) -> AccountInfo:
        """Fetch the signed-in user's profile and storage quota."""
        result = await self._make_request("GET", "/about", params={"fields": "user,storageQuota"})
        result = result or {}
        
        user = result.get("user")
        quota = result.get("storageQuota")
        
        return AccountInfo(
            user=DriveUser(
                display_name=user.get("displayName", "Unknown"),
                email_address=user.get("emailAddress", "Unknown"),
            ) if user else None,
            quota=StorageQuota(
                limit=self._to_int(quota.get("limit")),
                usage=self._to_int(quota.get("usage")),
                usage_in_drive=self._to_int(quota.get("usageInDrive")),
            ) if quota else None,
        )
    
    # =========================================================================
    # PARSING
    # =========================================================================
    
    def _parse_file(self, data: dict) -> DriveFile:
        """Map a Drive API file resource to DriveFile."""
        return DriveFile(
            id=data["id"],
            name=data.get("name", "Untitled"),
            mime_type=data.get("mimeType", "application/octet-stream"),
            size=self._to_int(data.get("size")),
            created_time=data.get("createdTime"),
            modified_time=data.get("modifiedTime"),
            web_view_link=data.get("webViewLink"),
            web_content_link=data.get("webContentLink"),
            parents=data.get("parents", []),
        )
    
    @staticmethod
    def _to_int(value) -> Optional[int]:
        # Drive returns int64 fields as strings
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            return None
