"""
Google Drive data models.
"""
from pydantic import BaseModel
from typing import Optional, List

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


class DriveFile(BaseModel):
    """A file or folder in the user's Drive."""
    id: str
    name: str
    mime_type: str = "application/octet-stream"
    size: Optional[int] = None
    created_time: Optional[str] = None
    modified_time: Optional[str] = None
    web_view_link: Optional[str] = None
    web_content_link: Optional[str] = None
    parents: List[str] = []
    
    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE


class DriveListing(BaseModel):
    """Children of one folder, split by kind."""
    folder_id: Optional[str] = None
    folders: List[DriveFile] = []
    files: List[DriveFile] = []
    
    @property
    def total(self) -> int:
        return len(self.folders) + len(self.files)


class DriveUser(BaseModel):
    display_name: str = "Unknown"
    email_address: str = "Unknown"


class StorageQuota(BaseModel):
    """Bytes; limit is None for unlimited accounts."""
    limit: Optional[int] = None
    usage: Optional[int] = None
    usage_in_drive: Optional[int] = None
    
    @property
    def available(self) -> Optional[int]:
        if self.limit is None or self.usage is None:
            return None
        return max(self.limit - self.usage, 0)


class AccountInfo(BaseModel):
    """Profile and quota; either part may be missing."""
    user: Optional[DriveUser] = None
    quota: Optional[StorageQuota] = None


class Attachment(BaseModel):
    """A file the user attached to a chat command."""
    name: str
    size: int
    url: str
    content_type: Optional[str] = None
