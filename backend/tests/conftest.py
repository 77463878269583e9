"""
Pytest fixtures for Drive Bot backend tests.

Google is replaced by in-memory fakes injected through build_context,
and time by a manual clock.
"""
import pytest
from typing import Dict, List, Optional

from drivebot.config import Settings
from drivebot.context import build_context
from drivebot.models.credential import TokenSet
from drivebot.models.drive import (
    AccountInfo, DriveFile, DriveListing, DriveUser, StorageQuota, FOLDER_MIME_TYPE,
)
from drivebot.models.interaction import EventKind, InteractionEvent
from drivebot.models.search import SearchItem, SearchResults, SearchType
from drivebot.utils.errors import ResourceNotFoundError

TEST_USER = "user-1"
INTERACTION_SECRET = "test-interaction-secret-0123"
START_MILLIS = 1_700_000_000_000


class FakeClock:
    """Manual epoch-millis clock."""
    
    def __init__(self, now: int = START_MILLIS):
        self.now = now
    
    def __call__(self) -> int:
        return self.now
    
    def advance(self, millis: int) -> None:
        self.now += millis


class FakeOAuthClient:
    """Stands in for GoogleOAuthClient; records every code and refresh token it sees."""
    
    def __init__(self):
        self.exchanged: List[str] = []
        self.refreshed: List[str] = []
        self.exchange_error: Optional[Exception] = None
        self.refresh_error: Optional[Exception] = None
        self.expires_in = 3600
        self._issued = 0
    
    def get_oauth_url(self, state: Optional[str] = None) -> str:
        return f"https://accounts.google.com/o/oauth2/v2/auth?state={state}"
    
    async def exchange_code(self, code: str) -> TokenSet:
        self.exchanged.append(code)
        if self.exchange_error:
            raise self.exchange_error
        self._issued += 1
        return TokenSet(
            access_token=f"access-{self._issued}",
            refresh_token=f"refresh-{self._issued}",
            expires_in=self.expires_in,
        )
    
    async def refresh(self, refresh_token: str) -> TokenSet:
        self.refreshed.append(refresh_token)
        if self.refresh_error:
            raise self.refresh_error
        return TokenSet(access_token="access-refreshed", expires_in=3600)


class FakeDriveClient:
    """In-memory Drive shared by every token; `calls` records mutations."""
    
    def __init__(self):
        self.files: Dict[str, DriveFile] = {}
        self.calls: List[tuple] = []
        self.tokens: List[str] = []
        self.shared: set = set()
        self.list_error: Optional[Exception] = None
        self.metadata_error: Optional[Exception] = None
        self.account_error: Optional[Exception] = None
        self.account = AccountInfo(
            user=DriveUser(display_name="Test User", email_address="test@example.com"),
            quota=StorageQuota(limit=15 * 1024 ** 3, usage=1024 ** 3),
        )
        self._next_id = 0
    
    def factory(self, access_token: str) -> "FakeDriveClient":
        self.tokens.append(access_token)
        return self
    
    def _new_id(self) -> str:
        self._next_id += 1
        return f"fid{self._next_id}"
    
    def add_file(self, name: str, mime_type: str = "text/plain", parent: str = "root",
                 size: int = 10, file_id: Optional[str] = None) -> DriveFile:
        file = DriveFile(
            id=file_id or self._new_id(),
            name=name,
            mime_type=mime_type,
            size=None if mime_type == FOLDER_MIME_TYPE else size,
            parents=[parent],
            web_view_link=f"https://drive.google.com/file/d/{name}/view",
        )
        self.files[file.id] = file
        return file
    
    async def create_folder(self, name: str, parent_id: Optional[str] = None) -> str:
        self.calls.append(("create_folder", name, parent_id))
        return self.add_file(name, FOLDER_MIME_TYPE, parent_id or "root").id
    
    async def list_children(self, folder_id: Optional[str] = None) -> DriveListing:
        if self.list_error:
            raise self.list_error
        if folder_id is not None and folder_id not in self.files:
            raise ResourceNotFoundError(folder_id, kind="folder")
        parent = folder_id or "root"
        entries = [f for f in self.files.values() if parent in f.parents]
        return DriveListing(
            folder_id=folder_id,
            folders=[f for f in entries if f.is_folder],
            files=[f for f in entries if not f.is_folder],
        )
    
    async def list_all(self, page_size: int = 100) -> List[DriveFile]:
        return list(self.files.values())
    
    async def upload(self, parent_id: str, data: bytes, name: str, mime_type: str) -> DriveFile:
        self.calls.append(("upload", parent_id, name, mime_type))
        if parent_id not in self.files:
            raise ResourceNotFoundError(parent_id, kind="folder")
        return self.add_file(name, mime_type, parent_id, size=len(data))
    
    async def delete(self, file_id: str) -> None:
        self.calls.append(("delete", file_id))
        if file_id not in self.files:
            raise ResourceNotFoundError(file_id)
        del self.files[file_id]
    
    async def create_public_permission(self, file_id: str) -> None:
        self.calls.append(("share", file_id))
        if file_id not in self.files:
            raise ResourceNotFoundError(file_id)
        self.shared.add(file_id)
    
    async def get_metadata(self, file_id: str, fields: str = "") -> Optional[DriveFile]:
        if self.metadata_error:
            raise self.metadata_error
        file = self.files.get(file_id)
        if file is None:
            return None
        if file_id in self.shared:
            return file.model_copy(update={"web_content_link": f"https://drive.google.com/uc?id={file_id}"})
        return file
    
    async def get_account_info(self) -> AccountInfo:
        if self.account_error:
            raise self.account_error
        return self.account


class FakeSearchClient:
    """Records query arguments and returns canned items."""
    
    def __init__(self):
        self.queries: List[dict] = []
        self.error: Optional[Exception] = None
    
    async def query(self, text, search_type=SearchType.WEB, count=10, start=1,
                    safe_mode="medium", file_type=None, site_filter=None) -> SearchResults:
        self.queries.append({"text": text, "type": search_type, "count": count, "file_type": file_type})
        if self.error:
            raise self.error
        return SearchResults(
            query=text,
            search_type=search_type,
            total_results=2,
            search_time=0.12,
            items=[
                SearchItem(title="First", link="https://example.com/1", snippet="one", display_link="example.com"),
                SearchItem(title="Second", link="https://example.com/2", snippet="two", display_link="example.com"),
            ],
        )


class FakeFetcher:
    """Attachment downloader returning fixed bytes."""
    
    def __init__(self, payload: bytes = b"hello world"):
        self.payload = payload
        self.urls: List[str] = []
    
    async def __call__(self, url: str, max_bytes: int) -> bytes:
        self.urls.append(url)
        return self.payload


def command(name: str, subcommand: Optional[str] = None, user_id: str = TEST_USER, **params) -> InteractionEvent:
    return InteractionEvent(kind=EventKind.COMMAND, name=name, subcommand=subcommand, params=params, user_id=user_id)


def button(custom_id: str, user_id: str = TEST_USER) -> InteractionEvent:
    return InteractionEvent(kind=EventKind.BUTTON, name=custom_id, user_id=user_id)


def select(custom_id: str, value: str, user_id: str = TEST_USER) -> InteractionEvent:
    return InteractionEvent(kind=EventKind.SELECT, name=custom_id, values=[value], user_id=user_id)


def render_text(render) -> str:
    """All visible text in a render, for loose assertions."""
    parts = [render.content or ""]
    for embed in render.embeds:
        parts.extend([embed.title or "", embed.description or ""])
        for field in embed.fields:
            parts.extend([field.name, field.value])
    return "\n".join(parts)


def custom_ids(render) -> List[str]:
    return [b.custom_id for row in render.components for b in row.buttons if b.custom_id]


@pytest.fixture
def settings():
    """Valid settings independent of the environment."""
    return Settings(
        _env_file=None,
        google_client_id="test-client-id",
        google_client_secret="test-client-secret",
        google_search_api_key="test-search-key",
        google_search_engine_id="test-engine-id",
        encryption_key="test-encryption-key-0123456789",
        interaction_secret=INTERACTION_SECRET,
        attachment_hosts=["cdn.example.com"],
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def oauth():
    return FakeOAuthClient()


@pytest.fixture
def drive_api():
    return FakeDriveClient()


@pytest.fixture
def search_api():
    return FakeSearchClient()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def context(settings, oauth, drive_api, search_api, fetcher, clock):
    """Fully wired application context with fake Google services."""
    return build_context(
        settings,
        oauth=oauth,
        drive_client_factory=drive_api.factory,
        search_client=search_api,
        fetch_attachment=fetcher,
        clock=clock,
    )


@pytest.fixture
async def linked_context(context):
    """Context where TEST_USER has linked Drive (folders provisioned)."""
    await context.vault.store(TEST_USER, "valid-code")
    return context


@pytest.fixture
def send(context, clock):
    """Dispatch an event as a user would, spaced past every cooldown."""
    async def _send(event):
        clock.advance(10_000)
        return await context.router.dispatch(event)
    return _send
