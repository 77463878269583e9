"""
Application context.

Every long-lived collaborator (vault, sessions, cooldowns, adapters,
router) is built once here and passed explicitly to whoever needs it.
Tests build their own context with fakes in place of the Google clients.
"""
import time
from dataclasses import dataclass
from functools import partial
from typing import Optional

from drivebot.config import Settings, get_settings
from drivebot.integrations.attachments import download_attachment
from drivebot.integrations.drive_client import DriveClient
from drivebot.integrations.google_auth import GoogleOAuthClient
from drivebot.integrations.search_client import SearchClient
from drivebot.services.auth_service import AuthService
from drivebot.services.confirmation_flow import ConfirmationFlow
from drivebot.services.cooldown_service import CooldownGate
from drivebot.services.credential_vault import CredentialVault
from drivebot.services.drive_commands import DriveCommands
from drivebot.services.drive_service import AttachmentFetcher, DriveClientFactory, DriveService
from drivebot.services.general_commands import GeneralCommands
from drivebot.services.interaction_router import CommandSpec, InteractionRouter
from drivebot.services.search_commands import SearchCommands
from drivebot.services.search_service import SearchService
from drivebot.services.session_service import SessionStore
from drivebot.utils.clock import Clock, epoch_millis
from drivebot.utils.encryption import TokenCipher
from drivebot.utils.logger import get_logger

logger = get_logger(__name__)

SEARCH_COOLDOWN_MS = 5000


@dataclass
class AppContext:
    settings: Settings
    sessions: SessionStore
    cooldowns: CooldownGate
    vault: CredentialVault
    auth: AuthService
    drive: DriveService
    search: SearchService
    router: InteractionRouter
    started_at: float


def build_context(
    settings: Optional[Settings] = None,
    oauth: Optional[GoogleOAuthClient] = None,
    drive_client_factory: Optional[DriveClientFactory] = None,
    search_client: Optional[SearchClient] = None,
    fetch_attachment: Optional[AttachmentFetcher] = None,
    clock: Clock = epoch_millis,
) -> AppContext:
    """
    Validate settings and wire up the application.
    
    Raises:
        ConfigurationError: Settings are unusable (e.g. no encryption key)
    """
    settings = settings or get_settings()
    settings.validate_for_startup()
    if not settings.search_configured:
        logger.warning("Search API key or engine id missing; /search will fail")
    
    sessions = SessionStore()
    cooldowns = CooldownGate(clock)
    oauth = oauth or GoogleOAuthClient(settings)
    vault = CredentialVault(sessions, TokenCipher(settings.encryption_key), oauth, clock)
    auth = AuthService(settings, oauth, vault)
    drive = DriveService(
        settings,
        vault,
        sessions,
        drive_client_factory or DriveClient,
        fetch_attachment or partial(download_attachment, allowed_hosts=settings.attachment_hosts),
    )
    # Provision upload folders right after a successful link
    vault.post_link = drive.ensure_folders
    
    search = SearchService(
        search_client or SearchClient(settings.google_search_api_key, settings.google_search_engine_id)
    )
    
    started_at = time.time()
    router = InteractionRouter(
        vault=vault,
        sessions=sessions,
        cooldowns=cooldowns,
        default_cooldown_ms=settings.default_cooldown_seconds * 1000,
        bot_name=settings.bot_name,
    )
    register_commands(router, settings, vault, sessions, cooldowns, drive, auth, search, started_at)
    
    logger.info(f"Registered {len(router.commands)} commands and {len(router.components)} component actions")
    return AppContext(
        settings=settings,
        sessions=sessions,
        cooldowns=cooldowns,
        vault=vault,
        auth=auth,
        drive=drive,
        search=search,
        router=router,
        started_at=started_at,
    )


def register_commands(
    router: InteractionRouter,
    settings: Settings,
    vault: CredentialVault,
    sessions: SessionStore,
    cooldowns: CooldownGate,
    drive: DriveService,
    auth: AuthService,
    search: SearchService,
    started_at: float,
) -> None:
    drive_commands = DriveCommands(settings, vault, drive, auth)
    confirmation = ConfirmationFlow(drive, auth)
    search_commands = SearchCommands(search)
    general = GeneralCommands(sessions, cooldowns, started_at, command_count=lambda: len(router.commands))
    
    drive_routes = drive_commands.routes()
    drive_routes.update(confirmation.routes())
    router.add_command(CommandSpec("drive", drive_routes))
    router.add_command(CommandSpec("search", search_commands.routes(), cooldown_ms=SEARCH_COOLDOWN_MS, ephemeral=False))
    for name, routes in general.command_routes().items():
        router.add_command(CommandSpec(name, routes))
    
    for handlers in (
        drive_commands.component_handlers(),
        confirmation.component_handlers(),
        search_commands.component_handlers(),
        general.component_handlers(),
    ):
        for action_type, handler in handlers.items():
            router.add_component(action_type, handler)
