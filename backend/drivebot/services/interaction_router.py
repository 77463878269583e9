"""
Interaction Router - single entry point for every chat interaction.

Per interaction:
1. Decode the event (command + subcommand, or component identifier)
2. Apply the cooldown gate (commands only)
3. Acknowledge (deferred reply) before any slow work
4. Check the linked-session requirement
5. Run the handler and resolve with its render

Handlers never see exceptions escape past this module: application
errors get a specific render, anything else a generic one plus a full
log entry. Failing to deliver even the failure render is logged and
dropped.
"""
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Type

from drivebot.models.interaction import (
    ActionRow, Button, ButtonStyle, EventKind, InteractionEvent, RenderInstruction,
)
from drivebot.services.action_ids import AuthorizeDrive, BrowseFolder, ComponentAction, decode_component
from drivebot.services.cooldown_service import DEFAULT_COOLDOWN_MS, CooldownGate
from drivebot.services.credential_vault import CredentialVault
from drivebot.services.interaction_lifecycle import (
    BufferedResponder, Interaction, InteractionResponder, InteractionState,
)
from drivebot.services.session_service import SessionStore
from drivebot.utils.embeds import error_embed, info_embed, render, warning_embed
from drivebot.utils.logger import get_logger
from drivebot.utils.errors import (
    AppError, AuthError, AuthExchangeError, CredentialCorruptedError, DriveTokenRejectedError, NotAuthenticatedError,
    RemoteQuotaError, RemoteServiceError, ResourceNotFoundError, UnknownActionError, ValidationError,
)

logger = get_logger(__name__)


@dataclass
class HandlerRequest:
    """What a handler gets: the raw event and, for components, the decoded action."""
    event: InteractionEvent
    action: Optional[ComponentAction] = None
    
    @property
    def user_id(self) -> str:
        return self.event.user_id
    
    def param(self, name: str, default: Any = None) -> Any:
        value = self.event.params.get(name, default)
        return default if value is None else value


Handler = Callable[[HandlerRequest], Awaitable[RenderInstruction]]


@dataclass
class Route:
    handler: Handler
    requires_link: bool = True


@dataclass
class CommandSpec:
    """
    A slash command. Commands without subcommands register their route
    under the None key.
    """
    name: str
    routes: Dict[Optional[str], Route]
    cooldown_ms: Optional[int] = None
    ephemeral: bool = True


@dataclass
class _Resolved:
    route: Route
    action: Optional[ComponentAction] = None
    ephemeral: bool = True
    command: Optional[CommandSpec] = None


@dataclass
class InteractionRouter:
    """
    Usage:
        router = InteractionRouter(vault, sessions, cooldowns)
        router.add_command(CommandSpec("ping", {None: Route(handle_ping, requires_link=False)}))
        router.add_component(ShareFile, handle_share)
        render = await router.dispatch(event)
    """
    vault: CredentialVault
    sessions: SessionStore
    cooldowns: CooldownGate
    default_cooldown_ms: int = DEFAULT_COOLDOWN_MS
    bot_name: str = "Drive Bot"
    commands: Dict[str, CommandSpec] = field(default_factory=dict)
    components: Dict[Type, Handler] = field(default_factory=dict)
    _in_flight: Set[str] = field(default_factory=set)
    
    def add_command(self, spec: CommandSpec) -> None:
        self.commands[spec.name] = spec
    
    def add_component(self, action_type: Type, handler: Handler) -> None:
        self.components[action_type] = handler
    
    async def dispatch(self, event: InteractionEvent) -> Optional[RenderInstruction]:
        """
        Handle an event with a buffering responder.
        
        Returns:
            The render delivered for the event, or None when the event
            was a duplicate of one still being handled
        """
        responder = BufferedResponder()
        await self.handle(event, responder)
        return responder.final
    
    async def handle(self, event: InteractionEvent, responder: InteractionResponder) -> Interaction:
        """Run one interaction through its full lifecycle."""
        interaction = Interaction(event, responder)
        
        # Redelivery of an interaction we are still processing
        key = event.interaction_id
        if key is not None:
            if key in self._in_flight:
                logger.info(f"Dropping duplicate delivery of interaction {key}")
                return interaction
            self._in_flight.add(key)
        
        try:
            await self._run(interaction)
        finally:
            if key is not None:
                self._in_flight.discard(key)
        return interaction
    
    async def _run(self, interaction: Interaction) -> None:
        event = interaction.event
        if interaction.state is not InteractionState.RECEIVED:
            return
        
        try:
            resolved = self._resolve(event)
        except UnknownActionError as e:
            logger.warning(f"Unrecognized {event.kind.value} {e.identifier!r} from user {event.user_id}")
            await self._send_failure(interaction, self._unrecognized_render())
            return
        
        logger.info(f"Dispatching {event.kind.value} {self._describe(event)} for user {event.user_id}")
        
        try:
            if resolved.command is not None:
                window = resolved.command.cooldown_ms
                if window is None:
                    window = self.default_cooldown_ms
                decision = self.cooldowns.check_and_record(resolved.command.name, event.user_id, window)
                if not decision.allowed:
                    await interaction.resolve(
                        self._brand(self._cooldown_render(resolved.command.name, decision.remaining_seconds))
                    )
                    return
                self._stamp(event.user_id, resolved.command.name)
            
            await interaction.acknowledge(resolved.ephemeral)
            
            if resolved.route.requires_link and not self.vault.is_linked(event.user_id):
                raise NotAuthenticatedError()
            
            result = await resolved.route.handler(HandlerRequest(event, resolved.action))
            result.ephemeral = resolved.ephemeral
            await interaction.resolve(self._brand(result))
        
        except AppError as e:
            logger.warning(f"Handled error [{e.code}] for user {event.user_id}: {e.message}")
            if isinstance(e, DriveTokenRejectedError):
                # Drive no longer accepts this credential
                self.vault.unlink(event.user_id)
            await self._send_failure(interaction, self.render_error(e))
        
        except Exception as e:
            logger.exception(f"Unexpected error handling {self._describe(event)}: {e}")
            await self._send_failure(interaction, self._generic_failure_render())
    
    def _resolve(self, event: InteractionEvent) -> _Resolved:
        if event.kind is EventKind.COMMAND:
            spec = self.commands.get(event.name)
            if spec is None:
                raise UnknownActionError(event.name)
            route = spec.routes.get(event.subcommand)
            if route is None:
                raise UnknownActionError(self._describe(event))
            return _Resolved(route=route, ephemeral=spec.ephemeral, command=spec)
        
        values = event.values if event.kind is EventKind.SELECT else None
        action = decode_component(event.name, values)
        handler = self.components.get(type(action))
        if handler is None:
            raise UnknownActionError(event.name)
        return _Resolved(route=Route(handler, requires_link=action.requires_link), action=action)
    
    def _stamp(self, user_id: str, command: str) -> None:
        session = self.sessions.get(user_id)
        if session is not None:
            session.last_action_at[command] = self.cooldowns.clock()
    
    async def _send_failure(self, interaction: Interaction, failure: RenderInstruction) -> None:
        try:
            await interaction.fail(self._brand(failure))
        except Exception:
            logger.error(
                f"Could not deliver failure response for {self._describe(interaction.event)}",
                exc_info=True,
            )
    
    def _brand(self, result: RenderInstruction) -> RenderInstruction:
        for embed in result.embeds:
            embed.footer = f"{self.bot_name} • {embed.footer}" if embed.footer else self.bot_name
        return result
    
    @staticmethod
    def _describe(event: InteractionEvent) -> str:
        if event.kind is EventKind.COMMAND and event.subcommand:
            return f"/{event.name} {event.subcommand}"
        if event.kind is EventKind.COMMAND:
            return f"/{event.name}"
        return event.name
    
    # =========================================================================
    # RENDERS
    # =========================================================================
    
    def render_error(self, error: AppError) -> RenderInstruction:
        """Map an application error to what the user sees."""
        link_row = [ActionRow(buttons=[
            Button(label="Link Google Drive", style=ButtonStyle.PRIMARY,
                   custom_id=AuthorizeDrive().encode(), emoji="🔗"),
        ])]
        
        if isinstance(error, AuthExchangeError):
            if error.code_rejected:
                embed = error_embed(
                    "Code expired or already used",
                    "Authorization codes work only once and expire after a few minutes. "
                    "Get a fresh link and try again.",
                )
            else:
                embed = error_embed("Linking failed", error.message)
            return render(embed, components=link_row)
        
        if isinstance(error, NotAuthenticatedError):
            embed = warning_embed("Google Drive not linked", error.message)
            return render(embed, components=link_row)
        
        if isinstance(error, CredentialCorruptedError):
            embed = error_embed("Please link again", error.message)
            return render(embed, components=link_row)
        
        if isinstance(error, AuthError):
            embed = error_embed(
                "Google Drive session expired",
                "Google did not accept your stored credentials. Please link your account again.",
            )
            return render(embed, components=link_row)
        
        if isinstance(error, ResourceNotFoundError):
            embed = warning_embed("Not found", error.message)
            embed.add_field("💡 Tip", "Use `/drive list` to browse your files and copy the exact name.")
            browse_row = [ActionRow(buttons=[
                Button(label="Browse files", custom_id=BrowseFolder().encode(), emoji="📂"),
            ])]
            return render(embed, components=browse_row)
        
        if isinstance(error, RemoteQuotaError):
            return render(warning_embed("Too many requests", error.message))
        
        if isinstance(error, ValidationError):
            return render(error_embed("Invalid input", error.message))
        
        if isinstance(error, RemoteServiceError):
            return render(error_embed(f"{error.service} error", error.message))
        
        return render(error_embed("Something went wrong", error.message))
    
    def _cooldown_render(self, command: str, remaining_seconds: float) -> RenderInstruction:
        return render(warning_embed(
            "Slow down",
            f"Please wait {remaining_seconds:g}s before using `/{command}` again.",
        ))
    
    def _unrecognized_render(self) -> RenderInstruction:
        return render(info_embed(
            "Unrecognized action",
            "That button or command is not supported anymore. Try running the command again.",
        ))
    
    def _generic_failure_render(self) -> RenderInstruction:
        return render(error_embed("Something went wrong", "Please try again in a moment."))
