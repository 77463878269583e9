"""
Tests for the interaction router: ordering, gating and error mapping.
"""
import asyncio
import logging

import pytest

from drivebot.context import build_context
from drivebot.models.interaction import RenderInstruction
from drivebot.services.action_ids import ShareFile
from drivebot.services.cooldown_service import CooldownGate
from drivebot.services.credential_vault import CredentialVault
from drivebot.services.interaction_lifecycle import BufferedResponder, InteractionState
from drivebot.services.interaction_router import CommandSpec, InteractionRouter, Route
from drivebot.services.session_service import SessionStore
from drivebot.utils.embeds import create_embed, render, success_embed
from drivebot.utils.encryption import TokenCipher
from drivebot.utils.errors import (
    AuthExchangeError, RemoteQuotaError, ResourceNotFoundError, ValidationError,
)

from conftest import FakeClock, FakeOAuthClient, TEST_USER, button, command, custom_ids, render_text


class BrokenResponder(BufferedResponder):
    """Every final delivery fails."""
    
    async def edit(self, render):
        raise ConnectionError("gone")
    
    async def reply(self, render):
        raise ConnectionError("gone")


@pytest.fixture
def parts():
    clock = FakeClock()
    sessions = SessionStore()
    vault = CredentialVault(sessions, TokenCipher("router-test-secret"), FakeOAuthClient(), clock)
    router = InteractionRouter(vault=vault, sessions=sessions, cooldowns=CooldownGate(clock))
    return router, vault, clock


def ok_handler(log):
    async def handler(request):
        log.append(request)
        return RenderInstruction(content="ok")
    return handler


def raising_handler(error):
    async def handler(request):
        raise error
    return handler


class TestDispatch:
    """Tests for the happy path and routing."""
    
    @pytest.mark.asyncio
    async def test_command_is_acknowledged_then_resolved(self, parts):
        """Handlers run after the deferral; their render is the final edit."""
        router, _, _ = parts
        log = []
        router.add_command(CommandSpec("ping", {None: Route(ok_handler(log), requires_link=False)}))
        responder = BufferedResponder()
        
        interaction = await router.handle(command("ping"), responder)
        
        assert [kind for kind, _ in responder.calls] == ["defer", "edit"]
        assert interaction.state is InteractionState.RESOLVED
        assert len(log) == 1
    
    @pytest.mark.asyncio
    async def test_command_ephemeral_flag_applied(self, parts):
        """The command registration decides visibility, not the handler."""
        router, _, _ = parts
        router.add_command(CommandSpec("search", {None: Route(ok_handler([]), requires_link=False)}, ephemeral=False))
        
        result = await router.dispatch(command("search"))
        
        assert result.ephemeral is False
    
    @pytest.mark.asyncio
    async def test_subcommand_routing(self, parts):
        """Subcommands pick their own route."""
        router, _, _ = parts
        a, b = [], []
        router.add_command(CommandSpec("drive", {
            "status": Route(ok_handler(a), requires_link=False),
            "help": Route(ok_handler(b), requires_link=False),
        }))
        
        await router.dispatch(command("drive", "help"))
        
        assert (len(a), len(b)) == (0, 1)
    
    @pytest.mark.asyncio
    async def test_component_gets_decoded_action(self, parts):
        """Buttons reach the handler with their typed action."""
        router, vault, _ = parts
        await vault.store(TEST_USER, "code")
        log = []
        router.add_component(ShareFile, ok_handler(log))
        
        await router.dispatch(button("share_quick_f%5F1"))
        
        assert log[0].action == ShareFile("f_1")
    
    @pytest.mark.asyncio
    async def test_unknown_component_gets_unrecognized_render(self, parts):
        """Unknown identifiers never reach a handler."""
        router, _, _ = parts
        responder = BufferedResponder()
        
        interaction = await router.handle(button("nonsense_thing_here"), responder)
        
        assert interaction.state is InteractionState.FAILED
        assert "Unrecognized action" in render_text(responder.final)
        assert [kind for kind, _ in responder.calls] == ["reply"]
    
    @pytest.mark.asyncio
    async def test_known_shape_without_handler_is_unrecognized(self, parts):
        """A decodable action nobody registered is treated as unknown."""
        router, _, _ = parts
        
        result = await router.dispatch(button("cancel_delete"))
        
        assert "Unrecognized action" in render_text(result)
    
    @pytest.mark.asyncio
    async def test_unknown_subcommand(self, parts):
        """A missing subcommand route is unrecognized."""
        router, _, _ = parts
        router.add_command(CommandSpec("drive", {"status": Route(ok_handler([]), requires_link=False)}))
        
        result = await router.dispatch(command("drive", "explode"))
        
        assert "Unrecognized action" in render_text(result)


class TestGates:
    """Tests for the link requirement and cooldowns."""
    
    @pytest.mark.asyncio
    async def test_link_required_blocks_handler(self, parts):
        """Unlinked users get a link prompt; the handler never runs."""
        router, _, _ = parts
        log = []
        router.add_command(CommandSpec("drive", {"list": Route(ok_handler(log))}))
        
        result = await router.dispatch(command("drive", "list"))
        
        assert log == []
        assert "not linked" in render_text(result)
        assert "drive_authorize" in custom_ids(result)
    
    @pytest.mark.asyncio
    async def test_link_required_component(self, parts):
        """Components that need a link are gated the same way."""
        router, _, _ = parts
        log = []
        router.add_component(ShareFile, ok_handler(log))
        
        await router.dispatch(button("share_f1"))
        
        assert log == []
    
    @pytest.mark.asyncio
    async def test_cooldown_denies_before_acknowledging(self, parts):
        """A denied command is answered directly and skips the handler."""
        router, _, clock = parts
        log = []
        router.add_command(CommandSpec("ping", {None: Route(ok_handler(log), requires_link=False)}, cooldown_ms=5000))
        await router.dispatch(command("ping"))
        clock.advance(2000)
        responder = BufferedResponder()
        
        await router.handle(command("ping"), responder)
        
        assert len(log) == 1
        assert [kind for kind, _ in responder.calls] == ["reply"]
        assert "3s" in render_text(responder.final)
    
    @pytest.mark.asyncio
    async def test_cooldown_expires(self, parts):
        """After the window the command runs again."""
        router, _, clock = parts
        log = []
        router.add_command(CommandSpec("ping", {None: Route(ok_handler(log), requires_link=False)}))
        await router.dispatch(command("ping"))
        clock.advance(router.default_cooldown_ms)
        
        await router.dispatch(command("ping"))
        
        assert len(log) == 2
    
    @pytest.mark.asyncio
    async def test_zero_cooldown_is_not_the_default(self, parts):
        """A command registered with cooldown_ms=0 is never throttled."""
        router, _, _ = parts
        log = []
        router.add_command(CommandSpec("ping", {None: Route(ok_handler(log), requires_link=False)}, cooldown_ms=0))
        
        await router.dispatch(command("ping"))
        await router.dispatch(command("ping"))
        
        assert len(log) == 2
    
    @pytest.mark.asyncio
    async def test_components_have_no_cooldown(self, parts):
        """Button clicks are never throttled."""
        router, vault, _ = parts
        await vault.store(TEST_USER, "code")
        log = []
        router.add_component(ShareFile, ok_handler(log))
        
        for _ in range(3):
            await router.dispatch(button("share_f1"))
        
        assert len(log) == 3
    
    @pytest.mark.asyncio
    async def test_cooldown_stamps_session(self, parts):
        """Allowed commands record when they last ran."""
        router, vault, clock = parts
        await vault.store(TEST_USER, "code")
        router.add_command(CommandSpec("ping", {None: Route(ok_handler([]), requires_link=False)}))
        
        await router.dispatch(command("ping"))
        
        assert router.sessions.get(TEST_USER).last_action_at["ping"] == clock.now


class TestErrors:
    """Tests for error -> render mapping."""
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("error, expected", [
        (AuthExchangeError("invalid_grant"), "Code expired or already used"),
        (AuthExchangeError("invalid_client", "bad client"), "Linking failed"),
        (ResourceNotFoundError("report"), "Not found"),
        (RemoteQuotaError("Google Drive API"), "Too many requests"),
        (ValidationError("nope", "x"), "Invalid input"),
    ])
    async def test_app_errors_get_specific_renders(self, parts, error, expected):
        """Each error family has its own message."""
        router, _, _ = parts
        router.add_command(CommandSpec("boom", {None: Route(raising_handler(error), requires_link=False)}))
        responder = BufferedResponder()
        
        interaction = await router.handle(command("boom"), responder)
        
        assert interaction.state is InteractionState.FAILED
        assert expected in render_text(responder.final)
    
    @pytest.mark.asyncio
    async def test_not_found_offers_browse_button(self, parts):
        """Missing names come with a way to browse."""
        router, _, _ = parts
        router.add_command(CommandSpec("boom", {None: Route(raising_handler(ResourceNotFoundError("x")), requires_link=False)}))
        
        result = await router.dispatch(command("boom"))
        
        assert "drive_list" in custom_ids(result)
    
    @pytest.mark.asyncio
    async def test_unexpected_error_is_logged_and_generic(self, parts, caplog):
        """Non-application errors are logged with traceback and not leaked."""
        router, _, _ = parts
        router.add_command(CommandSpec("boom", {None: Route(raising_handler(KeyError("secret")), requires_link=False)}))
        
        with caplog.at_level(logging.ERROR):
            result = await router.dispatch(command("boom"))
        
        assert "Something went wrong" in render_text(result)
        assert "secret" not in render_text(result)
        assert any(record.exc_info for record in caplog.records)
    
    @pytest.mark.asyncio
    async def test_undeliverable_failure_is_swallowed(self, parts):
        """A broken platform connection does not crash the router."""
        router, _, _ = parts
        router.add_command(CommandSpec("boom", {None: Route(raising_handler(ValueError()), requires_link=False)}))
        
        interaction = await router.handle(command("boom"), BrokenResponder())
        
        assert interaction.state is InteractionState.FAILED


class TestDuplicates:
    """Tests for redelivered interactions."""
    
    @pytest.mark.asyncio
    async def test_duplicate_in_flight_is_dropped(self, parts):
        """The same interaction id is handled once while in flight."""
        router, _, _ = parts
        log = []
        
        async def slow(request):
            log.append(request)
            await asyncio.sleep(0.01)
            return RenderInstruction(content="done")
        
        router.add_command(CommandSpec("slow", {None: Route(slow, requires_link=False)}))
        first = command("slow").model_copy(update={"interaction_id": "i-1"})
        second = command("slow", user_id="user-2").model_copy(update={"interaction_id": "i-1"})
        
        results = await asyncio.gather(router.dispatch(first), router.dispatch(second))
        
        assert len(log) == 1
        assert results[1] is None


class TestBranding:
    """Tests for the bot name in embed footers."""
    
    @pytest.mark.asyncio
    async def test_footers_carry_configured_bot_name(self, parts):
        router, _, _ = parts
        router.bot_name = "Files Helper"
        
        async def handler(request):
            return render(success_embed("Done"), create_embed("Plain"))
        router.add_command(CommandSpec("ping", {None: Route(handler, requires_link=False)}))
        
        result = await router.dispatch(command("ping"))
        
        assert [e.footer for e in result.embeds] == ["Files Helper • Success", "Files Helper"]
    
    @pytest.mark.asyncio
    async def test_error_renders_are_branded(self, parts):
        router, _, _ = parts
        router.bot_name = "Files Helper"
        router.add_command(CommandSpec("ping", {None: Route(raising_handler(ValidationError("bad")), requires_link=False)}))
        
        result = await router.dispatch(command("ping"))
        
        assert result.embeds[0].footer == "Files Helper • Error"
    
    def test_context_passes_bot_name(self, settings):
        context = build_context(settings.model_copy(update={"bot_name": "Files Helper"}))
        
        assert context.router.bot_name == "Files Helper"
