"""
Handlers for `/help`, `/ping` and `/stats`.
"""
import asyncio
import time
from typing import Callable, Dict, Optional

from drivebot.models.interaction import ActionRow, RenderInstruction, SelectMenu, SelectOption
from drivebot.services.action_ids import SelectHelpTopic
from drivebot.services.cooldown_service import CooldownGate
from drivebot.services.drive_commands import drive_help_embed
from drivebot.services.interaction_router import Handler, HandlerRequest, Route
from drivebot.services.search_commands import search_type_menu
from drivebot.services.session_service import SessionStore
from drivebot.utils.embeds import Colors, create_embed, info_embed, render
from drivebot.utils.formatting import format_duration
from drivebot.utils.errors import ValidationError

HELP_TOPICS = {
    "drive": ("🗂️", "Google Drive", "Link, upload, browse, share and delete files"),
    "search": ("🔍", "Web search", "Search the web, images, news, videos and documents"),
    "utilities": ("🛠️", "Utilities", "Ping, stats and help"),
    "interactive": ("🎨", "Interactive features", "Buttons and menus in bot replies"),
}


def help_menu() -> ActionRow:
    return ActionRow(select=SelectMenu(
        custom_id=SelectHelpTopic("").encode(),
        placeholder="Choose a category for details...",
        options=[
            SelectOption(label=title, value=key, description=description, emoji=emoji)
            for key, (emoji, title, description) in HELP_TOPICS.items()
        ],
    ))


class GeneralCommands:
    """
    Usage:
        general = GeneralCommands(sessions, cooldowns, started_at=time.time())
    """
    
    def __init__(
        self,
        sessions: SessionStore,
        cooldowns: CooldownGate,
        started_at: float,
        command_count: Callable[[], int] = lambda: 0,
        timer: Callable[[], float] = time.perf_counter,
    ):
        self.sessions = sessions
        self.cooldowns = cooldowns
        self.started_at = started_at
        self.command_count = command_count
        self.timer = timer
    
    def command_routes(self) -> Dict[str, Dict[Optional[str], Route]]:
        return {
            "help": {None: Route(self.help, requires_link=False)},
            "ping": {None: Route(self.ping, requires_link=False)},
            "stats": {None: Route(self.stats, requires_link=False)},
        }
    
    def component_handlers(self) -> Dict[type, Handler]:
        return {SelectHelpTopic: self.help_topic}
    
    async def help(self, request: HandlerRequest) -> RenderInstruction:
        embed = info_embed("Help", "I manage your Google Drive and search the web from chat.")
        for emoji, title, description in HELP_TOPICS.values():
            embed.add_field(f"{emoji} {title}", description, inline=True)
        embed.add_field("💡 Tip", "Type `/` to see every command.", inline=True)
        return render(embed, components=[help_menu()])
    
    async def help_topic(self, request: HandlerRequest) -> RenderInstruction:
        topic = request.action.value
        if topic == "drive":
            return render(drive_help_embed())
        if topic == "search":
            embed = info_embed("Search commands")
            embed.add_field("`/search <query> [type] [limit]`", "Types: web, image, news, video, document. Limit 1-10.")
            embed.add_field("Cooldown", "5 seconds between searches.")
            return render(embed, components=[search_type_menu()])
        if topic == "utilities":
            embed = info_embed("Utility commands")
            embed.add_field("`/ping`", "Check that the bot is responsive")
            embed.add_field("`/stats`", "Uptime and usage numbers")
            embed.add_field("`/help`", "This help")
            return render(embed)
        if topic == "interactive":
            return render(info_embed(
                "Interactive features",
                "Most replies come with buttons: browse folders, share or delete files, "
                "and pick search types without typing commands again. "
                "Deleting always asks for confirmation first.",
            ))
        raise ValidationError(f"Unknown help category '{topic}'.", constraint="help_topic")
    
    async def ping(self, request: HandlerRequest) -> RenderInstruction:
        start = self.timer()
        await asyncio.sleep(0)
        latency_ms = (self.timer() - start) * 1000
        
        embed = create_embed("🏓 Pong!", color=Colors.SUCCESS)
        embed.add_field("Event loop latency", f"{latency_ms:.1f} ms", inline=True)
        embed.add_field("Uptime", format_duration(time.time() - self.started_at), inline=True)
        return render(embed)
    
    async def stats(self, request: HandlerRequest) -> RenderInstruction:
        embed = create_embed("📊 Bot statistics", color=Colors.INFO)
        embed.add_field("⏱️ Uptime", format_duration(time.time() - self.started_at), inline=True)
        embed.add_field("🔗 Linked users", str(self.sessions.linked_count()), inline=True)
        embed.add_field("👥 Sessions", str(len(self.sessions)), inline=True)
        embed.add_field("⏳ Active cooldowns", str(self.cooldowns.active_count()), inline=True)
        embed.add_field("⌨️ Commands", str(self.command_count()), inline=True)
        return render(embed)
