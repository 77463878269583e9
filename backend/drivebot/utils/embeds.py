"""
Embed factories used by every command handler.

Footers carry only a label; the interaction router prefixes the bot
name when the render is delivered.
"""
from datetime import datetime, timezone
from typing import Optional, List

from drivebot.models.interaction import Embed, ActionRow, RenderInstruction


class Colors:
    SUCCESS = 0x00FF00
    ERROR = 0xFF0000
    WARNING = 0xFFA500
    INFO = 0x4285F4
    SHARE = 0x00D4AA
    DEFAULT = 0x5865F2


def create_embed(
    title: Optional[str] = None,
    description: Optional[str] = None,
    color: int = Colors.DEFAULT,
    footer: Optional[str] = None,
    url: Optional[str] = None,
    image_url: Optional[str] = None,
) -> Embed:
    return Embed(
        title=title,
        description=description,
        color=color,
        footer=footer,
        url=url,
        image_url=image_url,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


def success_embed(title: str, description: Optional[str] = None) -> Embed:
    return create_embed(f"✅ {title}", description, Colors.SUCCESS, "Success")


def error_embed(title: str, description: Optional[str] = None) -> Embed:
    return create_embed(f"❌ {title}", description, Colors.ERROR, "Error")


def warning_embed(title: str, description: Optional[str] = None) -> Embed:
    return create_embed(f"⚠️ {title}", description, Colors.WARNING, "Warning")


def info_embed(title: str, description: Optional[str] = None) -> Embed:
    return create_embed(f"ℹ️ {title}", description, Colors.INFO, "Info")


def render(
    *embeds: Embed,
    components: Optional[List[ActionRow]] = None,
    ephemeral: bool = True,
    content: Optional[str] = None,
) -> RenderInstruction:
    """Wrap embeds into a RenderInstruction."""
    return RenderInstruction(
        content=content,
        embeds=list(embeds),
        components=components or [],
        ephemeral=ephemeral,
    )
