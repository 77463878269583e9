"""
Inbound interaction events and outbound render instructions.

The chat platform is reduced to these two shapes: it hands us an
InteractionEvent and shows whatever RenderInstruction we return.
"""
from enum import Enum
from pydantic import BaseModel
from typing import Optional, List, Any, Dict

from drivebot.models.drive import Attachment


class EventKind(str, Enum):
    COMMAND = "command"
    BUTTON = "button"
    SELECT = "select"


class InteractionEvent(BaseModel):
    """
    One user interaction.
    
    For commands `name` is the command name; for buttons and select menus
    it is the raw component identifier.
    """
    kind: EventKind
    name: str
    user_id: str
    subcommand: Optional[str] = None
    params: Dict[str, Any] = {}
    values: List[str] = []  # select menu choices
    attachment: Optional[Attachment] = None
    user_name: Optional[str] = None
    interaction_id: Optional[str] = None


class EmbedField(BaseModel):
    name: str
    value: str
    inline: bool = False


class Embed(BaseModel):
    """Structured message card."""
    title: Optional[str] = None
    description: Optional[str] = None
    color: int = 0
    url: Optional[str] = None
    image_url: Optional[str] = None
    fields: List[EmbedField] = []
    footer: Optional[str] = None
    timestamp: Optional[str] = None
    
    def add_field(self, name: str, value: str, inline: bool = False) -> "Embed":
        self.fields.append(EmbedField(name=name, value=value, inline=inline))
        return self


class ButtonStyle(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    SUCCESS = "success"
    DANGER = "danger"
    LINK = "link"


class Button(BaseModel):
    """Either an action button (custom_id) or a link button (url)."""
    label: str
    style: ButtonStyle = ButtonStyle.SECONDARY
    custom_id: Optional[str] = None
    url: Optional[str] = None
    emoji: Optional[str] = None
    disabled: bool = False


class SelectOption(BaseModel):
    label: str
    value: str
    description: Optional[str] = None
    emoji: Optional[str] = None


class SelectMenu(BaseModel):
    custom_id: str
    placeholder: str = ""
    options: List[SelectOption] = []


class ActionRow(BaseModel):
    """A row holds up to five buttons or a single select menu."""
    buttons: List[Button] = []
    select: Optional[SelectMenu] = None


class RenderInstruction(BaseModel):
    """What to show the user in response to an interaction."""
    content: Optional[str] = None
    embeds: List[Embed] = []
    components: List[ActionRow] = []
    ephemeral: bool = True
