"""
Component action identifiers.

Buttons and select menus carry an identifier of the form
`action_sub_param1_param2`. This module turns those strings into a
closed set of typed actions and back.

Parameters are escaped (`%` -> `%25`, `_` -> `%5F`) so Drive ids and
other values containing the delimiter survive the round trip. Anything
that does not decode to a known shape raises UnknownActionError.
Decoded parameters are Drive ids, so they are limited to Drive's id
alphabet before they ever reach a request path.
"""
import re
from dataclasses import dataclass
from typing import Callable, ClassVar, Dict, List, Optional, Sequence, Tuple, Union

from drivebot.utils.errors import UnknownActionError

DELIMITER = "_"
MAX_IDENTIFIER_LENGTH = 100

# Folder parameter meaning "My Drive root"
ROOT_PARAM = "root"

_UNESCAPE = re.compile(r"%(25|5F|5f)")
PARAM_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def escape_param(value: str) -> str:
    return value.replace("%", "%25").replace(DELIMITER, "%5F")


def unescape_param(value: str) -> str:
    return _UNESCAPE.sub(lambda m: "%" if m.group(1) == "25" else DELIMITER, value)


@dataclass(frozen=True)
class ParsedActionId:
    """Generic split of an identifier before it is matched to a shape."""
    action: str
    sub_action: Optional[str]
    params: Tuple[str, ...]
    # everything after `action`, for shapes without a sub-action
    tail: Tuple[str, ...]


def parse_action_id(raw: str) -> ParsedActionId:
    """
    Split an identifier into action, sub-action and unescaped params.
    
    Raises:
        UnknownActionError: Empty, too long or containing empty segments
    """
    if not raw or len(raw) > MAX_IDENTIFIER_LENGTH:
        raise UnknownActionError(raw or "")
    
    parts = raw.split(DELIMITER)
    if any(part == "" for part in parts):
        raise UnknownActionError(raw)
    
    tail = tuple(unescape_param(part) for part in parts[1:])
    return ParsedActionId(
        action=parts[0],
        sub_action=parts[1] if len(parts) > 1 else None,
        params=tail[1:],
        tail=tail,
    )


def encode_action(action: str, *params: str) -> str:
    """
    Build an identifier from an action name and raw parameter values.
    
    Raises:
        ValueError: Empty parameter or identifier over the length limit
    """
    if any(not p for p in params):
        raise ValueError("Action parameters must be non-empty")
    
    identifier = DELIMITER.join([action, *(escape_param(p) for p in params)])
    if len(identifier) > MAX_IDENTIFIER_LENGTH:
        raise ValueError(f"Action identifier exceeds {MAX_IDENTIFIER_LENGTH} characters")
    return identifier


# =============================================================================
# TYPED ACTIONS
# =============================================================================

@dataclass(frozen=True)
class AuthorizeDrive:
    requires_link: ClassVar[bool] = False
    
    def encode(self) -> str:
        return "drive_authorize"


@dataclass(frozen=True)
class ShowDriveStatus:
    requires_link: ClassVar[bool] = False
    
    def encode(self) -> str:
        return "drive_status"


@dataclass(frozen=True)
class ShowDriveHelp:
    requires_link: ClassVar[bool] = False
    
    def encode(self) -> str:
        return "drive_help"


@dataclass(frozen=True)
class ShowUploadHelp:
    requires_link: ClassVar[bool] = False
    
    def encode(self) -> str:
        return "drive_upload"


@dataclass(frozen=True)
class ShowDriveSearchHelp:
    requires_link: ClassVar[bool] = False
    
    def encode(self) -> str:
        return "drive_search"


@dataclass(frozen=True)
class BrowseFolder:
    """Open a folder listing; None means My Drive root."""
    folder_id: Optional[str] = None
    requires_link: ClassVar[bool] = True
    
    def encode(self) -> str:
        if self.folder_id is None:
            return "drive_list"
        return encode_action("folder", self.folder_id)


@dataclass(frozen=True)
class ShareFile:
    file_id: str
    requires_link: ClassVar[bool] = True
    
    def encode(self) -> str:
        return encode_action("share", self.file_id)


@dataclass(frozen=True)
class ShowFileInfo:
    file_id: str
    requires_link: ClassVar[bool] = True
    
    def encode(self) -> str:
        return encode_action("share_info", self.file_id)


@dataclass(frozen=True)
class RequestDelete:
    file_id: str
    requires_link: ClassVar[bool] = True
    
    def encode(self) -> str:
        return encode_action("delete", self.file_id)


@dataclass(frozen=True)
class ConfirmDelete:
    file_id: str
    requires_link: ClassVar[bool] = True
    
    def encode(self) -> str:
        return encode_action("confirm_delete", self.file_id)


@dataclass(frozen=True)
class CancelDelete:
    requires_link: ClassVar[bool] = False
    
    def encode(self) -> str:
        return "cancel_delete"


@dataclass(frozen=True)
class ShowSearchTypes:
    requires_link: ClassVar[bool] = False
    
    def encode(self) -> str:
        return "search_type"


@dataclass(frozen=True)
class SelectSearchType:
    value: str
    requires_link: ClassVar[bool] = False
    
    def encode(self) -> str:
        return "searchtype_select"


@dataclass(frozen=True)
class SelectHelpTopic:
    value: str
    requires_link: ClassVar[bool] = False
    
    def encode(self) -> str:
        return "help_category"


ComponentAction = Union[
    AuthorizeDrive, ShowDriveStatus, ShowDriveHelp, ShowUploadHelp, ShowDriveSearchHelp,
    BrowseFolder, ShareFile, ShowFileInfo, RequestDelete, ConfirmDelete, CancelDelete,
    ShowSearchTypes, SelectSearchType, SelectHelpTopic,
]


def browse_target(folder_id: Optional[str]) -> str:
    """Folder parameter for refresh/back buttons."""
    return folder_id or ROOT_PARAM


def _folder(params: Sequence[str]) -> BrowseFolder:
    folder_id = params[0] if params else None
    return BrowseFolder(None if folder_id == ROOT_PARAM else folder_id)


# (arities accepted, builder)
Shape = Tuple[Tuple[int, ...], Callable[[Sequence[str]], ComponentAction]]

# Matched first, on (action, sub_action)
_COMPOUND_SHAPES: Dict[Tuple[str, str], Shape] = {
    ("drive", "authorize"): ((0,), lambda p: AuthorizeDrive()),
    ("drive", "link"): ((0,), lambda p: AuthorizeDrive()),
    ("drive", "status"): ((0,), lambda p: ShowDriveStatus()),
    ("drive", "help"): ((0,), lambda p: ShowDriveHelp()),
    ("drive", "upload"): ((0,), lambda p: ShowUploadHelp()),
    ("drive", "search"): ((0,), lambda p: ShowDriveSearchHelp()),
    ("drive", "list"): ((0, 1), _folder),
    ("upload", "retry"): ((0,), lambda p: ShowUploadHelp()),
    ("share", "quick"): ((1,), lambda p: ShareFile(p[0])),
    ("quick", "share"): ((1,), lambda p: ShareFile(p[0])),
    ("share", "info"): ((1,), lambda p: ShowFileInfo(p[0])),
    ("download", "direct"): ((1,), lambda p: ShowFileInfo(p[0])),
    ("confirm", "delete"): ((1,), lambda p: ConfirmDelete(p[0])),
    ("cancel", "delete"): ((0,), lambda p: CancelDelete()),
    ("search", "type"): ((0,), lambda p: ShowSearchTypes()),
}

# Matched on action alone; params are everything after the action
_SIMPLE_SHAPES: Dict[str, Shape] = {
    "refresh": ((1,), _folder),
    "folder": ((1,), _folder),
    "back": ((1,), _folder),
    "share": ((1,), lambda p: ShareFile(p[0])),
    "delete": ((1,), lambda p: RequestDelete(p[0])),
}

# Select menus: the chosen value arrives separately from the identifier
_SELECT_SHAPES: Dict[str, Callable[[str], ComponentAction]] = {
    "searchtype_select": SelectSearchType,
    "help_category": SelectHelpTopic,
}


def _build(shape: Optional[Shape], params: Sequence[str]) -> Optional[ComponentAction]:
    if shape is None:
        return None
    arities, builder = shape
    if len(params) not in arities:
        return None
    if not all(PARAM_PATTERN.match(p) for p in params):
        return None
    return builder(params)


def decode_component(raw: str, values: Optional[List[str]] = None) -> ComponentAction:
    """
    Decode a button or select identifier into a typed action.
    
    Compound (action, sub_action) shapes win over simple action shapes,
    so `share_quick_<id>` is a quick share while `share_<id>` is a plain
    one.
    
    Args:
        raw: Component identifier
        values: Chosen values, for select menus only
        
    Returns:
        One of the ComponentAction types
        
    Raises:
        UnknownActionError: No known shape matches
    """
    if values is not None:
        builder = _SELECT_SHAPES.get(raw)
        if builder is None or not values or not values[0]:
            raise UnknownActionError(raw)
        return builder(values[0])
    
    parsed = parse_action_id(raw)
    
    action = None
    if parsed.sub_action is not None:
        action = _build(_COMPOUND_SHAPES.get((parsed.action, parsed.sub_action)), parsed.params)
    if action is None:
        action = _build(_SIMPLE_SHAPES.get(parsed.action), parsed.tail)
    if action is None:
        raise UnknownActionError(raw)
    return action
