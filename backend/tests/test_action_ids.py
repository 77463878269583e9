"""
Tests for component action identifiers.
"""
import pytest

from drivebot.services.action_ids import (
    AuthorizeDrive, BrowseFolder, CancelDelete, ConfirmDelete, RequestDelete, SelectHelpTopic,
    SelectSearchType, ShareFile, ShowDriveHelp, ShowDriveStatus, ShowFileInfo, ShowSearchTypes,
    ShowUploadHelp, decode_component, encode_action, escape_param, parse_action_id, unescape_param,
)
from drivebot.utils.errors import UnknownActionError


class TestParseActionId:
    """Tests for the generic identifier split."""
    
    def test_splits_action_sub_action_and_params(self):
        """Action, sub-action and remaining params are separated on '_'."""
        parsed = parse_action_id("confirm_delete_abc123")
        
        assert parsed.action == "confirm"
        assert parsed.sub_action == "delete"
        assert parsed.params == ("abc123",)
        assert parsed.tail == ("delete", "abc123")
    
    def test_params_are_unescaped(self):
        """Escaped delimiters come back as underscores."""
        parsed = parse_action_id("share_my%5Ffile%25")
        
        assert parsed.tail == ("my_file%",)
    
    @pytest.mark.parametrize("raw", ["", "share__id", "_share", "share_", "x" * 101])
    def test_rejects_malformed(self, raw):
        """Empty, oversized or empty-segment identifiers are unknown."""
        with pytest.raises(UnknownActionError):
            parse_action_id(raw)


class TestEncodeAction:
    """Tests for building identifiers."""
    
    def test_escapes_delimiter_in_params(self):
        """A Drive id containing '_' does not add segments."""
        identifier = encode_action("share", "1a_B-c")
        
        assert identifier == "share_1a%5FB-c"
        assert decode_component(identifier) == ShareFile("1a_B-c")
    
    def test_escape_is_reversible_for_percent(self):
        """'%' is escaped first so existing escapes survive."""
        assert unescape_param(escape_param("50%5F_off")) == "50%5F_off"
    
    def test_rejects_empty_param(self):
        """Empty params would produce empty segments."""
        with pytest.raises(ValueError):
            encode_action("share", "")
    
    def test_rejects_overlong_identifier(self):
        """Identifiers over 100 characters cannot be sent to the platform."""
        with pytest.raises(ValueError):
            encode_action("share", "x" * 100)


class TestDecodeComponent:
    """Tests for mapping identifiers to typed actions."""
    
    @pytest.mark.parametrize("raw, expected", [
        ("drive_authorize", AuthorizeDrive()),
        ("drive_link", AuthorizeDrive()),
        ("drive_status", ShowDriveStatus()),
        ("drive_help", ShowDriveHelp()),
        ("drive_upload", ShowUploadHelp()),
        ("upload_retry", ShowUploadHelp()),
        ("drive_list", BrowseFolder(None)),
        ("drive_list_f1", BrowseFolder("f1")),
        ("folder_f1", BrowseFolder("f1")),
        ("refresh_root", BrowseFolder(None)),
        ("back_f2", BrowseFolder("f2")),
        ("share_f3", ShareFile("f3")),
        ("share_quick_f3", ShareFile("f3")),
        ("quick_share_f3", ShareFile("f3")),
        ("share_info_f3", ShowFileInfo("f3")),
        ("download_direct_f3", ShowFileInfo("f3")),
        ("delete_f4", RequestDelete("f4")),
        ("confirm_delete_f4", ConfirmDelete("f4")),
        ("cancel_delete", CancelDelete()),
        ("search_type", ShowSearchTypes()),
    ])
    def test_known_shapes(self, raw, expected):
        """Every identifier the bot emits decodes to its action."""
        assert decode_component(raw) == expected
    
    def test_compound_shape_wins_over_simple(self):
        """`share_quick_x` is a quick share of x, not a share of 'quick'."""
        assert decode_component("share_quick_x") == ShareFile("x")
    
    def test_falls_back_to_simple_shape_on_arity_mismatch(self):
        """A file id that happens to be 'info' is still shareable."""
        assert decode_component("share_info") == ShareFile("info")
    
    def test_select_menus_use_values(self):
        """Select identifiers carry the choice in values."""
        assert decode_component("searchtype_select", ["news"]) == SelectSearchType("news")
        assert decode_component("help_category", ["drive"]) == SelectHelpTopic("drive")
    
    def test_select_without_value_is_unknown(self):
        """An empty selection cannot be acted on."""
        with pytest.raises(UnknownActionError):
            decode_component("searchtype_select", [])
    
    @pytest.mark.parametrize("raw", ["bogus", "drive_nope", "confirm_delete", "delete_a_b", "refresh"])
    def test_unknown_shapes(self, raw):
        """Anything outside the closed set raises."""
        with pytest.raises(UnknownActionError):
            decode_component(raw)
    
    def test_emitted_identifiers_decode_to_themselves(self):
        """encode() output of each parameterized action decodes back."""
        for action in (BrowseFolder("a_b"), ShareFile("x-y_z"), ShowFileInfo("f"),
                       RequestDelete("d"), ConfirmDelete("c_1")):
            assert decode_component(action.encode()) == action
    
    @pytest.mark.parametrize("raw", [
        "confirm_delete_abc/permissions/anyoneWithLink",
        "share_abc%2F..%2Fabout",
        "delete_x%25y",
        "folder_a.b",
        "share_info_f?fields=*",
    ])
    def test_params_outside_drive_id_alphabet(self, raw):
        """Decoded ids must not be able to rewrite a Drive request path."""
        with pytest.raises(UnknownActionError):
            decode_component(raw)
    
    def test_link_requirement_per_action(self):
        """Browsing and file actions need a link; help and auth do not."""
        assert BrowseFolder.requires_link
        assert ConfirmDelete.requires_link
        assert not AuthorizeDrive.requires_link
        assert not CancelDelete.requires_link
