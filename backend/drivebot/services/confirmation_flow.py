"""
Multi-step flows driven by UI round trips.

Delete:
1. `/drive delete <name>` (or a Delete button) resolves the file and
   shows a prompt whose confirm button carries the file id
2. `confirm_delete_<id>` deletes that id without resolving the name again
3. `cancel_delete` replaces the prompt and touches nothing remotely

Nothing is held server-side between the steps; the button identifier is
the whole pending state.

Verify:
`/drive verify <code or redirect URL>` extracts the code and links the
account in one shot.
"""
from typing import Dict, Optional

from drivebot.models.drive import DriveFile
from drivebot.models.interaction import ActionRow, Button, ButtonStyle, RenderInstruction
from drivebot.services.action_ids import (
    BrowseFolder, CancelDelete, ConfirmDelete, RequestDelete, ShowDriveStatus, ShowUploadHelp,
)
from drivebot.services.auth_service import AuthService
from drivebot.services.drive_service import DriveService
from drivebot.services.interaction_router import Handler, HandlerRequest, Route
from drivebot.utils.embeds import info_embed, render, success_embed, warning_embed
from drivebot.utils.formatting import file_icon, format_file_size
from drivebot.utils.logger import get_logger

logger = get_logger(__name__)


def delete_prompt(file: DriveFile) -> RenderInstruction:
    """Confirmation prompt; the confirm button embeds the immutable file id."""
    embed = warning_embed(
        "Delete this file?",
        f"{file_icon(file.mime_type)} **{file.name}** ({format_file_size(file.size)})\n\n"
        "This permanently deletes the file from Google Drive and cannot be undone.",
    )
    return render(embed, components=[ActionRow(buttons=[
        Button(label="Delete", style=ButtonStyle.DANGER, custom_id=ConfirmDelete(file.id).encode(), emoji="🗑️"),
        Button(label="Cancel", style=ButtonStyle.SECONDARY, custom_id=CancelDelete().encode(), emoji="✖️"),
    ])])


class ConfirmationFlow:
    """
    Usage:
        flow = ConfirmationFlow(drive, auth)
        routes.update(flow.routes())
    """
    
    def __init__(self, drive: DriveService, auth: AuthService):
        self.drive = drive
        self.auth = auth
    
    def routes(self) -> Dict[Optional[str], Route]:
        return {
            "delete": Route(self.request_delete),
            "verify": Route(self.verify, requires_link=False),
        }
    
    def component_handlers(self) -> Dict[type, Handler]:
        return {
            RequestDelete: self.request_delete,
            ConfirmDelete: self.confirm_delete,
            CancelDelete: self.cancel_delete,
        }
    
    # =========================================================================
    # DELETE
    # =========================================================================
    
    async def request_delete(self, request: HandlerRequest) -> RenderInstruction:
        """Step 1: resolve the target and ask. No remote mutation."""
        if isinstance(request.action, RequestDelete):
            file = await self.drive.file_info(request.user_id, request.action.file_id)
        else:
            file = await self.drive.find_file(request.user_id, request.param("filename", ""))
        
        logger.info(f"Delete requested for file {file.id} by user {request.user_id}")
        return delete_prompt(file)
    
    async def confirm_delete(self, request: HandlerRequest) -> RenderInstruction:
        """Step 2: delete the id carried by the button."""
        file_id = request.action.file_id
        await self.drive.delete(request.user_id, file_id)
        
        logger.info(f"Deleted file {file_id} for user {request.user_id}")
        embed = success_embed("File deleted", "The file was permanently removed from Google Drive.")
        return render(embed, components=[ActionRow(buttons=[
            Button(label="Back to files", custom_id=BrowseFolder().encode(), emoji="📂"),
        ])])
    
    async def cancel_delete(self, request: HandlerRequest) -> RenderInstruction:
        return render(info_embed("Delete cancelled", "Nothing was deleted."))
    
    # =========================================================================
    # VERIFY
    # =========================================================================
    
    async def verify(self, request: HandlerRequest) -> RenderInstruction:
        """
        Exchange the pasted code. An empty or code-less input is rejected
        before anything is sent to Google.
        """
        await self.auth.link(request.user_id, request.param("code", ""))
        
        embed = success_embed(
            "Google Drive linked",
            "Your account is connected. Uploads go into their own folders by file type.",
        )
        return render(embed, components=[ActionRow(buttons=[
            Button(label="Open file manager", custom_id=BrowseFolder().encode(), emoji="📂"),
            Button(label="Upload", style=ButtonStyle.PRIMARY, custom_id=ShowUploadHelp().encode(), emoji="📤"),
            Button(label="Status", custom_id=ShowDriveStatus().encode(), emoji="📊"),
        ])])
