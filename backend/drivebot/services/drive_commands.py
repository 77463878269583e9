"""
Handlers for `/drive` subcommands and the Drive buttons.

Every handler takes a HandlerRequest and returns a RenderInstruction.
The router has already checked the link requirement, acknowledged the
interaction and will turn any AppError into an error render.
"""
from typing import Dict, List, Optional

from drivebot.config import Settings
from drivebot.models.drive import DriveFile
from drivebot.models.interaction import (
    ActionRow, Button, ButtonStyle, Embed, RenderInstruction,
)
from drivebot.services.action_ids import (
    AuthorizeDrive, BrowseFolder, RequestDelete, ShareFile, ShowDriveHelp, ShowDriveSearchHelp,
    ShowDriveStatus, ShowFileInfo, ShowUploadHelp, browse_target, encode_action,
)
from drivebot.services.auth_service import AuthService
from drivebot.services.credential_vault import CredentialVault
from drivebot.services.drive_service import DriveService, FolderView
from drivebot.services.interaction_router import Handler, HandlerRequest, Route
from drivebot.utils.embeds import Colors, create_embed, info_embed, render, success_embed
from drivebot.utils.formatting import FOLDER_ICON, file_icon, format_date, format_file_size, truncate
from drivebot.utils.logger import get_logger
from drivebot.utils.errors import ValidationError

logger = get_logger(__name__)

# Listing display limits
MAX_FOLDERS_SHOWN = 5
MAX_FILES_SHOWN = 8
MAX_SHARE_BUTTONS = 3
MAX_FOLDER_BUTTONS = 5


# =============================================================================
# RENDER HELPERS
# =============================================================================

def file_details_embed(file: DriveFile, title: str, color: int = Colors.INFO) -> Embed:
    embed = create_embed(title, color=color, url=file.web_view_link)
    embed.add_field("📄 Name", file.name, inline=True)
    embed.add_field("📏 Size", format_file_size(file.size), inline=True)
    embed.add_field("🏷️ Type", file.mime_type, inline=True)
    if file.created_time:
        embed.add_field("📅 Created", format_date(file.created_time), inline=True)
    if file.modified_time:
        embed.add_field("✏️ Modified", format_date(file.modified_time), inline=True)
    return embed


def file_buttons(file: DriveFile) -> List[ActionRow]:
    buttons = []
    if file.web_view_link:
        buttons.append(Button(label="Open in Drive", style=ButtonStyle.LINK, url=file.web_view_link, emoji="🌐"))
    buttons.append(Button(label="Share", style=ButtonStyle.SUCCESS, custom_id=ShareFile(file.id).encode(), emoji="🔗"))
    buttons.append(Button(label="Delete", style=ButtonStyle.DANGER, custom_id=RequestDelete(file.id).encode(), emoji="🗑️"))
    parent = file.parents[0] if file.parents else None
    buttons.append(Button(label="File manager", custom_id=BrowseFolder(parent).encode(), emoji="📂"))
    return [ActionRow(buttons=buttons)]


def link_buttons(url: str) -> List[ActionRow]:
    return [ActionRow(buttons=[
        Button(label="Authorize Google Drive", style=ButtonStyle.LINK, url=url, emoji="🔑"),
        Button(label="Check status", custom_id=ShowDriveStatus().encode(), emoji="📊"),
    ])]


def folder_view_render(view: FolderView) -> RenderInstruction:
    listing = view.listing
    title = f"{FOLDER_ICON} {view.folder.name}" if view.folder else "🏠 My Drive"
    embed = create_embed(title, color=Colors.INFO)
    
    if listing.total == 0:
        embed.description = "This folder is empty. Upload something with `/drive upload`."
    else:
        embed.description = f"{len(listing.folders)} folder(s), {len(listing.files)} file(s)"
    
    if listing.folders:
        lines = [f"{FOLDER_ICON} {truncate(f.name)}" for f in listing.folders[:MAX_FOLDERS_SHOWN]]
        if len(listing.folders) > MAX_FOLDERS_SHOWN:
            lines.append(f"... and {len(listing.folders) - MAX_FOLDERS_SHOWN} more")
        embed.add_field("Folders", "\n".join(lines))
    
    if listing.files:
        lines = [
            f"{file_icon(f.mime_type)} {truncate(f.name)} ({format_file_size(f.size)})"
            for f in listing.files[:MAX_FILES_SHOWN]
        ]
        if len(listing.files) > MAX_FILES_SHOWN:
            lines.append(f"... and {len(listing.files) - MAX_FILES_SHOWN} more")
        embed.add_field("Files", "\n".join(lines))
    
    rows = []
    folder_buttons = [
        Button(label=truncate(f.name, 40), custom_id=BrowseFolder(f.id).encode(), emoji=FOLDER_ICON)
        for f in listing.folders[:MAX_FOLDER_BUTTONS]
    ]
    if folder_buttons:
        rows.append(ActionRow(buttons=folder_buttons))
    
    share_buttons = [
        Button(label=f"Share {truncate(f.name, 30)}", style=ButtonStyle.SUCCESS,
               custom_id=encode_action("share_quick", f.id), emoji="🔗")
        for f in listing.files[:MAX_SHARE_BUTTONS]
    ]
    if share_buttons:
        rows.append(ActionRow(buttons=share_buttons))
    
    controls = [
        Button(label="Refresh", custom_id=encode_action("refresh", browse_target(listing.folder_id)), emoji="🔄"),
        Button(label="Upload", style=ButtonStyle.PRIMARY, custom_id=ShowUploadHelp().encode(), emoji="📤"),
    ]
    if listing.folder_id is not None:
        controls.insert(0, Button(label="Back", custom_id=encode_action("back", browse_target(view.parent_id)), emoji="⬅️"))
    rows.append(ActionRow(buttons=controls))
    
    return render(embed, components=rows)


def share_render(file: DriveFile) -> RenderInstruction:
    embed = create_embed(f"🔗 {file.name} is now shared", color=Colors.SHARE, url=file.web_view_link)
    embed.description = "Anyone with the link can view this file."
    if file.web_view_link:
        embed.add_field("👀 View link", file.web_view_link)
    if file.web_content_link:
        embed.add_field("⬇️ Download link", file.web_content_link)
    
    buttons = []
    if file.web_view_link:
        buttons.append(Button(label="Open", style=ButtonStyle.LINK, url=file.web_view_link, emoji="🌐"))
    if file.web_content_link:
        buttons.append(Button(label="Download", style=ButtonStyle.LINK, url=file.web_content_link, emoji="⬇️"))
    buttons.append(Button(label="File info", custom_id=ShowFileInfo(file.id).encode(), emoji="ℹ️"))
    return render(embed, components=[ActionRow(buttons=buttons)])


# =============================================================================
# HANDLERS
# =============================================================================

class DriveCommands:
    """
    Usage:
        commands = DriveCommands(settings, vault, drive, auth)
        spec = CommandSpec("drive", commands.routes())
        for action_type, handler in commands.component_handlers().items():
            router.add_component(action_type, handler)
    """
    
    def __init__(self, settings: Settings, vault: CredentialVault, drive: DriveService, auth: AuthService):
        self.settings = settings
        self.vault = vault
        self.drive = drive
        self.auth = auth
    
    def routes(self) -> Dict[Optional[str], Route]:
        """Subcommand routes; verify and delete live in ConfirmationFlow."""
        return {
            "link": Route(self.link, requires_link=False),
            "unlink": Route(self.unlink, requires_link=False),
            "status": Route(self.status, requires_link=False),
            "upload": Route(self.upload),
            "download": Route(self.download),
            "list": Route(self.list_files),
            "share": Route(self.share),
        }
    
    def component_handlers(self) -> Dict[type, Handler]:
        return {
            AuthorizeDrive: self.link,
            ShowDriveStatus: self.status,
            ShowDriveHelp: self.drive_help,
            ShowUploadHelp: self.upload_help,
            ShowDriveSearchHelp: self.search_help,
            BrowseFolder: self.list_files,
            ShareFile: self.share,
            ShowFileInfo: self.file_info,
        }
    
    async def link(self, request: HandlerRequest) -> RenderInstruction:
        if self.vault.is_linked(request.user_id):
            embed = info_embed("Already linked", "Your Google Drive account is already connected.")
            embed.add_field("Switch accounts", "Use `/drive unlink` first, then `/drive link` again.")
            return render(embed, components=[ActionRow(buttons=[
                Button(label="Open file manager", custom_id=BrowseFolder().encode(), emoji="📂"),
            ])])
        
        url = self.auth.get_oauth_url(request.user_id)
        embed = info_embed(
            "Link Google Drive",
            "1. Click **Authorize Google Drive** and grant access.\n"
            "2. You will be linked automatically when the browser shows the success page.\n"
            "3. If the page shows a code instead, run `/drive verify` with that code "
            "(or the whole URL from the address bar).",
        )
        embed.add_field("⏰ Note", f"The link expires in {self.settings.oauth_state_ttl_minutes} minutes.")
        return render(embed, components=link_buttons(url))
    
    async def unlink(self, request: HandlerRequest) -> RenderInstruction:
        if not self.vault.unlink(request.user_id):
            return render(info_embed("Not linked", "There is no Google Drive account linked to unlink."))
        return render(success_embed(
            "Google Drive unlinked",
            "Your tokens have been removed. Files in your Drive are untouched.",
        ))
    
    async def status(self, request: HandlerRequest) -> RenderInstruction:
        if not self.vault.is_linked(request.user_id):
            embed = info_embed("Google Drive: not connected", "Link your account to upload and manage files.")
            return render(embed, components=[ActionRow(buttons=[
                Button(label="Link Google Drive", style=ButtonStyle.PRIMARY,
                       custom_id=AuthorizeDrive().encode(), emoji="🔗"),
            ])])
        
        account = await self.drive.account_info(request.user_id)
        embed = success_embed("Google Drive: connected")
        
        if account is None:
            embed.description = "Your account is linked. Account details are unavailable right now."
        else:
            if account.user:
                embed.add_field("👤 Account", account.user.display_name, inline=True)
                embed.add_field("📧 Email", account.user.email_address, inline=True)
            if account.quota:
                quota = account.quota
                embed.add_field("💾 Used", format_file_size(quota.usage), inline=True)
                embed.add_field("📦 Limit", format_file_size(quota.limit) if quota.limit is not None else "Unlimited", inline=True)
                if quota.available is not None:
                    embed.add_field("✨ Available", format_file_size(quota.available), inline=True)
        
        return render(embed, components=[ActionRow(buttons=[
            Button(label="Open file manager", custom_id=BrowseFolder().encode(), emoji="📂"),
            Button(label="Upload", style=ButtonStyle.PRIMARY, custom_id=ShowUploadHelp().encode(), emoji="📤"),
        ])])
    
    async def upload(self, request: HandlerRequest) -> RenderInstruction:
        attachment = request.event.attachment
        if attachment is None:
            raise ValidationError("Attach a file to upload.", constraint="missing_attachment")
        
        result = await self.drive.upload(request.user_id, attachment)
        embed = file_details_embed(result.file, "✅ Upload complete", Colors.SUCCESS)
        embed.add_field("📁 Folder", result.category, inline=True)
        return render(embed, components=file_buttons(result.file))
    
    async def download(self, request: HandlerRequest) -> RenderInstruction:
        name = request.param("filename", "")
        file = await self.drive.find_file(request.user_id, name)
        
        embed = file_details_embed(file, f"{file_icon(file.mime_type)} {file.name}")
        link = file.web_content_link or file.web_view_link
        if link:
            embed.add_field("⬇️ Download", link)
        return render(embed, components=file_buttons(file))
    
    async def list_files(self, request: HandlerRequest) -> RenderInstruction:
        if isinstance(request.action, BrowseFolder):
            folder_id = request.action.folder_id
        else:
            folder_name = request.param("folder")
            folder_id = (await self.drive.find_folder(request.user_id, folder_name)).id if folder_name else None
        
        view = await self.drive.list_folder(request.user_id, folder_id)
        return folder_view_render(view)
    
    async def share(self, request: HandlerRequest) -> RenderInstruction:
        if isinstance(request.action, ShareFile):
            file_id = request.action.file_id
        else:
            file_id = (await self.drive.find_file(request.user_id, request.param("filename", ""))).id
        
        file = await self.drive.share(request.user_id, file_id)
        return share_render(file)
    
    async def file_info(self, request: HandlerRequest) -> RenderInstruction:
        file = await self.drive.file_info(request.user_id, request.action.file_id)
        embed = file_details_embed(file, f"{file_icon(file.mime_type)} {file.name}")
        if file.web_content_link:
            embed.add_field("⬇️ Download", file.web_content_link)
        return render(embed, components=file_buttons(file))
    
    async def drive_help(self, request: HandlerRequest) -> RenderInstruction:
        return render(drive_help_embed())
    
    async def upload_help(self, request: HandlerRequest) -> RenderInstruction:
        limit = format_file_size(self.settings.max_upload_bytes)
        embed = info_embed(
            "Uploading files",
            "Run `/drive upload` and attach a file. It is sorted into a folder by type:",
        )
        embed.add_field("🖼️ Images", "image/*", inline=True)
        embed.add_field("📝 Documents", "PDF, text, office documents", inline=True)
        embed.add_field("📦 Archives", "zip and other archives", inline=True)
        embed.add_field("📄 Others", "everything else", inline=True)
        embed.add_field("📏 Limit", f"Up to {limit} per file", inline=True)
        return render(embed)
    
    async def search_help(self, request: HandlerRequest) -> RenderInstruction:
        embed = info_embed(
            "Finding files",
            "Commands that take a file name match it case-insensitively. "
            "An exact name wins; otherwise the first file containing the text is used.",
        )
        embed.add_field("Examples", "`/drive download report`\n`/drive share holiday.png`\n`/drive delete old-notes`")
        return render(embed)


def drive_help_embed() -> Embed:
    embed = info_embed("Google Drive commands")
    embed.add_field("`/drive link`", "Get a link to connect your Google Drive")
    embed.add_field("`/drive verify <code>`", "Finish linking with the code from Google")
    embed.add_field("`/drive status`", "Connection, account and storage")
    embed.add_field("`/drive upload <file>`", "Upload an attachment")
    embed.add_field("`/drive list [folder]`", "Browse files and folders")
    embed.add_field("`/drive download <name>`", "Get a download link")
    embed.add_field("`/drive share <name>`", "Make a file public and get its links")
    embed.add_field("`/drive delete <name>`", "Delete a file (asks for confirmation)")
    embed.add_field("`/drive unlink`", "Disconnect your account")
    return embed
