"""
Handlers for `/search` and its type picker.
"""
from typing import Dict, List, Optional

from drivebot.models.interaction import (
    ActionRow, Button, ButtonStyle, RenderInstruction, SelectMenu, SelectOption,
)
from drivebot.models.search import SearchResults, SearchType
from drivebot.services.action_ids import SelectSearchType, ShowSearchTypes
from drivebot.services.interaction_router import Handler, HandlerRequest, Route
from drivebot.services.search_service import DEFAULT_RESULT_COUNT, SearchService
from drivebot.utils.embeds import Colors, create_embed, info_embed, render
from drivebot.utils.formatting import truncate
from drivebot.utils.errors import ValidationError

SEARCH_TYPE_EMOJI = {
    SearchType.WEB: "🌐",
    SearchType.IMAGE: "🖼️",
    SearchType.NEWS: "📰",
    SearchType.VIDEO: "🎥",
    SearchType.DOCUMENT: "📄",
}

SEARCH_TYPE_DESCRIPTIONS = {
    SearchType.WEB: "Regular web search",
    SearchType.IMAGE: "Find images",
    SearchType.NEWS: "Recent news articles",
    SearchType.VIDEO: "Videos on YouTube",
    SearchType.DOCUMENT: "PDF documents",
}

MAX_RESULTS_SHOWN = 5
MAX_LINK_BUTTONS = 3
MAX_SNIPPET_LENGTH = 200


def search_type_menu() -> ActionRow:
    return ActionRow(select=SelectMenu(
        custom_id=SelectSearchType("").encode(),
        placeholder="Choose a search type...",
        options=[
            SelectOption(
                label=f"{t.value.capitalize()} Search",
                value=t.value,
                description=SEARCH_TYPE_DESCRIPTIONS[t],
                emoji=SEARCH_TYPE_EMOJI[t],
            )
            for t in SearchType
        ],
    ))


def results_render(results: SearchResults) -> RenderInstruction:
    search_type = results.search_type
    emoji = SEARCH_TYPE_EMOJI[search_type]
    embed = create_embed(
        f"{emoji} {search_type.value.capitalize()} results for \"{truncate(results.query, 100)}\"",
        color=Colors.INFO,
        footer=f"{results.total_results:,} results in {results.search_time:.2f}s",
    )
    
    if not results.items:
        embed.description = "No results found. Try different keywords."
        return render(embed, components=[search_type_menu()], ephemeral=False)
    
    if search_type == SearchType.IMAGE:
        first = results.items[0]
        embed.image_url = first.image_url
        embed.description = f"[{truncate(first.title, 100)}]({first.link})"
        for index, item in enumerate(results.items[1:4], start=2):
            embed.add_field(f"{index}. {truncate(item.title, 100)}", item.link)
    else:
        for index, item in enumerate(results.items[:MAX_RESULTS_SHOWN], start=1):
            embed.add_field(
                f"{index}. {truncate(item.title, 100)}",
                f"{truncate(item.snippet, MAX_SNIPPET_LENGTH)}\n[🔗 {item.display_link}]({item.link})",
            )
    
    link_buttons = [
        Button(label=truncate(f"{index}. {item.title}", 80), style=ButtonStyle.LINK, url=item.link)
        for index, item in enumerate(results.items[:MAX_LINK_BUTTONS], start=1)
        if item.link
    ]
    rows = [search_type_menu()]
    if link_buttons:
        rows.append(ActionRow(buttons=link_buttons))
    return render(embed, components=rows, ephemeral=False)


class SearchCommands:
    """
    Usage:
        commands = SearchCommands(search_service)
        spec = CommandSpec("search", commands.routes(), cooldown_ms=5000, ephemeral=False)
    """
    
    def __init__(self, service: SearchService):
        self.service = service
    
    def routes(self) -> Dict[Optional[str], Route]:
        return {None: Route(self.search, requires_link=False)}
    
    def component_handlers(self) -> Dict[type, Handler]:
        return {
            ShowSearchTypes: self.show_types,
            SelectSearchType: self.select_type,
        }
    
    async def search(self, request: HandlerRequest) -> RenderInstruction:
        search_type = self._parse_type(request.param("type", SearchType.WEB.value))
        try:
            count = int(request.param("limit", DEFAULT_RESULT_COUNT))
        except (TypeError, ValueError):
            raise ValidationError("Result limit must be a number between 1 and 10.", constraint="limit")
        if not 1 <= count <= 10:
            raise ValidationError("Result limit must be a number between 1 and 10.", constraint="limit")
        
        results = await self.service.search(request.param("query", ""), search_type, count)
        return results_render(results)
    
    async def show_types(self, request: HandlerRequest) -> RenderInstruction:
        return render(info_embed("Search types", "Pick the kind of search you want."), components=[search_type_menu()])
    
    async def select_type(self, request: HandlerRequest) -> RenderInstruction:
        search_type = self._parse_type(request.action.value)
        emoji = SEARCH_TYPE_EMOJI[search_type]
        return render(info_embed(
            f"{emoji} {search_type.value.capitalize()} search selected",
            f"Run `/search query:<text> type:{search_type.value}` to search.",
        ))
    
    @staticmethod
    def _parse_type(value: str) -> SearchType:
        try:
            return SearchType(str(value).lower())
        except ValueError:
            choices = ", ".join(t.value for t in SearchType)
            raise ValidationError(f"Unknown search type '{value}'. Choose one of: {choices}.", constraint="search_type")
