"""
Interaction endpoint.

The chat platform adapter posts every slash command, button click and
select choice here and renders the returned instruction. Requests must be
signed with INTERACTION_SECRET (see drivebot.utils.signing).

Endpoint: POST /api/interactions
Request: InteractionEvent { kind, name, user_id, subcommand?, params?, values?, attachment? }
Response: RenderInstruction { content?, embeds, components, ephemeral }

Examples:
    {"kind": "command", "name": "drive", "subcommand": "delete",
     "params": {"filename": "report"}, "user_id": "42"}
    {"kind": "button", "name": "confirm_delete_1AbC", "user_id": "42"}
    {"kind": "select", "name": "searchtype_select", "values": ["news"], "user_id": "42"}
"""
from fastapi import APIRouter, Depends, HTTPException

from drivebot.context import AppContext
from drivebot.models.interaction import InteractionEvent, RenderInstruction
from drivebot.routes.dependencies import get_context, verify_platform_request
from drivebot.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post(
    "/interactions",
    response_model=RenderInstruction,
    dependencies=[Depends(verify_platform_request)],
)
async def handle_interaction(
    event: InteractionEvent,
    context: AppContext = Depends(get_context),
):
    """
    Dispatch one interaction and return what to show the user.
    
    Handler errors never surface as HTTP errors; they come back as an
    error render. The only non-200 answer is 409 for a redelivered
    interaction that is still being handled.
    """
    result = await context.router.dispatch(event)
    
    if result is None:
        raise HTTPException(
            status_code=409,
            detail={
                "error": True,
                "code": "DUPLICATE_INTERACTION",
                "message": "This interaction is already being handled.",
            },
        )
    
    return result
