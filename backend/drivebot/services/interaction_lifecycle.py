"""
Lifecycle of a single interaction.

RECEIVED -> ACKNOWLEDGED -> RESOLVED | FAILED

Acknowledging tells the platform we are working (a deferred reply).
Exactly one final response is ever delivered: a second resolve/fail on
the same interaction is a silent no-op. Every guard is checked and the
state updated before the first await, so racing tasks cannot both pass.
"""
from enum import Enum
from typing import List, Optional, Tuple

from drivebot.models.interaction import InteractionEvent, RenderInstruction
from drivebot.utils.logger import get_logger

logger = get_logger(__name__)


class InteractionState(Enum):
    RECEIVED = "received"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    FAILED = "failed"


FINAL_STATES = (InteractionState.RESOLVED, InteractionState.FAILED)


class InteractionResponder:
    """
    Outbound side of the chat platform for one interaction.
    
    Platform adapters subclass this; the router only ever calls these
    three methods.
    """
    
    async def defer(self, ephemeral: bool) -> None:
        raise NotImplementedError
    
    async def reply(self, render: RenderInstruction) -> None:
        raise NotImplementedError
    
    async def edit(self, render: RenderInstruction) -> None:
        raise NotImplementedError


class BufferedResponder(InteractionResponder):
    """Keeps everything sent, for the HTTP entry point and for tests."""
    
    def __init__(self):
        self.calls: List[Tuple[str, Optional[RenderInstruction]]] = []
        self.deferred_ephemeral: Optional[bool] = None
    
    async def defer(self, ephemeral: bool) -> None:
        self.deferred_ephemeral = ephemeral
        self.calls.append(("defer", None))
    
    async def reply(self, render: RenderInstruction) -> None:
        self.calls.append(("reply", render))
    
    async def edit(self, render: RenderInstruction) -> None:
        self.calls.append(("edit", render))
    
    @property
    def delivered(self) -> List[RenderInstruction]:
        return [render for kind, render in self.calls if render is not None]
    
    @property
    def final(self) -> Optional[RenderInstruction]:
        delivered = self.delivered
        return delivered[-1] if delivered else None


class Interaction:
    """
    One inbound event plus its response state.
    
    Usage:
        interaction = Interaction(event, responder)
        await interaction.acknowledge()
        await interaction.resolve(render)
    """
    
    def __init__(self, event: InteractionEvent, responder: InteractionResponder):
        self.event = event
        self.responder = responder
        self.state = InteractionState.RECEIVED
        self._finishing = False
    
    @property
    def is_final(self) -> bool:
        return self.state in FINAL_STATES
    
    async def acknowledge(self, ephemeral: bool = True) -> bool:
        """
        Defer the reply. Only the first call does anything.
        
        Returns:
            True if this call acknowledged the interaction
        """
        if self.state is not InteractionState.RECEIVED or self._finishing:
            logger.debug(f"Ignoring duplicate acknowledgment in state {self.state.value}")
            return False
        
        self.state = InteractionState.ACKNOWLEDGED
        await self.responder.defer(ephemeral)
        return True
    
    async def resolve(self, render: RenderInstruction) -> bool:
        """Deliver the final response. Returns False if one was already sent."""
        return await self._finish(InteractionState.RESOLVED, render)
    
    async def fail(self, render: RenderInstruction) -> bool:
        """Deliver a failure response. Returns False if a response was already sent."""
        return await self._finish(InteractionState.FAILED, render)
    
    async def _finish(self, target: InteractionState, render: RenderInstruction) -> bool:
        if self.is_final or self._finishing:
            logger.debug(f"Ignoring extra response in state {self.state.value}")
            return False
        
        self._finishing = True
        acknowledged = self.state is InteractionState.ACKNOWLEDGED
        try:
            if acknowledged:
                await self.responder.edit(render)
            else:
                await self.responder.reply(render)
        except Exception:
            # A failed failure-response is terminal; a failed success-response may still be replaced by fail()
            if target is InteractionState.FAILED:
                self.state = InteractionState.FAILED
            self._finishing = False
            raise
        
        self.state = target
        self._finishing = False
        return True
