"""
Per-user session state.
"""
from pydantic import BaseModel, Field
from typing import Dict, Optional

from drivebot.models.credential import Credential


class UserSession(BaseModel):
    """In-memory state for one chat user; lost on restart."""
    user_id: str
    linked: bool = False
    credential: Optional[Credential] = None
    
    # category name -> provisioned folder id, plus "root"
    resource_cache: Dict[str, str] = Field(default_factory=dict)
    
    # command name -> epoch millis of the last allowed invocation
    last_action_at: Dict[str, int] = Field(default_factory=dict)
