"""
Credential models.

A Credential only ever holds ciphertext. Plaintext tokens exist as a
TokenSet for the short time between the identity provider's response
and encryption.
"""
from pydantic import BaseModel
from typing import Optional


class TokenSet(BaseModel):
    """Plaintext tokens as returned by the identity provider."""
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = 3600


class Credential(BaseModel):
    """Encrypted token pair for one user."""
    access_token_cipher: str
    refresh_token_cipher: Optional[str] = None
    expiry_epoch_millis: int
    
    def is_expired(self, now_millis: int) -> bool:
        return self.expiry_epoch_millis <= now_millis
