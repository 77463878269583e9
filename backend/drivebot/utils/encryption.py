"""
Symmetric encryption for OAuth tokens at rest.

Tokens are only ever stored as Fernet ciphertext. The Fernet key is
derived from the configured secret so any sufficiently long string works
as ENCRYPTION_KEY.
"""
import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from drivebot.utils.errors import CredentialCorruptedError


def derive_key(secret: str) -> bytes:
    """Derive a url-safe 32 byte Fernet key from an arbitrary secret."""
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


class TokenCipher:
    """
    Encrypt/decrypt token strings.
    
    Usage:
        cipher = TokenCipher(settings.encryption_key)
        stored = cipher.encrypt(access_token)
        access_token = cipher.decrypt(stored)
    """
    
    def __init__(self, secret: str):
        self._fernet = Fernet(derive_key(secret))
    
    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")
    
    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a stored token.
        
        Raises:
            CredentialCorruptedError: Ciphertext was tampered with or was
                written with a different key
        """
        try:
            return self._fernet.decrypt(ciphertext.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError, ValueError):
            raise CredentialCorruptedError()
