"""
Tests for token encryption at rest.
"""
import pytest
from cryptography.fernet import Fernet

from drivebot.utils.encryption import TokenCipher, derive_key
from drivebot.utils.errors import CredentialCorruptedError


class TestTokenCipher:
    """Tests for TokenCipher."""
    
    def test_derived_key_is_a_valid_fernet_key(self):
        """Any secret maps to a usable 32 byte key."""
        Fernet(derive_key("short but fine secret"))
    
    def test_decrypts_own_ciphertext(self):
        """encrypt/decrypt with one key returns the token."""
        cipher = TokenCipher("unit-test-secret-key")
        
        stored = cipher.encrypt("ya29.token")
        
        assert stored != "ya29.token"
        assert cipher.decrypt(stored) == "ya29.token"
    
    def test_ciphertext_differs_per_call(self):
        """Fernet tokens are randomized."""
        cipher = TokenCipher("unit-test-secret-key")
        
        assert cipher.encrypt("same") != cipher.encrypt("same")
    
    @pytest.mark.parametrize("ciphertext", ["not-a-token", "", "gAAAAA=="])
    def test_garbage_is_corrupted(self, ciphertext):
        """Unreadable input raises CredentialCorruptedError."""
        with pytest.raises(CredentialCorruptedError):
            TokenCipher("unit-test-secret-key").decrypt(ciphertext)
    
    def test_other_key_is_corrupted(self):
        """Ciphertext from a different key cannot be read."""
        stored = TokenCipher("first-secret-key-123").encrypt("token")
        
        with pytest.raises(CredentialCorruptedError):
            TokenCipher("second-secret-key-456").decrypt(stored)
