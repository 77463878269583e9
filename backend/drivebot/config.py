"""
Application configuration loaded from environment variables.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List

from drivebot.utils.errors import ConfigurationError

# Known-insecure value shipped in old sample .env files
PLACEHOLDER_ENCRYPTION_KEY = "default-key-please-change-in-production"
MIN_ENCRYPTION_KEY_LENGTH = 16
MIN_INTERACTION_SECRET_LENGTH = 16


class Settings(BaseSettings):
    """Application settings from environment variables."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
    
    # Google OAuth
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = "http://localhost:8000/api/auth/callback"
    
    # Google Programmable Search
    google_search_api_key: str = ""
    google_search_engine_id: str = ""
    
    # Token encryption and OAuth state signing
    encryption_key: str = ""
    state_secret: str = ""
    oauth_state_ttl_minutes: int = 10
    
    # Shared secret the chat platform adapter signs requests with
    interaction_secret: str = ""
    interaction_max_skew_seconds: int = 300
    
    # Hosts the adapter may hand us attachment URLs for
    attachment_hosts: List[str] = ["cdn.discordapp.com", "media.discordapp.net"]
    
    # Limits
    max_upload_bytes: int = 8 * 1024 * 1024
    default_cooldown_seconds: int = 3
    
    # Drive folder created for each linked user
    upload_root_folder: str = "Drive Bot Uploads"
    
    bot_name: str = "Drive Bot"
    log_level: str = "INFO"
    debug: bool = False
    
    # Google OAuth scopes
    @property
    def google_scopes(self) -> List[str]:
        # drive.file: only files this app created or the user opened with it
        return ["https://www.googleapis.com/auth/drive.file"]
    
    @property
    def signing_secret(self) -> str:
        return self.state_secret or self.encryption_key
    
    @property
    def search_configured(self) -> bool:
        return bool(self.google_search_api_key and self.google_search_engine_id)
    
    def validate_for_startup(self) -> None:
        """
        Refuse to run with unusable settings.
        
        Raises:
            ConfigurationError: Listing every problem found
        """
        problems = []
        
        if not self.encryption_key:
            problems.append("ENCRYPTION_KEY is not set")
        elif self.encryption_key == PLACEHOLDER_ENCRYPTION_KEY:
            problems.append("ENCRYPTION_KEY is the sample placeholder value")
        elif len(self.encryption_key) < MIN_ENCRYPTION_KEY_LENGTH:
            problems.append(
                f"ENCRYPTION_KEY must be at least {MIN_ENCRYPTION_KEY_LENGTH} characters"
            )
        
        if not self.google_client_id:
            problems.append("GOOGLE_CLIENT_ID is not set")
        if not self.google_client_secret:
            problems.append("GOOGLE_CLIENT_SECRET is not set")
        
        if not self.interaction_secret:
            problems.append("INTERACTION_SECRET is not set")
        elif len(self.interaction_secret) < MIN_INTERACTION_SECRET_LENGTH:
            problems.append(
                f"INTERACTION_SECRET must be at least {MIN_INTERACTION_SECRET_LENGTH} characters"
            )
        
        if self.max_upload_bytes <= 0:
            problems.append("MAX_UPLOAD_BYTES must be positive")
        
        if problems:
            raise ConfigurationError(problems)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
