"""
Custom error classes for the application.

Every error raised by a handler is an AppError subclass so the
interaction router can pick a specific render for it. Anything else
reaching the router is treated as an unexpected failure.
"""
from typing import List, Optional


class AppError(Exception):
    """Base application error."""
    
    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        status_code: int = 500,
        details: Optional[dict] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)
    
    def to_dict(self) -> dict:
        """Convert error to dictionary for response."""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class AuthError(AppError):
    """Authentication related errors."""
    
    def __init__(self, message: str, code: str = "AUTH_ERROR", details: Optional[dict] = None):
        super().__init__(message, code, status_code=401, details=details)


class AuthExchangeError(AuthError):
    """The identity provider refused an authorization code or refresh token."""
    
    def __init__(self, provider_error: str = "", description: str = ""):
        self.provider_error = provider_error
        message = "Failed to exchange the authorization code."
        if description:
            message = f"{message} {description}"
        super().__init__(
            message,
            "AUTH_EXCHANGE_FAILED",
            details={"provider_error": provider_error} if provider_error else None,
        )
    
    @property
    def code_rejected(self) -> bool:
        """True when the code was invalid, expired or already used."""
        return self.provider_error == "invalid_grant"


class NotAuthenticatedError(AuthError):
    """Operation needs a linked Google Drive account."""
    
    def __init__(self):
        super().__init__(
            "Your Google Drive account is not linked. Use `/drive link` first.",
            "NOT_AUTHENTICATED"
        )


class DriveTokenRejectedError(AuthError):
    """Drive answered 401 to a token the vault considered valid; access was revoked."""
    
    def __init__(self):
        super().__init__("Google Drive access token expired", "DRIVE_TOKEN_REJECTED")


class CredentialCorruptedError(AuthError):
    """Stored credential could not be decrypted."""
    
    def __init__(self):
        super().__init__(
            "Your stored Google Drive credentials are no longer readable. Please link your account again.",
            "CREDENTIAL_CORRUPTED"
        )


class ResourceNotFoundError(AppError):
    """Named file or folder could not be found."""
    
    def __init__(self, reference: str = "", kind: str = "file"):
        self.reference = reference
        message = f"Couldn't find a {kind} matching '{reference}'." if reference else f"{kind.capitalize()} not found."
        super().__init__(message, "NOT_FOUND", status_code=404, details={"reference": reference})


class RemoteQuotaError(AppError):
    """A remote provider is rate limiting us."""
    
    def __init__(self, service: str = "remote service"):
        self.service = service
        super().__init__(
            f"The {service} is rate limiting requests. Please try again later.",
            "RATE_LIMITED",
            status_code=429,
            details={"service": service},
        )


class ValidationError(AppError):
    """User input breaks a constraint."""
    
    def __init__(self, message: str, constraint: str = ""):
        self.constraint = constraint
        super().__init__(message, "VALIDATION_ERROR", status_code=400, details={"constraint": constraint})


class UnknownActionError(AppError):
    """Component identifier does not match any known shape."""
    
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(
            f"Unrecognized action identifier: {identifier!r}",
            "UNKNOWN_ACTION",
            status_code=400,
        )


class RemoteServiceError(AppError):
    """A remote provider failed in a way that is not a quota issue."""
    
    def __init__(self, service: str, message: str, code: str = "REMOTE_ERROR"):
        self.service = service
        super().__init__(message, code, status_code=503, details={"service": service})


class DriveError(RemoteServiceError):
    """Google Drive API related errors."""
    
    def __init__(self, message: str = "Couldn't reach Google Drive. Please try again."):
        super().__init__("Google Drive", message, "DRIVE_ERROR")


class SearchError(RemoteServiceError):
    """Search API related errors."""
    
    def __init__(self, message: str = "Search is unavailable right now. Please try again."):
        super().__init__("Google Search", message, "SEARCH_ERROR")


class ConfigurationError(AppError):
    """Settings are unusable; the process must not start."""
    
    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__(
            "Invalid configuration: " + "; ".join(problems),
            "CONFIGURATION_ERROR",
            details={"problems": problems},
        )
