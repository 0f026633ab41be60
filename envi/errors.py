class EnviError(Exception):
    """Base class for envi-specific errors."""


# Envelope / blob
class AuthenticationError(EnviError):
    """Blob failed authentication: wrong secret or tampered data."""


class EnvelopeError(EnviError):
    """Envelope is structurally invalid (bad base64, truncated, undecodable)."""


# Store document
class StoreFormatError(EnviError):
    pass


class StoreVersionError(StoreFormatError):
    def __init__(self, found, expected: int):
        super().__init__(f"Unsupported envi store version {found!r} (expected {expected})")
        self.found = found
        self.expected = expected


class StoreFieldError(StoreFormatError):
    def __init__(self, field: str, message: str | None = None):
        super().__init__(message or f"Store document is missing or has an invalid '{field}' field")
        self.field = field


# Local environment
class ConfigError(EnviError):
    """Raised when config.json exists but cannot be parsed or validated."""


class RepositoryError(EnviError):
    pass
