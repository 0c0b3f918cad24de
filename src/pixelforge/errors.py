"""PixelForge error hierarchy.

All custom exceptions inherit from PixelForgeError, enabling callers
to catch the base class for blanket error handling or specific
subclasses for targeted recovery.
"""

from __future__ import annotations


class PixelForgeError(Exception):
    """Base exception for all PixelForge errors."""


class ConfigError(PixelForgeError):
    """Raised when no usable provider credential or setting is configured."""


class InvalidRequestError(PixelForgeError):
    """Raised when a generation request is malformed (caller's fault)."""


class GenerationError(PixelForgeError):
    """Raised when a provider returns no usable image output."""


class ProviderError(PixelForgeError):
    """Raised when an external provider rejects a request or a job fails.

    Attributes:
        status_code: HTTP status code returned by the provider, if any.
        body: Raw response body text, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class StorageError(PixelForgeError):
    """Raised when bytes cannot be written to durable storage."""


class InsufficientCreditsError(PixelForgeError):
    """Raised when a caller lacks the credits a generation requires.

    Attributes:
        required: Credits the operation costs.
        available: Credits currently on the caller's balance.
    """

    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            f"Insufficient credits: {required} required, {available} available"
        )
        self.required = required
        self.available = available


class AuthenticationError(PixelForgeError):
    """Raised when a caller's token cannot be resolved to a user."""
