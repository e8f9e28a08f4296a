"""Domain exception hierarchy for the clipboard AI assistant."""

from __future__ import annotations


class ClipAIError(RuntimeError):
    """Base class for all domain-level errors."""


class PreconditionFailure(ClipAIError):
    """Raised when an action is missing required input (credential, content)."""

    def __init__(self, message: str, title: str = "Missing Input") -> None:
        super().__init__(message)
        self.title = title


class CompletionFailure(ClipAIError):
    """Base class for failures reported by the completion endpoint."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransportFailure(CompletionFailure):
    """Raised on a non-success HTTP status or a network-level failure."""


class InvalidResponseShape(CompletionFailure):
    """Raised when a successful response lacks the expected fields."""


class AssetDecodeFailure(ClipAIError):
    """Raised when clipboard image data cannot be decoded."""


class SessionStateError(ClipAIError):
    """Raised when a session operation is invalid for its current state."""


class SessionBusyError(SessionStateError):
    """Raised when a second request is issued while one is in flight."""


class TranscriptInvariantError(ClipAIError):
    """Raised when an append would break role ordering."""


class ConfigValidationError(ClipAIError):
    """Raised when configuration cannot be validated safely."""
