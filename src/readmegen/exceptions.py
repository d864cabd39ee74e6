"""Error taxonomy for the generation pipeline."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorKind(str, Enum):
    """Closed set of failure categories a generation call can end in."""

    AUTH_ERROR = "AUTH_ERROR"
    RATE_LIMIT = "RATE_LIMIT"
    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_OUTPUT = "INVALID_OUTPUT"
    UNKNOWN = "UNKNOWN"


# What the web layer shows for each kind. Never derived from message text.
USER_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.AUTH_ERROR: "Invalid API keys. Please check server configuration.",
    ErrorKind.RATE_LIMIT: "The generation service is busy. Please try again later.",
    ErrorKind.NETWORK_ERROR: "Could not reach the generation service. Check your connection.",
    ErrorKind.INVALID_OUTPUT: "Failed to generate README. Please try again.",
    ErrorKind.UNKNOWN: "Failed to generate README. Please try again.",
}


class GenerationError(Exception):
    """
    The only error type that leaves the generation client.

    Carries:
    - Machine-readable kind
    - Human-readable message
    - Whether the failure may heal on retry, fixed at classification time
    - The underlying provider error, when there was one
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        retryable: bool,
        cause: Optional[BaseException] = None,
    ):
        """
        Initialize error.

        Args:
            kind: Failure category
            message: Human-readable error message
            retryable: Whether retrying may succeed
            cause: Original exception or provider error payload wrapper
        """
        super().__init__(message)
        self.kind = kind
        self.message = message
        self._retryable = retryable
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @property
    def retryable(self) -> bool:
        return self._retryable

    @property
    def user_message(self) -> str:
        """Text safe to show an end user for this kind of failure."""
        return USER_MESSAGES[self.kind]

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to a dictionary for a JSON or event-stream response.

        Returns:
            Dictionary with error, message and retryable fields
        """
        return {
            "error": self.kind.value,
            "message": self.message,
            "retryable": self.retryable,
        }

    def __repr__(self) -> str:
        return f"GenerationError(kind={self.kind.value}, retryable={self.retryable}, message={self.message!r})"


class ProviderReportedError(Exception):
    """Wraps an error payload the provider returned instead of raising.

    Keeps the raw payload on ``payload`` so GenerationError.cause is always
    an exception, whatever shape the provider used.
    """

    def __init__(self, payload: Any):
        super().__init__(str(payload))
        self.payload = payload
