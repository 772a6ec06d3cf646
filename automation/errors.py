"""
Error taxonomy for structure generation.

GenerationError is raised by the resilient client once its retry budget is
spent or a terminal fault occurs. Pipeline, compound and routing stages
report failures as result values tagged with a FailureCategory.
"""

from concurrent.futures import TimeoutError as FutureTimeoutError
from enum import Enum
from typing import Optional

# Substrings marking transient provider faults
TRANSIENT_TERMS = (
    "timeout", "timed out", "rate limit", "rate_limit", "429", "502", "503", "504",
    "network", "connection", "fetch", "temporary", "overloaded", "capacity",
)

RATE_LIMIT_TERMS = ("rate limit", "rate_limit", "ratelimit", "429", "too many requests")

# Substrings marking faults that retrying cannot fix
FATAL_TERMS = (
    "unauthorized", "401", "invalid api key", "authentication",
    "not found", "404", "invalid model", "permission denied",
)


class ErrorKind(str, Enum):
    """Classification of a single generation call failure."""
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    NETWORK = "network"
    PARSE = "parse"
    TERMINAL = "terminal"

    @property
    def is_retryable(self) -> bool:
        return self != ErrorKind.TERMINAL


class FailureCategory(str, Enum):
    """Where in the system a user-visible failure originated."""
    RETRYABLE_TRANSIENT = "retryable_transient"
    VALIDATION = "validation"
    ROUTING = "routing"
    EXECUTION = "execution"


class GenerationError(Exception):
    """
    Failure of a generation call.

    Parameters
    ----------
    kind : ErrorKind
        Classification of the last failure
    message : str
        Human-readable description
    attempts : int
        Number of attempts made before giving up
    """

    def __init__(self, kind: ErrorKind, message: str, attempts: int = 1, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.kind = ErrorKind(kind)
        self.message = message
        self.attempts = attempts
        self.cause = cause

    @property
    def is_retryable(self) -> bool:
        return self.kind.is_retryable

    def to_dict(self):
        return {"kind": self.kind.value, "message": self.message, "attempts": self.attempts}

    def __repr__(self):
        return f"GenerationError(kind={self.kind.value!r}, message={self.message!r}, attempts={self.attempts})"


class JSONRecoveryError(ValueError):
    """Raised when a response cannot be recovered as JSON by any stage."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


def classify_error(error: BaseException) -> ErrorKind:
    """
    Classify an exception raised during a generation call.

    Parameters
    ----------
    error : BaseException
        Exception from the transport or from response parsing

    Returns
    -------
    ErrorKind
        PARSE for unrecoverable responses, TIMEOUT / RATE_LIMIT / NETWORK
        for transient faults, TERMINAL otherwise
    """
    if isinstance(error, GenerationError):
        return error.kind
    if isinstance(error, JSONRecoveryError):
        return ErrorKind.PARSE
    if isinstance(error, (TimeoutError, FutureTimeoutError)):
        return ErrorKind.TIMEOUT

    text = f"{type(error).__name__} {error}".lower()
    if any(term in text for term in FATAL_TERMS):
        return ErrorKind.TERMINAL
    if "timeout" in text or "timed out" in text:
        return ErrorKind.TIMEOUT
    if any(term in text for term in RATE_LIMIT_TERMS):
        return ErrorKind.RATE_LIMIT
    if isinstance(error, ConnectionError) or any(term in text for term in TRANSIENT_TERMS):
        return ErrorKind.NETWORK
    return ErrorKind.TERMINAL


__all__ = [
    "ErrorKind",
    "FailureCategory",
    "GenerationError",
    "JSONRecoveryError",
    "classify_error",
    "TRANSIENT_TERMS",
    "FATAL_TERMS",
]
