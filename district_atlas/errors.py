"""
Error taxonomy for District Atlas data loading.

Every load failure is classified into exactly one kind:
- NETWORK: the fetch itself failed (offline, DNS, HTTP non-success)
- FORMAT: the response body is not parseable or not shaped as expected
- EMPTY: the body parsed but produced zero usable records
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    NETWORK = "network"
    FORMAT = "format"
    EMPTY = "empty"


class AtlasError(Exception):
    """Base class for classified loading errors"""

    kind: ErrorKind = ErrorKind.FORMAT

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class TransportError(AtlasError):
    """Fetch-level failure: connection refused, timeout, HTTP error status"""

    kind = ErrorKind.NETWORK


class FormatError(AtlasError):
    """Response body is not valid JSON or not shaped as expected"""

    kind = ErrorKind.FORMAT


class EmptyResultError(AtlasError):
    """Response parsed but yielded no usable records after validation"""

    kind = ErrorKind.EMPTY


def classify_error(exc: BaseException) -> ErrorKind:
    """Map any exception raised during a load onto the taxonomy."""
    if isinstance(exc, AtlasError):
        return exc.kind
    if isinstance(exc, (OSError, TimeoutError)):
        return ErrorKind.NETWORK
    return ErrorKind.FORMAT


def describe_failure(kind: ErrorKind, label: str, exc: BaseException) -> str:
    """Human-readable message for a failed load of `label` data."""
    if kind == ErrorKind.NETWORK:
        return (
            f"Network error: Unable to load {label} data. "
            f"Please check your internet connection. ({exc})"
        )
    if kind == ErrorKind.FORMAT:
        return f"Data format error: The {label} data is not in a valid format. ({exc})"
    return f"Failed to load {label} data: {exc}"
