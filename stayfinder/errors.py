"""
Error types for Stayfinder.

AppError subclasses are what callers see. DomainError subclasses are raised by
pure domain code (geometry, parsing) and are mapped to InvalidInputError at the
service boundary.
"""

from typing import Iterable, Optional, Union


class AppError(Exception):
    """Base class for every user-visible failure.

    Attributes:
        kind: Stable error kind name
        message: Human-readable description
    """

    kind = "AppError"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class RequestTimeoutError(AppError):
    """A collaborator call exceeded its timeout."""

    kind = "TimeoutError"

    def __init__(self, message: str = "Request timed out", timeout_ms: Optional[int] = None):
        super().__init__(message)
        self.timeout_ms = timeout_ms


class TransportError(AppError):
    """Network-level failure talking to a provider."""

    kind = "TransportError"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class InvalidResponseError(AppError):
    """Provider answered, but not with something usable.

    Also used for empty results after all viewport tiers and for aggregated
    batch failures.
    """

    kind = "InvalidResponseError"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidInputError(AppError):
    """Bad address or geometry supplied by the caller."""

    kind = "InvalidInputError"


class DomainError(ValueError):
    """Base class for validation failures in pure domain code."""


class GeoPointError(DomainError):
    pass


class BoundingBoxParseError(DomainError):
    pass


class AddressError(DomainError):
    pass


def to_app_error(error: DomainError) -> InvalidInputError:
    """Map a domain validation failure to the user-visible input error."""
    return InvalidInputError(str(error) or "Unknown domain error")


def aggregate_errors(errors: Union[AppError, Iterable[AppError]]) -> InvalidResponseError:
    """Combine one or more errors into a single InvalidResponseError.

    Messages are joined with "; " in the order given.
    """
    if isinstance(errors, AppError):
        errors = [errors]
    messages = [e.message or "Unknown error" for e in errors]
    return InvalidResponseError("; ".join(messages))


def is_transient(error: AppError) -> bool:
    """Return True when a retry has a reasonable chance of succeeding.

    Timeouts, transport failures and HTTP 429 responses are transient;
    everything else is permanent.
    """
    if isinstance(error, (RequestTimeoutError, TransportError)):
        return True
    if isinstance(error, InvalidResponseError) and error.status_code == 429:
        return True
    return False
