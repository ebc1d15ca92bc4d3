from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """
    Classification of failures raised by the weather core.

    The HTTP layer maps each kind to a status code; the core itself
    never formats user-visible error bodies.
    """

    NOT_FOUND = "not_found"
    UPSTREAM = "upstream"
    VALIDATION = "validation"
    TRANSPORT = "transport"
    INTERNAL = "internal"


class WeatherError(Exception):
    """
    Base class for all domain errors.

    Attributes:
        kind: Error classification.
        status_code: HTTP-equivalent status for the outermost boundary.
        message: Human-readable message.
    """

    kind: ErrorKind = ErrorKind.INTERNAL
    default_status: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        self.status_code = status_code or self.default_status
        super().__init__(self.message)


class NotFoundError(WeatherError):
    """Lookup target absent in the database or at the upstream provider."""

    kind = ErrorKind.NOT_FOUND
    default_status = 404
    default_message = "Not found"


class InvalidRecordError(WeatherError):
    """A patched record fails validation and cannot be stored."""

    kind = ErrorKind.VALIDATION
    default_status = 422
    default_message = "Invalid weather record"


class UpstreamError(WeatherError):
    """Third-party weather API failure, carrying its status and message."""

    kind = ErrorKind.UPSTREAM
    default_message = "Failed to fetch weather data"


class TransportError(WeatherError):
    """Cache or database unreachable."""

    kind = ErrorKind.TRANSPORT
    default_message = "Storage backend unavailable"


class InternalError(WeatherError):
    kind = ErrorKind.INTERNAL
