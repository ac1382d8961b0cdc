"""Error types raised by aws-eni and the error kinds used for retry decisions."""

from enum import Enum
from typing import Optional

from botocore.exceptions import ClientError


class ENIError(Exception):
    """Base class for every error raised by this package."""


class Non200Response(ENIError):
    """The metadata service answered with something other than HTTP 200."""


class ConnectionFailed(ENIError):
    """The metadata service stayed unreachable after all retries."""


class InstanceEnvironmentError(ENIError):
    """The instance identity could not be established."""


class UnknownInterfaceError(ENIError):
    """An expected interface or attachment does not exist."""


class InvalidParameterError(ENIError):
    """Malformed or conflicting caller input."""


class LocalPermissionError(ENIError, PermissionError):
    """The current user may not modify local network configuration."""


class AWSPermissionError(ENIError):
    """The AWS credentials in use may not perform an operation."""


class WaitTimeoutError(ENIError, TimeoutError):
    """A convergence wait ran out of time."""


class ErrorKind(str, Enum):
    """Coarse error categories that callers can tolerate while polling."""

    SERVICE = "service"
    UNAUTHORIZED = "unauthorized"
    CONNECTION = "connection"


def error_code(exc: BaseException) -> Optional[str]:
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


def error_kind(exc: BaseException) -> Optional[ErrorKind]:
    """Classify an exception, or return None when it has no tolerable kind."""
    if isinstance(exc, ClientError):
        if error_code(exc) == "UnauthorizedOperation":
            return ErrorKind.UNAUTHORIZED
        return ErrorKind.SERVICE
    if isinstance(exc, ConnectionFailed):
        return ErrorKind.CONNECTION
    return None
