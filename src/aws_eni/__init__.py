"""Manage EC2 elastic network interfaces attached to the running instance."""

from .config import ENIConfig
from .environment import Environment
from .errors import (
    ENIError,
    ConnectionFailed,
    InstanceEnvironmentError,
    UnknownInterfaceError,
    InvalidParameterError,
    LocalPermissionError,
    AWSPermissionError,
    WaitTimeoutError,
    ErrorKind,
)
from .meta import MetadataConnector, MetadataReader
from .models import NetworkIdentity
from .modules.eni import ENIClient
from .ownership import OwnershipPolicy

__version__ = "0.4.0"

__all__ = [
    "ENIConfig",
    "Environment",
    "ENIError",
    "ConnectionFailed",
    "InstanceEnvironmentError",
    "UnknownInterfaceError",
    "InvalidParameterError",
    "LocalPermissionError",
    "AWSPermissionError",
    "WaitTimeoutError",
    "ErrorKind",
    "MetadataConnector",
    "MetadataReader",
    "NetworkIdentity",
    "ENIClient",
    "OwnershipPolicy",
]
