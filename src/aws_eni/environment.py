"""Lazily resolved network identity of the running instance."""

import threading
from typing import Callable, Optional

from .core.logging import get_logger
from .errors import InstanceEnvironmentError
from .meta import MetadataReader
from .models import NetworkIdentity

logger = get_logger("environment")


class Environment:
    """Resolves the instance identity once and serves it afterwards.

    ``hwaddr`` returns the MAC of the primary interface; by default it is read
    from the metadata service itself.
    """

    def __init__(
        self,
        reader: Optional[MetadataReader] = None,
        hwaddr: Optional[Callable[[], str]] = None,
    ):
        self.reader = reader or MetadataReader()
        self._hwaddr = hwaddr or self.reader.primary_mac
        self._identity: Optional[NetworkIdentity] = None
        self._lock = threading.Lock()

    @classmethod
    def from_identity(cls, identity: NetworkIdentity) -> "Environment":
        """An environment that is already resolved (tests, off-instance use)."""
        env = cls.__new__(cls)
        env.reader = None
        env._hwaddr = None
        env._identity = identity
        env._lock = threading.Lock()
        return env

    @property
    def resolved(self) -> bool:
        return self._identity is not None

    def get(self) -> NetworkIdentity:
        """
        Raises:
            InstanceEnvironmentError: the identity cannot be determined
        """
        if self._identity is not None:
            return self._identity
        with self._lock:
            if self._identity is None:
                self._identity = self._resolve()
        return self._identity

    def _resolve(self) -> NetworkIdentity:
        try:
            mac = self._hwaddr()
        except InstanceEnvironmentError:
            raise
        except Exception as e:
            raise InstanceEnvironmentError(
                f"Unable to read primary hardware address: {e}"
            ) from e
        identity = self.reader.resolve_identity(mac)
        logger.info(
            "Resolved instance %s in %s (%s)",
            identity.instance_id,
            identity.vpc_id,
            identity.availability_zone,
        )
        return identity

    def __getattr__(self, name: str):
        # environment.instance_id, environment.region, ...
        if name in NetworkIdentity.model_fields:
            return getattr(self.get(), name)
        raise AttributeError(name)
