"""Interfaces expected from the local network configuration backend.

aws-eni does not touch the OS network stack itself. Callers that want
attach/detach/alias handling plug in an object implementing
``LocalInterfaces``.
"""

from typing import Optional, Protocol, Union, runtime_checkable

DeviceRef = Union[int, str]


@runtime_checkable
class LocalInterface(Protocol):
    """One device slot (eth0, eth1, ...) on this machine.

    ``interface_id`` and ``subnet_id`` may hit the metadata service and can
    raise ConnectionFailed right after an attachment.
    """

    name: str
    device_number: int

    @property
    def interface_id(self) -> Optional[str]: ...

    @property
    def subnet_id(self) -> Optional[str]: ...

    @property
    def hwaddr(self) -> Optional[str]: ...

    @property
    def gateway(self) -> Optional[str]: ...

    @property
    def local_ips(self) -> list[str]:
        """Private IPs configured on the device, primary address first.

        ENIClient refuses to unassign ``local_ips[0]`` without asking EC2.
        """
        ...

    @property
    def public_ips(self) -> dict[str, str]:
        """Private IP -> associated public IP."""
        ...

    def exists(self) -> bool: ...

    def configure(self, dry_run: bool = False) -> int: ...

    def deconfigure(self) -> None: ...

    def enable(self) -> None: ...

    def disable(self) -> None: ...

    def add_alias(self, ip: str) -> None: ...

    def remove_alias(self, ip: str) -> None: ...

    def to_dict(self) -> dict: ...


@runtime_checkable
class LocalInterfaces(Protocol):
    def get(self, ref: Optional[DeviceRef] = None) -> LocalInterface:
        """Resolve a device number, device name, interface id or private IP.

        ``None`` selects the first free device slot.

        Raises:
            UnknownInterfaceError: nothing matches ``ref``
        """
        ...

    def first(self) -> LocalInterface:
        """The primary device (eth0)."""
        ...

    def filter(self, ref: Optional[DeviceRef] = None) -> list[LocalInterface]: ...

    def configure(self, ref: Optional[DeviceRef] = None, dry_run: bool = False) -> int: ...

    def deconfigure(self, ref: Optional[DeviceRef] = None) -> None: ...

    def is_mutable(self) -> bool:
        """Whether the current user may change network configuration."""
        ...

    def test(self, ip: str, target: Optional[str] = None, timeout: float = 30) -> bool:
        """Check ``ip`` can reach ``target`` (default: a public host)."""
        ...
