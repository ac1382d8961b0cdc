"""Validated EC2 describe filters built from user input."""

import ipaddress
import re
from dataclasses import dataclass
from typing import Literal, Union

from ..errors import InvalidParameterError


@dataclass(frozen=True)
class ById:
    interface_id: str

    def to_filter(self) -> dict:
        return {"Name": "network-interface-id", "Values": [self.interface_id]}


@dataclass(frozen=True)
class BySubnet:
    subnet_id: str

    def to_filter(self) -> dict:
        return {"Name": "subnet-id", "Values": [self.subnet_id]}


@dataclass(frozen=True)
class ByZone:
    availability_zone: str

    def to_filter(self) -> dict:
        return {"Name": "availability-zone", "Values": [self.availability_zone]}


ResourceFilter = Union[ById, BySubnet, ByZone]


def parse_resource_filter(value: str, region: str) -> ResourceFilter:
    """Turn an eni-/subnet- id or an AZ of ``region`` into a filter.

    Raises:
        InvalidParameterError: anything else
    """
    if value.startswith("eni-"):
        return ById(value)
    if value.startswith("subnet-"):
        return BySubnet(value)
    if re.fullmatch(re.escape(region) + r"[a-z]", value):
        return ByZone(value)
    raise InvalidParameterError(f"Unknown resource filter: {value}")


AddressField = Literal["allocation-id", "association-id", "private-ip-address", "public-ip"]


@dataclass(frozen=True)
class AddressLookup:
    """One elastic IP lookup key and the describe_addresses filter it maps to."""

    field: AddressField
    value: str

    @classmethod
    def parse(cls, address: str, vpc_cidr: str) -> "AddressLookup":
        if address.startswith("eipalloc-"):
            return cls("allocation-id", address)
        if address.startswith("eipassoc-"):
            return cls("association-id", address)
        try:
            ip = ipaddress.ip_address(address)
        except ValueError:
            raise InvalidParameterError(f"Not an IP address or EIP id: {address}")
        if ip in ipaddress.ip_network(vpc_cidr, strict=False):
            return cls("private-ip-address", address)
        return cls("public-ip", address)

    def to_filters(self) -> list[dict]:
        return [
            {"Name": "domain", "Values": ["vpc"]},
            {"Name": self.field, "Values": [self.value]},
        ]
