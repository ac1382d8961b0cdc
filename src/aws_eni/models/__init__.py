"""Pydantic models for aws-eni."""

from .base import ENIRecord
from .identity import NetworkIdentity, region_from_zone
from .filters import ById, BySubnet, ByZone, ResourceFilter, AddressLookup, parse_resource_filter
from .results import (
    CreateResult,
    AttachResult,
    DetachResult,
    CleanResult,
    AssignResult,
    UnassignResult,
    AssociateResult,
    DissociateResult,
    ElasticIPResult,
)

__all__ = [
    "ENIRecord",
    "NetworkIdentity",
    "region_from_zone",
    "ById",
    "BySubnet",
    "ByZone",
    "ResourceFilter",
    "AddressLookup",
    "parse_resource_filter",
    "CreateResult",
    "AttachResult",
    "DetachResult",
    "CleanResult",
    "AssignResult",
    "UnassignResult",
    "AssociateResult",
    "DissociateResult",
    "ElasticIPResult",
]
