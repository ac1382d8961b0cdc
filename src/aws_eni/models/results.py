"""Result records returned by ENIClient operations."""

from typing import Optional
from pydantic import Field

from .base import ENIRecord


class CreateResult(ENIRecord):
    interface_id: str
    subnet_id: str


class AttachResult(ENIRecord):
    interface_id: str
    device_name: str
    device_number: int
    enabled: bool
    configured: bool


class DetachResult(ENIRecord):
    interface_id: str
    device_name: str
    device_number: int
    created_by_us: bool
    deleted: bool


class CleanResult(ENIRecord):
    count: int
    deleted: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list, description="Not ours, or too young to delete")


class AssignResult(ENIRecord):
    private_ip: str
    interface_id: str
    device_name: str
    device_number: int
    interface_ips: list[str] = Field(default_factory=list)


class UnassignResult(ENIRecord):
    private_ip: str
    device_name: str
    interface_id: str
    public_ip: Optional[str] = None
    allocation_id: Optional[str] = None
    association_id: Optional[str] = None
    released: bool = False


class AssociateResult(ENIRecord):
    private_ip: str
    device_name: str
    interface_id: str
    public_ip: str
    allocation_id: str
    association_id: Optional[str] = None


class DissociateResult(ENIRecord):
    private_ip: Optional[str] = None
    device_name: str
    interface_id: str
    public_ip: str
    allocation_id: str
    association_id: str
    released: bool = False


class ElasticIPResult(ENIRecord):
    public_ip: str
    allocation_id: str
