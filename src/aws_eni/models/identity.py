"""Instance network identity model."""

import re
from pydantic import BaseModel, ConfigDict, Field, field_validator

AZ_PATTERN = re.compile(r"^(.+)[a-z]$")


def region_from_zone(availability_zone: str) -> str:
    """Strip the trailing zone letter: us-east-1a -> us-east-1"""
    match = AZ_PATTERN.match(availability_zone)
    return match.group(1) if match else availability_zone


class NetworkIdentity(BaseModel):
    """Where this instance lives. Immutable once resolved."""

    model_config = ConfigDict(frozen=True)

    instance_id: str
    availability_zone: str
    region: str
    vpc_id: str = Field(..., min_length=1)
    vpc_cidr: str

    @field_validator("instance_id")
    @classmethod
    def validate_instance_id(cls, v: str) -> str:
        if not v:
            raise ValueError("instance_id must not be empty")
        return v

    @classmethod
    def from_metadata(
        cls, instance_id: str, availability_zone: str, vpc_id: str, vpc_cidr: str
    ) -> "NetworkIdentity":
        return cls(
            instance_id=instance_id,
            availability_zone=availability_zone,
            region=region_from_zone(availability_zone),
            vpc_id=vpc_id,
            vpc_cidr=vpc_cidr,
        )
