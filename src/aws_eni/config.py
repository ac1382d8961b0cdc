"""Runtime configuration for aws-eni."""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ENV_PREFIX = "AWS_ENI_"
DEFAULT_OWNER_TAG = "aws-eni script"


class ENIConfig(BaseModel):
    """Settings shared by every operation of an ENIClient.

    Set these before the first operation; a client never re-reads them.
    """

    model_config = ConfigDict(validate_assignment=True)

    owner_tag: str = Field(DEFAULT_OWNER_TAG, description="Value of the 'created by' tag")
    timeout: float = Field(30, gt=0, description="Default convergence timeout (s)")
    poll_interval: float = Field(0.1, gt=0)
    detach_poll_interval: float = Field(0.3, gt=0)
    grace_window: float = Field(
        60, ge=0, description="Age (s) below which safe-mode clean skips interfaces"
    )
    metadata_retries: int = Field(5, ge=0)
    metadata_open_timeout: float = Field(5, gt=0)
    metadata_read_timeout: float = Field(5, gt=0)

    @field_validator("owner_tag")
    @classmethod
    def validate_owner_tag(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("owner_tag must not be empty")
        return v

    @classmethod
    def from_env(cls, environ: Optional[dict] = None, **overrides) -> "ENIConfig":
        """Build a config from AWS_ENI_* variables, then apply overrides.

        e.g. AWS_ENI_OWNER_TAG=my-tool AWS_ENI_TIMEOUT=60
        """
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            key = ENV_PREFIX + name.upper()
            if environ.get(key):
                values[name] = environ[key]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
