"""Base Pydantic models for aws-eni records."""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class ENIRecord(BaseModel):
    """Base model for operation results.

    ``api_response`` keeps the raw boto3 payload for callers that need fields
    this package does not model.
    """

    model_config = ConfigDict(extra="forbid")

    api_response: Optional[Any] = Field(None, repr=False, description="Raw EC2 response")

    def to_dict(self, include_response: bool = False) -> dict:
        """Convert to dict for rendering."""
        exclude = None if include_response else {"api_response"}
        return self.model_dump(exclude=exclude)
