"""Tag conventions that decide which interfaces this tool may delete."""

from datetime import datetime, timezone
from typing import Iterable, Optional

from .config import DEFAULT_OWNER_TAG

CREATED_BY = "created by"
CREATED_ON = "created on"
CREATED_FROM = "created from"


def tag_value(tags: Optional[Iterable[dict]], key: str) -> Optional[str]:
    return next((t["Value"] for t in tags or [] if t["Key"] == key), None)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 tag value; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class OwnershipPolicy:
    def __init__(self, owner_tag: str = DEFAULT_OWNER_TAG, grace_window: float = 60):
        self.owner_tag = owner_tag
        self.grace_window = grace_window

    def ownership_tags(self, instance_id: str, timestamp: str) -> list[dict]:
        return [
            {"Key": CREATED_BY, "Value": self.owner_tag},
            {"Key": CREATED_ON, "Value": timestamp},
            {"Key": CREATED_FROM, "Value": instance_id},
        ]

    def is_owned_by_us(self, tags: Optional[Iterable[dict]]) -> bool:
        return any(
            t["Key"] == CREATED_BY and t["Value"] == self.owner_tag for t in tags or []
        )

    def is_within_grace(
        self, created_on: Optional[str], now: Optional[datetime] = None
    ) -> bool:
        """True when ``created_on`` is less than the grace window old.

        Missing or unparsable timestamps are never within the window.
        """
        if not created_on:
            return False
        try:
            created = parse_timestamp(created_on)
        except ValueError:
            return False
        now = now or datetime.now(timezone.utc)
        return (now - created).total_seconds() < self.grace_window

    def is_young(
        self, tags: Optional[Iterable[dict]], now: Optional[datetime] = None
    ) -> bool:
        return self.is_within_grace(tag_value(tags, CREATED_ON), now)
