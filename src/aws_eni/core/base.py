"""Base class for boto3-backed clients"""

from typing import Optional
import boto3


class BaseClient:
    def __init__(
        self, profile: Optional[str] = None, session: Optional[boto3.Session] = None
    ):
        self.profile = profile
        self.session = session or (
            boto3.Session(profile_name=profile) if profile else boto3.Session()
        )

    def client(self, service: str, region_name: Optional[str] = None):
        return self.session.client(service, region_name=region_name)
