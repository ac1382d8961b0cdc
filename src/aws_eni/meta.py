"""EC2 instance metadata access with retries for boot-time flakiness."""

import errno
import socket
import time
from typing import Callable, Optional, TypeVar

import requests
from pydantic import ValidationError

from .config import ENIConfig
from .core.logging import get_logger
from .errors import ConnectionFailed, InstanceEnvironmentError, Non200Response
from .models import NetworkIdentity

logger = get_logger("meta")

T = TypeVar("T")

HOST = "169.254.169.254"
PORT = 80
BASE = "/latest/meta-data/"

# Backoff base: attempt k sleeps BACKOFF ** k seconds
BACKOFF = 1.2

TRANSIENT_ERRNOS = {
    errno.EHOSTUNREACH,
    errno.ECONNREFUSED,
    errno.EHOSTDOWN,
    errno.ENETUNREACH,
}


def is_transient(exc: BaseException) -> bool:
    """Failures that mean the service is not reachable yet, rather than broken."""
    if isinstance(
        exc,
        (
            requests.ConnectionError,
            requests.Timeout,
            socket.gaierror,
            socket.timeout,
            Non200Response,
        ),
    ):
        return True
    return isinstance(exc, OSError) and exc.errno in TRANSIENT_ERRNOS


class MetadataSession:
    """A live connection to the metadata service."""

    def __init__(self, http: requests.Session, base_url: str, timeout: tuple):
        self.http = http
        self.base_url = base_url
        self.timeout = timeout

    def get(self, path: str) -> str:
        """Return the body of a 200 response for ``path``."""
        response = self.http.get(self.base_url + path, timeout=self.timeout)
        if response.status_code != 200:
            raise Non200Response(f"GET {path} returned {response.status_code}")
        return response.text


class MetadataConnector:
    def __init__(
        self,
        host: str = HOST,
        port: int = PORT,
        open_timeout: float = 5,
        read_timeout: float = 5,
        retries: int = 5,
    ):
        self.base_url = f"http://{host}:{port}{BASE}"
        self.open_timeout = open_timeout
        self.read_timeout = read_timeout
        self.retries = retries

    @classmethod
    def from_config(cls, config: ENIConfig) -> "MetadataConnector":
        return cls(
            open_timeout=config.metadata_open_timeout,
            read_timeout=config.metadata_read_timeout,
            retries=config.metadata_retries,
        )

    def open_session(self) -> requests.Session:
        return requests.Session()

    def run(self, block: Callable[[MetadataSession], T]) -> T:
        """Run ``block`` with an open session, retrying transient failures.

        Raises:
            ConnectionFailed: still failing after ``retries`` retries
        """
        failed_attempts = 0
        while True:
            try:
                return self._run_once(block)
            except Exception as e:
                if not is_transient(e):
                    raise
                if failed_attempts >= self.retries:
                    logger.warning("Metadata service unreachable: %s", e)
                    raise ConnectionFailed(
                        f"Connection failed after {self.retries} retries."
                    ) from e
                delay = BACKOFF**failed_attempts
                logger.debug(
                    "Metadata request failed (%s), retrying in %.2fs", e, delay
                )
                time.sleep(delay)
                failed_attempts += 1

    def _run_once(self, block: Callable[[MetadataSession], T]) -> T:
        http = self.open_session()
        try:
            return block(
                MetadataSession(
                    http, self.base_url, (self.open_timeout, self.read_timeout)
                )
            )
        finally:
            http.close()


class MetadataReader:
    """Reads instance facts from the metadata service."""

    def __init__(self, connector: Optional[MetadataConnector] = None):
        self.connector = connector or MetadataConnector()

    def get(self, path: str) -> str:
        return self.connector.run(lambda conn: conn.get(path))

    def primary_mac(self) -> str:
        return self.get("mac").strip()

    def resolve_identity(self, mac: str) -> NetworkIdentity:
        """Look up instance id, zone and VPC for the interface with ``mac``.

        Raises:
            InstanceEnvironmentError: no VPC, or the service is unreachable
        """

        def lookup(conn: MetadataSession) -> dict:
            return {
                "instance_id": conn.get("instance-id"),
                "availability_zone": conn.get("placement/availability-zone"),
                "vpc_id": conn.get(f"network/interfaces/macs/{mac}/vpc-id"),
                "vpc_cidr": conn.get(
                    f"network/interfaces/macs/{mac}/vpc-ipv4-cidr-block"
                ),
            }

        try:
            values = self.connector.run(lookup)
        except ConnectionFailed as e:
            raise InstanceEnvironmentError("Unable to load EC2 meta-data") from e

        values = {k: v.strip() for k, v in values.items()}
        if not values["vpc_id"]:
            raise InstanceEnvironmentError(
                "Unable to detect VPC settings, library incompatible with EC2-Classic"
            )
        try:
            return NetworkIdentity.from_metadata(**values)
        except ValidationError as e:
            raise InstanceEnvironmentError(f"Invalid instance meta-data: {e}") from e
