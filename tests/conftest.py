"""Shared pytest fixtures"""

from io import StringIO
from unittest.mock import MagicMock, patch

import pytest
from rich.console import Console

from aws_eni.config import ENIConfig
from aws_eni.environment import Environment
from aws_eni.models import NetworkIdentity
from aws_eni.modules.eni import ENIClient
from tests.fakes import FakeDevice, FakeDevices


@pytest.fixture
def identity():
    return NetworkIdentity.from_metadata(
        instance_id="i-1",
        availability_zone="us-east-1a",
        vpc_id="vpc-1",
        vpc_cidr="10.0.0.0/16",
    )


@pytest.fixture
def environment(identity):
    return Environment.from_identity(identity)


@pytest.fixture
def config():
    return ENIConfig(timeout=1, poll_interval=0.1, detach_poll_interval=0.3)


@pytest.fixture
def no_sleep():
    """Skip real sleeps in polling and metadata retries"""
    with patch("aws_eni.core.waiter.time") as waiter_time, patch(
        "aws_eni.meta.time"
    ) as meta_time:
        yield {"waiter": waiter_time.sleep, "meta": meta_time.sleep}


@pytest.fixture
def primary_device():
    return FakeDevice(
        0, interface_id="eni-0", local_ips=["10.0.1.10"], subnet_id="subnet-1"
    )


@pytest.fixture
def devices(primary_device):
    return FakeDevices(
        [
            primary_device,
            FakeDevice(1, exists=False),
            FakeDevice(2, exists=False),
        ]
    )


@pytest.fixture
def mock_ec2():
    return MagicMock()


@pytest.fixture
def eni_client(config, devices, environment, mock_ec2, no_sleep):
    return ENIClient(
        session=MagicMock(),
        config=config,
        local=devices,
        environment=environment,
        ec2=mock_ec2,
    )


@pytest.fixture
def mock_console():
    """Create a mock console that captures output"""
    output = StringIO()
    console = Console(file=output, force_terminal=True, width=120)
    console._output = output
    return console
