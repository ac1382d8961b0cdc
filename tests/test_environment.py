"""Tests for lazy identity resolution"""

from unittest.mock import MagicMock

import pytest

from aws_eni.environment import Environment
from aws_eni.errors import ConnectionFailed, InstanceEnvironmentError
from aws_eni.modules.eni import ENIClient


@pytest.fixture
def reader(identity):
    reader = MagicMock()
    reader.resolve_identity.return_value = identity
    reader.primary_mac.return_value = "0a:00:00:00:00:00"
    return reader


class TestEnvironment:
    def test_resolves_lazily_once(self, reader, identity):
        env = Environment(reader)
        assert not env.resolved
        reader.resolve_identity.assert_not_called()

        assert env.get() is identity
        assert env.get() is identity
        assert env.resolved
        reader.resolve_identity.assert_called_once_with("0a:00:00:00:00:00")

    def test_hwaddr_from_local_backend(self, reader):
        env = Environment(reader, hwaddr=lambda: "0a:11:22:33:44:55")
        env.get()
        reader.resolve_identity.assert_called_once_with("0a:11:22:33:44:55")
        reader.primary_mac.assert_not_called()

    def test_attribute_access(self, reader):
        env = Environment(reader)
        assert env.region == "us-east-1"
        assert env.vpc_cidr == "10.0.0.0/16"
        with pytest.raises(AttributeError):
            env.not_a_field

    def test_reader_errors_propagate(self, reader):
        reader.resolve_identity.side_effect = InstanceEnvironmentError("no vpc")
        env = Environment(reader)
        with pytest.raises(InstanceEnvironmentError):
            env.get()
        assert not env.resolved

    def test_hwaddr_failure_is_environment_error(self, reader):
        reader.primary_mac.side_effect = ConnectionFailed("unreachable")
        with pytest.raises(InstanceEnvironmentError, match="hardware address"):
            Environment(reader).get()

    def test_from_identity(self, identity):
        env = Environment.from_identity(identity)
        assert env.resolved
        assert env.get() is identity
        assert env.instance_id == "i-1"

    def test_separate_environments_do_not_share_state(self, reader, identity):
        first = Environment(reader)
        second = Environment(reader)
        first.get()
        assert not second.resolved

    def test_client_takes_hwaddr_from_local_backend(self, devices):
        client = ENIClient(session=MagicMock(), local=devices)
        assert not client.environment.resolved
        assert client.environment._hwaddr() == "0a:00:00:00:00:00"
