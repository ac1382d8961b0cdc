"""Tests for the metadata connector and reader"""

import errno
import socket
from unittest.mock import MagicMock, patch

import pytest
import requests

from aws_eni.environment import Environment
from aws_eni.errors import ConnectionFailed, InstanceEnvironmentError, Non200Response
from aws_eni.meta import MetadataConnector, MetadataReader, MetadataSession, is_transient


def _response(status: int, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.text = text
    return response


def _metadata_session(values: dict) -> MagicMock:
    """A requests.Session whose GETs answer from ``values`` keyed by path"""
    http = MagicMock()

    def get(url, timeout=None):
        path = url.split("/latest/meta-data/", 1)[1]
        if path in values:
            return _response(200, values[path])
        return _response(404, "Not Found")

    http.get.side_effect = get
    return http


METADATA = {
    "instance-id": "i-1",
    "placement/availability-zone": "us-east-1a",
    "mac": "0a:00:00:00:00:00\n",
    "network/interfaces/macs/0a:00:00:00:00:00/vpc-id": "vpc-1",
    "network/interfaces/macs/0a:00:00:00:00:00/vpc-ipv4-cidr-block": "10.0.0.0/16",
}


class TestIsTransient:
    @pytest.mark.parametrize(
        "exc",
        [
            requests.ConnectionError("refused"),
            requests.Timeout("slow"),
            requests.ConnectTimeout("slow"),
            socket.gaierror("no dns"),
            socket.timeout("slow"),
            Non200Response("404"),
            OSError(errno.EHOSTUNREACH, "no route"),
            OSError(errno.ECONNREFUSED, "refused"),
            OSError(errno.EHOSTDOWN, "down"),
            OSError(errno.ENETUNREACH, "unreachable"),
        ],
    )
    def test_transient(self, exc):
        assert is_transient(exc) is True

    @pytest.mark.parametrize(
        "exc",
        [ValueError("bad"), KeyError("x"), OSError(errno.EACCES, "denied")],
    )
    def test_not_transient(self, exc):
        assert is_transient(exc) is False


class TestMetadataSession:
    def test_get_returns_body_on_200(self):
        http = MagicMock()
        http.get.return_value = _response(200, "i-1")
        conn = MetadataSession(http, "http://169.254.169.254:80/latest/meta-data/", (5, 5))
        assert conn.get("instance-id") == "i-1"
        http.get.assert_called_once_with(
            "http://169.254.169.254:80/latest/meta-data/instance-id", timeout=(5, 5)
        )

    def test_get_raises_on_non_200(self):
        http = MagicMock()
        http.get.return_value = _response(404)
        conn = MetadataSession(http, "http://x/latest/meta-data/", (5, 5))
        with pytest.raises(Non200Response):
            conn.get("instance-id")


class TestMetadataConnector:
    def test_run_returns_block_result_and_closes(self, no_sleep):
        connector = MetadataConnector()
        http = MagicMock()
        with patch.object(connector, "open_session", return_value=http):
            assert connector.run(lambda conn: "ok") == "ok"
        http.close.assert_called_once()
        no_sleep["meta"].assert_not_called()

    def test_session_closed_on_error(self, no_sleep):
        connector = MetadataConnector()
        http = MagicMock()

        def block(conn):
            raise ValueError("boom")

        with patch.object(connector, "open_session", return_value=http):
            with pytest.raises(ValueError):
                connector.run(block)
        http.close.assert_called_once()

    def test_retries_then_fails_with_backoff(self, no_sleep):
        connector = MetadataConnector(retries=5)
        block = MagicMock(side_effect=requests.ConnectionError("refused"))
        with patch.object(connector, "open_session", return_value=MagicMock()):
            with pytest.raises(ConnectionFailed, match="after 5 retries"):
                connector.run(block)

        assert block.call_count == 6
        delays = [c.args[0] for c in no_sleep["meta"].call_args_list]
        assert len(delays) == 5
        for k, delay in enumerate(delays):
            assert delay == pytest.approx(1.2**k)

    def test_recovers_after_transient_failures(self, no_sleep):
        connector = MetadataConnector(retries=5)
        block = MagicMock(
            side_effect=[Non200Response("503"), requests.Timeout("slow"), "i-1"]
        )
        with patch.object(connector, "open_session", return_value=MagicMock()):
            assert connector.run(block) == "i-1"
        assert block.call_count == 3
        assert [c.args[0] for c in no_sleep["meta"].call_args_list] == [
            pytest.approx(1.0),
            pytest.approx(1.2),
        ]

    def test_non_transient_error_propagates_without_retry(self, no_sleep):
        connector = MetadataConnector(retries=5)
        block = MagicMock(side_effect=KeyError("unexpected"))
        with patch.object(connector, "open_session", return_value=MagicMock()):
            with pytest.raises(KeyError):
                connector.run(block)
        assert block.call_count == 1
        no_sleep["meta"].assert_not_called()

    def test_zero_retries(self, no_sleep):
        connector = MetadataConnector(retries=0)
        block = MagicMock(side_effect=requests.ConnectionError("refused"))
        with patch.object(connector, "open_session", return_value=MagicMock()):
            with pytest.raises(ConnectionFailed):
                connector.run(block)
        assert block.call_count == 1

    def test_from_config(self, config):
        connector = MetadataConnector.from_config(config)
        assert connector.retries == config.metadata_retries
        assert connector.open_timeout == config.metadata_open_timeout
        assert connector.base_url == "http://169.254.169.254:80/latest/meta-data/"


class TestMetadataReader:
    def _reader(self, values: dict) -> MetadataReader:
        connector = MetadataConnector(retries=2)
        connector.open_session = lambda: _metadata_session(values)
        return MetadataReader(connector)

    def test_get(self, no_sleep):
        assert self._reader(METADATA).get("instance-id") == "i-1"

    def test_primary_mac_is_stripped(self, no_sleep):
        assert self._reader(METADATA).primary_mac() == "0a:00:00:00:00:00"

    def test_resolve_identity(self, no_sleep):
        identity = self._reader(METADATA).resolve_identity("0a:00:00:00:00:00")
        assert identity.instance_id == "i-1"
        assert identity.availability_zone == "us-east-1a"
        assert identity.region == "us-east-1"
        assert identity.vpc_id == "vpc-1"
        assert identity.vpc_cidr == "10.0.0.0/16"

    def test_resolve_identity_uses_one_session(self, no_sleep):
        connector = MetadataConnector()
        http = _metadata_session(METADATA)
        connector.open_session = MagicMock(return_value=http)
        MetadataReader(connector).resolve_identity("0a:00:00:00:00:00")
        connector.open_session.assert_called_once()
        assert http.get.call_count == 4

    def test_empty_vpc_id_is_environment_error(self, no_sleep):
        values = dict(METADATA)
        values["network/interfaces/macs/0a:00:00:00:00:00/vpc-id"] = ""
        with pytest.raises(InstanceEnvironmentError, match="EC2-Classic"):
            self._reader(values).resolve_identity("0a:00:00:00:00:00")

    def test_missing_vpc_id_is_environment_error(self, no_sleep):
        values = dict(METADATA)
        del values["network/interfaces/macs/0a:00:00:00:00:00/vpc-id"]
        with pytest.raises(InstanceEnvironmentError, match="meta-data"):
            self._reader(values).resolve_identity("0a:00:00:00:00:00")
        # a 404 is treated as a boot race and retried
        assert no_sleep["meta"].call_count == 2

    def test_unreachable_service_is_environment_error(self, no_sleep):
        connector = MetadataConnector(retries=1)
        http = MagicMock()
        http.get.side_effect = requests.ConnectionError("no route")
        connector.open_session = lambda: http
        with pytest.raises(InstanceEnvironmentError) as exc:
            MetadataReader(connector).resolve_identity("0a:00:00:00:00:00")
        assert isinstance(exc.value.__cause__, ConnectionFailed)

    def test_empty_instance_id_is_environment_error(self, no_sleep):
        values = dict(METADATA)
        values["instance-id"] = ""
        with pytest.raises(InstanceEnvironmentError, match="Invalid instance meta-data"):
            self._reader(values).resolve_identity("0a:00:00:00:00:00")

    def test_environment_surfaces_bad_metadata_as_environment_error(self, no_sleep):
        values = dict(METADATA)
        values["instance-id"] = ""
        env = Environment(self._reader(values))
        with pytest.raises(InstanceEnvironmentError):
            env.get()
        assert not env.resolved
