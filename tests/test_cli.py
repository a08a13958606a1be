"""Tests for the connhub CLI commands."""

from unittest.mock import MagicMock, patch

import httpx
import pytest
from typer.testing import CliRunner

from connhub.cli import HubClient, _parse_message, typer_app

runner = CliRunner()


@pytest.fixture
def mock_client():
    """
    Patches HubClient so commands talk to a mock instead of a server.

    Yields:
        MagicMock: The HubClient instance used by the commands.
    """
    with patch("connhub.cli.HubClient") as client_cls:
        instance = MagicMock()
        instance.__enter__.return_value = instance
        instance.__exit__.return_value = False
        client_cls.return_value = instance
        yield instance


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("plain text", "plain text"),
        ('{"in_minutes": 5}', {"in_minutes": 5}),
        ("[1, 2]", [1, 2]),
        ("42", "42"),
    ],
)
def test_parse_message(raw, expected):
    assert _parse_message(raw) == expected


def test_connections_command(mock_client):
    mock_client.connections.return_value = {
        "count": 1,
        "connections": [{"key": "127.0.0.1:8888", "ready": True}],
    }

    result = runner.invoke(typer_app, ["connections"])

    assert result.exit_code == 0
    assert "127.0.0.1:8888" in result.output
    assert "1 connections" in result.output


def test_broadcast_command(mock_client):
    mock_client.broadcast.return_value = {"delivered": 3}

    result = runner.invoke(
        typer_app, ["broadcast", "system shutdown", "BROADCAST: shutting down"]
    )

    assert result.exit_code == 0
    mock_client.broadcast.assert_called_once_with(
        "system shutdown", "BROADCAST: shutting down"
    )
    assert "Delivered to 3 connections" in result.output


def test_multicast_command(mock_client):
    mock_client.multicast.return_value = {"delivered": 1}

    result = runner.invoke(
        typer_app, ["multicast", "e", '{"a": 1}', "-x", "k1", "-x", "k2"]
    )

    assert result.exit_code == 0
    mock_client.multicast.assert_called_once_with(["k1", "k2"], "e", {"a": 1})


def test_disconnect_all_command(mock_client):
    mock_client.disconnect_all.return_value = {"disconnected": 2, "remaining": 0}

    result = runner.invoke(typer_app, ["disconnect-all"])

    assert result.exit_code == 0
    assert "Disconnected 2 connections" in result.output


def test_request_failure_exits_with_error(mock_client):
    mock_client.disconnect.side_effect = httpx.ConnectError("refused")

    result = runner.invoke(typer_app, ["disconnect", "alice"])

    assert result.exit_code == 1
    assert "Request failed" in result.output


def test_commands_close_the_client(mock_client):
    mock_client.broadcast.return_value = {"delivered": 0}

    runner.invoke(typer_app, ["broadcast", "e", "m"])

    mock_client.__exit__.assert_called_once()


def test_disconnect_quotes_key():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(204)

    with HubClient(transport=httpx.MockTransport(handler)) as client:
        client.disconnect("10.0.0.5:8900/room?x=1")

    assert requests[0].url.raw_path == (
        b"/connections/10.0.0.5%3A8900%2Froom%3Fx%3D1/disconnect"
    )
