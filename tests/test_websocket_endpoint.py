"""
Integration tests for the /ws endpoint.

Clients connect through the TestClient and talk to each other through the
application registry. A client is known to be registered once another
client has received its join event.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.websockets import WebSocketDisconnect

from connhub.api.ws.endpoint import RegisteredWebSocketEndpoint
from connhub.registry import ConnectionRegistry
from tests.mocks.connection_mocks import create_mock_handle, create_mock_websocket

JOINED_BOB = {"event": "connection.joined", "data": {"key": "bob"}}


def test_connections_are_registered(client):
    with client.websocket_connect("/ws?key=alice") as alice:
        with client.websocket_connect("/ws?key=bob"):
            assert alice.receive_json() == JOINED_BOB

            assert client.get("/connections").json() == {
                "count": 2,
                "connections": [
                    {"key": "alice", "ready": True},
                    {"key": "bob", "ready": True},
                ],
            }

        assert alice.receive_json() == {
            "event": "connection.left",
            "data": {"key": "bob"},
        }
        assert client.get("/connections").json()["count"] == 1


def test_relay_to_other_clients(client):
    with client.websocket_connect("/ws?key=alice") as alice:
        with client.websocket_connect("/ws?key=bob") as bob:
            assert alice.receive_json() == JOINED_BOB

            bob.send_json({"event": "chat", "data": "hi alice"})

            assert alice.receive_json() == {"event": "chat", "data": "hi alice"}


def test_http_broadcast_reaches_clients(client):
    with client.websocket_connect("/ws?key=alice") as alice:
        with client.websocket_connect("/ws?key=bob") as bob:
            assert alice.receive_json() == JOINED_BOB

            response = client.post(
                "/broadcast",
                json={"event": "system shutdown", "message": "soon"},
            )

            assert response.json() == {"delivered": 2}
            expected = {"event": "system shutdown", "data": "soon"}
            assert alice.receive_json() == expected
            assert bob.receive_json() == expected


def test_http_disconnect_closes_client(client):
    with client.websocket_connect("/ws?key=alice") as alice:
        with client.websocket_connect("/ws?key=bob") as bob:
            assert alice.receive_json() == JOINED_BOB

            response = client.post("/connections/bob/disconnect")

            assert response.status_code == 204
            with pytest.raises(WebSocketDisconnect) as exc_info:
                bob.receive_json()
            assert exc_info.value.code == 1000


class TestHandshake:
    """Tests for on_connect when the handshake does not complete."""

    def _endpoint(self):
        return RegisteredWebSocketEndpoint(
            scope={"type": "websocket"}, receive=None, send=None
        )

    def _websocket(self, registry, key):
        websocket = create_mock_websocket()
        websocket.query_params = {"key": key}
        websocket.app = MagicMock()
        websocket.app.state.registry = registry
        return websocket

    @pytest.mark.asyncio
    async def test_failed_accept_does_not_register(self):
        registry = ConnectionRegistry()
        websocket = self._websocket(registry, "ghost")
        websocket.accept = AsyncMock(side_effect=RuntimeError("client gone"))

        with pytest.raises(RuntimeError):
            await self._endpoint().on_connect(websocket)

        assert registry.get("ghost") is None

    @pytest.mark.asyncio
    async def test_failed_accept_keeps_live_connection(self):
        registry = ConnectionRegistry()
        live = create_mock_handle("shared")
        registry.register(live)
        websocket = self._websocket(registry, "shared")
        websocket.accept = AsyncMock(side_effect=RuntimeError("client gone"))

        with pytest.raises(RuntimeError):
            await self._endpoint().on_connect(websocket)

        assert registry.get("shared") is live
        live.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_accepted_connection_is_registered(self):
        registry = ConnectionRegistry()
        other = create_mock_handle("other")
        registry.register(other)
        websocket = self._websocket(registry, "newcomer")
        websocket.accept = AsyncMock()
        endpoint = self._endpoint()

        await endpoint.on_connect(websocket)

        websocket.accept.assert_awaited_once()
        assert registry.get("newcomer") is endpoint.handle
        other.send.assert_called_once_with(
            "connection.joined", {"key": "newcomer"}
        )
