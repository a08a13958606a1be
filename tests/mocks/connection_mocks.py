"""
Mock factory functions for connection handles and WebSockets.

Provides mocks implementing the ConnectionHandle protocol and Starlette
WebSockets in a given state.
"""

from unittest.mock import AsyncMock, MagicMock

from starlette.datastructures import Address
from starlette.websockets import WebSocket, WebSocketState

from connhub.protocols import ConnectionHandle


def create_mock_handle(key: str = "127.0.0.1:8888", ready: bool = True):
    """
    Creates a mock connection handle.

    Args:
        key: Value returned by key().
        ready: Value returned by is_ready().

    Returns:
        MagicMock: Mocked ConnectionHandle instance
    """
    handle_mock = MagicMock(spec=ConnectionHandle)
    handle_mock.key.return_value = key
    handle_mock.is_ready.return_value = ready
    handle_mock.send.return_value = None
    handle_mock.disconnect.return_value = None
    return handle_mock


def create_mock_websocket(
    host: str | None = "127.0.0.1",
    port: int = 50000,
    state: WebSocketState = WebSocketState.CONNECTED,
):
    """
    Creates a mock WebSocket in the given state.

    Args:
        host: Client host, or None for a WebSocket without client address.
        port: Client port.
        state: Both client and application state.

    Returns:
        MagicMock: Mocked WebSocket instance
    """
    ws_mock = MagicMock(spec=WebSocket)

    ws_mock.send_json = AsyncMock()
    ws_mock.close = AsyncMock()

    ws_mock.client = Address(host, port) if host is not None else None
    ws_mock.client_state = state
    ws_mock.application_state = state

    return ws_mock
