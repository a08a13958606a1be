from typing import Any

from fastapi import APIRouter
from pydantic import ValidationError
from starlette import status
from starlette.endpoints import WebSocketEndpoint
from starlette.websockets import WebSocket

from connhub.constants import WS_JOIN_EVENT, WS_LEAVE_EVENT
from connhub.dependencies import get_registry
from connhub.handles import WebSocketHandle
from connhub.logging import clear_log_context, logger, set_log_context
from connhub.schemas import IncomingMessage
from connhub.settings import app_settings

router = APIRouter()


@router.websocket_route("/ws")
class RegisteredWebSocketEndpoint(WebSocketEndpoint):  # type: ignore[misc]
    """
    WebSocket endpoint whose connections live in the application registry.

    Each accepted client is registered under the key given in the query
    string (``?key=...``) or, failing that, its "host:port" address. Every
    message it sends is relayed to all other ready connections, and the
    remaining clients are told when a connection joins or leaves.
    """

    encoding = "json"
    handle: WebSocketHandle | None = None

    async def on_connect(self, websocket: WebSocket) -> None:
        """
        Accepts the connection and registers it.

        A connection that ends up without a key is accepted but not
        registered, so it receives no dispatched events.
        """
        key = websocket.query_params.get(app_settings.WS_KEY_QUERY_PARAM)
        self.handle = WebSocketHandle(websocket, key=key)
        key = self.handle.key()
        set_log_context(connection_key=key or "-")

        # Only a completed handshake may take over a key
        await websocket.accept()
        registry = get_registry(websocket)
        registry.register(self.handle)

        if not registry.contains(self.handle):
            logger.warning("Accepted connection without a key, not registered")
            return

        logger.info(f"Connection {key} registered")
        registry.multicast([key], WS_JOIN_EVENT, {"key": key})

    async def on_receive(self, websocket: WebSocket, data: Any) -> None:
        """
        Relays a client message to every other connection.

        Args:
            websocket: The sending client's WebSocket.
            data: Decoded JSON message, expected as {"event": ..., "data": ...}.
        """
        try:
            message = IncomingMessage.model_validate(data)
        except ValidationError:
            logger.debug(f"Received invalid data: {data}")
            await websocket.close(code=status.WS_1003_UNSUPPORTED_DATA)
            return

        key = self.handle.key()
        delivered = get_registry(websocket).multicast(
            [key], message.event, message.data
        )
        logger.debug(
            f"Relayed {message.event!r} from {key} to {delivered} connections"
        )

    async def on_disconnect(self, websocket: WebSocket, close_code: int) -> None:
        """
        Forgets the connection unless another one took over its key.

        Args:
            websocket: The closed WebSocket.
            close_code: The close code reported for the connection.
        """
        registry = get_registry(websocket)
        handle = self.handle
        if handle is not None and registry.get(handle.key()) is handle:
            registry.unregister(handle)
            registry.multicast(
                [handle.key()], WS_LEAVE_EVENT, {"key": handle.key()}
            )
            logger.info(
                f"Connection {handle.key()} closed with code {close_code}"
            )
        clear_log_context()
