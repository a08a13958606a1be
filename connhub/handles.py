"""Connection handle backed by a Starlette WebSocket."""

import asyncio
from concurrent.futures import Future
from typing import Any, Coroutine

from starlette.websockets import WebSocket, WebSocketState

from connhub.constants import WS_NORMAL_CLOSURE_CODE
from connhub.exceptions import ConnectionNotReadyError
from connhub.logging import logger
from connhub.schemas import EventMessage


def endpoint_key(websocket: WebSocket) -> str:
    """
    Build the default key of a WebSocket from its client address.

    Args:
        websocket: The accepted WebSocket.

    Returns:
        "host:port" of the remote endpoint, or "" when it is unknown.
    """
    client = websocket.client
    if client is None or not client.host:
        return ""
    return f"{client.host}:{client.port}"


class WebSocketHandle:
    """
    Adapts a WebSocket to the ConnectionHandle protocol.

    send() and disconnect() never block: the actual I/O is scheduled on the
    event loop that owns the socket, so the handle may be driven from any
    thread. Sends on one handle are written in the order they were issued.
    """

    def __init__(
        self,
        websocket: WebSocket,
        key: str | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """
        Args:
            websocket: The accepted WebSocket to wrap.
            key: Explicit key; defaults to the client's "host:port".
            loop: Loop owning the socket; defaults to the running loop.
        """
        self.websocket = websocket
        self._key = key or endpoint_key(websocket)
        self._loop = loop or asyncio.get_running_loop()
        self._send_lock = asyncio.Lock()
        self._pending: set[Future] = set()
        self._closing = False

    def __repr__(self) -> str:
        return f"<WebSocketHandle key={self._key!r} ready={self.is_ready()}>"

    def key(self) -> str:
        return self._key

    def is_ready(self) -> bool:
        return (
            not self._closing
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def send(self, event: str, payload: Any) -> None:
        """
        Schedule an event to be sent as {"event": ..., "data": ...}.

        Args:
            event: Name of the event.
            payload: String or JSON-serializable data.

        Raises:
            ConnectionNotReadyError: If the connection is not open.
        """
        if not self.is_ready():
            raise ConnectionNotReadyError(self._key)

        message = EventMessage(event=event, data=payload)
        self._schedule(self._send(message))

    def disconnect(self) -> None:
        """Schedule a normal closure. Subsequent calls do nothing."""
        if self._closing:
            return
        self._closing = True

        if self.websocket.application_state != WebSocketState.CONNECTED:
            return
        self._schedule(self.websocket.close(code=WS_NORMAL_CLOSURE_CODE))
        logger.debug(f"Scheduled close of connection {self._key}")

    async def wait_pending(self) -> None:
        """Wait until every scheduled send and close has finished."""
        pending = [asyncio.wrap_future(future) for future in list(self._pending)]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _send(self, message: EventMessage) -> None:
        async with self._send_lock:
            await self.websocket.send_json(message.model_dump(mode="json"))

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        self._pending.add(future)
        future.add_done_callback(self._on_done)

    def _on_done(self, future: Future) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning(
                f"WebSocket I/O failed for connection {self._key}: {exc}"
            )
