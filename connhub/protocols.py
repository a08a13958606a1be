"""
Protocol classes for structural subtyping (duck typing with type safety).

The registry works with any object implementing ConnectionHandle, without
requiring explicit inheritance.

Example:
    ```python
    from connhub.protocols import ConnectionHandle


    def greet(handle: ConnectionHandle) -> None:
        if handle.is_ready():
            handle.send("greeting", {"text": "hello"})
    ```
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ConnectionHandle(Protocol):
    """
    Protocol for a single open bidirectional connection.

    The handle owns its own lifecycle (connecting, open, closing, closed);
    the registry only asks whether it is ready and hands it events.
    """

    def key(self) -> str:
        """
        Stable endpoint address identifying this connection.

        Returns:
            The key, immutable for the handle's lifetime. An empty key means
            the handle cannot be registered.
        """
        ...

    def is_ready(self) -> bool:
        """
        Check whether the connection currently accepts sends.

        Returns:
            True if the connection is open, False otherwise.
        """
        ...

    def send(self, event: str, payload: Any) -> None:
        """
        Send an event without blocking the caller.

        Args:
            event: Name of the event to raise on the remote side.
            payload: String or JSON-serializable data.
        """
        ...

    def disconnect(self) -> None:
        """Start tearing the connection down. Calling it again is a no-op."""
        ...
