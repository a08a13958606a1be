"""FastAPI dependencies for the application."""

from starlette.requests import HTTPConnection

from connhub.registry import ConnectionRegistry


def get_registry(connection: HTTPConnection) -> ConnectionRegistry:
    """
    Return the registry owned by the running application.

    Works for both HTTP requests and WebSocket connections.

    Args:
        connection: The current request or WebSocket.

    Returns:
        The ConnectionRegistry created at startup.
    """
    return connection.app.state.registry
