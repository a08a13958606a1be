from typing import Any

from pydantic import BaseModel, Field

from connhub.constants import WS_DEFAULT_EVENT


class EventMessage(BaseModel):  # type: ignore[misc]
    """Envelope written to a connection for every dispatched event."""

    event: str
    data: Any = None


class IncomingMessage(BaseModel):  # type: ignore[misc]
    """Message received from a WebSocket client, relayed to the others."""

    event: str = Field(default=WS_DEFAULT_EVENT, min_length=1)
    data: Any = None


class BroadcastRequest(BaseModel):  # type: ignore[misc]
    event: str = Field(min_length=1)
    message: str | dict[str, Any] | list[Any]


class MulticastRequest(BroadcastRequest):
    exclude: list[str] = Field(default_factory=list)


class DispatchResponse(BaseModel):  # type: ignore[misc]
    delivered: int = Field(ge=0)


class ConnectionInfo(BaseModel):  # type: ignore[misc]
    key: str
    ready: bool


class ConnectionsResponse(BaseModel):  # type: ignore[misc]
    count: int = Field(ge=0)
    connections: list[ConnectionInfo]


class DisconnectAllResponse(BaseModel):  # type: ignore[misc]
    disconnected: int = Field(ge=0)
    remaining: int = Field(ge=0)
