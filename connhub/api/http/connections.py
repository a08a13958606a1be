"""HTTP endpoints for inspecting the registry and dispatching events."""

from fastapi import APIRouter, Depends, HTTPException, status

from connhub.dependencies import get_registry
from connhub.logging import logger
from connhub.registry import ConnectionRegistry
from connhub.schemas import (
    BroadcastRequest,
    ConnectionInfo,
    ConnectionsResponse,
    DisconnectAllResponse,
    DispatchResponse,
    MulticastRequest,
)

router = APIRouter(tags=["connections"])


@router.get(
    "/connections",
    response_model=ConnectionsResponse,
    summary="List registered connections",
)
async def list_connections(
    registry: ConnectionRegistry = Depends(get_registry),
) -> ConnectionsResponse:
    """
    List every registered connection with its readiness.

    Returns:
        ConnectionsResponse: Number of connections and their keys.
    """
    connections = [
        ConnectionInfo(key=handle.key(), ready=handle.is_ready())
        for handle in registry
    ]
    return ConnectionsResponse(count=len(connections), connections=connections)


@router.post(
    "/broadcast",
    response_model=DispatchResponse,
    summary="Send an event to every ready connection",
)
async def broadcast(
    body: BroadcastRequest,
    registry: ConnectionRegistry = Depends(get_registry),
) -> DispatchResponse:
    delivered = registry.broadcast(body.event, body.message)
    logger.info(f"Broadcast {body.event!r} to {delivered} connections")
    return DispatchResponse(delivered=delivered)


@router.post(
    "/multicast",
    response_model=DispatchResponse,
    summary="Send an event to every ready connection except the given keys",
)
async def multicast(
    body: MulticastRequest,
    registry: ConnectionRegistry = Depends(get_registry),
) -> DispatchResponse:
    delivered = registry.multicast(body.exclude, body.event, body.message)
    logger.info(
        f"Multicast {body.event!r} to {delivered} connections "
        f"(excluded: {len(body.exclude)})"
    )
    return DispatchResponse(delivered=delivered)


@router.post(
    "/connections/{key:path}/disconnect",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Disconnect a single connection",
)
async def disconnect(
    key: str,
    registry: ConnectionRegistry = Depends(get_registry),
) -> None:
    """
    Disconnect the connection registered under key and forget it.

    Raises:
        HTTPException: 404 if no connection is registered under key.
    """
    handle = registry.get(key)
    if handle is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Connection {key} is not registered",
        )
    registry.disconnect(handle)
    logger.info(f"Disconnected connection {key} on request")


@router.post(
    "/disconnect-all",
    response_model=DisconnectAllResponse,
    summary="Disconnect every registered connection",
)
async def disconnect_all(
    registry: ConnectionRegistry = Depends(get_registry),
) -> DisconnectAllResponse:
    disconnected = len(registry)
    registry.disconnect_all()
    return DisconnectAllResponse(
        disconnected=disconnected, remaining=len(registry)
    )
