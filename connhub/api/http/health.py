"""Health check endpoint for monitoring service status."""

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from connhub.dependencies import get_registry
from connhub.registry import ConnectionRegistry

router = APIRouter()


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    connections: int
    ready_connections: int


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check endpoint",
    tags=["health"],
)
async def health_check(
    registry: ConnectionRegistry = Depends(get_registry),
) -> HealthResponse:
    """
    Report service status and how many connections are registered.

    Returns:
        HealthResponse: Status plus total and ready connection counts.
    """
    handles = list(registry)
    ready = sum(1 for handle in handles if handle.is_ready())
    return HealthResponse(
        status="healthy", connections=len(handles), ready_connections=ready
    )
