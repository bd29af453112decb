"""Health check endpoint."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from stagewire import __version__
from stagewire.api.dependencies import get_registry
from stagewire.broadcast.registry import BroadcastRegistry

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health(
    registry: BroadcastRegistry = Depends(get_registry),
) -> dict[str, object]:
    """Basic health check for load balancers."""
    return {
        "status": "OK",
        "message": "Server is running",
        "version": __version__,
        "observers": registry.count,
        "timestamp": datetime.now(UTC).isoformat(),
    }
