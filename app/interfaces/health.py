"""
Health check router.

Liveness endpoint for load balancers and the frontend. It does not touch
the ledger store, so it stays green while the database is busy.
"""

from fastapi import APIRouter

from app.core.config import settings
from app.interfaces.trading.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Report that the CoinSim API is up, with its version.",
)
def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=settings.version)
