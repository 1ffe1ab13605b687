"""
Health check endpoint.
"""

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends

from court_booking.dependencies import get_store
from court_booking.models import HealthResponse
from court_booking.storage.base import Store

router = APIRouter(prefix="/api", tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    operation_id="getHealth",
    summary="Health check",
)
async def get_health(store: Annotated[Store, Depends(get_store)]) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version="1.0.0",
        storage=store.backend,
        timestamp=datetime.now(timezone.utc),
    )
