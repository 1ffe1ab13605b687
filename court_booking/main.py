"""Main FastAPI application for the basketball court booking service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from court_booking.config import EXPIRY_SWEEP_INTERVAL
from court_booking.dependencies import get_policy
from court_booking.errors import BookingServiceError
from court_booking.rate_limit import limiter, rate_limit_exceeded_handler
from court_booking.routers import admin, auth, bookings, courts, health
from court_booking.seed import seed_defaults
from court_booking.services.booking_service import BookingService
from court_booking.services.clock import SystemClock
from court_booking.services.expiry import ExpirySweeper
from court_booking.storage.factory import create_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = create_store()
    await store.open()
    clock = SystemClock()
    app.state.store = store
    app.state.clock = clock

    await seed_defaults(store, clock)

    sweeper = ExpirySweeper(
        store,
        BookingService(store, clock, get_policy()),
        clock,
        interval=EXPIRY_SWEEP_INTERVAL,
    )
    await sweeper.start()
    logger.info("Court booking service started (storage: %s)", store.backend)

    yield

    await sweeper.stop()
    await store.close()
    logger.info("Court booking service stopped")


app = FastAPI(
    title="Basketball Court Booking API",
    description="Book hourly slots on basketball courts, with admin management",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(BookingServiceError)
async def booking_service_error_handler(
    request: Request, exc: BookingServiceError
) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(health.router)
app.include_router(auth.router)
app.include_router(courts.router)
app.include_router(bookings.router)
app.include_router(admin.router)
