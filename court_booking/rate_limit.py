"""
Rate limiting configuration using slowapi.

Limits:
  • auth    – 10/min (register and login – slows down credential stuffing)
  • default – 100/min (applied by the limiter to undecorated routes)

The limiter keys on client IP by default.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, default_limits=["100/minute"])

# Named rate strings for use in @limiter.limit() decorators
AUTH = "10/minute"       # registration / login


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}", "error": "rate_limited"},
    )
