"""
Rate limiting utilities using slowapi.
Protects the preference-creation and public status-check endpoints from abuse.

Usage in a router:
    from shared.security.rate_limit import limiter

    @router.get("/mercadopago/status")
    @limiter.limit(settings.public_status_rate_limit)
    async def status(request: Request, ...):
        ...

slowapi requires the decorated endpoint to accept a `request: Request` argument.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from shared.config.settings import settings
from shared.config.logging import get_logger

logger = get_logger(__name__)

# Create limiter instance using client IP as key
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Custom handler for rate limit exceeded errors.
    Returns a JSON response with retry information.
    """
    logger.warning(
        "Rate limit exceeded",
        path=request.url.path,
        client=get_remote_address(request),
        limit=str(exc.detail),
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Límite de solicitudes excedido. Intente más tarde.",
            "retry_after": exc.detail,
        },
        headers={"Retry-After": "60"},
    )
