"""
Utilities module: Exceptions, schemas, health checks.
"""

from shared.utils.exceptions import (
    AppException,
    NotFoundError,
    UnauthorizedError,
    ForbiddenError,
    DatabaseError,
    ExternalServiceError,
)
from shared.utils.schemas import CamelModel, ErrorResponse, ReceivedResponse
from shared.utils.health import (
    HealthStatus,
    HealthCheckResult,
    health_check_with_timeout,
    aggregate_health_checks,
)

__all__ = [
    # exceptions
    "AppException",
    "NotFoundError",
    "UnauthorizedError",
    "ForbiddenError",
    "DatabaseError",
    "ExternalServiceError",
    # schemas
    "CamelModel",
    "ErrorResponse",
    "ReceivedResponse",
    # health
    "HealthStatus",
    "HealthCheckResult",
    "health_check_with_timeout",
    "aggregate_health_checks",
]
