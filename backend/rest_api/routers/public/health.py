"""
Health check endpoints for the REST API.
Provides basic and detailed health status of the service and its dependencies.
"""

import asyncio

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.utils.health import (
    HealthStatus,
    health_check_with_timeout,
    aggregate_health_checks,
)
from rest_api.core.dependencies import get_gateway_client
from rest_api.services.payments import MercadoPagoClient, get_all_breaker_stats


router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health_check():
    """
    Basic health check endpoint.
    Returns service status without checking dependencies.
    """
    return {
        "status": "healthy",
        "service": "isp-payments",
        "environment": settings.environment,
    }


@health_check_with_timeout(timeout=3.0, component="database")
async def check_database(db: Session) -> dict:
    """Check database connectivity."""
    await asyncio.to_thread(db.execute, text("SELECT 1"))
    return {"dialect": db.get_bind().dialect.name}


@router.get("/health/detailed")
async def detailed_health_check(
    db: Session = Depends(get_db),
    gateway: MercadoPagoClient = Depends(get_gateway_client),
):
    """
    Detailed health check.

    Probes the database and reports circuit breaker state for the payment
    gateway. Returns 503 when any component is unhealthy.
    """
    result = await aggregate_health_checks([check_database(db)])

    result["service"] = "isp-payments"
    result["environment"] = settings.environment
    result["gateway"] = {
        "configured": gateway.configured,
        "circuit_breaker": gateway.breaker.snapshot(),
    }
    result["circuit_breakers"] = get_all_breaker_stats()

    if result["status"] != HealthStatus.HEALTHY.value:
        return JSONResponse(content=result, status_code=503)
    return result
