"""
Tests for health check endpoints.
"""

import asyncio

import pytest

from shared.utils.health import (
    HealthStatus,
    aggregate_health_checks,
    health_check_with_timeout,
)


class TestHealthEndpoints:
    """Test health check API endpoints."""

    def test_health_check(self, client):
        """Basic health check should return healthy status."""
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "isp-payments"

    def test_detailed_health_check(self, client):
        response = client.get("/api/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["database"]["status"] == "healthy"
        assert data["gateway"]["configured"] is True
        assert data["gateway"]["circuit_breaker"]["state"] == "closed"
        assert "circuit_breakers" in data


class TestHealthHelpers:

    @pytest.mark.asyncio
    async def test_timeout_marks_component_unhealthy(self):
        @health_check_with_timeout(timeout=0.01, component="slow")
        async def slow_check():
            await asyncio.sleep(1)

        result = await slow_check()

        assert result.status == HealthStatus.UNHEALTHY
        assert result.component == "slow"

    @pytest.mark.asyncio
    async def test_exception_marks_component_unhealthy(self):
        @health_check_with_timeout(timeout=1.0, component="broken")
        async def broken_check():
            raise RuntimeError("connection refused")

        result = await broken_check()

        assert result.status == HealthStatus.UNHEALTHY
        assert "connection refused" in result.error

    @pytest.mark.asyncio
    async def test_aggregate_degraded_when_any_unhealthy(self):
        @health_check_with_timeout(timeout=1.0, component="ok")
        async def ok_check():
            return {"detail": 1}

        @health_check_with_timeout(timeout=1.0, component="bad")
        async def bad_check():
            raise RuntimeError("down")

        result = await aggregate_health_checks([ok_check(), bad_check()])

        assert result["status"] == "degraded"
        assert result["components"]["ok"]["status"] == "healthy"
        assert result["components"]["bad"]["status"] == "unhealthy"
