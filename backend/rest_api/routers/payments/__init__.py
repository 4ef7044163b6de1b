"""
Payment routers - /api/payments/*
Handles inbound webhooks, status checks, checkout preferences and history.
"""

from .routes import router

__all__ = ["router"]
