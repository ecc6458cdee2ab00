"""
Routers for the application.

This module exports the FastAPI routers included by the main application.
"""

from nextsub.core.routers.admin import router as admin_router

__all__ = ["admin_router"]
