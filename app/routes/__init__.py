"""
API route table.

load_api_routes builds the router mounted under API_PREFIX. It is called
once per process by the initialization sequence (app/bootstrap.py); if it
raises, the process serves the degraded configuration-error handler
instead.
"""

from fastapi import APIRouter

API_PREFIX = "/api"


def load_api_routes() -> APIRouter:
    """Import and assemble the API routers."""
    from app.routes.public import router as public_router
    from app.routes.admin import router as admin_router

    router = APIRouter(prefix=API_PREFIX)
    router.include_router(public_router)
    router.include_router(admin_router)
    return router


__all__ = ["API_PREFIX", "load_api_routes"]
