"""
Route table construction and application assembly.

build_route_table runs once per process and produces either a ready API
route table or a degraded marker carrying the reason. create_application
turns that into the FastAPI app, registering in this order:

1. session middleware (ready table only)
2. API routes, or the configuration-error handler for every API path
3. static assets from the build output
4. catch-all SPA fallback
5. terminal JSON error handlers
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Union

from fastapi import APIRouter, FastAPI, Request

from app.auth.sessions import SessionManager
from app.config import Config, SessionSettings
from app.errors import ConfigurationError, register_exception_handlers
from app.middleware.auth import AdminSessionMiddleware
from app.routes import API_PREFIX, load_api_routes
from app.static import make_spa_fallback, mount_static
from database_sqlalchemy import init_db

logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

MISSING_DATABASE_REASON = (
    "DATABASE_URL environment variable is not set. "
    "Configure the database connection string and redeploy."
)
ROUTE_FAILURE_REASON = "API routes failed to initialize. Check the server logs."


@dataclass(frozen=True)
class RouteTableReady:
    router: APIRouter
    session_manager: SessionManager
    session_settings: SessionSettings


@dataclass(frozen=True)
class RouteTableDegraded:
    reason: str


RouteTable = Union[RouteTableReady, RouteTableDegraded]


def build_route_table(
    config: Config,
    route_loader: Callable[[], APIRouter] = load_api_routes,
) -> RouteTable:
    """
    Connect to the database and build the API routes.

    Never raises: a missing DATABASE_URL or any failure while wiring the
    routes yields RouteTableDegraded.
    """
    database_url = config.get_database_url()
    if not database_url:
        logger.error("DATABASE_URL is not configured; API requests will get a configuration error")
        return RouteTableDegraded(reason=MISSING_DATABASE_REASON)

    try:
        init_db(database_url)

        session_settings = config.get_session_config()
        session_manager = SessionManager(
            secret=session_settings.secret,
            ttl=session_settings.ttl,
        )

        bootstrap = config.get_bootstrap_admin()
        if bootstrap:
            created = session_manager.ensure_bootstrap_admin(*bootstrap)
            if created:
                logger.info(f"Created bootstrap admin {created.username}")

        router = route_loader()
    except Exception:
        logger.exception("Failed to register API routes; serving configuration error for API paths")
        return RouteTableDegraded(reason=ROUTE_FAILURE_REASON)

    logger.info("API routes registered")
    return RouteTableReady(
        router=router,
        session_manager=session_manager,
        session_settings=session_settings,
    )


def degraded_api_handler(reason: str):
    """Endpoint answering every API path with a 500 configuration error."""

    async def configuration_error(request: Request):
        raise ConfigurationError(reason)

    return configuration_error


def create_application(
    route_table: RouteTable,
    static_dir: Path,
    api_prefix: str = API_PREFIX,
) -> FastAPI:
    """Assemble the FastAPI app for a route table."""
    app = FastAPI(
        title="Mining Hosting API",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    if isinstance(route_table, RouteTableReady):
        app.state.session_manager = route_table.session_manager
        app.state.session_settings = route_table.session_settings
        app.add_middleware(
            AdminSessionMiddleware,
            session_manager=route_table.session_manager,
            cookie_name=route_table.session_settings.cookie_name,
            api_prefix=api_prefix,
        )
        app.include_router(route_table.router)
    else:
        handler = degraded_api_handler(route_table.reason)
        app.add_api_route(api_prefix, handler, methods=ALL_METHODS, include_in_schema=False)
        app.add_api_route(f"{api_prefix}/{{path:path}}", handler, methods=ALL_METHODS, include_in_schema=False)

    mount_static(app, static_dir)

    app.add_api_route(
        "/{full_path:path}",
        make_spa_fallback(static_dir, api_prefix),
        methods=ALL_METHODS,
        include_in_schema=False,
    )

    register_exception_handlers(app)
    return app
