"""
Serverless entrypoint adapter.

A function host may start a fresh process for any request (cold start) or
reuse a warm one. ServerlessApplication is the ASGI app handed to Mangum:
the first request on a process triggers initialization (configuration,
database, route table, static mounts) and every request, including those
that arrive while it is still running, awaits that same attempt.

Initialization happens at most once per process. Its outcome, ready or
degraded, and even an outright failure, is kept for the life of the
process.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from fastapi import APIRouter, FastAPI
from starlette.concurrency import run_in_threadpool

from app.bootstrap import RouteTable, RouteTableDegraded, build_route_table, create_application
from app.config import Config, get_config
from app.routes import load_api_routes

logger = logging.getLogger(__name__)

T = TypeVar("T")

INIT_FAILURE_BODY = {
    "error": "Internal server error",
    "message": (
        "Application failed to initialize. Check the server logs and the "
        "DATABASE_URL / STATIC_DIR configuration."
    ),
}
REQUEST_FAILURE_BODY = {"error": "Internal server error"}


class InitializationCoordinator(Generic[T]):
    """
    Run an async initializer once and share its result.

    The first ensure_initialized() call starts the initializer as a task;
    concurrent and later callers await that task instead of starting their
    own. A failed initialization is not retried: every caller gets the same
    exception.
    """

    def __init__(self, initializer: Callable[[], Awaitable[T]]):
        self._initializer = initializer
        self._task: Optional[asyncio.Future] = None
        self.attempts = 0

    @property
    def is_initialized(self) -> bool:
        return self._task is not None and self._task.done()

    async def ensure_initialized(self) -> T:
        if self._task is None:
            self.attempts += 1
            self._task = asyncio.ensure_future(self._initializer())
        # A cancelled request must not cancel initialization for the others
        return await asyncio.shield(self._task)


@dataclass(frozen=True)
class InitializationOutcome:
    application: FastAPI
    route_table: RouteTable

    @property
    def degraded(self) -> bool:
        return isinstance(self.route_table, RouteTableDegraded)


class ServerlessApplication:
    """
    ASGI application that initializes lazily on the first request.

    Args:
        config_loader: Returns the Config used for initialization
        route_loader: Builds the API router (see app.routes.load_api_routes)
    """

    def __init__(
        self,
        config_loader: Callable[[], Config] = get_config,
        route_loader: Callable[[], APIRouter] = load_api_routes,
    ):
        self._config_loader = config_loader
        self._route_loader = route_loader
        self.coordinator: InitializationCoordinator[InitializationOutcome] = InitializationCoordinator(
            self._initialize
        )

    async def _initialize(self) -> InitializationOutcome:
        logger.info("Initializing application")
        config = self._config_loader()

        # Database connection and schema creation block; keep them off the loop
        route_table = await run_in_threadpool(build_route_table, config, self._route_loader)
        application = create_application(route_table, config.get_static_dir())

        if isinstance(route_table, RouteTableDegraded):
            logger.warning(f"Application initialized in degraded mode: {route_table.reason}")
        else:
            logger.info("Application initialized")
        return InitializationOutcome(application=application, route_table=route_table)

    async def ensure_initialized(self) -> InitializationOutcome:
        return await self.coordinator.ensure_initialized()

    async def __call__(self, scope, receive, send) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return

        response_started = False

        async def tracking_send(message: dict) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            outcome = await self.ensure_initialized()
        except Exception:
            logger.exception("Application initialization failed")
            if scope["type"] == "http":
                await _send_json(send, 500, INIT_FAILURE_BODY)
            return

        try:
            await outcome.application(scope, receive, tracking_send)
        except Exception:
            # The app's own error handlers already ran; this is the last stop
            # before the host process.
            logger.exception(f"Unhandled error while serving {scope.get('path')}")
            if scope["type"] == "http" and not response_started:
                await _send_json(send, 500, REQUEST_FAILURE_BODY)

    async def _lifespan(self, receive, send) -> None:
        # Initialization is lazy; only acknowledge the server's lifespan events
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return


async def _send_json(send, status_code: int, body: Any) -> None:
    payload = json.dumps(body).encode("utf-8")
    await send({
        "type": "http.response.start",
        "status": status_code,
        "headers": [
            (b"content-type", b"application/json"),
            (b"content-length", str(len(payload)).encode("ascii")),
        ],
    })
    await send({"type": "http.response.body", "body": payload})
