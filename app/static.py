"""
Static asset and single-page-application serving.

File lookups return an explicit result (Served / NotFound / ReadError)
that the catch-all route turns into a response with plain control flow.
The build output directory may be missing (incomplete build); that never
raises, it answers non-API requests with a 500 instead.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Awaitable, Optional, Union

from fastapi import FastAPI, Request
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException
from starlette.responses import FileResponse, HTMLResponse, Response
from starlette.staticfiles import StaticFiles
from starlette.types import Scope

from app.errors import error_response

logger = logging.getLogger(__name__)

INDEX_DOCUMENT = "index.html"
NOT_BUILT_MESSAGE = "Application not built correctly"

LONG_CACHE = "public, max-age=31536000"
IMMUTABLE_CACHE = LONG_CACHE + ", immutable"
# The SPA document changes on every deploy
NO_CACHE = "no-cache"


@dataclass(frozen=True)
class Served:
    response: Response


@dataclass(frozen=True)
class NotFound:
    path: Path


@dataclass(frozen=True)
class ReadError:
    path: Path
    reason: str


ServeResult = Union[Served, NotFound, ReadError]


class CachedStaticFiles(StaticFiles):
    """
    StaticFiles that adds a Cache-Control header to every file it serves.

    With spa_dir set, a file missing from the mount is treated like any
    other unknown non-API path: GET/HEAD get the SPA document, other
    methods a JSON 404.
    """

    def __init__(
        self,
        *args,
        cache_control: str = LONG_CACHE,
        spa_dir: Optional[Path] = None,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.cache_control = cache_control
        self.spa_dir = spa_dir

    async def get_response(self, path: str, scope: Scope) -> Response:
        try:
            return await super().get_response(path, scope)
        except (HTTPException, ValueError) as e:
            # ValueError: null byte in the path
            status_code = getattr(e, "status_code", 404)
            if self.spa_dir is None or status_code not in (404, 405):
                raise

        if scope["method"] not in ("GET", "HEAD"):
            return error_response("Not found", 404)
        return await spa_document_response(self.spa_dir)

    def file_response(self, *args, **kwargs) -> Response:
        response = super().file_response(*args, **kwargs)
        response.headers.setdefault("Cache-Control", self.cache_control)
        return response


def is_api_path(path: str, api_prefix: str) -> bool:
    return path == api_prefix or path.startswith(api_prefix.rstrip("/") + "/")


def serve_spa_document(static_dir: Path) -> ServeResult:
    """Read the SPA root document."""
    index_path = static_dir / INDEX_DOCUMENT
    if not index_path.is_file():
        return NotFound(index_path)
    try:
        content = index_path.read_bytes()
    except OSError as e:
        return ReadError(index_path, f"{type(e).__name__}: {e.strerror or e}")

    return Served(HTMLResponse(content=content, headers={"Cache-Control": NO_CACHE}))


async def spa_document_response(static_dir: Path) -> Response:
    """The SPA document, or a 500 JSON error when the build is incomplete."""
    result = await run_in_threadpool(serve_spa_document, static_dir)
    if isinstance(result, Served):
        return result.response
    if isinstance(result, NotFound):
        logger.error(f"{INDEX_DOCUMENT} not found at: {result.path}")
    else:
        logger.error(f"Error reading {result.path}: {result.reason}")
    return error_response(NOT_BUILT_MESSAGE, 500)


def serve_static_file(static_dir: Path, url_path: str) -> ServeResult:
    """
    Serve a top-level build file (favicon.ico, robots.txt, ...).

    Paths escaping static_dir and directories count as not found.
    """
    relative = url_path.lstrip("/")
    if not relative:
        return NotFound(static_dir)

    root = static_dir.resolve()
    try:
        candidate = (root / relative).resolve()
    except ValueError:
        # Null byte in the path
        return NotFound(root)
    except (OSError, RuntimeError) as e:
        return ReadError(root / relative, str(e))

    if root not in candidate.parents or not candidate.is_file():
        return NotFound(candidate)

    cache_control = NO_CACHE if candidate == root / INDEX_DOCUMENT else LONG_CACHE
    return Served(FileResponse(candidate, headers={"Cache-Control": cache_control}))


def mount_static(app: FastAPI, static_dir: Path) -> bool:
    """
    Mount /assets from the build output.

    Returns:
        False (and mounts nothing) when the build output directory is absent
    """
    if not static_dir.is_dir():
        logger.error(f"Static build directory not found at: {static_dir}")
        return False

    assets_dir = static_dir / "assets"
    if assets_dir.is_dir():
        # Hashed filenames: safe to cache forever
        app.mount(
            "/assets",
            CachedStaticFiles(directory=assets_dir, cache_control=IMMUTABLE_CACHE, spa_dir=static_dir),
            name="assets",
        )
    else:
        logger.warning(f"No assets directory at: {assets_dir}")

    if not (static_dir / INDEX_DOCUMENT).is_file():
        logger.error(f"{INDEX_DOCUMENT} not found at: {static_dir / INDEX_DOCUMENT}")

    return True


def make_spa_fallback(
    static_dir: Path,
    api_prefix: str,
) -> Callable[[Request], Awaitable[Response]]:
    """
    Build the catch-all endpoint registered after every other route.

    - API paths that reached it matched no route: 404 JSON
    - Other methods than GET/HEAD: 404 JSON
    - GET/HEAD: a build file if one matches, else the SPA document so the
      client-side router can take over
    """

    async def spa_fallback(request: Request) -> Response:
        path = request.url.path

        if is_api_path(path, api_prefix):
            return error_response("API endpoint not found", 404)

        if request.method not in ("GET", "HEAD"):
            return error_response("Not found", 404)

        if not static_dir.is_dir():
            logger.error(f"Static build directory not found at: {static_dir}")
            return error_response(NOT_BUILT_MESSAGE, 500)

        if path != "/":
            result = await run_in_threadpool(serve_static_file, static_dir, path)
            if isinstance(result, Served):
                return result.response
            if isinstance(result, ReadError):
                logger.warning(f"Could not read {result.path}: {result.reason}")

        return await spa_document_response(static_dir)

    return spa_fallback
