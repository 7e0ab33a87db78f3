"""
Admin session authentication middleware for FastAPI.

The middleware resolves the admin session on every request and stores the
result in request.state. It never rejects a request itself: protected
routes depend on get_current_admin, which decides the response.
"""

import logging
from typing import Optional

from fastapi import Request
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from app.auth.sessions import AdminIdentity, SessionManager, SessionState
from app.config import DEFAULT_SESSION_COOKIE_NAME
from app.errors import AuthenticationError
from app.static import is_api_path

logger = logging.getLogger(__name__)


class AdminSessionMiddleware(BaseHTTPMiddleware):
    """
    Attach the admin identity behind a session token to the request.

    This middleware:
    1. Extracts the token from the Authorization header (Bearer) or, for the
       browser client, from the session cookie
    2. Validates it with the SessionManager (off the event loop)
    3. Stores request.state.admin, request.state.session_state and
       request.state.session_token for downstream use

    Requests outside the API prefix are passed through untouched.
    """

    def __init__(
        self,
        app,
        session_manager: SessionManager,
        cookie_name: str = DEFAULT_SESSION_COOKIE_NAME,
        api_prefix: str = "/api",
    ):
        super().__init__(app)
        self.session_manager = session_manager
        self.cookie_name = cookie_name
        self.api_prefix = api_prefix

    async def dispatch(self, request: Request, call_next):
        request.state.admin = None
        request.state.session_state = None
        request.state.session_token = None

        if not is_api_path(request.url.path, self.api_prefix):
            return await call_next(request)

        token = extract_token(request, self.cookie_name)
        if token:
            request.state.session_token = token
            try:
                validation = await run_in_threadpool(self.session_manager.validate, token)
            except Exception as e:
                # Database trouble: treat as unauthenticated, the route decides
                logger.error(f"Session validation failed: {e}")
            else:
                request.state.session_state = validation.state
                if validation.is_valid:
                    request.state.admin = validation.admin
                    logger.debug(f"Authenticated admin: {validation.admin.username}")

        return await call_next(request)


def extract_token(request: Request, cookie_name: str = DEFAULT_SESSION_COOKIE_NAME) -> Optional[str]:
    """
    Extract the session token from "Authorization: Bearer <token>", falling
    back to the session cookie.
    """
    auth_header = request.headers.get("Authorization")
    if auth_header:
        parts = auth_header.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]
        return None

    return request.cookies.get(cookie_name) or None


def get_current_admin(request: Request) -> AdminIdentity:
    """
    Get the authenticated admin from request state.

    Dependency for protected endpoints:

    @router.get("/contacts")
    def list_contacts(admin: AdminIdentity = Depends(get_current_admin)):
        ...

    Raises:
        AuthenticationError: 401 when no active session is attached
    """
    admin = getattr(request.state, "admin", None)
    if admin is None:
        if getattr(request.state, "session_state", None) is SessionState.EXPIRED:
            raise AuthenticationError("Session expired")
        raise AuthenticationError("Not authenticated")
    return admin
