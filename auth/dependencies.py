"""
auth/dependencies.py -- FastAPI Depends() helpers for session authentication.

Token transport, checked in priority order:
  1. Authorization header -- "Bearer <token>". When the header is present it
     wins, even if malformed; the cookie is not consulted.
  2. "token" cookie -- set by POST /api/users/login.

require_session() runs the session manager's authenticate() and stores the
resulting Identity on request.state.identity as well as returning it, so
routes can take it as a typed parameter:

    @router.get("/users")
    def list_users(identity: Identity = Depends(require_session)): ...

route_guard() is the configurable variant used on GET/PUT/DELETE
/users/{id}: it only authenticates when REQUIRE_AUTH_FOR_USER_ROUTES is set.

require_logout_token() guards logout and lets an already revoked token through.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.models import Identity
from auth.session import authenticate
from auth.store import TokenStore
from auth.tokens import COOKIE_NAME
from core.config import get_settings
from core.errors import Forbidden

logger = logging.getLogger("userapi.auth")


def extract_token(request: Request) -> str | None:
    """Return the presented token, or None if the request carries none."""
    auth_header = request.headers.get("Authorization")
    if auth_header is not None:
        parts = auth_header.split(" ")
        return parts[1] if len(parts) > 1 and parts[1] else None
    return request.cookies.get(COOKIE_NAME) or None


def require_session(request: Request) -> Identity:
    """Authenticate the request. Raises Unauthenticated (401) or Forbidden (403)."""
    token_store: TokenStore = request.app.state.token_store
    identity = authenticate(token_store, extract_token(request))
    request.state.identity = identity
    return identity


def route_guard(request: Request) -> Identity | None:
    """Authenticate only when REQUIRE_AUTH_FOR_USER_ROUTES is enabled."""
    if not get_settings().require_auth_for_user_routes:
        return None
    return require_session(request)


def require_logout_token(request: Request) -> str:
    """Guard for POST /users/logout. Returns the presented token.

    Behaves like require_session() except that a token whose record was
    already revoked passes, so logging out twice answers 200 both times.
    Unknown, tampered or expired tokens still fail with 403.
    """
    token_store: TokenStore = request.app.state.token_store
    token = extract_token(request)
    try:
        require_session(request)
    except Forbidden:
        record = token_store.get_token(token) if token else None
        if record is None or record.is_valid:
            raise
        logger.info("repeat logout for an already revoked token")
    return token
