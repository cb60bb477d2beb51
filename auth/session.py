"""
auth/session.py -- Session lifecycle: login, logout, authenticate.

State machine for a request:
  NoToken  --(token supplied)-->  Valid | Invalid

  NoToken  -> Unauthenticated (401)
  Invalid  -> Forbidden (403). "No record", "record revoked" and "signature or
              expiry failed" all collapse into the same response so callers
              cannot tell which check failed.

A token authenticates only when its token-store record exists with
is_valid=True AND its own signature and expiry verify. There is no
transaction around login: if the process dies after minting but before the
record is written, the token fails authenticate() with 403.

Functions take the stores as arguments; the HTTP layer passes the instances
held on app.state.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from auth.models import Identity, TokenRecord, User
from auth.store import TokenStore, UserStore
from auth.tokens import burn_password_check, create_access_token, decode_access_token, verify_password
from core.errors import Forbidden, InvalidCredentials, Unauthenticated, UserNotFound

logger = logging.getLogger("userapi.session")

_REJECTED = "Invalid or expired token"


def login(users: UserStore, tokens: TokenStore, email: str, password: str) -> tuple[str, User]:
    """Verify credentials, mint a token and record it as valid.

    Returns (token, user). The user is returned as stored, hash included.

    Raises:
        UserNotFound:       no account with this exact email.
        InvalidCredentials: password does not match; no token record is written.
    """
    user = users.get_by_email(email)
    if user is None:
        burn_password_check(password)
        raise UserNotFound("User not found")
    if not verify_password(password, user.password):
        logger.info("login rejected for user %s: bad password", user.id)
        raise InvalidCredentials("Invalid credentials")

    token = create_access_token(user.id, user.email)
    tokens.create_token(TokenRecord(token=token, user_id=user.id, is_valid=True))
    logger.info("login ok for user %s", user.id)
    return token, user


def logout(tokens: TokenStore, token: str | None) -> int:
    """Invalidate every valid record for this exact token string.

    Idempotent: succeeds even when nothing matched. Returns the number of
    records invalidated.

    Raises:
        Unauthenticated: no token supplied.
    """
    if not token:
        raise Unauthenticated("No token provided")
    changed = tokens.invalidate(token)
    logger.info("logout invalidated %d token record(s)", changed)
    return changed


def authenticate(tokens: TokenStore, token: str | None) -> Identity:
    """Check a presented token against the token store and its signature.

    Raises:
        Unauthenticated: no token supplied.
        Forbidden:       record missing or invalid, or signature/expiry failure.
    """
    if not token:
        raise Unauthenticated("No token provided")

    record = tokens.get_token(token)
    if record is None or not record.is_valid:
        raise Forbidden(_REJECTED)

    claims = decode_access_token(token)
    if claims is None:
        raise Forbidden(_REJECTED)

    return Identity(
        user_id=str(claims["id"]),
        email=claims["email"],
        token=token,
        issued_at=_from_timestamp(claims.get("iat")),
        expires_at=_from_timestamp(claims.get("exp")),
    )


def _from_timestamp(value) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)
