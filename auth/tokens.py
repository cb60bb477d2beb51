"""
auth/tokens.py -- Signed session tokens, password hashing, and the session cookie.

Security design decisions:
  Tokens: python-jose JWTs signed with SECRET_KEY (HS256 by default). Claims:
       id, email, iat, exp, plus a random jti so two logins within the same
       second never mint the same string (the token is the token-store primary
       key). decode_access_token() returns None on any failure; the session
       manager turns that into 403.

  Passwords: bcrypt directly. _DUMMY_HASH lets login() run one bcrypt
       comparison even for an unknown email, so response time does not reveal
       whether an account exists.

  Cookie: "token", httpOnly, SameSite=Lax, Secure in production. Its Max-Age
       comes from SESSION_COOKIE_MAX_AGE, which is independent of the token's
       own expiry (TOKEN_EXPIRE_SECONDS).

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

logger = logging.getLogger("userapi.auth")

_settings = get_settings()

COOKIE_NAME = "token"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

_BCRYPT_ROUNDS = 10


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt accepts at most 72 bytes; the request models reject longer
    UTF-8 passwords before they get here.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash (e.g. legacy plaintext seed data).
        return False


# Computed once at module load so the first login is not measurably slower.
_DUMMY_HASH: str = hash_password("userapi_timing_dummy")


def burn_password_check(plain: str) -> None:
    """Run a bcrypt comparison whose result is discarded (timing equalization)."""
    verify_password(plain, _DUMMY_HASH)


# ---------------------------------------------------------------------------
# Token encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user_id: str, email: str, expire_seconds: int = 0) -> str:
    """Encode a signed token carrying the user's identity.

    Args:
        user_id:        Primary key of the user.
        email:          Email at the time of login.
        expire_seconds: Lifetime in seconds. 0 (default) uses
                        Settings.token_expire_seconds.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    now = datetime.now(timezone.utc)
    payload = {
        "id": user_id,
        "email": email,
        "iat": now,
        "exp": now + timedelta(seconds=duration),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_settings.jwt_algorithm)


def decode_access_token(token: str) -> dict | None:
    """Verify signature and expiry. Returns the claims dict or None on any failure."""
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_settings.jwt_algorithm])
    except JWTError as exc:
        logger.debug("token rejected: %s", exc)
        return None
    if "id" not in payload or "email" not in payload:
        return None
    return payload


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, token: str) -> None:
    """Write the token as the httpOnly "token" cookie on the response."""
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.cookie_secure,
        max_age=_settings.session_cookie_max_age,
    )


def clear_session_cookie(response) -> None:
    response.delete_cookie(COOKIE_NAME, httponly=True, samesite="lax", secure=_settings.cookie_secure)
