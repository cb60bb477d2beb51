"""
auth/models.py -- Domain dataclasses for users, session tokens and identities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; api/models.py owns the HTTP shape.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A registered account.

    password holds the bcrypt hash, never the plaintext. role is free text
    ("admin", "user", "manager" in practice) and is compared case-insensitively
    when filtering.

    id is None before the record is written to the database.
    """

    email: str
    password: str
    firstname: str
    lastname: str
    id: str | None = None
    age: int | None = None
    phone: str | None = None
    role: str = "user"
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class TokenRecord:
    """Server-side row tracking whether an issued signed token is still honoured.

    The signed token string is the primary key. is_valid flips to False on
    logout; the nightly sweep deletes invalid and stale rows.
    """

    token: str
    user_id: str
    is_valid: bool = True
    created_at: datetime | None = None


@dataclass(frozen=True)
class Identity:
    """Verified claims of the token that authenticated the current request."""

    user_id: str
    email: str
    token: str
    issued_at: datetime | None = None
    expires_at: datetime | None = None
