"""
auth/store.py -- SQLAlchemy Core persistence layer for users and session tokens.

Pattern: Repository + Data Mapper.
UserStore and TokenStore are the repositories; _row_to_user / _row_to_token are
the mappers. Route and session code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Passwords arrive already hashed -- the store never sees plaintext.

Uniqueness:
  users.email carries a UNIQUE constraint. create_user() and update_user()
  raise sqlalchemy.exc.IntegrityError on a duplicate; callers map that to 409.

Timestamps:
  users.created_at / updated_at are ISO 8601 strings (display only).
  tokens.created_at is a naive UTC DateTime because the cleanup sweep compares
  it against a cutoff in SQL.

Usage:
    users = UserStore("sqlite:///users.db")
    tokens = TokenStore("sqlite:///users.db")
    user_id = users.create_user(User(email=..., password=hash_password(...), ...))
    tokens.create_token(TokenRecord(token=jwt, user_id=user_id))
    tokens.invalidate(jwt)
    users.close(); tokens.close()
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    func,
    or_,
    select,
)
from sqlalchemy.engine import Engine

from auth.filters import Page, UserFilter
from auth.models import TokenRecord, User

_DEFAULT_DB_URL = "sqlite:///./users.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", Text, nullable=False),  # bcrypt hash
    Column("firstname", String(100), nullable=False),
    Column("lastname", String(100), nullable=False),
    Column("age", Integer),
    Column("phone", String(32)),
    Column("role", String(50), nullable=False, server_default="user"),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_tokens = Table(
    "tokens",
    metadata,
    Column("token", String(1024), primary_key=True),
    Column("user_id", String(36), nullable=False, index=True),
    Column("is_valid", Integer, nullable=False, server_default="1"),
    Column("created_at", DateTime, nullable=False),
)

# Columns a caller may change through update_user().
_UPDATABLE = frozenset({"email", "password", "firstname", "lastname", "age", "phone", "role", "is_active"})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode. Set per-connection; PRAGMAs are not pooled."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _make_engine(db_url: str) -> Engine:
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # Route handlers run in FastAPI's thread pool.
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    metadata.create_all(engine)
    return engine


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _naive_utc(moment: datetime) -> datetime:
    """Normalize to naive UTC so SQLite and PostgreSQL compare the same way."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records (the credential store)."""

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        self.engine: Engine = _make_engine(db_url)

    def create_user(self, user: User) -> str:
        """Insert a user and return its generated id.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        user_id = user.id or str(uuid.uuid4())
        now = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=user_id,
                    email=user.email,
                    password=user.password,
                    firstname=user.firstname,
                    lastname=user.lastname,
                    age=user.age,
                    phone=user.phone,
                    role=user.role,
                    is_active=1 if user.is_active else 0,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return user_id

    def create_users(self, users: list[User]) -> int:
        """Bulk insert in one statement. Returns the number of rows written."""
        if not users:
            return 0
        now = _now_iso()
        rows = [
            {
                "id": u.id or str(uuid.uuid4()),
                "email": u.email,
                "password": u.password,
                "firstname": u.firstname,
                "lastname": u.lastname,
                "age": u.age,
                "phone": u.phone,
                "role": u.role,
                "is_active": 1 if u.is_active else 0,
                "created_at": now,
                "updated_at": now,
            }
            for u in users
        ]
        with self.engine.connect() as conn:
            conn.execute(_users.insert(), rows)
            conn.commit()
        return len(rows)

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self, flt: UserFilter | None = None, page: Page | None = None) -> tuple[list[User], int]:
        """Return one page of users matching flt, plus the total match count.

        Rows are ordered by creation time, then id, so pages are stable.
        """
        flt = flt or UserFilter()
        page = page or Page()
        clauses = flt.clauses(_users.c)
        query = (
            _users.select()
            .where(*clauses)
            .order_by(_users.c.created_at, _users.c.id)
            .offset(page.offset)
            .limit(page.size)
        )
        count_query = select(func.count()).select_from(_users).where(*clauses)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
            total = conn.execute(count_query).scalar() or 0
        return [_row_to_user(r) for r in rows], total

    def update_user(self, user_id: str, **fields) -> bool:
        """Update mutable fields on an existing user.

        Accepted fields: email, password (already hashed), firstname, lastname,
        age, phone, role, is_active. Unknown fields raise ValueError.

        Returns True if a row was updated, False if user_id was not found.
        """
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)!r}")
        if "is_active" in fields:
            fields["is_active"] = 1 if fields["is_active"] else 0
        fields["updated_at"] = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_user(self, user_id: str) -> bool:
        """Permanently delete a user. Returns True if deleted, False if not found.

        Token rows owned by the user are left for the cleanup sweep.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def delete_all(self) -> int:
        """Remove every user. Used by the seed command."""
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete())
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


class TokenStore:
    """Repository for TokenRecord rows (the token store)."""

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        self.engine: Engine = _make_engine(db_url)

    def create_token(self, record: TokenRecord) -> None:
        """Persist an issued token. created_at defaults to now (UTC)."""
        created = record.created_at or datetime.now(timezone.utc)
        with self.engine.connect() as conn:
            conn.execute(
                _tokens.insert().values(
                    token=record.token,
                    user_id=record.user_id,
                    is_valid=1 if record.is_valid else 0,
                    created_at=_naive_utc(created),
                )
            )
            conn.commit()

    def get_token(self, token: str) -> TokenRecord | None:
        with self.engine.connect() as conn:
            row = conn.execute(_tokens.select().where(_tokens.c.token == token)).fetchone()
        return _row_to_token(row) if row is not None else None

    def invalidate(self, token: str) -> int:
        """Mark every currently valid record for this exact token as invalid.

        Bulk UPDATE rather than a single-row assumption. Returns the number of
        rows changed; 0 when the token was unknown or already invalid.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _tokens.update()
                .where((_tokens.c.token == token) & (_tokens.c.is_valid == 1))
                .values(is_valid=0)
            )
            conn.commit()
        return result.rowcount

    def purge(self, stale_before: datetime) -> int:
        """Delete invalid records and records created before stale_before.

        Returns the number of rows deleted.
        """
        cutoff = _naive_utc(stale_before)
        with self.engine.connect() as conn:
            result = conn.execute(
                _tokens.delete().where(or_(_tokens.c.is_valid == 0, _tokens.c.created_at < cutoff))
            )
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password=row.password,
        firstname=row.firstname,
        lastname=row.lastname,
        age=row.age,
        phone=row.phone,
        role=row.role,
        is_active=bool(row.is_active),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_token(row) -> TokenRecord:
    return TokenRecord(
        token=row.token,
        user_id=row.user_id,
        is_valid=bool(row.is_valid),
        created_at=row.created_at,
    )
