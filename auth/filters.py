"""
auth/filters.py -- Typed filter and pagination values for user listing.

Each optional filter field is bound to a named comparator, so the store builds
its WHERE clause from a fixed table instead of a free-form dict:

  name       contains_ci  firstname OR lastname contains the value, any case
  age        equals
  role       equals_ci    "Admin" matches "admin"
  is_active  equals

Query-string parsing lives here too (from_query) so GET /users and
GET /users/filter share exactly the same rules.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import ColumnElement, func, or_

from core.errors import ValidationError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
# Largest value a 64-bit SQL INTEGER column or LIMIT/OFFSET accepts.
MAX_SQL_INT = 2**63 - 1


# ---------------------------------------------------------------------------
# Comparators
# ---------------------------------------------------------------------------


def equals(column: ColumnElement, value: Any) -> ColumnElement:
    return column == value


def equals_ci(column: ColumnElement, value: Any) -> ColumnElement:
    return func.lower(column) == str(value).lower()


def contains_ci(column: ColumnElement, value: Any) -> ColumnElement:
    # LIKE wildcards in user input are matched literally.
    escaped = str(value).replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return column.ilike(f"%{escaped}%", escape="\\")


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UserFilter:
    """Optional predicates for listing users. None means "do not filter"."""

    name: str | None = None
    age: int | None = None
    role: str | None = None
    is_active: bool | None = None

    @classmethod
    def from_query(
        cls,
        name: str | None = None,
        age: str | None = None,
        role: str | None = None,
        is_active: str | None = None,
    ) -> UserFilter:
        """Build a filter from raw query-string values.

        Empty strings are treated as absent, except is_active: any supplied
        value filters, and only "true" (any case) selects active users.

        Raises ValidationError if age is present but not an integer, or is
        outside the range the database can compare against.
        """
        parsed_age: int | None = None
        if age:
            try:
                parsed_age = int(age)
            except ValueError:
                raise ValidationError("age must be an integer", detail=f"got {age!r}") from None
            if abs(parsed_age) > MAX_SQL_INT:
                raise ValidationError("age is out of range", detail=f"got {age!r}")
        return cls(
            name=name or None,
            age=parsed_age,
            role=role or None,
            is_active=None if is_active is None else is_active.lower() == "true",
        )

    def clauses(self, c) -> list[ColumnElement]:
        """Return the WHERE clauses for the columns of the users table."""
        clauses: list[ColumnElement] = []
        if self.name is not None:
            clauses.append(or_(contains_ci(c.firstname, self.name), contains_ci(c.lastname, self.name)))
        if self.age is not None:
            clauses.append(equals(c.age, self.age))
        if self.role is not None:
            clauses.append(equals_ci(c.role, self.role))
        if self.is_active is not None:
            clauses.append(equals(c.is_active, 1 if self.is_active else 0))
        return clauses


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


def _positive_int(raw: str | int | None, default: int) -> int:
    try:
        value = int(raw) if raw is not None else default
    except (TypeError, ValueError):
        return default
    return value if 0 < value <= MAX_SQL_INT else default


@dataclass(frozen=True)
class Page:
    """1-based page number and page size."""

    number: int = DEFAULT_PAGE
    size: int = DEFAULT_LIMIT

    @classmethod
    def from_query(cls, page: str | int | None = None, limit: str | int | None = None) -> Page:
        """Parse page/limit leniently.

        Missing, non-numeric, < 1 or beyond MAX_SQL_INT falls back to the default.
        """
        return cls(number=_positive_int(page, DEFAULT_PAGE), size=_positive_int(limit, DEFAULT_LIMIT))

    @property
    def offset(self) -> int:
        return min((self.number - 1) * self.size, MAX_SQL_INT)

    def total_pages(self, total: int) -> int:
        return math.ceil(total / self.size)
