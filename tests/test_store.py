"""Unit tests for auth/store.py and auth/filters.py -- listing, filters, CRUD.

Covers:
- UserFilter.from_query() parsing (empty values, isActive, bad age)
- Page.from_query() lenient fallback and total_pages()
- list_users() filters: name substring on either name, role any case, isActive
- list_users() pagination totals
- update_user() / delete_user() on present and missing ids
- duplicate email raises IntegrityError
"""

import pytest
from sqlalchemy.exc import IntegrityError

from auth.filters import MAX_SQL_INT, Page, UserFilter
from core.errors import ValidationError


@pytest.fixture
def users(stores, user_factory):
    """UserStore with five users across roles, ages and active states.

      ada@    Ada Lovelace      36  admin    active
      grace@  Grace Hopper      45  user     active
      alan@   Alan Turing       41  Manager  inactive
      linus@  Linus Adams       28  user     inactive
      kat@    Katherine Johnson 36  user     active
    """
    store, _tokens = stores
    people = [
        ("ada@example.com", "Ada", "Lovelace", 36, "admin", True),
        ("grace@example.com", "Grace", "Hopper", 45, "user", True),
        ("alan@example.com", "Alan", "Turing", 41, "Manager", False),
        ("linus@example.com", "Linus", "Adams", 28, "user", False),
        ("kat@example.com", "Katherine", "Johnson", 36, "user", True),
    ]
    for email, first, last, age, role, active in people:
        store.create_user(
            user_factory(email=email, firstname=first, lastname=last, age=age, role=role, is_active=active)
        )
    return store


def _emails(result) -> set[str]:
    found, _total = result
    return {u.email for u in found}


# ---------------------------------------------------------------------------
# Query parsing
# ---------------------------------------------------------------------------


class TestUserFilterFromQuery:
    def test_empty_values_mean_no_filter(self) -> None:
        assert UserFilter.from_query(name="", age="", role="") == UserFilter()

    @pytest.mark.parametrize("raw, expected", [("true", True), ("TRUE", True), ("false", False), ("yes", False)])
    def test_is_active_only_true_selects_active(self, raw: str, expected: bool) -> None:
        assert UserFilter.from_query(is_active=raw).is_active is expected

    def test_age_parsed_to_int(self) -> None:
        assert UserFilter.from_query(age="36").age == 36

    def test_non_integer_age_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            UserFilter.from_query(age="abc")

    @pytest.mark.parametrize("raw", ["99999999999999999999", "-99999999999999999999"])
    def test_age_beyond_sql_integer_is_rejected(self, raw: str) -> None:
        with pytest.raises(ValidationError):
            UserFilter.from_query(age=raw)


class TestPage:
    def test_defaults(self) -> None:
        page = Page.from_query()
        assert (page.number, page.size, page.offset) == (1, 10, 0)

    @pytest.mark.parametrize("raw", ["0", "-3", "abc", ""])
    def test_invalid_values_fall_back(self, raw: str) -> None:
        assert Page.from_query(raw, raw) == Page()

    def test_values_beyond_sql_integer_fall_back(self) -> None:
        huge = str(MAX_SQL_INT + 1)
        assert Page.from_query(huge, huge) == Page()
        assert Page.from_query(str(MAX_SQL_INT)).number == MAX_SQL_INT

    def test_offset_is_capped(self) -> None:
        assert Page(number=MAX_SQL_INT, size=10).offset == MAX_SQL_INT

    def test_offset_and_total_pages(self) -> None:
        page = Page.from_query("3", "2")
        assert page.offset == 4
        assert page.total_pages(5) == 3
        assert page.total_pages(0) == 0


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TestListUsers:
    def test_no_filter_returns_everyone(self, users) -> None:
        found, total = users.list_users()
        assert total == 5
        assert len(found) == 5

    def test_name_matches_first_or_last_name_any_case(self, users) -> None:
        assert _emails(users.list_users(UserFilter(name="ada"))) == {"ada@example.com", "linus@example.com"}

    def test_name_wildcards_are_literal(self, users) -> None:
        assert users.list_users(UserFilter(name="%"))[1] == 0

    def test_role_is_case_insensitive(self, users) -> None:
        assert _emails(users.list_users(UserFilter(role="manager"))) == {"alan@example.com"}
        assert _emails(users.list_users(UserFilter(role="ADMIN"))) == {"ada@example.com"}

    def test_age_exact(self, users) -> None:
        assert _emails(users.list_users(UserFilter(age=36))) == {"ada@example.com", "kat@example.com"}

    def test_is_active(self, users) -> None:
        assert users.list_users(UserFilter(is_active=True))[1] == 3
        assert _emails(users.list_users(UserFilter(is_active=False))) == {"alan@example.com", "linus@example.com"}

    def test_filters_combine(self, users) -> None:
        assert _emails(users.list_users(UserFilter(role="user", is_active=True, age=36))) == {"kat@example.com"}

    def test_page_at_offset_cap_is_empty(self, users) -> None:
        found, total = users.list_users(page=Page(number=MAX_SQL_INT, size=10))
        assert found == []
        assert total == 5

    def test_pagination_total_counts_all_matches(self, users) -> None:
        first, total = users.list_users(page=Page(number=1, size=2))
        last, _ = users.list_users(page=Page(number=3, size=2))
        beyond, _ = users.list_users(page=Page(number=4, size=2))
        assert total == 5
        assert len(first) == 2
        assert len(last) == 1
        assert beyond == []

    def test_pages_do_not_overlap(self, users) -> None:
        seen = []
        for number in (1, 2, 3):
            found, _ = users.list_users(page=Page(number=number, size=2))
            seen.extend(u.id for u in found)
        assert len(seen) == len(set(seen)) == 5


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


class TestUserCrud:
    def test_create_assigns_id_and_timestamps(self, stores, user_factory) -> None:
        store, _ = stores
        uid = store.create_user(user_factory())
        user = store.get_by_id(uid)
        assert user is not None
        assert user.role == "user"
        assert user.is_active is True
        assert user.created_at and user.updated_at

    def test_duplicate_email_raises(self, stores, user_factory) -> None:
        store, _ = stores
        store.create_user(user_factory())
        with pytest.raises(IntegrityError):
            store.create_user(user_factory())

    def test_update_changes_fields(self, users) -> None:
        ada = users.get_by_email("ada@example.com")
        assert users.update_user(ada.id, role="manager", is_active=False)
        updated = users.get_by_id(ada.id)
        assert updated.role == "manager"
        assert updated.is_active is False

    def test_update_missing_user(self, users) -> None:
        assert users.update_user("no-such-id", role="user") is False

    def test_update_rejects_unknown_field(self, users) -> None:
        ada = users.get_by_email("ada@example.com")
        with pytest.raises(ValueError):
            users.update_user(ada.id, id="hijack")

    def test_delete(self, users) -> None:
        ada = users.get_by_email("ada@example.com")
        assert users.delete_user(ada.id) is True
        assert users.get_by_id(ada.id) is None
        assert users.delete_user(ada.id) is False

    def test_bulk_insert_and_delete_all(self, stores, user_factory) -> None:
        store, _ = stores
        batch = [user_factory(email=f"u{n}@example.com") for n in range(3)]
        assert store.create_users(batch) == 3
        assert store.delete_all() == 3
        assert store.list_users()[1] == 0
