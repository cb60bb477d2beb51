"""
tests/test_cli.py -- The seed and cleanup commands of main.py.

Each test points DATABASE_URL at a file in tmp_path; in-memory databases
vanish when the command closes its store.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

import main
from auth.models import TokenRecord
from auth.store import TokenStore, UserStore
from auth.tokens import verify_password
from core.config import get_settings


@pytest.fixture
def db_url(tmp_path, monkeypatch) -> str:
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setattr(get_settings(), "database_url", url)
    return url


def test_seed_inserts_hashed_users(db_url, capsys) -> None:
    assert main.main(["seed", "--count", "4", "--seed", "7"]) == 0
    assert "Inserted 4 users" in capsys.readouterr().out

    store = UserStore(db_url)
    try:
        users, total = store.list_users()
        assert total == 4
        assert {u.role for u in users} <= {"admin", "user", "manager"}
        first = next(u for u in users if u.email.endswith("1@example.com"))
        assert verify_password("pass1", first.password)
    finally:
        store.close()


def test_seed_replaces_existing_users(db_url) -> None:
    main.main(["seed", "--count", "3"])
    main.main(["seed", "--count", "2"])
    store = UserStore(db_url)
    try:
        assert store.list_users()[1] == 2
    finally:
        store.close()


def test_seed_rejects_non_positive_count(db_url) -> None:
    assert main.main(["seed", "--count", "0"]) == 2


def test_cleanup_command(db_url, capsys) -> None:
    tokens = TokenStore(db_url)
    try:
        tokens.create_token(TokenRecord(token="old", user_id="u1", created_at=datetime.now(timezone.utc) - timedelta(days=1)))
        tokens.create_token(TokenRecord(token="new", user_id="u1"))
    finally:
        tokens.close()

    assert main.main(["cleanup"]) == 0
    assert "Removed 1 token records." in capsys.readouterr().out
