from __future__ import annotations

from pymongo import ASCENDING, DESCENDING

from app.data.database import connect_args_for
from app.data.stores import ensure_ledger_indexes


def test_ledger_indexes(orders_collection) -> None:
    ensure_ledger_indexes(orders_collection)

    assert orders_collection.indexes == [
        [("owner_id", ASCENDING)],
        [("created_at", DESCENDING)],
        [("status", ASCENDING)],
    ]


def test_postgres_mirror_gets_statement_and_lock_timeouts() -> None:
    args = connect_args_for("postgresql://u:p@db/orders", timeout_seconds=2.5)

    assert args["connect_timeout"] == 2
    assert "statement_timeout=2500" in args["options"]
    assert "lock_timeout=2500" in args["options"]


def test_sqlite_mirror_gets_busy_timeout() -> None:
    args = connect_args_for("sqlite:///orders.db", timeout_seconds=0.5)

    assert args == {"check_same_thread": False, "timeout": 0.5}
