"""In-process stand-ins for the redis client and the mongo orders collection."""
from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable

import redis
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from redis.exceptions import WatchError

from app.domain.schemas import Cart, CartItem


@dataclass
class FakeRedisClient:
    data: dict[str, str] = field(default_factory=dict)
    expiry: dict[str, int] = field(default_factory=dict)
    versions: dict[str, int] = field(default_factory=dict)
    setex_calls: list[tuple[str, int]] = field(default_factory=list)
    fail_on: set[str] = field(default_factory=set)
    # callables run once, right after a watched GET, to simulate a concurrent writer
    interleave: list[Callable[[], None]] = field(default_factory=list)
    lock: Any = field(default_factory=threading.RLock)

    def _check(self, op: str) -> None:
        if op in self.fail_on:
            raise redis.ConnectionError(f"{op} failed")

    def _touch(self, key: str) -> None:
        self.versions[key] = self.versions.get(key, 0) + 1

    def get(self, key: str):
        self._check("get")
        with self.lock:
            return self.data.get(key)

    def setex(self, key: str, ttl: int, value: str) -> bool:
        self._check("setex")
        with self.lock:
            self.data[key] = value
            self.expiry[key] = ttl
            self.setex_calls.append((key, ttl))
            self._touch(key)
        return True

    def delete(self, *keys: str) -> int:
        self._check("delete")
        removed = 0
        with self.lock:
            for key in keys:
                if key in self.data:
                    removed += 1
                    self.data.pop(key, None)
                    self.expiry.pop(key, None)
                    self._touch(key)
        return removed

    def eval(self, _script: str, _keys_count: int, key: str, expected: str) -> int:
        self._check("eval")
        with self.lock:
            if self.data.get(key) == expected:
                return self.delete(key)
            return 0

    def pipeline(self) -> "FakePipeline":
        return FakePipeline(self)


class FakePipeline:
    """WATCH/MULTI/EXEC with the same optimistic semantics as redis."""

    def __init__(self, client: FakeRedisClient) -> None:
        self.client = client
        self.watched: dict[str, int] = {}
        self.queued: list[tuple] | None = None

    def __enter__(self) -> "FakePipeline":
        return self

    def __exit__(self, *exc) -> None:
        self.reset()

    def reset(self) -> None:
        self.watched = {}
        self.queued = None

    def watch(self, *keys: str) -> None:
        with self.client.lock:
            for key in keys:
                self.watched[key] = self.client.versions.get(key, 0)

    def unwatch(self) -> None:
        self.watched = {}

    def get(self, key: str):
        value = self.client.get(key)
        if self.client.interleave:
            self.client.interleave.pop(0)()
        return value

    def multi(self) -> None:
        self.queued = []

    def setex(self, key: str, ttl: int, value: str) -> None:
        self.queued.append(("setex", key, ttl, value))

    def delete(self, key: str) -> None:
        self.queued.append(("delete", key))

    def execute(self) -> list:
        self.client._check("execute")
        with self.client.lock:
            for key, version in self.watched.items():
                if self.client.versions.get(key, 0) != version:
                    self.reset()
                    raise WatchError("Watched variable changed.")
            results = []
            for op in self.queued or []:
                if op[0] == "setex":
                    results.append(self.client.setex(op[1], op[2], op[3]))
                else:
                    results.append(self.client.delete(op[1]))
        self.reset()
        return results


def _matches(doc: dict, query: dict) -> bool:
    for key, expected in query.items():
        if isinstance(expected, dict) and "$in" in expected:
            if doc.get(key) not in expected["$in"]:
                return False
        elif doc.get(key) != expected:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: list[dict]) -> None:
        self.docs = docs

    def sort(self, keys: list[tuple[str, int]]) -> "FakeCursor":
        for name, direction in reversed(keys):
            self.docs.sort(key=lambda d: d[name], reverse=direction < 0)
        return self

    def limit(self, n: int) -> "FakeCursor":
        self.docs = self.docs[:n]
        return self

    def __iter__(self):
        return iter(self.docs)


@dataclass
class FakeOrdersCollection:
    name: str = "orders"
    docs: dict[Any, dict] = field(default_factory=dict)
    indexes: list = field(default_factory=list)
    fail_on: dict[str, Exception] = field(default_factory=dict)
    insert_calls: int = 0
    lock: Any = field(default_factory=threading.RLock)

    def _check(self, op: str) -> None:
        if op in self.fail_on:
            raise self.fail_on[op]

    def create_index(self, keys) -> str:
        self.indexes.append(keys)
        return "_".join(f"{k}_{d}" for k, d in keys)

    def insert_one(self, doc: dict) -> None:
        self.insert_calls += 1
        self._check("insert_one")
        with self.lock:
            if doc["_id"] in self.docs:
                raise DuplicateKeyError("E11000 duplicate key error")
            self.docs[doc["_id"]] = copy.deepcopy(doc)

    def find_one(self, query: dict) -> dict | None:
        self._check("find_one")
        with self.lock:
            for doc in self.docs.values():
                if _matches(doc, query):
                    return copy.deepcopy(doc)
        return None

    def find(self, query: dict) -> FakeCursor:
        self._check("find")
        with self.lock:
            return FakeCursor([copy.deepcopy(d) for d in self.docs.values() if _matches(d, query)])

    def find_one_and_update(self, query: dict, update: dict, return_document=ReturnDocument.BEFORE):
        self._check("find_one_and_update")
        with self.lock:
            for doc in self.docs.values():
                if _matches(doc, query):
                    before = copy.deepcopy(doc)
                    doc.update(update.get("$set", {}))
                    return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else before
        return None


def over_precise_cart_json(owner_id: int) -> str:
    """Stored cart whose unit price carries more digits than decimal128 can hold."""
    cart = Cart(
        owner_id=owner_id,
        items=[
            CartItem(
                item_id=1,
                item_name="Nasi Lemak",
                unit_price=Decimal("0.12345678901234567890123456789012345"),
                quantity=1,
            )
        ],
    )
    cart.recompute()
    return cart.model_dump_json()
