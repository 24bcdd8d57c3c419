# app/data/stores.py
"""
Client handles for the cart store (redis) and the order ledger (mongo).

Clients are created lazily and cached per process; services never import
them directly, they get them injected through their constructors.
"""
from functools import lru_cache

import redis
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection

from app.utils.settings import MONGO_DB, MONGO_URL, REDIS_URL, STORE_TIMEOUT_SECONDS
from app.utils.logging import get_logger

logger = get_logger(__name__)

ORDERS_COLLECTION = "orders"


@lru_cache(maxsize=None)
def get_redis() -> redis.Redis:
    return redis.Redis.from_url(
        REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=STORE_TIMEOUT_SECONDS,
        socket_timeout=STORE_TIMEOUT_SECONDS,
    )


@lru_cache(maxsize=None)
def get_mongo_client() -> MongoClient:
    timeout_ms = int(STORE_TIMEOUT_SECONDS * 1000)
    return MongoClient(
        MONGO_URL,
        tz_aware=True,
        serverSelectionTimeoutMS=timeout_ms,
        socketTimeoutMS=timeout_ms,
        connectTimeoutMS=timeout_ms,
    )


def get_orders_collection() -> Collection:
    return get_mongo_client()[MONGO_DB][ORDERS_COLLECTION]


def ensure_ledger_indexes(collection: Collection) -> None:
    collection.create_index([("owner_id", ASCENDING)])
    collection.create_index([("created_at", DESCENDING)])
    collection.create_index([("status", ASCENDING)])
    logger.info(f"Ledger indexes ready on {collection.name}")
