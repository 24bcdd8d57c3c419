# app/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from app.api import create_app
from app.data.database import Base, engine
from app.data.stores import ensure_ledger_indexes, get_orders_collection
from app.utils.logging import get_logger

# register all models in Base.metadata before create_all
from app.data.models import OrderModel  # noqa: F401

logger = get_logger(__name__)


def init_stores() -> None:
    logger.info(f"Creating mirror tables: {list(Base.metadata.tables.keys())}")
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        # placement does not depend on the mirror, reconcile fills it in later
        logger.error(f"Failed to create mirror tables, continuing without mirror: {e}")
    ensure_ledger_indexes(get_orders_collection())


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_stores()
    yield


app = create_app(lifespan=lifespan)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
