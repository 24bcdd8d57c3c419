# app/api/__init__.py
from fastapi import FastAPI

from app.api.routers import carts, health, orders, users


def create_app(lifespan=None) -> FastAPI:
    app = FastAPI(title="CloudEats Orders", version="1.0.0", lifespan=lifespan)

    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(users.router)

    return app
