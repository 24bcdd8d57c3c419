# app/data/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from app.utils.settings import DATABASE_URL, STORE_TIMEOUT_SECONDS


class Base(DeclarativeBase):
    pass


def connect_args_for(url: str, timeout_seconds: float = STORE_TIMEOUT_SECONDS) -> dict:
    """
    Per-connection limits so a locked or slow mirror fails fast instead of
    holding up the request that writes to it.
    """
    if url.startswith("sqlite"):
        # sqlite waits at most `timeout` seconds for a lock
        return {"check_same_thread": False, "timeout": timeout_seconds}
    timeout_ms = int(timeout_seconds * 1000)
    return {
        "connect_timeout": max(1, int(timeout_seconds)),
        "options": f"-c statement_timeout={timeout_ms} -c lock_timeout={timeout_ms}",
    }


def make_engine(url: str = DATABASE_URL, timeout_seconds: float = STORE_TIMEOUT_SECONDS):
    kwargs = {}
    if not url.startswith("sqlite"):
        # waiting for a pooled connection counts against the same budget
        kwargs["pool_timeout"] = timeout_seconds
    return create_engine(
        url,
        pool_pre_ping=True,
        connect_args=connect_args_for(url, timeout_seconds),
        **kwargs,
    )


engine = make_engine()
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
