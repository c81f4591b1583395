from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from amm_indexer.storage.base import Base


def make_engine(database_url: str, worker: bool = False):
    """Build an engine for ``database_url``.

    Worker processes (Celery) use NullPool so forked children never share
    a pooled connection; in-memory SQLite keeps one shared connection.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    if worker:
        return create_engine(database_url, pool_pre_ping=True, poolclass=NullPool)
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


def make_session_factory(engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


def init_db(engine) -> None:
    # models must be imported so they register on Base.metadata
    from amm_indexer.storage.models import (  # noqa: F401
        active_pool, daily_volume, eth_price, pools, price_bucket, processed_event, token,
        user_activity,
    )
    Base.metadata.create_all(engine)


def get_db(session_factory):
    """FastAPI-style dependency generator bound to a session factory."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
