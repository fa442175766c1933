# clinic/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clinic.core.config import settings


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        kw = {"connect_args": {"check_same_thread": False}, "future": True}
        # in-memory sqlite: one shared connection or every session sees an empty db
        if url in ("sqlite://", "sqlite:///:memory:"):
            kw["poolclass"] = StaticPool
        return kw
    return {
        "pool_pre_ping": True,
        "pool_recycle": 280,
        "pool_size": 10,
        "max_overflow": 20,
        "future": True,
    }


engine: Engine = create_engine(
    settings.SQLALCHEMY_DATABASE_URI,
    **_engine_kwargs(settings.SQLALCHEMY_DATABASE_URI),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)
