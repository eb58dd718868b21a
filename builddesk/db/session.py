# builddesk/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
import os

from builddesk.logger import get_logger

logger = get_logger(__name__)

_engine = None
_SessionLocal = None


def get_engine():
    global _engine
    if _engine is None:
        db_url = os.environ.get("DATABASE_URL")
        if not db_url:
            raise RuntimeError("DATABASE_URL not set")
        logger.info("Using database URL: %s", db_url)
        kwargs = {}
        if db_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            # 内存库必须共享同一个连接，否则每个 session 看到的是空库
            if db_url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
        _engine = create_engine(db_url, **kwargs)
    return _engine


def get_session():
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=get_engine()
        )
    return _SessionLocal()


def bind_engine(engine) -> None:
    '''
    Replace the process-wide engine (tests / embedded use).
    Subsequent get_session() calls are bound to the given engine.
    '''
    global _engine, _SessionLocal
    _engine = engine
    _SessionLocal = None


def dispose_engine() -> None:
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
