import logging
import time

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import (
    DATABASE_URL,
    DB_MAX_OVERFLOW,
    DB_POOL_RECYCLE,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
    DB_SLOW_QUERY_SECONDS,
)

logger = logging.getLogger(__name__)


def build_engine(url: str) -> Engine:
    """Create the engine; SQLite gets foreign keys enforced and no pool sizing"""
    if url.startswith("sqlite"):
        sqlite_engine = create_engine(url, connect_args={"check_same_thread": False})

        @event.listens_for(sqlite_engine, "connect")
        def enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=DB_POOL_SIZE,
        max_overflow=DB_MAX_OVERFLOW,
        pool_timeout=DB_POOL_TIMEOUT,
        pool_recycle=DB_POOL_RECYCLE,
    )


def track_slow_queries(target: Engine, threshold: float = DB_SLOW_QUERY_SECONDS):
    @event.listens_for(target, "before_cursor_execute")
    def _start_timer(conn, _cursor, _statement, _parameters, _context, _executemany):
        conn.info.setdefault("query_started", []).append(time.perf_counter())

    @event.listens_for(target, "after_cursor_execute")
    def _stop_timer(conn, _cursor, statement, _parameters, _context, _executemany):
        elapsed = time.perf_counter() - conn.info["query_started"].pop()
        if elapsed > threshold:
            logger.warning(f"🐌 Slow query ({elapsed:.2f}s): {statement[:200]}")


try:
    engine = build_engine(DATABASE_URL)
    logger.info(f"✅ Database engine ready ({engine.dialect.name})")
except Exception as e:
    logger.error(f"❌ Failed to create database engine: {e}")
    raise

if DB_SLOW_QUERY_SECONDS > 0:
    track_slow_queries(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """FastAPI dependency yielding a request-scoped session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
