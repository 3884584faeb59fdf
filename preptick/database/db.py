"""Database connection, session management and the key-value facade."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session as OrmSession

from ..settings import APP_SUPPORT_DIR
from .models import Base, Record

logger = logging.getLogger(__name__)

# ── paths ────────────────────────────────────────────────────────────────────

DB_PATH = APP_SUPPORT_DIR / "preptick.db"

# ── engine & session factory (created lazily) ─────────────────────────────

_engine = None
_SessionFactory = None


def _get_engine():
    global _engine
    if _engine is None:
        APP_SUPPORT_DIR.mkdir(parents=True, exist_ok=True)
        _engine = create_engine(
            f"sqlite:///{DB_PATH}",
            connect_args={"check_same_thread": False},
            echo=False,
        )
    return _engine


def _get_session_factory():
    global _SessionFactory
    if _SessionFactory is None:
        _SessionFactory = sessionmaker(bind=_get_engine(), expire_on_commit=False)
    return _SessionFactory


# ── public API ────────────────────────────────────────────────────────────


def configure_engine(url: str) -> None:
    """Override the database connection URL.  Used by tests to point at
    an in-memory SQLite database instead of the real one on disk."""
    global _engine, _SessionFactory
    _SessionFactory = None
    _engine = create_engine(
        url,
        connect_args={"check_same_thread": False},
        echo=False,
    )


def init_db() -> None:
    """Create all tables."""
    Base.metadata.create_all(_get_engine())


@contextmanager
def get_session():
    """Yield a SQLAlchemy session; commit on success, rollback on error."""
    factory = _get_session_factory()
    session: OrmSession = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ── key-value facade ──────────────────────────────────────────────────────


class KeyValueStore:
    """JSON values stored one row per key.

    Reads never raise: a missing row, a database error or a value that
    isn't valid JSON all come back as ``default``.
    """

    def load(self, key: str, default=None):
        try:
            with get_session() as db:
                record = db.get(Record, key)
                raw = record.value if record is not None else None
        except SQLAlchemyError:
            logger.exception("Could not read record %r", key)
            return default
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Record %r is not valid JSON; using default", key)
            return default

    def save(self, key: str, value) -> None:
        raw = json.dumps(value)
        with get_session() as db:
            record = db.get(Record, key)
            if record is None:
                db.add(Record(key=key, value=raw))
            else:
                record.value = raw

    def remove(self, key: str) -> None:
        with get_session() as db:
            record = db.get(Record, key)
            if record is not None:
                db.delete(record)

    def clear(self) -> None:
        with get_session() as db:
            db.query(Record).delete()
