"""Database package."""

from .db import KeyValueStore, configure_engine, get_session, init_db
from .models import Record

__all__ = ["KeyValueStore", "configure_engine", "get_session", "init_db", "Record"]
