"""SQLAlchemy ORM models for PrepTick."""

from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class Record(Base):
    """One keyed JSON value: ``presets``, ``runningTimers``, a flag, ..."""

    __tablename__ = "records"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    def __repr__(self) -> str:
        return f"<Record key={self.key} updated_at={self.updated_at}>"
