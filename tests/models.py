"""
Mapped classes exposed through the generated routes in tests.
"""

from sqlalchemy import Column, DateTime, Integer, String, Boolean, func
from sqlalchemy.orm import declarative_base


Base = declarative_base()


class Dummy(Base):
    """Record with an auto-incrementing key, one required and one hidden field."""

    __tablename__ = "dummies"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    value = Column(Integer, nullable=False, default=0)
    skip = Column(String, nullable=True, info={"autocrud_hidden": True})


class Note(Base):
    """Record with a client-chosen string key and a server default."""

    __tablename__ = "notes"

    slug = Column(String(64), primary_key=True)
    body = Column(String, nullable=True, doc="Free text")
    owner = Column(String(32), nullable=False, default="anonymous")
    pinned = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class Membership(Base):
    """Composite primary key: cannot be exposed."""

    __tablename__ = "memberships"

    user_id = Column(Integer, primary_key=True)
    group_id = Column(Integer, primary_key=True)
