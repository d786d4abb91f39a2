"""SQLAlchemy declarative base for Docflow."""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """SQLAlchemy 2.0 declarative base for all Docflow models."""

    pass
