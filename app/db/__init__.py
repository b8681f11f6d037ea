"""
Database init - Exports for services and routes
"""

from .base import Base, TimestampMixin, SoftDeleteMixin
from app.database import engine, SessionLocal, get_db

__all__ = ["Base", "TimestampMixin", "SoftDeleteMixin", "engine", "SessionLocal", "get_db"]
