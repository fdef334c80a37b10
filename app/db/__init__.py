"""Database engine, declarative base and request-scoped sessions."""

from .session import Base, build_engine, build_session_factory, close_db, get_db, init_db

__all__ = ["Base", "build_engine", "build_session_factory", "close_db", "get_db", "init_db"]
