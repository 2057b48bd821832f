"""Database engine, session factory and declarative base."""

from loanwatch.db.session import Base, JSONType, SessionLocal, engine, get_db

__all__ = ["Base", "JSONType", "SessionLocal", "engine", "get_db"]
