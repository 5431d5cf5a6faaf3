"""Database package for the storefront backend"""

from database.base import Base
from database.session import SessionLocal, engine, init_db

__all__ = ["Base", "init_db", "SessionLocal", "engine"]
