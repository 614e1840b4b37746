"""
Database package: declarative models, engine lifecycle and session helpers.
"""

from educentral.database.base import Base, ModelBase, utcnow
from educentral.database.init_db import (
    close_database,
    create_all_tables,
    get_engine,
    get_session,
    get_session_factory,
    initialize_database,
    session_scope,
)

__all__ = [
    "Base", "ModelBase", "utcnow",
    "initialize_database", "create_all_tables", "close_database",
    "get_engine", "get_session_factory", "get_session", "session_scope",
]
