"""
Database boundary: ORM models, connection management and CRUD operations.
"""

from csv_migrator.boundary.db.base import Base
from csv_migrator.boundary.db.connection import (
    create_engine_from_settings,
    create_session_factory,
    init_models,
    ping,
    wait_for_database,
)

__all__ = [
    "Base",
    "create_engine_from_settings",
    "create_session_factory",
    "init_models",
    "ping",
    "wait_for_database",
]
