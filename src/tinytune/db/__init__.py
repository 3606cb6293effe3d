"""Database package -- convenience re-exports.

Importing this module registers all models with Base.metadata.
"""

from tinytune.db.base import Base
from tinytune.db.config import DatabaseSettings
from tinytune.db.models import AccountSession
from tinytune.db.session import DatabaseManager

__all__ = [
    "AccountSession",
    "Base",
    "DatabaseManager",
    "DatabaseSettings",
]
