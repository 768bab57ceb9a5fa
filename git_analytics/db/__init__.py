"""
Database package for Git Analytics.
"""

from .base import (
    Base,
    StoreConnectionError,
    get_db,
    get_engine,
    get_session_local,
    init_database,
    open_session,
)
from .models import CategoryModel, CommitModel, RepositoryModel
from .services import (
    CategoryService,
    CategoryWeightError,
    CommitService,
    RepositoryService,
    UnsupportedDialectError,
)

__all__ = [
    "Base",
    "StoreConnectionError",
    "get_db",
    "get_engine",
    "get_session_local",
    "init_database",
    "open_session",
    "CategoryModel",
    "CommitModel",
    "RepositoryModel",
    "CategoryService",
    "CategoryWeightError",
    "CommitService",
    "RepositoryService",
    "UnsupportedDialectError",
]
