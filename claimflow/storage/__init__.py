# Storage module - repositories and file store
from .base import ClaimRepository, UserDirectory
from .files import FileStore, LocalFileStore
from .memory import InMemoryClaimRepository, InMemoryUserDirectory
from .sql import SqlClaimRepository, SqlUserDirectory, create_sql_engine

__all__ = [
    "ClaimRepository",
    "UserDirectory",
    "FileStore",
    "LocalFileStore",
    "InMemoryClaimRepository",
    "InMemoryUserDirectory",
    "SqlClaimRepository",
    "SqlUserDirectory",
    "create_sql_engine",
]
