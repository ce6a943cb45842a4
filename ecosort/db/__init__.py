"""Database management for the source cache."""

from .connection import close_connection_pool, get_connection, get_connection_pool
from .init import init_database, validate_connection
from .legislative import VolatilityWindowChecker
from .sources import SourceCacheStore

__all__ = [
    "SourceCacheStore",
    "VolatilityWindowChecker",
    "close_connection_pool",
    "get_connection",
    "get_connection_pool",
    "init_database",
    "validate_connection",
]
