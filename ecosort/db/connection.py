"""Database connection management."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool


class DatabaseConfig:
    """Database configuration."""

    def __init__(self, config: Dict[str, Any]) -> None:
        """Initialize database config from dict."""
        self.dsn = config.get("dsn")
        self.host = config.get("host", "localhost")
        self.port = config.get("port", 5432)
        self.database = config.get("database", "ecosort")
        self.user = config.get("user", "ecosort")
        self.password = config.get("password") or ""
        self.min_size = config.get("min_size", 1)
        self.max_size = config.get("max_size", 10)

    @property
    def connection_string(self) -> str:
        """Get psycopg connection string."""
        if self.dsn:
            return self.dsn
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


_connection_pool: Optional[AsyncConnectionPool] = None


async def get_connection_pool(config: Dict[str, Any]) -> AsyncConnectionPool:
    """Get or create the process-wide connection pool."""
    global _connection_pool
    if _connection_pool is None:
        db_config = DatabaseConfig(config)
        pool = AsyncConnectionPool(
            db_config.connection_string,
            min_size=db_config.min_size,
            max_size=db_config.max_size,
            kwargs={"row_factory": dict_row},
            open=False,
        )
        await pool.open()
        _connection_pool = pool
    return _connection_pool


async def close_connection_pool() -> None:
    """Close the process-wide connection pool, if open."""
    global _connection_pool
    if _connection_pool is not None:
        await _connection_pool.close()
        _connection_pool = None


@asynccontextmanager
async def get_connection(config: Dict[str, Any]) -> AsyncGenerator[psycopg.AsyncConnection, None]:
    """Get a database connection from the pool."""
    pool = await get_connection_pool(config)
    async with pool.connection() as conn:
        yield conn
