import logging
from typing import Any

from blog_posts.db_context import Database, translate_store_errors

logger = logging.getLogger(__name__)


class DatabaseOperations:
    """Composition class for database operations.

    Every statement runs with the database's command timeout; driver failures
    are translated by `translate_store_errors`.
    """

    def __init__(self, database: Database):
        self.database = database

    def _log(self, query: str, params: list[Any]) -> None:
        logger.debug("%s -- params=%r", query, params)
        self.database.log_query(query, params)

    async def fetch_all(self, query: str, params: list[Any]) -> list[Any]:
        """Execute query and fetch all rows"""
        async with self.database.connection() as conn:
            self._log(query, params)
            with translate_store_errors("Query"):
                return await conn.fetch(
                    query, *params, timeout=self.database.command_timeout
                )

    async def fetch_one(self, query: str, params: list[Any]) -> Any:
        """Execute a query and fetch one row"""
        async with self.database.connection() as conn:
            self._log(query, params)
            with translate_store_errors("Query"):
                return await conn.fetchrow(
                    query, *params, timeout=self.database.command_timeout
                )

    async def fetch_value(self, query: str, params: list[Any]) -> Any:
        """Execute query and fetch single value"""
        async with self.database.connection() as conn:
            self._log(query, params)
            with translate_store_errors("Query"):
                return await conn.fetchval(
                    query, *params, timeout=self.database.command_timeout
                )

    async def execute_query(self, query: str, params: list[Any]) -> str:
        """Execute a statement and return its status string (e.g. "DELETE 1")"""
        async with self.database.connection() as conn:
            self._log(query, params)
            with translate_store_errors("Statement"):
                return await conn.execute(
                    query, *params, timeout=self.database.command_timeout
                )
