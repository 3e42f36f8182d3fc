import logging
import traceback
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import asyncpg

from blog_posts.config import DatabaseSettings
from blog_posts.errors import ConstraintViolationError, StoreUnavailableError

logger = logging.getLogger(__name__)

# Failures that say nothing about the statement itself: retrying later may succeed
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    TimeoutError,
    OSError,
    asyncpg.PostgresConnectionError,
    asyncpg.CannotConnectNowError,
    # Statement cancelled or backend terminated (QueryCanceledError, AdminShutdownError)
    asyncpg.OperatorInterventionError,
    # Server out of connections, memory or disk (TooManyConnectionsError)
    asyncpg.InsufficientResourcesError,
    # Client-side connection state, e.g. "connection is closed"
    asyncpg.InterfaceError,
)


@contextmanager
def translate_store_errors(action: str) -> Iterator[None]:
    """Re-raise driver failures as the core's error types.

    Anything else (syntax errors, bugs) propagates untouched.
    """
    try:
        yield
    except asyncpg.DataError:
        # Invalid query arguments; an InterfaceError subclass that propagates untouched
        raise
    except asyncpg.IntegrityConstraintViolationError as exc:
        raise ConstraintViolationError(
            f"{action} violated {exc.constraint_name or 'a constraint'}: {exc}",
            constraint_name=exc.constraint_name,
        ) from exc
    except TRANSIENT_ERRORS as exc:
        raise StoreUnavailableError(
            f"{action} failed: {str(exc) or type(exc).__name__}"
        ) from exc


@dataclass
class QueryLog:
    """Represents a logged query"""

    query: str
    params: list[Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    stack_trace: str | None = None

    def __repr__(self) -> str:
        return f"QueryLog(query={self.query!r}, params={self.params!r}, timestamp={self.timestamp})"


class QueryTracker:
    """Tracks queries executed during a context"""

    def __init__(self):
        self.queries: list[QueryLog] = []
        self._enabled: bool = False

    def enable(self):
        self._enabled = True

    def disable(self):
        self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled

    def log_query(self, query: str, params: list[Any], stack_trace: str | None = None):
        if self._enabled:
            self.queries.append(
                QueryLog(query=query, params=params, stack_trace=stack_trace)
            )

    def get_queries(self) -> list[QueryLog]:
        return self.queries.copy()

    def matching(self, fragment: str) -> list[QueryLog]:
        """Logged queries whose SQL contains `fragment`."""
        return [log for log in self.queries if fragment in log.query]

    def clear(self):
        self.queries.clear()

    def count(self) -> int:
        return len(self.queries)

    def to_dict(self) -> list[dict[str, Any]]:
        return [
            {
                "query": log.query,
                "params": log.params,
                "timestamp": log.timestamp.isoformat(),
                "stack_trace": log.stack_trace,
            }
            for log in self.queries
        ]


class Database:
    """Handle around an asyncpg pool, passed explicitly to repositories.

    Connections are acquired per call and released when the call finishes.
    Inside `transaction()` every call made by the same task reuses the
    transaction's connection; nesting `transaction()` opens a savepoint.

    Usage:
        database = await Database.connect(DatabaseSettings())
        async with database.transaction():
            post = await repo.find_by_id(post_id)
        await database.close()
    """

    def __init__(
        self,
        pool: asyncpg.Pool,
        *,
        name: str = "default",
        command_timeout: float | None = None,
        acquire_timeout: float | None = None,
    ):
        self.pool = pool
        self.name = name
        self.command_timeout = command_timeout
        self.acquire_timeout = acquire_timeout
        self._current_connection: ContextVar[asyncpg.Connection | None] = ContextVar(
            f"{name}_current_connection", default=None
        )
        self._query_tracker: ContextVar[QueryTracker | None] = ContextVar(
            f"{name}_query_tracker", default=None
        )

    @classmethod
    async def connect(
        cls, settings: DatabaseSettings | None = None, *, name: str = "default"
    ) -> "Database":
        """Create the connection pool described by `settings`."""
        settings = settings or DatabaseSettings()
        with translate_store_errors(f"Connecting pool '{name}'"):
            pool = await asyncpg.create_pool(
                dsn=settings.dsn,
                min_size=settings.db_pool_min_size,
                max_size=settings.db_pool_max_size,
                command_timeout=settings.db_command_timeout,
                timeout=settings.db_acquire_timeout,
            )
        logger.info(
            "Opened database pool '%s' (min_size=%d, max_size=%d)",
            name,
            settings.db_pool_min_size,
            settings.db_pool_max_size,
        )
        return cls(
            pool,
            name=name,
            command_timeout=settings.db_command_timeout,
            acquire_timeout=settings.db_acquire_timeout,
        )

    async def close(self) -> None:
        await self.pool.close()
        logger.info("Closed database pool '%s'", self.name)

    def get_current_connection(self) -> asyncpg.Connection | None:
        """Get the connection bound to the current context, if any"""
        return self._current_connection.get()

    def get_query_tracker(self) -> QueryTracker | None:
        return self._query_tracker.get()

    def log_query(self, query: str, params: list[Any]):
        """Log a query to the current query tracker if available"""
        tracker = self._query_tracker.get()
        if tracker:
            # Skip this frame and the DatabaseOperations frame
            stack = traceback.extract_stack()[:-2]
            tracker.log_query(query, params, "".join(traceback.format_list(stack)))

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[asyncpg.Connection]:
        """Yield the context's connection, or borrow one from the pool.

        A borrowed connection goes back to the pool when the block exits,
        whether it exits normally, with an error or through cancellation.
        """
        current_conn = self._current_connection.get()
        if current_conn is not None:
            yield current_conn
            return

        with translate_store_errors(f"Acquiring a connection from pool '{self.name}'"):
            conn = await self.pool.acquire(timeout=self.acquire_timeout)
        conn_token = self._current_connection.set(conn)
        try:
            yield conn
        finally:
            self._current_connection.reset(conn_token)
            await self.pool.release(conn)

    @asynccontextmanager
    async def transaction(
        self, track_queries: bool = False
    ) -> AsyncIterator[asyncpg.Connection]:
        """Run the block in a transaction.

        Within an existing transaction this opens a savepoint on the same
        connection, so a failed statement inside it rolls back only the
        savepoint and the outer transaction stays usable.

        Args:
            track_queries: Whether to enable query tracking for this transaction
        """
        current_conn = self._current_connection.get()
        if current_conn is not None:
            async with current_conn.transaction():
                with self._tracking(track_queries):
                    yield current_conn
            return

        async with self.connection() as conn, conn.transaction():
            with self._tracking(track_queries):
                yield conn

    @contextmanager
    def _tracking(self, enabled: bool) -> Iterator[None]:
        """Install a fresh tracker for the block unless one is already active"""
        tracker_token = None
        if enabled and self._query_tracker.get() is None:
            tracker = QueryTracker()
            tracker.enable()
            tracker_token = self._query_tracker.set(tracker)
        try:
            yield
        finally:
            if tracker_token:
                self._query_tracker.reset(tracker_token)

    @asynccontextmanager
    async def track_queries(self) -> AsyncIterator[QueryTracker]:
        """Record every query issued through this database inside the block.

        async with database.track_queries() as tracker:
            await repo.find_by_id(some_id)
            queries = tracker.get_queries()
        """
        current_tracker = self._query_tracker.get()

        if current_tracker:
            was_enabled = current_tracker.is_enabled()
            current_tracker.enable()
            try:
                yield current_tracker
            finally:
                if not was_enabled:
                    current_tracker.disable()
        else:
            tracker = QueryTracker()
            tracker.enable()
            token = self._query_tracker.set(tracker)
            try:
                yield tracker
            finally:
                self._query_tracker.reset(token)

    async def ping(self) -> bool:
        """Health check: True when the store answers a trivial query."""
        async with self.connection() as conn:
            with translate_store_errors("Health check"):
                return await conn.fetchval("SELECT 1", timeout=self.command_timeout) == 1
