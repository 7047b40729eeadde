"""
PostgreSQL query executor for the Catalog service.
"""

import asyncio
import time
import uuid
from datetime import date, datetime, time as dt_time
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING

import asyncpg

from shared.errors import DatabaseError
from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


_MISSING_RELATION_CODES = {"42P01", "42P02", "42703"}
_CONNECTION_ERRORS = (asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


def classify_database_error(exc: BaseException, operation: str) -> DatabaseError:
    """Map a driver exception onto a DatabaseError with a stable ``kind``."""
    db_code = getattr(exc, "sqlstate", None)

    if db_code and db_code.startswith("23"):
        return DatabaseError(
            "Database constraint violated",
            kind=DatabaseError.CONSTRAINT_VIOLATION,
            db_code=db_code,
            operation=operation,
            original=exc,
        )

    if db_code in _MISSING_RELATION_CODES:
        return DatabaseError(
            "Database relation not found",
            kind=DatabaseError.MISSING_RELATION,
            db_code=db_code,
            operation=operation,
            original=exc,
        )

    # Argument encoding failures (asyncpg DataError) are also InterfaceErrors.
    if isinstance(exc, ValueError):
        return DatabaseError(
            f"Database operation failed: {operation}",
            kind=DatabaseError.QUERY_FAILED,
            db_code=db_code,
            operation=operation,
            original=exc,
        )

    if (db_code and db_code.startswith("08")) or isinstance(exc, _CONNECTION_ERRORS):
        return DatabaseError(
            "Database connection failed",
            kind=DatabaseError.CONNECTION_FAILURE,
            db_code=db_code,
            operation=operation,
            original=exc,
        )

    return DatabaseError(
        f"Database operation failed: {operation}",
        kind=DatabaseError.QUERY_FAILED,
        db_code=db_code,
        operation=operation,
        original=exc,
    )


def to_json_value(value: Any) -> Any:
    """Convert driver values to JSON-native types."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date, dt_time)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [to_json_value(item) for item in value]
    return value


def record_to_dict(record: Any) -> Dict[str, Any]:
    """Convert an asyncpg Record (or mapping) into a JSON-friendly dict."""
    return {key: to_json_value(value) for key, value in record.items()}


class PostgresQueryExecutor:
    """Runs parameterized queries against PostgreSQL through an asyncpg pool."""

    def __init__(
        self,
        dsn: str,
        *,
        min_size: int = 5,
        max_size: int = 50,
        command_timeout: float = 30.0,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self.metrics = metrics
        self.logger = get_logger("catalog.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Create the connection pool."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout
            )
            self.logger.info(
                "PostgreSQL pool started",
                min_size=self.min_size,
                max_size=self.max_size
            )
        except Exception as e:
            error = classify_database_error(e, "create_pool")
            self.logger.error(
                "Failed to start PostgreSQL pool",
                error=str(e),
                db_code=error.db_code,
                kind=error.kind
            )
            raise error from e

    async def stop(self):
        """Close the connection pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL pool stopped")

    async def execute(
        self,
        query: str,
        params: Sequence[Any] = (),
        *,
        operation: str = "query",
    ) -> List[Dict[str, Any]]:
        """
        Execute a parameterized query and return its rows as dicts.

        Raises DatabaseError on any store fault; nothing is retried here.
        """
        if self.pool is None:
            raise DatabaseError(
                "Database pool is not initialised",
                kind=DatabaseError.CONNECTION_FAILURE,
                operation=operation,
            )

        snippet = " ".join(query.split())[:100]
        self.logger.debug("Executing database query", operation=operation, query=snippet, params=list(params))
        start = time.perf_counter()

        try:
            async with self.pool.acquire() as conn:
                records = await conn.fetch(query, *params)
        except (asyncpg.PostgresError, *_CONNECTION_ERRORS) as e:
            error = classify_database_error(e, operation)
            self.logger.error(
                "Database query failed",
                operation=operation,
                query=snippet,
                params=list(params),
                kind=error.kind,
                db_code=error.db_code,
                error=str(e)
            )
            self._record_query(operation, "error", time.perf_counter() - start)
            raise error from e

        duration = time.perf_counter() - start
        self._record_query(operation, "ok", duration)
        self.logger.debug(
            "Database query completed",
            operation=operation,
            row_count=len(records),
            duration_ms=round(duration * 1000, 2)
        )
        return [record_to_dict(record) for record in records]

    async def health_check(self) -> bool:
        """Check database health."""
        if self.pool is None:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except Exception as e:
            self.logger.warning("Database health check failed", error=str(e))
            return False

    def _record_query(self, operation: str, status: str, duration: float) -> None:
        if not self.metrics:
            return
        self.metrics.increment_counter("db_queries_total", operation=operation, status=status)
        self.metrics.observe_histogram("db_query_duration_seconds", duration, operation=operation)
