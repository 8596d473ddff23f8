"""SQLite database backend."""

import asyncio
import re
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from mono_core.protocols.database import Row

PARAM_RE = re.compile(r":(\w+)")


def _to_positional(query: str) -> tuple[str, list[str]]:
    """Rewrite :name placeholders to ? and return the names in order."""
    names: list[str] = []

    def replace_param(match: re.Match[str]) -> str:
        names.append(match.group(1))
        return "?"

    return PARAM_RE.sub(replace_param, query), names


class SQLiteDatabase:
    """SQLite database backend.

    Suitable for development, tests and single-node deployments.
    Wraps sqlite3 behind an asyncio lock so callers can share one
    connection across tasks.
    """

    def __init__(
        self,
        path: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize SQLite database.

        Args:
            path: Path to SQLite database file. Defaults to ./data/mono.db
                  Use ":memory:" for in-memory database.
            **kwargs: Ignored (for compatibility with other backends)
        """
        if path == ":memory:":
            self.path: str | Path = ":memory:"
        else:
            self.path = Path(path) if path else Path("./data/mono.db")
            self.path.parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()
        self._in_transaction = False

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    async def execute(
        self,
        query: str,
        params: dict[str, Any] | None = None,
    ) -> list[Row]:
        """Execute a query and return results."""
        async with self._lock:
            conn = self._get_connection()

            if params:
                query, names = _to_positional(query)
                param_values = tuple(params[name] for name in names)
            else:
                param_values = ()

            cursor = conn.execute(query, param_values)
            rows = cursor.fetchall()

            # Only auto-commit if not in a transaction
            if not self._in_transaction:
                conn.commit()

            return [Row(_data=dict(row)) for row in rows]

    async def execute_many(
        self,
        query: str,
        params_list: list[dict[str, Any]],
    ) -> None:
        """Execute a query multiple times with different parameters."""
        if not params_list:
            return

        async with self._lock:
            conn = self._get_connection()
            query, names = _to_positional(query)
            conn.executemany(query, [tuple(p[name] for name in names) for p in params_list])

            if not self._in_transaction:
                conn.commit()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SQLiteDatabase"]:
        """Start a transaction.

        Note: SQLite doesn't support nested transactions, so an inner
        transaction joins the outer one.
        """
        if self._in_transaction:
            yield self
            return

        conn = self._get_connection()
        self._in_transaction = True
        try:
            yield self
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._in_transaction = False

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
