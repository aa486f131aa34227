"""SQLite user store adapter.

Implements UserStorePort using SQLite with aiosqlite for async access.
Provides ACID guarantees per statement with zero operational overhead.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TypeVar

import aiosqlite

from userhub.adapters.store.errors import classify_store_error
from userhub.core.errors import DomainError, not_found_error
from userhub.core.models import User
from userhub.core.ports import UserStorePort

logger = logging.getLogger(__name__)

T = TypeVar("T")

USER_NOT_FOUND = "user_not_found"

_USER_COLUMNS = "id, name, email, created_at, updated_at"


class SQLiteUserStore(UserStorePort):
    """SQLite-backed user store with connection pooling and async access."""

    def __init__(
        self,
        db_path: str,
        pool_size: int = 5,
        statement_timeout_seconds: float = 5.0,
    ):
        """Initialize SQLite store with connection pooling.

        Args:
            db_path: Path to SQLite database file.
            pool_size: Number of connections to maintain in the pool.
            statement_timeout_seconds: Upper bound for each store operation.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._pool: list[aiosqlite.Connection] = []
        self._pool_lock = asyncio.Lock()
        self._schema_lock = asyncio.Lock()
        self._pool_size = pool_size
        self._statement_timeout = statement_timeout_seconds
        self._schema_initialized = False
        self._closing: set[asyncio.Task[None]] = set()

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get a connection from the pool or create a new one.

        New connections wait for locks no longer than the statement timeout.
        """
        async with self._pool_lock:
            if self._pool:
                return self._pool.pop()
        return await aiosqlite.connect(
            str(self.db_path), timeout=self._statement_timeout
        )

    async def _return_connection(self, conn: aiosqlite.Connection) -> None:
        """Return a connection to the pool."""
        async with self._pool_lock:
            if len(self._pool) < self._pool_size:
                self._pool.append(conn)
                return
        await conn.close()

    async def _discard_connection(
        self, conn: aiosqlite.Connection, interrupt: bool = False
    ) -> None:
        """Close a connection whose state is unknown after a failure.

        The close is queued behind whatever the connection's worker thread
        is still running, so it happens in a background task that close()
        waits for. With interrupt set, the running statement is aborted
        first.
        """
        if interrupt:
            try:
                await conn.interrupt()
            except Exception as e:
                logger.debug(f"Error interrupting SQLite connection: {e}")

        task = asyncio.create_task(self._close_quietly(conn))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    @staticmethod
    async def _close_quietly(conn: aiosqlite.Connection) -> None:
        try:
            await conn.close()
        except Exception as e:
            logger.debug(f"Error closing discarded SQLite connection: {e}")

    async def close(self) -> None:
        """Close all pooled connections and wait for discarded ones."""
        async with self._pool_lock:
            for conn in self._pool:
                await conn.close()
            self._pool.clear()
        if self._closing:
            await asyncio.gather(*self._closing)

    async def _init_schema(self) -> None:
        """Initialize database schema on first use.

        Only runs once per instance. Subsequent calls are no-ops.
        """
        if self._schema_initialized:
            return

        async with self._schema_lock:
            # Check again after acquiring lock to prevent race
            if self._schema_initialized:
                return

            conn = await self._get_connection()
            try:
                await conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS users (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        email TEXT NOT NULL UNIQUE,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                    """
                )
                await conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_users_created_at "
                    "ON users(created_at DESC)"
                )
                await conn.commit()
                self._schema_initialized = True
            finally:
                await self._return_connection(conn)

    async def _run(
        self,
        operation: str,
        work: Callable[[aiosqlite.Connection], Awaitable[T]],
    ) -> T:
        """Run one store operation on a pooled connection.

        The operation is bounded by the statement timeout. Raw driver
        failures are classified into DomainErrors here and nowhere else.
        A connection that saw a failure or a cancellation is closed rather
        than returned to the pool, and the caller does not wait for it.
        """
        # A task that is already cancelled stops here, before any statement
        await asyncio.sleep(0)

        try:
            await self._init_schema()
            conn = await self._get_connection()
        except Exception as e:
            raise classify_store_error(e, operation) from e

        try:
            result = await asyncio.wait_for(work(conn), self._statement_timeout)
        except DomainError:
            await self._return_connection(conn)
            raise
        except Exception as e:
            await self._discard_connection(
                conn, interrupt=isinstance(e, (asyncio.TimeoutError, TimeoutError))
            )
            error = classify_store_error(e, operation)
            logger.warning(
                f"SQLite {operation} failed: {e}",
                extra={"operation": operation, "kind": error.kind.name},
            )
            raise error from e
        except asyncio.CancelledError:
            await self._discard_connection(conn, interrupt=True)
            raise

        await self._return_connection(conn)
        return result

    async def create(self, user: User) -> None:
        """Insert a new user row."""

        async def work(conn: aiosqlite.Connection) -> None:
            await conn.execute(
                f"INSERT INTO users ({_USER_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                (
                    user.id,
                    user.name,
                    user.email,
                    _format_timestamp(user.created_at),
                    _format_timestamp(user.updated_at),
                ),
            )
            await conn.commit()

        await self._run("create", work)

    async def get_by_id(self, user_id: str) -> User:
        """Look up a user by id."""
        return await self._fetch_one(
            "get_by_id", "id", user_id, f"user {user_id} not found"
        )

    async def get_by_email(self, email: str) -> User:
        """Look up a user by email."""
        return await self._fetch_one(
            "get_by_email", "email", email, "user not found by email"
        )

    async def _fetch_one(
        self, operation: str, column: str, value: str, missing: str
    ) -> User:
        async def work(conn: aiosqlite.Connection) -> User:
            cursor = await conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE {column} = ?", (value,)
            )
            row = await cursor.fetchone()
            if row is None:
                raise not_found_error(missing, code=USER_NOT_FOUND)
            return self._row_to_user(row)

        return await self._run(operation, work)

    async def update(self, user: User) -> None:
        """Update name, email and updated_at of an existing user."""

        async def work(conn: aiosqlite.Connection) -> None:
            cursor = await conn.execute(
                """
                UPDATE users
                SET name = ?, email = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    user.name,
                    user.email,
                    _format_timestamp(user.updated_at),
                    user.id,
                ),
            )
            await conn.commit()
            if cursor.rowcount == 0:
                raise not_found_error(
                    f"user {user.id} not found", code=USER_NOT_FOUND
                )

        await self._run("update", work)

    async def delete(self, user_id: str) -> None:
        """Physically delete a user row."""

        async def work(conn: aiosqlite.Connection) -> None:
            cursor = await conn.execute(
                "DELETE FROM users WHERE id = ?", (user_id,)
            )
            await conn.commit()
            if cursor.rowcount == 0:
                raise not_found_error(
                    f"user {user_id} not found", code=USER_NOT_FOUND
                )

        await self._run("delete", work)

    def _row_to_user(self, row: tuple[Any, ...]) -> User:
        """Convert a database row to a User object.

        Raises:
            ValueError: If row is malformed or contains invalid data.
        """
        try:
            if not row or len(row) != 5:
                raise ValueError(
                    f"Invalid row length: expected 5, got {len(row) if row else 0}"
                )

            user_id, name, email, created_at, updated_at = row

            if not user_id or not email:
                raise ValueError("Missing required fields: id or email")

            try:
                created_at_dt = datetime.fromisoformat(created_at)
                updated_at_dt = datetime.fromisoformat(updated_at)
            except (ValueError, TypeError) as e:
                raise ValueError(f"Invalid date format: {e}") from e

            return User(
                id=user_id,
                name=name,
                email=email,
                created_at=created_at_dt,
                updated_at=updated_at_dt,
            )

        except ValueError as e:
            logger.error(f"Failed to parse database row: {e}")
            raise ValueError(f"Row parsing failed: {e}") from e

    async def list(self, limit: int, offset: int) -> list[User]:
        """Return one page of users, newest created_at first."""

        async def work(conn: aiosqlite.Connection) -> list[User]:
            cursor = await conn.execute(
                f"""
                SELECT {_USER_COLUMNS} FROM users
                ORDER BY created_at DESC, id DESC
                LIMIT ? OFFSET ?
                """,
                (limit, offset),
            )
            rows = await cursor.fetchall()
            return [self._row_to_user(row) for row in rows]

        return await self._run("list", work)


def _format_timestamp(value: datetime) -> str:
    """Serialize a timestamp so that text order matches time order."""
    return value.astimezone(UTC).isoformat(timespec="microseconds")
