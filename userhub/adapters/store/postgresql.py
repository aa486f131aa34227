"""PostgreSQL user store adapter.

Implements UserStorePort using PostgreSQL with asyncpg for async access.
Unique violations are recognised from asyncpg's structured SQLSTATE, and
UPDATE/DELETE affected-row counts are read from the command status tag.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import asyncpg

from userhub.adapters.store.errors import classify_store_error
from userhub.core.errors import DomainError, not_found_error
from userhub.core.models import User
from userhub.core.ports import UserStorePort

logger = logging.getLogger(__name__)

T = TypeVar("T")

USER_NOT_FOUND = "user_not_found"

_USER_COLUMNS = "id, name, email, created_at, updated_at"


def affected_rows(status: str) -> int:
    """Parse the row count from an asyncpg command status such as "UPDATE 1".

    Raises:
        ValueError: If the status carries no row count.
    """
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Unexpected command status: {status!r}") from e


class PostgreSQLUserStore(UserStorePort):
    """PostgreSQL-backed user store with connection pooling and async access."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "userhub",
        user: str = "postgres",
        password: str = "",
        sslmode: str = "disable",
        pool_size: int = 10,
        statement_timeout_seconds: float = 5.0,
    ):
        """Initialize PostgreSQL store with connection pooling.

        Args:
            host: PostgreSQL server hostname.
            port: PostgreSQL server port.
            database: Database name.
            user: Database user.
            password: Database password.
            sslmode: libpq-style SSL mode ("disable", "require", ...).
            pool_size: Number of connections to maintain in the pool.
            statement_timeout_seconds: Upper bound for each statement.
        """
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.sslmode = sslmode
        self._pool: asyncpg.Pool | None = None
        self._pool_size = pool_size
        self._statement_timeout = statement_timeout_seconds
        self._pool_lock = asyncio.Lock()
        self._schema_lock = asyncio.Lock()
        self._schema_initialized = False

    async def _init_pool(self) -> asyncpg.Pool:
        """Initialize the connection pool on first use."""
        if self._pool is not None:
            return self._pool

        async with self._pool_lock:
            if self._pool is None:
                self._pool = await asyncpg.create_pool(
                    host=self.host,
                    port=self.port,
                    database=self.database,
                    user=self.user,
                    password=self.password,
                    ssl=self.sslmode,
                    min_size=1,
                    max_size=self._pool_size,
                    timeout=self._statement_timeout,
                )
        return self._pool

    async def close(self) -> None:
        """Close all pooled connections."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

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

            pool = await self._init_pool()
            async with pool.acquire() as conn:
                await conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS users (
                        id TEXT PRIMARY KEY,
                        name VARCHAR(255) NOT NULL,
                        email VARCHAR(255) NOT NULL UNIQUE,
                        created_at TIMESTAMPTZ NOT NULL,
                        updated_at TIMESTAMPTZ NOT NULL
                    )
                    """
                )
                await conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_users_created_at "
                    "ON users(created_at DESC)"
                )
            self._schema_initialized = True

    async def _run(
        self,
        operation: str,
        work: Callable[[asyncpg.Connection], Awaitable[T]],
    ) -> T:
        """Run one store operation on a pooled connection.

        Raw driver failures, including statement timeouts, are classified
        into DomainErrors here. Cancellation propagates unchanged; asyncpg
        resets the connection when it is released.
        """
        try:
            await self._init_schema()
            pool = await self._init_pool()
            async with pool.acquire(timeout=self._statement_timeout) as conn:
                return await work(conn)
        except DomainError:
            raise
        except Exception as e:
            error = classify_store_error(e, operation)
            logger.warning(
                f"PostgreSQL {operation} failed: {e}",
                extra={"operation": operation, "kind": error.kind.name},
            )
            raise error from e

    async def create(self, user: User) -> None:
        """Insert a new user row."""

        async def work(conn: asyncpg.Connection) -> None:
            await conn.execute(
                f"INSERT INTO users ({_USER_COLUMNS}) VALUES ($1, $2, $3, $4, $5)",
                user.id,
                user.name,
                user.email,
                user.created_at,
                user.updated_at,
                timeout=self._statement_timeout,
            )

        await self._run("create", work)

    async def get_by_id(self, user_id: str) -> User:
        """Look up a user by id."""

        async def work(conn: asyncpg.Connection) -> User:
            row = await conn.fetchrow(
                f"SELECT {_USER_COLUMNS} FROM users WHERE id = $1",
                user_id,
                timeout=self._statement_timeout,
            )
            if row is None:
                raise not_found_error(
                    f"user {user_id} not found", code=USER_NOT_FOUND
                )
            return self._row_to_user(row)

        return await self._run("get_by_id", work)

    async def get_by_email(self, email: str) -> User:
        """Look up a user by email."""

        async def work(conn: asyncpg.Connection) -> User:
            row = await conn.fetchrow(
                f"SELECT {_USER_COLUMNS} FROM users WHERE email = $1",
                email,
                timeout=self._statement_timeout,
            )
            if row is None:
                raise not_found_error("user not found by email", code=USER_NOT_FOUND)
            return self._row_to_user(row)

        return await self._run("get_by_email", work)

    async def update(self, user: User) -> None:
        """Update name, email and updated_at of an existing user."""

        async def work(conn: asyncpg.Connection) -> None:
            status = await conn.execute(
                """
                UPDATE users
                SET name = $2, email = $3, updated_at = $4
                WHERE id = $1
                """,
                user.id,
                user.name,
                user.email,
                user.updated_at,
                timeout=self._statement_timeout,
            )
            if affected_rows(status) == 0:
                raise not_found_error(
                    f"user {user.id} not found", code=USER_NOT_FOUND
                )

        await self._run("update", work)

    async def delete(self, user_id: str) -> None:
        """Physically delete a user row."""

        async def work(conn: asyncpg.Connection) -> None:
            status = await conn.execute(
                "DELETE FROM users WHERE id = $1",
                user_id,
                timeout=self._statement_timeout,
            )
            if affected_rows(status) == 0:
                raise not_found_error(
                    f"user {user_id} not found", code=USER_NOT_FOUND
                )

        await self._run("delete", work)

    def _row_to_user(self, row: Any) -> User:
        """Convert a database row to a User object.

        Raises:
            ValueError: If row is malformed or contains invalid data.
        """
        try:
            user_id = row["id"]
            email = row["email"]

            if not user_id or not email:
                raise ValueError("Missing required fields: id or email")

            return User(
                id=str(user_id),
                name=row["name"],
                email=email,
                created_at=row["created_at"],
                updated_at=row["updated_at"],
            )

        except ValueError as e:
            logger.error(f"Failed to parse database row: {e}", exc_info=True)
            raise
        except Exception as e:
            logger.error(f"Unexpected error parsing database row: {e}", exc_info=True)
            raise ValueError(f"Row parsing failed: {e}") from e

    async def list(self, limit: int, offset: int) -> list[User]:
        """Return one page of users, newest created_at first."""

        async def work(conn: asyncpg.Connection) -> list[User]:
            rows = await conn.fetch(
                f"""
                SELECT {_USER_COLUMNS} FROM users
                ORDER BY created_at DESC, id DESC
                LIMIT $1 OFFSET $2
                """,
                limit,
                offset,
                timeout=self._statement_timeout,
            )
            return [self._row_to_user(row) for row in rows]

        return await self._run("list", work)
