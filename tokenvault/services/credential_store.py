"""Persistence of users and their single current refresh session.

Two backends implement the same interface: Postgres (asyncpg) for
deployments and an in-process store for development and tests. In both,
replacing or rotating a refresh session is a single atomic step, so at most
one session row exists per user and the last successful writer wins.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Union
from uuid import UUID, uuid4

import asyncpg
import structlog

from tokenvault.config import Settings
from tokenvault.models.user import RefreshSession, User, UserRecord

logger = structlog.get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"

POOL_MIN_SIZE = 2
POOL_MAX_SIZE = 10
COMMAND_TIMEOUT_SECONDS = 60


@dataclass(frozen=True)
class Inserted:
    user: User


@dataclass(frozen=True)
class Conflict:
    """The email is already registered."""

    email: str


InsertResult = Union[Inserted, Conflict]


class CredentialStore(ABC):
    """Storage interface used by the auth flows."""

    @abstractmethod
    async def insert_user(self, email: str, password_hash: str) -> InsertResult:
        """Create a user; returns Conflict instead of raising on a duplicate email."""

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        """Exact (case-sensitive) email lookup."""

    @abstractmethod
    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        ...

    @abstractmethod
    async def get_refresh_session(self, user_id: UUID) -> Optional[RefreshSession]:
        ...

    @abstractmethod
    async def replace_refresh_session(self, user_id: UUID, token: str) -> None:
        """Atomically drop any existing session for the user and store ``token``."""

    @abstractmethod
    async def rotate_refresh_session(
        self, user_id: UUID, presented_token: str, new_token: str
    ) -> bool:
        """Swap the stored token for ``new_token`` only if it equals ``presented_token``.

        Returns:
            True if the session was rotated, False if the stored token differs
            or no session exists
        """

    @abstractmethod
    async def delete_refresh_session(self, user_id: UUID) -> bool:
        """Delete the user's session. Returns False if there was none."""

    async def ping(self) -> bool:
        """Report whether the backend can serve requests."""
        return True

    async def close(self) -> None:
        """Release backend resources."""


class PostgresCredentialStore(CredentialStore):
    """Credential store backed by an asyncpg pool it owns.

    Build one with :meth:`connect`; :meth:`close` releases the pool.
    """

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    @classmethod
    async def connect(cls, settings: Settings) -> "PostgresCredentialStore":
        """Open a connection pool to ``settings.postgres_url``."""
        try:
            pool = await asyncpg.create_pool(
                settings.postgres_url,
                min_size=POOL_MIN_SIZE,
                max_size=POOL_MAX_SIZE,
                command_timeout=COMMAND_TIMEOUT_SECONDS,
            )
        except Exception as e:
            logger.error("store_pool_creation_failed", error=str(e))
            raise

        logger.info("store_pool_created", min_size=POOL_MIN_SIZE, max_size=POOL_MAX_SIZE)
        return cls(pool)

    async def migrate(self, migrations_dir: Path = MIGRATIONS_DIR) -> int:
        """Apply the schema files in name order.

        Every file is written with IF NOT EXISTS, so startup may re-run them.

        Returns:
            Number of files applied
        """
        migration_files = sorted(migrations_dir.glob("*.sql"))
        if not migration_files:
            logger.warning("no_migrations_found", path=str(migrations_dir))
            return 0

        async with self._pool.acquire() as conn:
            for migration_file in migration_files:
                try:
                    await conn.execute(migration_file.read_text())
                except Exception as e:
                    logger.error("migration_failed", file=migration_file.name, error=str(e))
                    raise
                logger.info("migration_applied", file=migration_file.name)

        return len(migration_files)

    async def ping(self) -> bool:
        try:
            async with self._pool.acquire() as conn:
                return await conn.fetchval("SELECT 1") == 1
        except Exception as e:
            logger.error("store_health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        await self._pool.close()
        logger.info("store_pool_closed")

    async def insert_user(self, email: str, password_hash: str) -> InsertResult:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO users (email, password_hash)
                VALUES ($1, $2)
                ON CONFLICT (email) DO NOTHING
                RETURNING id, email
                """,
                email,
                password_hash,
            )

        if row is None:
            return Conflict(email=email)

        return Inserted(user=User(id=row["id"], email=row["email"]))

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT id, email, password_hash
                FROM users
                WHERE email = $1
                """,
                email,
            )

        if row is None:
            return None

        return UserRecord(
            id=row["id"],
            email=row["email"],
            password_hash=row["password_hash"],
        )

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT id, email FROM users WHERE id = $1",
                user_id,
            )

        if row is None:
            return None

        return User(id=row["id"], email=row["email"])

    async def get_refresh_session(self, user_id: UUID) -> Optional[RefreshSession]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT user_id, token, created_at, updated_at
                FROM refresh_sessions
                WHERE user_id = $1
                """,
                user_id,
            )

        if row is None:
            return None

        return RefreshSession(
            user_id=row["user_id"],
            token=row["token"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def replace_refresh_session(self, user_id: UUID, token: str) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO refresh_sessions (user_id, token, created_at, updated_at)
                VALUES ($1, $2, NOW(), NOW())
                ON CONFLICT (user_id)
                DO UPDATE SET token = EXCLUDED.token, created_at = NOW(), updated_at = NOW()
                """,
                user_id,
                token,
            )

    async def rotate_refresh_session(
        self, user_id: UUID, presented_token: str, new_token: str
    ) -> bool:
        async with self._pool.acquire() as conn:
            result = await conn.execute(
                """
                UPDATE refresh_sessions
                SET token = $3, updated_at = NOW()
                WHERE user_id = $1 AND token = $2
                """,
                user_id,
                presented_token,
                new_token,
            )

        return result == "UPDATE 1"

    async def delete_refresh_session(self, user_id: UUID) -> bool:
        async with self._pool.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM refresh_sessions WHERE user_id = $1",
                user_id,
            )

        return result == "DELETE 1"


class InMemoryCredentialStore(CredentialStore):
    """Process-local store.

    No method awaits between reading and writing its tables, so each
    operation is atomic with respect to other coroutines on the loop.
    """

    def __init__(self):
        self._users: Dict[UUID, UserRecord] = {}
        self._ids_by_email: Dict[str, UUID] = {}
        self._sessions: Dict[UUID, RefreshSession] = {}

    async def insert_user(self, email: str, password_hash: str) -> InsertResult:
        if email in self._ids_by_email:
            return Conflict(email=email)

        record = UserRecord(id=uuid4(), email=email, password_hash=password_hash)
        self._users[record.id] = record
        self._ids_by_email[email] = record.id
        return Inserted(user=User(id=record.id, email=record.email))

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        user_id = self._ids_by_email.get(email)
        if user_id is None:
            return None
        return self._users[user_id]

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        record = self._users.get(user_id)
        if record is None:
            return None
        return User(id=record.id, email=record.email)

    async def get_refresh_session(self, user_id: UUID) -> Optional[RefreshSession]:
        return self._sessions.get(user_id)

    async def replace_refresh_session(self, user_id: UUID, token: str) -> None:
        now = datetime.now(timezone.utc)
        self._sessions[user_id] = RefreshSession(
            user_id=user_id, token=token, created_at=now, updated_at=now
        )

    async def rotate_refresh_session(
        self, user_id: UUID, presented_token: str, new_token: str
    ) -> bool:
        current = self._sessions.get(user_id)
        if current is None or current.token != presented_token:
            return False

        self._sessions[user_id] = current.model_copy(
            update={"token": new_token, "updated_at": datetime.now(timezone.utc)}
        )
        return True

    async def delete_refresh_session(self, user_id: UUID) -> bool:
        return self._sessions.pop(user_id, None) is not None
