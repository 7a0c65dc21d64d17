"""Password hashing with bcrypt on a bounded worker pool."""

import asyncio
import base64
import hashlib
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import bcrypt
import structlog

from tokenvault.config import Settings

logger = structlog.get_logger(__name__)


class PasswordHasher:
    """Salted one-way password hashing.

    bcrypt is CPU-bound, so both operations run on a dedicated thread pool
    of ``settings.hash_workers`` threads and are awaited from the event loop.
    """

    def __init__(self, settings: Settings, executor: Optional[ThreadPoolExecutor] = None):
        self._rounds = settings.bcrypt_rounds
        self._executor = executor or ThreadPoolExecutor(
            max_workers=settings.hash_workers,
            thread_name_prefix="password-hash",
        )

    @staticmethod
    def _prehash(password: str) -> bytes:
        # bcrypt rejects input over 72 bytes; the encoded digest is always 44
        digest = hashlib.sha256(password.encode("utf-8")).digest()
        return base64.b64encode(digest)

    def _hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(self._prehash(password), salt).decode("utf-8")

    @classmethod
    def _verify(cls, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(cls._prehash(password), password_hash.encode("utf-8"))
        except ValueError:
            # Stored value is not a bcrypt hash
            return False

    async def hash_password(self, password: str) -> str:
        """Hash a password with a fresh salt.

        Args:
            password: Plain-text password to hash

        Returns:
            Bcrypt hash string
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._hash, password)

    async def verify_password(self, password: str, password_hash: str) -> bool:
        """Constant-time check of a password against a bcrypt hash.

        Returns:
            True if the password matches, False otherwise
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor, self._verify, password, password_hash
        )

    def shutdown(self) -> None:
        """Stop the worker pool, waiting for in-flight hashes."""
        self._executor.shutdown(wait=True)
        logger.info("password_hasher_stopped")
