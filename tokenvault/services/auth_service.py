"""Registration and authentication flows."""

import re
import secrets
from typing import Optional

import structlog

from tokenvault.models.results import AuthError, Ok, Result, fail
from tokenvault.models.user import User
from tokenvault.services.credential_store import Conflict, CredentialStore
from tokenvault.services.password_hasher import PasswordHasher

logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 8

_LOCAL_PART = (
    r"""(?:[a-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[a-z0-9!#$%&'*+/=?^_`{|}~-]+)*"""
    r"""|"(?:[\x01-\x08\x0b\x0c\x0e-\x1f\x21\x23-\x5b\x5d-\x7f]"""
    r"""|\\[\x01-\x09\x0b\x0c\x0e-\x7f])*")"""
)
_DOMAIN = (
    r"""(?:(?:[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.)+[a-z0-9](?:[a-z0-9-]*[a-z0-9])?"""
    r"""|\[(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"""
    r"""(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?|[a-z0-9-]*[a-z0-9]:"""
    r"""(?:[\x01-\x08\x0b\x0c\x0e-\x1f\x21-\x5a\x53-\x7f]"""
    r"""|\\[\x01-\x09\x0b\x0c\x0e-\x7f])+)\])"""
)
# The character classes above are written lower case; upper-case letters are
# valid in both parts. Stored addresses keep their case and match exactly.
EMAIL_PATTERN = re.compile(_LOCAL_PART + "@" + _DOMAIN, re.IGNORECASE)


def is_valid_email(email: str) -> bool:
    """Check an address against the RFC 5322 derived pattern."""
    return EMAIL_PATTERN.fullmatch(email) is not None


class AuthService:
    """Registers users and checks login credentials.

    Both flows return tagged results. Store and hasher exceptions are logged
    here and reported as ``INTERNAL_ERROR``; the password hash never leaves
    this class.
    """

    def __init__(self, store: CredentialStore, hasher: PasswordHasher):
        self.store = store
        self.hasher = hasher
        self._dummy_hash: Optional[str] = None

    async def register(
        self,
        email: Optional[str],
        password: Optional[str],
        password_confirmation: Optional[str],
    ) -> Result[User]:
        """Validate input, hash the password and create the user.

        Checks run in order and the first failure wins: missing fields,
        email format, password length, confirmation match, hashing, insert.

        Returns:
            Ok with the new user's identity, or a Failure
        """
        if email is None or password is None or password_confirmation is None:
            return fail(AuthError.INVALID_INPUT)

        if not is_valid_email(email):
            return fail(AuthError.INVALID_EMAIL)

        if len(password) < MIN_PASSWORD_LENGTH:
            return fail(AuthError.WEAK_PASSWORD)

        if password != password_confirmation:
            return fail(AuthError.PASSWORD_MISMATCH)

        try:
            password_hash = await self.hasher.hash_password(password)
        except Exception:
            logger.exception("hash_failure", operation="register")
            return fail(AuthError.INTERNAL_ERROR)

        try:
            result = await self.store.insert_user(email, password_hash)
        except Exception:
            logger.exception("store_failure", operation="insert_user")
            return fail(AuthError.INTERNAL_ERROR)

        if isinstance(result, Conflict):
            logger.info("registration_rejected", reason="duplicate_email")
            return fail(AuthError.DUPLICATE_EMAIL)

        logger.info("user_registered", user_id=str(result.user.id), email=result.user.email)
        return Ok(result.user)

    async def authenticate(
        self, email: Optional[str], password: Optional[str]
    ) -> Result[User]:
        """Check an email/password pair.

        An unknown email and a wrong password produce the same
        ``INVALID_CREDENTIALS`` failure, and both cost one hash verification.

        Returns:
            Ok with the user's identity, or a Failure
        """
        if email is None or password is None:
            return fail(AuthError.INVALID_INPUT)

        try:
            record = await self.store.get_user_by_email(email)
        except Exception:
            logger.exception("store_failure", operation="get_user_by_email")
            return fail(AuthError.INTERNAL_ERROR)

        try:
            if record is None:
                await self.hasher.verify_password(password, await self._get_dummy_hash())
                matches = False
            else:
                matches = await self.hasher.verify_password(password, record.password_hash)
        except Exception:
            logger.exception("hash_failure", operation="authenticate")
            return fail(AuthError.INTERNAL_ERROR)

        if not matches:
            logger.info("login_rejected")
            return fail(AuthError.INVALID_CREDENTIALS)

        return Ok(User(id=record.id, email=record.email))

    async def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = await self.hasher.hash_password(secrets.token_urlsafe(16))
        return self._dummy_hash
