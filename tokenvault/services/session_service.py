"""Session issuance, refresh-token rotation and logout."""

from typing import Optional
from uuid import UUID

import structlog

from tokenvault.config import Settings
from tokenvault.models.results import (
    SUPERSEDED_MESSAGE,
    AuthError,
    Failure,
    Ok,
    Result,
    fail,
)
from tokenvault.models.user import SessionTokens, User
from tokenvault.services.credential_store import CredentialStore
from tokenvault.services.token_codec import (
    BadSignature,
    ExpiredToken,
    TokenCodec,
    TokenError,
    TokenType,
    WrongTokenType,
)

logger = structlog.get_logger(__name__)


def _rejection_reason(error: TokenError) -> str:
    if isinstance(error, WrongTokenType):
        return "wrong_type"
    if isinstance(error, ExpiredToken):
        return "expired"
    if isinstance(error, BadSignature):
        return "bad_signature"
    return "malformed"


class SessionService:
    """Mints token pairs and keeps exactly one refresh session per user.

    Issuing a session replaces whatever session the user had. Refreshing
    requires the presented token to verify and to equal the stored one;
    the stored token is then swapped for the new one in a single
    compare-and-swap, so a token that lost a race is treated as superseded.
    """

    def __init__(self, store: CredentialStore, codec: TokenCodec, settings: Settings):
        self.store = store
        self.codec = codec
        self.access_lifetime = settings.access_token_lifetime
        self.refresh_lifetime = settings.refresh_token_lifetime

    def create_access_token(self, identity: User) -> str:
        return self.codec.sign(identity, self.access_lifetime, TokenType.ACCESS)

    def create_refresh_token(self, identity: User) -> str:
        return self.codec.sign(identity, self.refresh_lifetime, TokenType.REFRESH)

    def _mint_pair(self, identity: User) -> SessionTokens:
        return SessionTokens(
            access_token=self.create_access_token(identity),
            refresh_token=self.create_refresh_token(identity),
        )

    async def issue(self, identity: User) -> Result[SessionTokens]:
        """Mint an access/refresh pair and make the refresh token the user's only session.

        Args:
            identity: Verified user identity

        Returns:
            Ok with the new tokens, or INTERNAL_ERROR if the store fails
        """
        tokens = self._mint_pair(identity)

        try:
            await self.store.replace_refresh_session(identity.id, tokens.refresh_token)
        except Exception:
            logger.exception("store_failure", operation="replace_refresh_session")
            return fail(AuthError.INTERNAL_ERROR)

        logger.info("session_issued", user_id=str(identity.id))
        return Ok(tokens)

    async def refresh(self, presented: Optional[str]) -> Result[SessionTokens]:
        """Exchange a refresh token for a new token pair.

        Every rejection is ``FORBIDDEN``. A token that verifies but no longer
        matches the stored session carries a distinct message. On any
        failure the stored session is left untouched.

        Args:
            presented: Refresh token sent by the client

        Returns:
            Ok with the new tokens, or a Failure
        """
        if not presented:
            return self._reject("missing")

        try:
            payload = self.codec.verify(presented, TokenType.REFRESH)
        except TokenError as e:
            return self._reject(_rejection_reason(e))

        if payload.subject_id is None:
            return self._reject("malformed")

        user_id = payload.subject_id

        try:
            user = await self.store.get_user_by_id(user_id)
            if user is None:
                return self._reject("unknown_user", user_id)

            session = await self.store.get_refresh_session(user_id)
            if session is None:
                return self._reject("no_session", user_id)

            if session.token != presented:
                return self._reject("superseded", user_id)

            tokens = self._mint_pair(user)

            rotated = await self.store.rotate_refresh_session(
                user_id, presented, tokens.refresh_token
            )
        except Exception:
            logger.exception("store_failure", operation="refresh", user_id=str(user_id))
            return fail(AuthError.INTERNAL_ERROR)

        if not rotated:
            # Another refresh with the same token committed first
            return self._reject("superseded", user_id)

        logger.info("session_refreshed", user_id=str(user_id))
        return Ok(tokens)

    async def logout(self, user_id: UUID) -> Result[bool]:
        """Delete the user's refresh session.

        Returns:
            Ok(True) if a session was deleted, Ok(False) if there was none
        """
        try:
            deleted = await self.store.delete_refresh_session(user_id)
        except Exception:
            logger.exception("store_failure", operation="delete_refresh_session")
            return fail(AuthError.INTERNAL_ERROR)

        logger.info("user_logged_out", user_id=str(user_id), had_session=deleted)
        return Ok(deleted)

    @staticmethod
    def _reject(reason: str, user_id: Optional[UUID] = None) -> Failure:
        logger.warning(
            "refresh_rejected",
            reason=reason,
            user_id=str(user_id) if user_id else None,
        )
        if reason == "superseded":
            return fail(AuthError.FORBIDDEN, SUPERSEDED_MESSAGE)
        return fail(AuthError.FORBIDDEN)
