"""Request-time verification of bearer access tokens."""

from typing import Optional

import structlog

from tokenvault.models.results import AuthError, Ok, Result, fail
from tokenvault.models.user import User
from tokenvault.services.token_codec import ExpiredToken, TokenCodec, TokenError, TokenType

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "Bearer "
EXPIRED_MESSAGE = "Token has expired"


class AccessVerifier:
    """Stateless check of an ``Authorization`` header.

    Signature, expiry and token type are checked but the store is never
    consulted, so a deleted user's access token keeps working until it
    expires.
    """

    def __init__(self, codec: TokenCodec):
        self.codec = codec

    def verify(self, header: Optional[str]) -> Result[User]:
        """Validate a ``Bearer <token>`` header value.

        Returns:
            Ok with the embedded identity, or an UNAUTHORIZED Failure
        """
        if not header or not header.startswith(BEARER_PREFIX):
            return fail(AuthError.UNAUTHORIZED)

        token = header[len(BEARER_PREFIX):].strip()

        try:
            payload = self.codec.verify(token, TokenType.ACCESS)
        except ExpiredToken:
            return fail(AuthError.UNAUTHORIZED, EXPIRED_MESSAGE)
        except TokenError as e:
            logger.debug("access_token_rejected", error=str(e))
            return fail(AuthError.UNAUTHORIZED)

        identity = payload.identity()
        if identity is None:
            return fail(AuthError.UNAUTHORIZED)

        return Ok(identity)
