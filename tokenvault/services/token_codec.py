"""Signing and verification of compact signed tokens (JWT, HS256)."""

import secrets
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict
from uuid import UUID

import jwt
import structlog

from tokenvault.config import Settings
from tokenvault.models.user import TokenPayload, User

logger = structlog.get_logger(__name__)


class TokenError(Exception):
    """Base class for token verification failures."""


class MalformedToken(TokenError):
    """The token could not be decoded or is missing required claims."""


class ExpiredToken(TokenError):
    """The token is past its expiry instant."""


class BadSignature(TokenError):
    """The token signature does not match the configured secret."""


class WrongTokenType(MalformedToken):
    """The token is valid but was minted for a different use."""


class TokenType(str, Enum):
    """Value of the ``typ`` header, which keeps access and refresh tokens apart."""

    ACCESS = "at+jwt"
    REFRESH = "rt+jwt"


class TokenCodec:
    """Signs identity payloads and verifies presented tokens.

    Verification is side-effect free and uses no leeway, so a token is
    rejected from its expiry instant onwards. The token type travels in the
    JOSE header, so access and refresh tokens share one claim set but are
    never accepted in place of each other.
    """

    def __init__(self, settings: Settings):
        self._secret = settings.jwt_secret
        self._algorithm = settings.jwt_algorithm

    def sign(self, identity: User, lifetime: timedelta, token_type: TokenType) -> str:
        """Create a signed token for ``identity`` expiring after ``lifetime``.

        Args:
            identity: User id and email to embed
            lifetime: Time from now until the token expires
            token_type: Use the token is minted for

        Returns:
            Encoded JWT string
        """
        now = datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "sub": str(identity.id),
            "email": identity.email,
            "iat": now,
            "exp": now + lifetime,
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(
            payload,
            self._secret,
            algorithm=self._algorithm,
            headers={"typ": token_type.value},
        )

    def verify(self, token: str, token_type: TokenType) -> TokenPayload:
        """Decode and validate a token.

        Args:
            token: Encoded JWT string
            token_type: Use the caller accepts the token for

        Returns:
            The decoded TokenPayload

        Raises:
            MalformedToken: If the token cannot be decoded
            WrongTokenType: If the token was minted for another use
            ExpiredToken: If the token is past its expiry
            BadSignature: If the signature is invalid
        """
        try:
            decoded = jwt.decode_complete(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat"]},
                leeway=0,
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredToken("Token has expired")
        except jwt.InvalidSignatureError:
            raise BadSignature("Token signature is invalid")
        except jwt.InvalidTokenError as e:
            raise MalformedToken(f"Token is malformed: {e}")

        if decoded["header"].get("typ") != token_type.value:
            raise WrongTokenType(f"Expected a {token_type.name.lower()} token")

        return _payload_from_claims(decoded["payload"])


def _payload_from_claims(claims: Dict[str, Any]) -> TokenPayload:
    sub = claims.get("sub")
    try:
        subject_id = UUID(sub) if sub else None
    except (TypeError, ValueError):
        raise MalformedToken("Token subject is not a valid id")

    return TokenPayload(
        subject_id=subject_id,
        email=claims.get("email"),
        issued_at=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
        expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        token_id=claims.get("jti"),
    )
