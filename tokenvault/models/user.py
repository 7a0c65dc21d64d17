"""User, refresh session and token payload models."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class User(BaseModel):
    """Minimal user identity. This is all that leaves the auth flows."""

    id: UUID
    email: str


class UserRecord(User):
    """A stored user, including the password hash."""

    password_hash: str


class RefreshSession(BaseModel):
    """The single current refresh token of a user."""

    user_id: UUID
    token: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TokenPayload(BaseModel):
    """Claims decoded from a signed token.

    Access and refresh tokens share this shape; they differ only in lifetime
    and in where they are accepted.
    """

    subject_id: Optional[UUID] = None
    email: Optional[str] = None
    issued_at: datetime
    expires_at: datetime
    token_id: Optional[str] = None

    def identity(self) -> Optional[User]:
        """Return the embedded identity, or None if the subject is missing."""
        if self.subject_id is None or self.email is None:
            return None
        return User(id=self.subject_id, email=self.email)


class SessionTokens(BaseModel):
    """An access token and refresh token minted together."""

    access_token: str
    refresh_token: str
