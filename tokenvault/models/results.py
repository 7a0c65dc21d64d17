"""Tagged results returned by the auth flows.

Flows never raise across their boundary: every outcome is either ``Ok`` with
a value or ``Failure`` with an ``AuthError`` and a stable message.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Generic, Optional, TypeVar, Union

T = TypeVar("T")


class AuthError(str, Enum):
    INVALID_INPUT = "invalid_input"
    INVALID_EMAIL = "invalid_email"
    WEAK_PASSWORD = "weak_password"
    PASSWORD_MISMATCH = "password_mismatch"
    DUPLICATE_EMAIL = "duplicate_email"
    INVALID_CREDENTIALS = "invalid_credentials"
    FORBIDDEN = "forbidden"
    UNAUTHORIZED = "unauthorized"
    INTERNAL_ERROR = "internal_error"


ERROR_MESSAGES = {
    AuthError.INVALID_INPUT: "API Error - expected fields are undefined!",
    AuthError.INVALID_EMAIL: "Invalid email format!",
    AuthError.WEAK_PASSWORD: "Password must be at least 8 characters long!",
    AuthError.PASSWORD_MISMATCH: "Passwords do not match!",
    AuthError.DUPLICATE_EMAIL: "Email already exists!",
    AuthError.INVALID_CREDENTIALS: "Email and/or password is incorrect!",
    AuthError.FORBIDDEN: "Access is forbidden.",
    AuthError.UNAUTHORIZED: "Token is invalid",
    AuthError.INTERNAL_ERROR: "Seems to be something wrong on our side.",
}

# Refresh with a token that a later rotation already replaced.
SUPERSEDED_MESSAGE = "Refresh token has been superseded."


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Failure:
    error: AuthError
    message: str
    ok: ClassVar[bool] = False


Result = Union[Ok[T], Failure]


def fail(error: AuthError, message: Optional[str] = None) -> Failure:
    """Build a Failure carrying the stable message for ``error``."""
    return Failure(error=error, message=message or ERROR_MESSAGES[error])
