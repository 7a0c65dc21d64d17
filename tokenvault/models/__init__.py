"""Models package exports."""

from tokenvault.models.auth import (
    IdentityResponse,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
)
from tokenvault.models.results import (
    ERROR_MESSAGES,
    AuthError,
    Failure,
    Ok,
    Result,
    fail,
)
from tokenvault.models.user import (
    RefreshSession,
    SessionTokens,
    TokenPayload,
    User,
    UserRecord,
)

__all__ = [
    "AuthError",
    "ERROR_MESSAGES",
    "Failure",
    "IdentityResponse",
    "LoginRequest",
    "LoginResponse",
    "Ok",
    "RefreshRequest",
    "RefreshResponse",
    "RefreshSession",
    "RegisterRequest",
    "Result",
    "SessionTokens",
    "TokenPayload",
    "User",
    "UserRecord",
    "fail",
]
