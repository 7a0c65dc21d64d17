"""FastAPI dependencies for services and authentication."""

from typing import Optional

from fastapi import Depends, Header, Request

from tokenvault.config import Settings
from tokenvault.models.user import User
from tokenvault.services.access_verifier import AccessVerifier
from tokenvault.services.auth_service import AuthService
from tokenvault.services.credential_store import CredentialStore
from tokenvault.services.session_service import SessionService


class NotAuthenticated(Exception):
    """Raised by get_current_user; rendered as a 401 envelope."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> CredentialStore:
    return request.app.state.store


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_session_service(request: Request) -> SessionService:
    return request.app.state.session_service


def get_access_verifier(request: Request) -> AccessVerifier:
    return request.app.state.access_verifier


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    verifier: AccessVerifier = Depends(get_access_verifier),
) -> User:
    """Resolve the caller's identity from ``Authorization: Bearer <token>``.

    Raises:
        NotAuthenticated: If the header is absent or the token is invalid or expired
    """
    result = verifier.verify(authorization)
    if not result.ok:
        raise NotAuthenticated(result.message)
    return result.value
