"""Authentication API endpoints.

Registration and login answer with HTTP 200 and ``{success, message}``
(plus tokens on a successful login). Refresh failures answer with 403 and
``{msg}``. Both shapes are part of the public contract.
"""

from typing import Any, Dict, Optional, Type, TypeVar

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, ValidationError

from tokenvault.api.dependencies import (
    get_app_settings,
    get_auth_service,
    get_current_user,
    get_session_service,
)
from tokenvault.config import Settings
from tokenvault.models.auth import (
    IdentityResponse,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
)
from tokenvault.models.results import AuthError, Failure, fail
from tokenvault.models.user import User
from tokenvault.services.auth_service import AuthService
from tokenvault.services.session_service import SessionService

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Auth"])

RequestModel = TypeVar("RequestModel", bound=BaseModel)


async def _read_body(request: Request, model: Type[RequestModel]) -> Optional[RequestModel]:
    """Parse the JSON body into ``model``.

    A missing or non-object body counts as empty input. Returns None if a
    field has the wrong type.
    """
    try:
        payload = await request.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    try:
        return model.model_validate(payload)
    except ValidationError:
        return None


def _json(model: BaseModel, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=model.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


def _failure_envelope(failure: Failure) -> JSONResponse:
    status_code = (
        status.HTTP_500_INTERNAL_SERVER_ERROR
        if failure.error is AuthError.INTERNAL_ERROR
        else status.HTTP_200_OK
    )
    return _json(IdentityResponse(success=False, message=failure.message), status_code)


def _forbidden(failure: Failure) -> JSONResponse:
    status_code = (
        status.HTTP_500_INTERNAL_SERVER_ERROR
        if failure.error is AuthError.INTERNAL_ERROR
        else status.HTTP_403_FORBIDDEN
    )
    content: Dict[str, Any] = {"msg": failure.message}
    return JSONResponse(status_code=status_code, content=content)


@router.post("/register")
async def register(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    """Create a user.

    On success the client is sent on to /login with a 307 redirect (same
    method and body), unless immediate login is disabled, in which case
    the created identity is returned.
    """
    body = await _read_body(request, RegisterRequest)
    if body is None:
        return _failure_envelope(fail(AuthError.INVALID_INPUT))

    result = await auth_service.register(
        body.email, body.password, body.password_confirmation
    )
    if not result.ok:
        return _failure_envelope(result)

    if settings.login_after_register:
        return RedirectResponse(
            url=str(request.url_for("login")),
            status_code=status.HTTP_307_TEMPORARY_REDIRECT,
        )

    return _json(IdentityResponse(success=True, message=result.value))


@router.post("/login", name="login")
async def login(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
    session_service: SessionService = Depends(get_session_service),
):
    """Check credentials and issue an access token and a refresh token."""
    body = await _read_body(request, LoginRequest)
    if body is None:
        return _failure_envelope(fail(AuthError.INVALID_INPUT))

    result = await auth_service.authenticate(body.email, body.password)
    if not result.ok:
        return _failure_envelope(result)

    user = result.value
    issued = await session_service.issue(user)
    if not issued.ok:
        return _failure_envelope(issued)

    logger.info("user_logged_in", user_id=str(user.id), email=user.email)
    return _json(
        LoginResponse(
            success=True,
            message=user,
            access_token=issued.value.access_token,
            refresh_token=issued.value.refresh_token,
        )
    )


@router.post("/refresh-token")
async def refresh_token(
    request: Request,
    session_service: SessionService = Depends(get_session_service),
):
    """Rotate a refresh token into a new access/refresh pair."""
    body = await _read_body(request, RefreshRequest)
    presented = body.refresh_token if body is not None else None

    result = await session_service.refresh(presented)
    if not result.ok:
        return _forbidden(result)

    return _json(
        RefreshResponse(
            access_token=result.value.access_token,
            refresh_token=result.value.refresh_token,
        )
    )


@router.post("/logout")
async def logout(
    current_user: User = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
):
    """Drop the caller's refresh session."""
    result = await session_service.logout(current_user.id)
    if not result.ok:
        return _failure_envelope(result)

    return _json(IdentityResponse(success=True, message="Logged out successfully!"))


@router.get("/auth-test")
async def auth_test(current_user: User = Depends(get_current_user)):
    """Probe for clients: succeeds only with a valid access token."""
    return _json(IdentityResponse(success=True, message=current_user))
