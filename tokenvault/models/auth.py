"""Auth request and response envelopes.

Field names on the wire are camelCase (``passwordConfirmation``,
``accessToken``, ``refreshToken``); Python code uses snake_case.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from tokenvault.models.user import User


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(_WireModel):
    """Registration input.

    Fields are optional here so that a missing field becomes an
    ``InvalidInput`` result instead of a framework validation error.
    """

    email: Optional[str] = None
    password: Optional[str] = None
    password_confirmation: Optional[str] = None


class LoginRequest(_WireModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(_WireModel):
    refresh_token: Optional[str] = None


class IdentityResponse(_WireModel):
    """``{success, message}`` envelope used by registration and logout."""

    success: bool
    message: Union[User, str]


class LoginResponse(_WireModel):
    """Login envelope. Tokens are present only on success."""

    success: bool
    message: Union[User, str]
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


class RefreshResponse(_WireModel):
    access_token: str
    refresh_token: str
