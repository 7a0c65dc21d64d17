"""Pytest configuration and fixtures."""

import os
from typing import Generator

import pytest

# Set test environment variables before importing the app
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-jwt-unit-tests")
os.environ.setdefault("STORE_BACKEND", "memory")

from tokenvault.config import Settings
from tokenvault.services.access_verifier import AccessVerifier
from tokenvault.services.auth_service import AuthService
from tokenvault.services.credential_store import InMemoryCredentialStore
from tokenvault.services.password_hasher import PasswordHasher
from tokenvault.services.session_service import SessionService
from tokenvault.services.token_codec import TokenCodec

JWT_SECRET = "test-secret-key-for-jwt-unit-tests"


def make_settings(**overrides) -> Settings:
    """Settings for tests: in-memory store, cheap bcrypt, fixed secret."""
    values = {
        "jwt_secret": JWT_SECRET,
        "store_backend": "memory",
        "bcrypt_rounds": 4,
        "hash_workers": 2,
        "access_token_lifetime_seconds": 900,
        "refresh_token_lifetime_seconds": 604800,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def hasher(settings) -> Generator[PasswordHasher, None, None]:
    hasher = PasswordHasher(settings)
    yield hasher
    hasher.shutdown()


@pytest.fixture
def codec(settings) -> TokenCodec:
    return TokenCodec(settings)


@pytest.fixture
def auth_service(store, hasher) -> AuthService:
    return AuthService(store, hasher)


@pytest.fixture
def session_service(store, codec, settings) -> SessionService:
    return SessionService(store, codec, settings)


@pytest.fixture
def access_verifier(codec) -> AccessVerifier:
    return AccessVerifier(codec)


@pytest.fixture
def settings_factory():
    """Build Settings with per-test overrides."""
    return make_settings
