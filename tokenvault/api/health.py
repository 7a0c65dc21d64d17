"""Liveness endpoint."""

from fastapi import APIRouter, Depends

from tokenvault.api.dependencies import get_app_settings, get_store
from tokenvault.config import Settings
from tokenvault.services.credential_store import CredentialStore

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health(
    settings: Settings = Depends(get_app_settings),
    store: CredentialStore = Depends(get_store),
) -> dict:
    """Report service status and whether the store is reachable."""
    store_ok = await store.ping()

    return {
        "status": "ok" if store_ok else "degraded",
        "store": settings.store_backend,
    }
