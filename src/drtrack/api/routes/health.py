"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...persistence.collections import COLLECTIONS
from ...services.container import Services
from ..deps import get_services

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/database", status_code=status.HTTP_200_OK)
async def check_database(services: Services = Depends(get_services)) -> dict:
    """Report which backend is answering and how many records each collection holds."""
    gateway = services.gateway
    counts: dict[str, int] = {}
    sources: dict[str, str | None] = {}
    for name in COLLECTIONS:
        counts[name] = len(await gateway.fetch_all(name))
        sources[name] = gateway.last_source

    remote_ready = await gateway.remote_ready()
    return {
        "configured": gateway.remote is not None and gateway.remote.available(),
        "connected": remote_ready,
        "collections": counts,
        "sources": sources,
        "message": "Remote store connected." if remote_ready else "Remote store unavailable - serving from local cache.",
    }
