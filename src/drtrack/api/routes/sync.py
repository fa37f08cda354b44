"""Manual reconciliation between the local cache and the remote store."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...services.container import Services
from ..deps import get_services

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("", status_code=status.HTTP_200_OK)
async def sync_now(services: Services = Depends(get_services)) -> dict:
    """Push locally cached records to the remote store, then refresh the cache from it."""
    if not await services.gateway.remote_ready():
        services.events.notify("Remote store unreachable - working from the local cache", "warning")
        return {"remote": False, "collections": {}}
    summary = await services.gateway.sync()
    services.cache.clear()
    services.events.data_changed(*summary.keys())
    return {"remote": True, "collections": summary}
