import asyncio
import uuid
from pathlib import Path
from typing import Any, Mapping

import pytest

from drtrack.models.results import RemoteUnavailable
from drtrack.persistence.collections import CollectionSpec
from drtrack.persistence.filesystem import LocalCache
from drtrack.persistence.gateway import PersistenceGateway
from drtrack.services.container import build_services


class InMemoryRemote:
    """Stand-in for the Supabase backend: one list of records per collection, keyed like the real table."""

    def __init__(self, yield_control: bool = False) -> None:
        self.rows: dict[str, list[dict[str, Any]]] = {}
        self.yield_control = yield_control
        self.calls: list[tuple[str, str]] = []

    def available(self) -> bool:
        return True

    async def _pause(self) -> None:
        if self.yield_control:
            await asyncio.sleep(0)

    async def upsert(self, spec: CollectionSpec, record: Mapping[str, Any]) -> dict[str, Any]:
        self.calls.append(("upsert", spec.name))
        rows = self.rows.setdefault(spec.name, [])
        await self._pause()
        key = record.get(spec.key_field)
        existing = next((row for row in rows if row.get(spec.key_field) == key), None)
        stored = dict(record)
        if existing is not None:
            stored["id"] = existing.get("id")
            stored["createdAt"] = existing.get("createdAt") or stored.get("createdAt")
            rows[rows.index(existing)] = stored
        else:
            if not stored.get("id") or (spec.id_shape and not spec.id_shape(str(stored["id"]))):
                stored["id"] = str(uuid.uuid4())
            rows.append(stored)
        return dict(stored)

    async def select(self, spec: CollectionSpec, filters: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        self.calls.append(("select", spec.name))
        await self._pause()
        rows = self.rows.get(spec.name, [])
        return [
            dict(row)
            for row in rows
            if all(row.get(field_name) == getattr(value, "value", value) for field_name, value in (filters or {}).items())
        ]

    async def delete(self, spec: CollectionSpec, key: str) -> bool:
        self.calls.append(("delete", spec.name))
        await self._pause()
        rows = self.rows.get(spec.name, [])
        kept = [row for row in rows if row.get("id") != key and row.get(spec.key_field) != key]
        self.rows[spec.name] = kept
        return len(kept) != len(rows)


class FailingRemote:
    """Remote backend that is configured but never answers."""

    def __init__(self) -> None:
        self.attempts = 0

    def available(self) -> bool:
        return True

    async def _fail(self, *args: Any, **kwargs: Any) -> Any:
        self.attempts += 1
        raise RemoteUnavailable("connection refused")

    upsert = _fail
    select = _fail
    delete = _fail


@pytest.fixture
def local_cache(tmp_path: Path) -> LocalCache:
    return LocalCache(root=tmp_path / "cache")


@pytest.fixture
def gateway(local_cache: LocalCache) -> PersistenceGateway:
    return PersistenceGateway(local=local_cache)


@pytest.fixture
def notifications() -> list[tuple[str, str]]:
    return []


@pytest.fixture
def services(gateway: PersistenceGateway, notifications: list[tuple[str, str]]):
    return build_services(gateway, notification_sink=lambda message, severity: notifications.append((severity, message)))


@pytest.fixture
def changed(services) -> list[str]:
    collections: list[str] = []
    services.events.subscribe(collections.append)
    return collections


@pytest.fixture
def memory_remote() -> InMemoryRemote:
    return InMemoryRemote()


@pytest.fixture
def failing_remote() -> FailingRemote:
    return FailingRemote()
