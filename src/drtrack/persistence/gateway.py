"""Uniform create/read/update/delete over the remote store and the local cache.

The remote store is attempted first. Any ``RemoteUnavailable`` is logged
and the same call is answered from the local cache instead, so callers
never see a backend outage as an error. Local writes made while offline
are not replayed automatically; ``push_local``/``sync`` do that on demand.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
import uuid
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from ..config import settings
from ..models.results import RemoteUnavailable
from ..services.identity import identifier_of, resolve_index
from .collections import COLLECTIONS, CollectionSpec
from .filesystem import LocalCache
from .remote import SupabaseBackend
from .serialization import Record, format_datetime, utcnow

logger = logging.getLogger(__name__)

OnlineHint = Callable[[], Union[bool, Awaitable[bool]]]


class PersistenceGateway:
    def __init__(
        self,
        local: LocalCache | None = None,
        remote: SupabaseBackend | None = None,
        online_hint: OnlineHint | None = None,
        collections: Mapping[str, CollectionSpec] | None = None,
        online_cache_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.local = local or LocalCache()
        self.remote = remote
        self.online_hint = online_hint
        self.collections = dict(collections or COLLECTIONS)
        # Which backend answered the most recent call: "remote" or "local".
        self.last_source: Optional[str] = None
        self.online_cache_seconds = (
            settings.connectivity_cache_seconds if online_cache_seconds is None else online_cache_seconds
        )
        self._clock = clock
        self._online: Optional[tuple[float, bool]] = None

    def spec(self, collection: str) -> CollectionSpec:
        try:
            return self.collections[collection]
        except KeyError:
            raise ValueError(f"Unknown collection '{collection}'") from None

    async def remote_ready(self) -> bool:
        if self.remote is None or not self.remote.available():
            return False
        if self.online_hint is None:
            return True
        if self._online is not None:
            checked_at, online = self._online
            if self._clock() - checked_at < self.online_cache_seconds:
                return online
        online = await self._probe_online()
        self._online = (self._clock(), online)
        return online

    async def _probe_online(self) -> bool:
        """Ask the online hint without blocking the event loop; plain callables run in a worker thread."""
        try:
            if inspect.iscoroutinefunction(self.online_hint):
                return bool(await self.online_hint())
            return bool(await asyncio.to_thread(self.online_hint))
        except Exception as e:
            logger.debug(f"Online hint failed, assuming offline: {e}")
            return False

    async def save(self, collection: str, record: Mapping[str, Any]) -> Record:
        spec = self.spec(collection)
        stamped = dict(record)
        now = format_datetime(utcnow())
        stamped["updatedAt"] = now
        if not stamped.get("createdAt"):
            stamped["createdAt"] = now

        if await self.remote_ready():
            try:
                saved = await self.remote.upsert(spec, stamped)
            except RemoteUnavailable as e:
                logger.warning(f"Remote save failed for {collection}, using local cache: {e}")
            else:
                self.last_source = "remote"
                self._mirror_locally(spec, saved)
                return saved

        self.last_source = "local"
        return self._write_local(spec, stamped)

    async def fetch_all(self, collection: str, filters: Mapping[str, Any] | None = None) -> list[Record]:
        spec = self.spec(collection)
        if await self.remote_ready():
            try:
                rows = await self.remote.select(spec, filters)
            except RemoteUnavailable as e:
                logger.warning(f"Remote fetch failed for {collection}, using local cache: {e}")
            else:
                self.last_source = "remote"
                return rows

        self.last_source = "local"
        records = self.local.read_collection(spec.name)
        if filters:
            records = [record for record in records if _matches(record, filters)]
        return records

    async def remove(self, collection: str, key: str) -> bool:
        spec = self.spec(collection)
        if await self.remote_ready():
            try:
                removed = await self.remote.delete(spec, key)
            except RemoteUnavailable as e:
                logger.warning(f"Remote delete failed for {collection}, using local cache: {e}")
            else:
                self.last_source = "remote"
                removed_locally = self._remove_local(spec, key)
                return removed or removed_locally

        self.last_source = "local"
        return self._remove_local(spec, key)

    async def push_local(self, collection: str) -> int:
        """Replay every locally cached record of ``collection`` to the remote store."""
        spec = self.spec(collection)
        if not await self.remote_ready():
            logger.info(f"Remote store unavailable, not pushing {collection}")
            return 0

        pushed = 0
        for record in self.local.read_collection(spec.name):
            try:
                await self.remote.upsert(spec, record)
            except RemoteUnavailable as e:
                logger.warning(f"Push of {collection} stopped after {pushed} records: {e}")
                break
            pushed += 1
        logger.info(f"Pushed {pushed} local {collection} records to remote store")
        return pushed

    async def pull_remote(self, collection: str) -> Optional[int]:
        """Overwrite the local cache for ``collection`` with the remote contents."""
        spec = self.spec(collection)
        if not await self.remote_ready():
            return None
        try:
            rows = await self.remote.select(spec)
        except RemoteUnavailable as e:
            logger.warning(f"Pull of {collection} failed: {e}")
            return None
        self.local.write_collection(spec.name, rows)
        return len(rows)

    async def sync(self) -> dict[str, dict[str, Optional[int]]]:
        summary: dict[str, dict[str, Optional[int]]] = {}
        for name in self.collections:
            pushed = await self.push_local(name)
            pulled = await self.pull_remote(name)
            summary[name] = {"pushed": pushed, "pulled": pulled}
        return summary

    def _write_local(self, spec: CollectionSpec, record: Mapping[str, Any]) -> Record:
        records = self.local.read_collection(spec.name)
        stored = dict(record)
        index = resolve_index(records, stored, spec.natural_key, spec.id_shape)
        if index is not None:
            existing = records[index]
            if existing.get("createdAt"):
                stored["createdAt"] = existing["createdAt"]
            if not stored.get("id"):
                stored["id"] = existing.get("id")
            records[index] = stored
        else:
            if not stored.get("id"):
                stored["id"] = str(uuid.uuid4())
            if spec.prepend:
                records.insert(0, stored)
            else:
                records.append(stored)
        self.local.write_collection(spec.name, records)
        return stored

    def _mirror_locally(self, spec: CollectionSpec, record: Mapping[str, Any]) -> None:
        try:
            self._write_local(spec, record)
        except OSError as e:
            logger.warning(f"Saved {spec.name} remotely but could not mirror it to the local cache: {e}")

    def _remove_local(self, spec: CollectionSpec, key: str) -> bool:
        records = self.local.read_collection(spec.name)
        kept = [
            record
            for record in records
            if identifier_of(record) != key and str(record.get(spec.key_field) or "").strip() != key
        ]
        if len(kept) == len(records):
            return False
        self.local.write_collection(spec.name, kept)
        return True


def _matches(record: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
    for field_name, expected in filters.items():
        value = record.get(field_name)
        if hasattr(expected, "value"):
            expected = expected.value
        if value != expected:
            return False
    return True
