"""Supabase-backed remote store."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping, Optional

from supabase import Client

from ..db.supabase import get_supabase_client
from ..models.results import RemoteUnavailable
from ..services.identity import is_uuid
from .collections import CollectionSpec

logger = logging.getLogger(__name__)


class SupabaseBackend:
    """Runs blocking Supabase queries off the event loop.

    Every failure (missing client, network, auth, malformed payload) is
    raised as ``RemoteUnavailable`` so the gateway can fall back.
    """

    def __init__(self, client_factory: Callable[[], Optional[Client]] = get_supabase_client) -> None:
        self._client_factory = client_factory

    def available(self) -> bool:
        return self._client_factory() is not None

    async def _execute(self, build: Callable[[Client], Any]) -> list[dict[str, Any]]:
        client = self._client_factory()
        if client is None:
            raise RemoteUnavailable("Supabase client not configured")
        try:
            response = await asyncio.to_thread(lambda: build(client).execute())
        except Exception as e:
            raise RemoteUnavailable(f"Supabase request failed: {e}") from e
        data = getattr(response, "data", None)
        if data is None:
            return []
        if isinstance(data, dict):
            return [data]
        if not isinstance(data, list):
            raise RemoteUnavailable(f"Malformed Supabase response: {type(data).__name__}")
        return data

    @staticmethod
    def _apply_scope(query: Any, spec: CollectionSpec) -> Any:
        if spec.scope is None:
            return query
        column, operator, value = spec.scope
        return getattr(query, operator)(column, value)

    async def upsert(self, spec: CollectionSpec, record: Mapping[str, Any]) -> dict[str, Any]:
        """Update the row sharing the record's natural key, or insert a new one."""
        row = spec.to_row(record)
        if "id" in row and spec.key_column != "id" and spec.id_shape and not spec.id_shape(str(row["id"])):
            # Locally generated ids are not valid remote identifiers; let the table assign one.
            row.pop("id")

        key_value = row.get(spec.key_column)
        if key_value in (None, ""):
            raise RemoteUnavailable(f"Cannot upsert into {spec.table} without {spec.key_column}")

        existing = await self._execute(
            lambda client: client.table(spec.table).select("*").eq(spec.key_column, key_value).limit(1)
        )
        if existing:
            if existing[0].get("created_at"):
                row.pop("created_at", None)
            row.pop("id", None)
            data = await self._execute(
                lambda client: client.table(spec.table).update(row).eq(spec.key_column, key_value)
            )
            logger.debug(f"Updated {spec.table} row {spec.key_column}={key_value}")
        else:
            data = await self._execute(lambda client: client.table(spec.table).insert(row))
            logger.debug(f"Inserted {spec.table} row {spec.key_column}={key_value}")

        if not data:
            raise RemoteUnavailable(f"Supabase returned no row for {spec.table} {key_value}")
        return spec.from_row(data[0])

    async def select(self, spec: CollectionSpec, filters: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        def build(client: Client) -> Any:
            query = self._apply_scope(client.table(spec.table).select("*"), spec)
            for field_name, value in (filters or {}).items():
                query = query.eq(spec.column_for(field_name), value)
            return query.order(spec.order_column, desc=spec.prepend)

        rows = await self._execute(build)
        return [spec.from_row(row) for row in rows]

    async def delete(self, spec: CollectionSpec, key: str) -> bool:
        column = "id" if spec.key_column != "id" and is_uuid(key) else spec.key_column

        def build(client: Client) -> Any:
            return self._apply_scope(client.table(spec.table).delete().eq(column, key), spec)

        data = await self._execute(build)
        return bool(data)
