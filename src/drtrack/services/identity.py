"""Insert-versus-update decisions by opaque id or natural key."""

from __future__ import annotations

import re
from typing import Any, Callable, Hashable, Optional, Sequence, TypeVar

T = TypeVar("T")

UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)

NaturalKeyFn = Callable[[Any], Optional[Hashable]]


def is_uuid(value: Any) -> bool:
    return isinstance(value, str) and bool(UUID_PATTERN.match(value))


def normalize_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def normalize_phone(phone: Optional[str]) -> str:
    return (phone or "").strip()


def customer_natural_key(contact_person: Optional[str], phone: Optional[str]) -> str:
    """``lower(contactPerson) + "|" + phone``. Shared by auto-create and merge."""
    return f"{normalize_name(contact_person)}|{normalize_phone(phone)}"


def _field(item: Any, *names: str) -> Any:
    for name in names:
        if isinstance(item, dict):
            if item.get(name) is not None:
                return item[name]
        elif getattr(item, name, None) is not None:
            return getattr(item, name)
    return None


def identifier_of(item: Any) -> Optional[str]:
    value = _field(item, "id")
    return str(value) if value not in (None, "") else None


def dr_number_key(item: Any) -> Optional[str]:
    value = _field(item, "dr_number", "drNumber")
    text = str(value).strip() if value is not None else ""
    return text or None


def customer_key(item: Any) -> Optional[str]:
    name = _field(item, "contact_person", "contactPerson")
    phone = _field(item, "phone")
    if not normalize_name(name) and not normalize_phone(phone):
        return None
    return customer_natural_key(name, phone)


def resolve_index(
    existing: Sequence[T],
    candidate: Any,
    natural_key: NaturalKeyFn,
    id_shape: Callable[[str], bool] | None = None,
) -> Optional[int]:
    """Position of the record ``candidate`` refers to, or ``None`` for a new record.

    The opaque id is tried first, but only when it has the backend's
    identifier shape. The natural key is tried next. When corrupted data
    holds several matches the first one in iteration order wins.
    """
    candidate_id = identifier_of(candidate)
    if candidate_id and (id_shape is None or id_shape(candidate_id)):
        for index, item in enumerate(existing):
            if identifier_of(item) == candidate_id:
                return index

    key = natural_key(candidate)
    if key is None:
        return None
    for index, item in enumerate(existing):
        if natural_key(item) == key:
            return index
    return None


def resolve(
    existing: Sequence[T],
    candidate: Any,
    natural_key: NaturalKeyFn,
    id_shape: Callable[[str], bool] | None = None,
) -> Optional[T]:
    index = resolve_index(existing, candidate, natural_key, id_shape)
    return existing[index] if index is not None else None
