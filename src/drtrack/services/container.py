"""Wiring of the gateway and the services that share it."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from ..config import settings
from ..persistence.gateway import PersistenceGateway
from .cache import ReadCache
from .customers.service import CustomerService
from .deliveries.lifecycle import DeliveryLifecycleManager
from .epod.completion import CompletionWorkflow
from .events import EventHub, NotificationSink


@dataclass
class Services:
    gateway: PersistenceGateway
    events: EventHub
    cache: ReadCache
    deliveries: DeliveryLifecycleManager
    customers: CustomerService
    completion: CompletionWorkflow


def build_services(
    gateway: PersistenceGateway,
    notification_sink: NotificationSink | None = None,
    clock: Callable[[], float] | None = None,
) -> Services:
    """One event hub and one read cache shared by every service on ``gateway``."""
    events = EventHub(notification_sink)
    cache = ReadCache(settings.read_cache_ttl_seconds, clock or time.monotonic)
    deliveries = DeliveryLifecycleManager(gateway, events, cache)
    customers = CustomerService(gateway, events, cache)
    completion = CompletionWorkflow(gateway, deliveries, events)
    return Services(
        gateway=gateway,
        events=events,
        cache=cache,
        deliveries=deliveries,
        customers=customers,
        completion=completion,
    )
