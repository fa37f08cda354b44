import asyncio

import pytest

from drtrack.models.domain import CostItem, Delivery, DeliveryStatus
from drtrack.models.results import ValidationError
from drtrack.persistence.collections import ACTIVE_DELIVERIES, DELIVERY_HISTORY
from drtrack.persistence.gateway import PersistenceGateway
from drtrack.persistence.serialization import delivery_to_record
from drtrack.services.container import build_services
from drtrack.services.deliveries import book_delivery


def _delivery(dr_number: str = "DR-1", **overrides) -> Delivery:
    fields = dict(
        dr_number=dr_number,
        customer_name="Juan Dela Cruz",
        customer_contact="0917000111",
        origin="Manila",
        destination="Makati",
        truck_plate="ABC-123",
        distance_km=12.5,
    )
    fields.update(overrides)
    return Delivery(**fields)


def test_save_persists_active_delivery(services, changed) -> None:
    saved = asyncio.run(services.deliveries.save(_delivery()))

    assert saved.id
    assert saved.status is DeliveryStatus.ACTIVE
    assert saved.created_at is not None
    assert [d.dr_number for d in asyncio.run(services.deliveries.active())] == ["DR-1"]
    assert changed == [ACTIVE_DELIVERIES]


def test_save_same_dr_updates_in_place(services) -> None:
    first = asyncio.run(services.deliveries.save(_delivery()))
    second = asyncio.run(services.deliveries.save(_delivery(destination="Taguig")))

    active = asyncio.run(services.deliveries.active())
    assert len(active) == 1
    assert active[0].destination == "Taguig"
    assert second.id == first.id


def test_save_rejects_invalid_delivery(services) -> None:
    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(
            services.deliveries.save(
                _delivery(dr_number=" ", distance_km=-1, additional_costs=[CostItem("", -5)])
            )
        )

    assert "DR number is required" in excinfo.value.errors
    assert "Distance must be zero or greater" in excinfo.value.errors
    assert len(excinfo.value.errors) == 4


def test_save_cannot_complete_a_delivery(services) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(services.deliveries.save(_delivery(status=DeliveryStatus.COMPLETED)))


def test_save_rejects_dr_already_in_history(services) -> None:
    asyncio.run(services.deliveries.save(_delivery()))
    asyncio.run(services.deliveries.set_status("DR-1", DeliveryStatus.COMPLETED))

    with pytest.raises(ValidationError):
        asyncio.run(services.deliveries.save(_delivery()))


def test_set_status_updates_active_record(services) -> None:
    asyncio.run(services.deliveries.save(_delivery()))

    result = asyncio.run(services.deliveries.set_status("DR-1", "InTransit"))

    assert result.ok
    assert result.data.status is DeliveryStatus.IN_TRANSIT
    [active] = asyncio.run(services.deliveries.active())
    assert active.status is DeliveryStatus.IN_TRANSIT


def test_set_status_to_current_status_is_a_no_op(services, changed) -> None:
    asyncio.run(services.deliveries.save(_delivery()))
    changed.clear()

    result = asyncio.run(services.deliveries.set_status("DR-1", DeliveryStatus.ACTIVE))

    assert result.ok
    assert changed == []


def test_set_status_completed_moves_to_history(services, changed) -> None:
    asyncio.run(services.deliveries.save(_delivery()))

    result = asyncio.run(services.deliveries.set_status("DR-1", DeliveryStatus.COMPLETED))

    assert result.ok
    assert asyncio.run(services.deliveries.active()) == []
    [completed] = asyncio.run(services.deliveries.history())
    assert completed.is_completed
    assert completed.completed_at is not None
    assert DELIVERY_HISTORY in changed


def test_completing_twice_does_not_duplicate_history(services) -> None:
    asyncio.run(services.deliveries.save(_delivery()))
    asyncio.run(services.deliveries.set_status("DR-1", DeliveryStatus.COMPLETED))

    again = asyncio.run(services.deliveries.set_status("DR-1", DeliveryStatus.COMPLETED))

    assert again.ok
    assert len(asyncio.run(services.deliveries.history())) == 1


def test_completed_delivery_cannot_be_reopened(services) -> None:
    asyncio.run(services.deliveries.save(_delivery()))
    asyncio.run(services.deliveries.set_status("DR-1", DeliveryStatus.COMPLETED))

    result = asyncio.run(services.deliveries.set_status("DR-1", DeliveryStatus.ACTIVE))

    assert not result.ok
    assert result.error_code == "not_found"


def test_set_status_reports_unknown_dr_and_status(services) -> None:
    missing = asyncio.run(services.deliveries.set_status("DR-404", DeliveryStatus.DELAYED))
    asyncio.run(services.deliveries.save(_delivery()))
    invalid = asyncio.run(services.deliveries.set_status("DR-1", "Lost"))

    assert missing.error_code == "not_found"
    assert invalid.error_code == "validation_error"


def test_fetch_all_filters_by_status(services) -> None:
    asyncio.run(services.deliveries.save(_delivery("DR-1")))
    asyncio.run(services.deliveries.save(_delivery("DR-2")))
    asyncio.run(services.deliveries.save(_delivery("DR-3")))
    asyncio.run(services.deliveries.set_status("DR-2", DeliveryStatus.DELAYED))
    asyncio.run(services.deliveries.set_status("DR-3", DeliveryStatus.COMPLETED))

    assert {d.dr_number for d in asyncio.run(services.deliveries.fetch_all())} == {"DR-1", "DR-2", "DR-3"}
    assert [d.dr_number for d in asyncio.run(services.deliveries.fetch_all("Delayed"))] == ["DR-2"]
    assert [d.dr_number for d in asyncio.run(services.deliveries.fetch_all(DeliveryStatus.COMPLETED))] == ["DR-3"]


def test_repair_removes_completed_deliveries_left_in_active(gateway: PersistenceGateway, services) -> None:
    asyncio.run(services.deliveries.save(_delivery("DR-1")))
    asyncio.run(services.deliveries.save(_delivery("DR-2")))
    # Simulate a crash between the history write and the active removal.
    asyncio.run(gateway.save(DELIVERY_HISTORY, delivery_to_record(_delivery("DR-1", status=DeliveryStatus.COMPLETED))))
    services.deliveries.invalidate()

    assert asyncio.run(services.deliveries.repair_collections()) == ["DR-1"]
    assert [d.dr_number for d in asyncio.run(services.deliveries.active())] == ["DR-2"]
    assert asyncio.run(services.deliveries.repair_collections()) == []


def test_reads_are_cached_until_a_write(gateway: PersistenceGateway, services) -> None:
    asyncio.run(services.deliveries.save(_delivery("DR-1")))
    assert len(asyncio.run(services.deliveries.active())) == 1

    # Written behind the manager's back: not visible until the cache is invalidated.
    asyncio.run(gateway.save(ACTIVE_DELIVERIES, delivery_to_record(_delivery("DR-2"))))
    assert len(asyncio.run(services.deliveries.active())) == 1

    services.deliveries.invalidate()
    assert len(asyncio.run(services.deliveries.active())) == 2


def test_remove_active_drops_booking(services) -> None:
    asyncio.run(services.deliveries.save(_delivery()))

    assert asyncio.run(services.deliveries.remove_active("DR-1")) is True
    assert asyncio.run(services.deliveries.remove_active("DR-1")) is False


def test_book_delivery_auto_creates_customer(services) -> None:
    booked, customer = asyncio.run(book_delivery(services.deliveries, services.customers, _delivery()))

    assert booked.status is DeliveryStatus.ACTIVE
    assert customer.contact_person == "Juan Dela Cruz"
    assert customer.bookings_count == 1
    assert customer.address == "Makati"


def test_book_delivery_without_contact_skips_customer(services) -> None:
    booked, customer = asyncio.run(
        book_delivery(services.deliveries, services.customers, _delivery(customer_contact=""))
    )

    assert customer is None
    assert asyncio.run(services.customers.fetch_all()) == []
    assert booked.dr_number == "DR-1"


def test_save_survives_failing_remote(local_cache, failing_remote) -> None:
    services = build_services(PersistenceGateway(local=local_cache, remote=failing_remote))

    saved = asyncio.run(services.deliveries.save(Delivery(dr_number="DR-1", customer_name="X")))
    delivered = asyncio.run(services.deliveries.fetch_all())

    assert saved.dr_number == "DR-1"
    assert [d.dr_number for d in delivered] == ["DR-1"]
    assert failing_remote.attempts > 0
