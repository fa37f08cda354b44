import pytest
from fastapi.testclient import TestClient

from drtrack.api.deps import get_services
from drtrack.main import create_app
from drtrack.persistence.gateway import PersistenceGateway
from drtrack.services.container import build_services

SIGNATURE = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJ"


@pytest.fixture
def api_client(services) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_services] = lambda: services
    return TestClient(app)


def _book(client: TestClient, dr_number: str, name: str = "Juan Dela Cruz", phone: str = "0917000111"):
    return client.post(
        "/api/deliveries",
        json={
            "drNumber": dr_number,
            "customerName": name,
            "customerContact": phone,
            "origin": "Manila",
            "destination": "Makati",
            "truckPlate": "ABC-123",
            "distanceKm": 12.5,
            "additionalCosts": [{"description": "Toll", "amount": 150}],
        },
    )


def test_health_endpoints(api_client: TestClient) -> None:
    assert api_client.get("/api/health").json() == {"status": "ok"}

    payload = api_client.get("/api/health/database").json()
    assert payload["connected"] is False
    assert payload["configured"] is False
    assert payload["collections"]["deliveries-active"] == 0
    assert payload["sources"]["customers"] == "local"


def test_booking_endpoint_creates_delivery_and_customer(api_client: TestClient) -> None:
    response = _book(api_client, "DR-2001")

    assert response.status_code == 201
    payload = response.json()
    assert payload["delivery"]["drNumber"] == "DR-2001"
    assert payload["delivery"]["status"] == "Active"
    assert payload["delivery"]["additionalCosts"] == [{"description": "Toll", "amount": 150.0}]
    assert payload["customer"]["id"] == "CUST-001"
    assert payload["customer"]["bookingsCount"] == 1

    listed = api_client.get("/api/deliveries/active").json()
    assert [d["drNumber"] for d in listed] == ["DR-2001"]


def test_booking_rejects_missing_fields(api_client: TestClient) -> None:
    response = api_client.post("/api/deliveries", json={"drNumber": "", "customerName": "X"})

    assert response.status_code == 422


def test_status_endpoint_moves_delivery(api_client: TestClient) -> None:
    _book(api_client, "DR-1")

    transit = api_client.patch("/api/deliveries/DR-1/status", json={"status": "In Transit"})
    assert transit.status_code == 200
    assert transit.json()["data"]["status"] == "In Transit"

    delayed = api_client.get("/api/deliveries", params={"status": "In Transit"}).json()
    assert [d["drNumber"] for d in delayed] == ["DR-1"]

    missing = api_client.patch("/api/deliveries/DR-404/status", json={"status": "Delayed"})
    assert missing.status_code == 404

    invalid = api_client.patch("/api/deliveries/DR-1/status", json={"status": "Lost"})
    assert invalid.status_code == 422


def test_completion_endpoints(api_client: TestClient) -> None:
    _book(api_client, "DR-1")

    empty = api_client.post("/api/epod/DR-1/complete", json={"signatureImage": ""})
    assert empty.status_code == 422

    done = api_client.post("/api/epod/DR-1/complete", json={"signatureImage": SIGNATURE})
    assert done.status_code == 200
    assert done.json()["ok"] is True

    assert api_client.get("/api/deliveries/active").json() == []
    history = api_client.get("/api/deliveries/history").json()
    assert [d["status"] for d in history] == ["Completed"]
    proof = api_client.get("/api/epod/DR-1").json()
    assert proof["signatureImage"] == SIGNATURE
    assert proof["customerName"] == "Juan Dela Cruz"


def test_partial_completion_and_reconcile_endpoints(api_client: TestClient) -> None:
    partial = api_client.post("/api/epod/DR-9/complete", json={"signatureImage": SIGNATURE})
    assert partial.status_code == 409
    assert partial.json()["detail"]["proofSaved"] is True

    pending = api_client.get("/api/epod/pending").json()
    assert [p["drNumber"] for p in pending] == ["DR-9"]

    _book(api_client, "DR-9")
    reconciled = api_client.post("/api/epod/reconcile").json()
    assert reconciled == {"completed": ["DR-9"], "stillPending": []}


def test_batch_completion_endpoint(api_client: TestClient) -> None:
    _book(api_client, "DR-1")
    _book(api_client, "DR-2")

    response = api_client.post(
        "/api/epod/batch",
        json={"drNumbers": ["DR-1", "DR-2"], "signatureImage": SIGNATURE, "customerName": "Juan Dela Cruz"},
    )

    assert response.status_code == 200
    assert [r["ok"] for r in response.json()] == [True, True]
    assert len(api_client.get("/api/epod").json()) == 2


def test_customer_endpoints(api_client: TestClient) -> None:
    created = api_client.post("/api/customers", json={"contactPerson": "Ana", "phone": "0917-111"})
    assert created.status_code == 201
    assert created.json()["id"] == "CUST-001"

    auto = api_client.post("/api/customers/auto-create", json={"name": "ANA", "phone": "0917-111", "address": "Pasig"})
    assert auto.json()["bookingsCount"] == 1
    assert auto.json()["address"] == "Pasig"

    bad = api_client.post("/api/customers", json={"contactPerson": "Ben", "phone": "call me"})
    assert bad.status_code == 422

    assert api_client.get("/api/customers/CUST-001").json()["contactPerson"] == "Ana"
    assert api_client.get("/api/customers/CUST-404").status_code == 404

    merged = api_client.post("/api/customers/merge").json()
    assert merged == {"merged": 0, "customers": 1}


def test_repair_and_sync_endpoints(api_client: TestClient) -> None:
    assert api_client.post("/api/deliveries/repair").json() == {"repaired": []}

    sync = api_client.post("/api/sync").json()
    assert sync == {"remote": False, "collections": {}}


def test_sync_endpoint_pushes_and_pulls(local_cache, memory_remote) -> None:
    offline = build_services(PersistenceGateway(local=local_cache))
    online = build_services(PersistenceGateway(local=local_cache, remote=memory_remote))
    app = create_app()
    app.dependency_overrides[get_services] = lambda: offline
    client = TestClient(app)
    _book(client, "DR-1")

    app.dependency_overrides[get_services] = lambda: online
    payload = client.post("/api/sync").json()

    assert payload["remote"] is True
    assert payload["collections"]["deliveries-active"] == {"pushed": 1, "pulled": 1}
    assert payload["collections"]["customers"] == {"pushed": 1, "pulled": 1}
    assert [row["drNumber"] for row in memory_remote.rows["deliveries-active"]] == ["DR-1"]


def test_completion_endpoint_rejects_blank_dr_number(api_client: TestClient) -> None:
    response = api_client.post("/api/epod/%20/complete", json={"signatureImage": SIGNATURE})

    assert response.status_code == 422
    assert response.json()["detail"]["errorCode"] == "validation_error"
    assert api_client.get("/api/epod").json() == []
