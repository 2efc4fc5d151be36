"""Integration tests for API endpoints"""

import httpx
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from farm_finance.domain.context import EngineContext
from farm_finance.infrastructure.database.models import FinanceDealRecord


def finance_payload(**overrides) -> dict:
    payload = {
        "farmId": 1,
        "itemType": "vehicle",
        "itemId": "store_tractor",
        "itemName": "New Tractor",
        "basePrice": 100_000,
        "downPayment": 20_000,
        "termYears": 5,
        "cashBack": 0,
    }
    payload.update(overrides)
    return payload


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    client.post("/v1/finance", json=finance_payload())
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "farm_finance_deals_total" in response.text


def test_deal_metrics_use_fixed_deal_type_labels(client: TestClient):
    client.post("/v1/finance", json=finance_payload(itemType="modded_combine_9000", itemId="mod_combine"))
    text = client.get("/metrics").text
    assert 'deal_type="vehicle"' in text
    assert "modded_combine_9000" not in text


def test_request_id_header(client: TestClient):
    response = client.get("/health")
    assert response.headers["X-Request-ID"]


def test_request_id_header_is_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "session-42"})
    assert response.headers["X-Request-ID"] == "session-42"


def test_upsert_farm(client: TestClient, context: EngineContext):
    response = client.put(
        "/v1/farms/7",
        json={
            "money": 50_000,
            "vehicles": [{"vehicle_id": "H1", "name": "Harvester", "sell_price": 150_000}],
            "farmlands": [{"farmland_id": 70, "name": "South Field", "price": 90_000}],
        },
    )

    assert response.status_code == 200
    assert response.json()["vehicles"][0]["repair_percent"] == 100
    assert context.host.get_farm_by_id(7).money == 50_000
    assert context.host.get_farmland_by_id(70).owner_farm_id == 7


def test_get_credit(client: TestClient):
    response = client.get("/v1/farms/1/credit")

    assert response.status_code == 200
    data = response.json()
    assert data["score"] == 630
    assert data["rating"] == "Fair"
    assert data["tier"] == 3
    assert data["interest_adjustment"] == 0.5


def test_get_credit_unknown_farm(client: TestClient):
    assert client.get("/v1/farms/404/credit").status_code == 404


def test_eligibility(client: TestClient):
    data = client.get("/v1/farms/2/credit/eligibility", params={"category": "LAND_FINANCE"}).json()
    assert data["ok"] is False
    assert data["min_score_required"] == 620
    assert data["current_score"] == 450


def test_payment_preview_has_no_side_effects(client: TestClient, context: EngineContext):
    body = {"price": 100_000, "down_payment": 20_000, "term_months": 60, "farm_id": 1}
    first = client.post("/v1/preview/payment", json=body).json()
    second = client.post("/v1/preview/payment", json=body).json()

    assert first == second
    assert first["credit_score"] == 630
    assert first["annual_rate"] == 5.0
    assert first["amount_financed"] == 80_000
    assert first["max_cash_back"] == 10_000
    assert context.host.farms[1].money == 200_000
    assert context.finance_manager.deals == {}


def test_payment_preview_invalid_inputs_are_normalized(client: TestClient):
    data = client.post("/v1/preview/payment", json={"price": 1_000, "term_months": 0, "credit_score": 2_000}).json()
    # Invalid term falls back to the default and the score clamps to the top of the range
    assert data["credit_score"] == 850
    assert data["meets_minimum"] is False
    assert data["minimum_amount"] == 2_500


def test_land_preview(client: TestClient):
    data = client.post("/v1/preview/land", json={"base_price": 100_000, "credit_score": 800, "term_years": 10}).json()
    assert data["adjusted_price"] == 95_000
    assert data["adjustment_percent"] == -5
    assert data["tier_name"] == "Excellent"


def test_lease_preview(client: TestClient):
    data = client.post("/v1/preview/lease", json={"price": 60_000, "credit_score": 800, "term_months": 36}).json()
    assert data["deposit_months"] == 0
    assert data["due_at_signing"] == 0


def test_finance_deal_lifecycle(client: TestClient, context: EngineContext, webhook_requests: list[httpx.Request]):
    created = client.post("/v1/finance", json=finance_payload())
    assert created.status_code == 201
    deal = created.json()["deal"]
    assert deal["term_months"] == 60
    assert deal["status"] == "active"
    assert created.json()["amount"] == 20_000

    deals = client.get("/v1/farms/1/deals").json()
    assert deals["total_debt"] == 80_000
    assert len(deals["deals"]) == 1

    tick = client.post("/v1/ticks/month", json={"tick": 1}).json()
    assert [e["kind"] for e in tick["events"]] == ["payment_collected"]
    assert len(webhook_requests) == 1

    # Duplicate tick is ignored
    assert client.post("/v1/ticks/month", json={"tick": 1}).json()["events"] == []

    history = client.get("/v1/farms/1/credit/history").json()
    assert history["payments_on_time"] == 1
    assert history["entries"][0]["event"] == "payment_on_time"

    payoff = client.post(f"/v1/deals/{deal['id']}/payment", json={"amount": 1_000_000})
    assert payoff.status_code == 200
    assert payoff.json()["deal"]["status"] == "paid_off"

    stats = client.get("/v1/farms/1/statistics").json()
    assert stats["deals_created"] == 1
    assert stats["deals_completed"] == 1


def test_finance_rejections(client: TestClient, context: EngineContext):
    context.host.farms[1].money = 5_000
    response = client.post("/v1/finance", json=finance_payload())
    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["reason"] == "insufficient_funds"
    assert detail["shortfall"] == 15_000

    response = client.post("/v1/finance", json=finance_payload(farmId=2))
    assert response.status_code == 422
    assert response.json()["detail"]["reason"] == "ineligible"
    assert response.json()["detail"]["required"] == 550

    assert client.post("/v1/finance", json=finance_payload(farmId=404)).status_code == 404


def test_land_finance_request(client: TestClient, context: EngineContext):
    response = client.post(
        "/v1/finance",
        json=finance_payload(itemType="land", itemId="10", itemName="North Field", basePrice=120_000,
                             downPayment=24_000, termYears=20),
    )
    assert response.status_code == 201
    assert response.json()["deal"]["deal_type"] == 4
    assert context.host.get_farmland_by_id(10).owner_farm_id == 1


def test_lease_request(client: TestClient):
    response = client.post("/v1/lease", json=finance_payload(basePrice=60_000, downPayment=6_000, termMonths=36))
    assert response.status_code == 201
    assert response.json()["deal"]["deal_type"] == 2
    assert response.json()["deal"]["security_deposit"] > 0


def test_multiplier_endpoint(client: TestClient):
    deal_id = client.post("/v1/finance", json=finance_payload()).json()["deal"]["id"]

    updated = client.put(f"/v1/deals/{deal_id}/multiplier", json={"multiplier": 2.5})
    assert updated.json()["deal"]["payment_multiplier"] == 2.5
    assert client.put(f"/v1/deals/{deal_id}/multiplier", json={"multiplier": 9}).status_code == 422
    assert client.put("/v1/deals/DEAL_99999999/multiplier", json={"multiplier": 2}).status_code == 404


def test_vehicle_sale_flow(client: TestClient, context: EngineContext, webhook_requests: list[httpx.Request]):
    created = client.post("/v1/sales", json={"farm_id": 1, "vehicle_id": "T1", "agent_tier": 2, "price_tier": 2})
    assert created.status_code == 201
    listing_id = created.json()["listing"]["id"]

    context.sale_manager.get_listing(listing_id).offer_chance_per_hour = 1.0
    tick = client.post("/v1/ticks/hour", json={"tick": 1}).json()
    assert tick["events"][0]["kind"] == "offer_received"
    assert len(webhook_requests) == 1

    declined = client.post(f"/v1/sales/{listing_id}/decline")
    assert declined.json()["listing"]["status"] == "active"
    assert declined.json()["listing"]["offers_declined"] == 1

    client.post("/v1/ticks/hour", json={"tick": 2})
    accepted = client.post(f"/v1/sales/{listing_id}/accept")
    assert accepted.status_code == 200
    data = accepted.json()
    assert data["listing"]["status"] == "sold"
    assert data["fee"] == round(data["gross"] * 0.04, 2)
    assert data["net"] == data["gross"] - data["fee"]

    listings = client.get("/v1/farms/1/sales").json()["listings"]
    assert [item["status"] for item in listings] == ["sold"]


def test_sale_rejections(client: TestClient):
    premium = client.post("/v1/sales", json={"farm_id": 1, "vehicle_id": "T2", "agent_tier": 1, "price_tier": 3})
    assert premium.status_code == 422

    listing_id = client.post("/v1/sales", json={"farm_id": 1, "vehicle_id": "T1"}).json()["listing"]["id"]
    assert client.post(f"/v1/sales/{listing_id}/accept").status_code == 409
    assert client.post(f"/v1/sales/{listing_id}/cancel").json()["listing"]["status"] == "cancelled"
    assert client.post(f"/v1/sales/{listing_id}/cancel").status_code == 409
    assert client.post("/v1/sales/SALE_99999999/decline").status_code == 404


def test_save_and_load_state(client: TestClient, context: EngineContext):
    client.post("/v1/finance", json=finance_payload())
    client.post("/v1/ticks/month", json={"tick": 1})

    saved = client.post("/v1/state/save", json={"slot": "career-1"})
    assert saved.status_code == 200
    assert saved.json() == {"slot": "career-1", "deals": 1, "listings": 0, "credit_entries": 1}

    context.reset()
    assert context.finance_manager.deals == {}

    loaded = client.post("/v1/state/load", json={"slot": "career-1"})
    assert loaded.status_code == 200
    assert loaded.json()["deals"] == 1
    assert context.finance_manager.get_deal("DEAL_00000001").months_paid == 1

    assert client.post("/v1/state/load", json={"slot": "missing"}).status_code == 404


def test_load_corrupt_state_is_rejected(client: TestClient, context: EngineContext, db: Session):
    client.post("/v1/finance", json=finance_payload())
    client.post("/v1/state/save", json={"slot": "career-1"})

    db.query(FinanceDealRecord).update({FinanceDealRecord.status: "bogus"})
    db.commit()

    response = client.post("/v1/state/load", json={"slot": "career-1"})
    assert response.status_code == 422
    assert context.finance_manager.get_deal("DEAL_00000001") is not None


def test_statistics_lookup_has_no_side_effects(client: TestClient, context: EngineContext):
    assert client.get("/v1/farms/77/statistics").json()["deals_created"] == 0
    assert context.finance_manager.statistics_by_farm == {}
