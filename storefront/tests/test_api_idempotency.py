from sqlalchemy import func, select

from storefront.idempotency import canonical_hash
from storefront.models import IdempotencyKey, Order

ORDERS_URL = "/api/orders/"


def _payload(seed, **overrides):
    data = {"user_id": seed.user.id, "cart_id": seed.cart.id, "total_price": "110.00", "payment_method": "CARD"}
    data.update(overrides)
    return data


def test_idempotent_same_payload_replays_response(client, session, seed):
    key = "idem-same-1"
    r1 = client.post(ORDERS_URL, json=_payload(seed), headers={"Idempotency-Key": key})
    assert r1.status_code == 201

    r2 = client.post(ORDERS_URL, json=_payload(seed), headers={"Idempotency-Key": key})
    assert r2.status_code == 201
    assert r2.json() == r1.json()
    assert r2.headers.get("Idempotent-Replay") == "true"

    # the checkout ran once
    assert session.scalar(select(func.count()).select_from(Order)) == 1
    rec = session.get(IdempotencyKey, key)
    assert rec.order_id == r1.json()["id"]


def test_idempotent_conflict_on_different_payload(client, seed):
    key = "idem-conflict-1"
    r1 = client.post(ORDERS_URL, json=_payload(seed), headers={"Idempotency-Key": key})
    assert r1.status_code == 201

    r2 = client.post(ORDERS_URL, json=_payload(seed, total_price="5.00"), headers={"Idempotency-Key": key})
    assert r2.status_code == 409
    assert r2.json()["detail"] == "IDEMPOTENCY_CONFLICT"


def test_idempotent_replay_preserves_404(client, seed):
    key = "idem-404"
    payload = _payload(seed, user_id=9999)
    r1 = client.post(ORDERS_URL, json=payload, headers={"Idempotency-Key": key})
    assert r1.status_code == 404

    r2 = client.post(ORDERS_URL, json=payload, headers={"Idempotency-Key": key})
    assert r2.status_code == 404
    assert r2.json() == r1.json()
    assert r2.headers.get("Idempotent-Replay") == "true"


def test_canonical_hash_ignores_key_order():
    assert canonical_hash({"a": 1, "b": 2}) == canonical_hash({"b": 2, "a": 1})
    assert canonical_hash({"a": 1}) != canonical_hash({"a": 2})


def test_unexpected_failure_frees_key_for_retry(client, session, seed, monkeypatch):
    from storefront.services import OrderService

    original = OrderService.create_order
    calls = {"n": 0}

    def flaky_create_order(self, dto):
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("db connection lost")
        return original(self, dto)

    monkeypatch.setattr(OrderService, "create_order", flaky_create_order, raising=True)

    key = "idem-outage"
    r1 = client.post(ORDERS_URL, json=_payload(seed), headers={"Idempotency-Key": key})
    assert r1.status_code == 503
    assert r1.json()["detail"] == "UPSTREAM_UNAVAILABLE"
    assert session.get(IdempotencyKey, key) is None

    r2 = client.post(ORDERS_URL, json=_payload(seed), headers={"Idempotency-Key": key})
    assert r2.status_code == 201
    assert r2.headers.get("Idempotent-Replay") is None
    assert calls["n"] == 2

    session.expire_all()
    assert session.get(IdempotencyKey, key).order_id == r2.json()["id"]
