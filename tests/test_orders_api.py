from decimal import Decimal

from tienda.middleware.idempotency import idem_locks
from tienda.models.coupon import Coupon, CouponUsage
from tienda.models.order import Order
from tienda.models.product import Product
from tienda.services import checkout
from tienda.services.coupons import CouponValidation


def _headers(user, key=None):
    h = {"X-User-Id": str(user.id)}
    if key:
        h["Idempotency-Key"] = key
    return h


def _order_body(pid, qty=1, **totals):
    return {
        "items": [{"product_id": pid, "quantity": qty}],
        "payment_method": "card",
        "shipping": {"name": "Ana López", "address": "Av. Juárez 10", "city": "CDMX", "postal_code": "06000"},
        "totals": {"country": "MX", **totals},
    }


def test_create_and_read_order(client, db, make_user, make_product, notifier):
    u = make_user()
    p = make_product(price="500.00", stock=5)

    r = client.post("/orders", json=_order_body(p.id, 2, payment_details={"last4": "4242"}), headers=_headers(u))
    assert r.status_code == 200
    js = r.json()
    assert js["status"] == "pagado" and js["total"] == 1259.0
    assert js["message"].startswith("¡Compra finalizada!")
    oid = js["order_id"]

    o = client.get(f"/orders/{oid}").json()
    assert o["shipping"]["postal_code"] == "06000" and o["lines"][0]["quantity"] == 2
    assert o["invoice_path"] == f"memory/invoice_{oid}.json"
    assert [x["order_id"] for x in client.get("/orders", params={"user_id": u.id}).json()["orders"]] == [oid]
    assert client.get("/orders", params={"user_id": 999}).json()["orders"] == []
    assert len(notifier.invoices) == 1


def test_order_requires_user(client, make_product):
    p = make_product()
    r = client.post("/orders", json=_order_body(p.id))
    assert r.status_code == 400 and r.json()["code"] == "USER_REQUIRED"


def test_order_stock_insufficient(client, db, make_user, make_product):
    u = make_user()
    p = make_product(stock=2)
    r = client.post("/orders", json=_order_body(p.id, 3), headers=_headers(u))
    assert r.status_code == 400 and r.json()["code"] == "STOCK_INSUFFICIENT"
    assert db.query(Order).count() == 0


def test_idempotent_replay(client, db, make_user, make_product):
    u = make_user()
    p = make_product(stock=5)
    body = _order_body(p.id, 1)

    r1 = client.post("/orders", json=body, headers=_headers(u, "pago-123"))
    r2 = client.post("/orders", json=body, headers=_headers(u, "pago-123"))
    assert r1.status_code == r2.status_code == 200
    assert r1.json()["order_id"] == r2.json()["order_id"]
    assert r2.json().get("replay") is True and r2.headers.get("Idempotent-Replay") == "true"
    assert db.query(Order).count() == 1
    db.expire_all()
    assert db.get(Product, p.id).stock == 4

    # Otra clave es otra compra
    r3 = client.post("/orders", json=body, headers=_headers(u, "pago-456"))
    assert r3.json()["order_id"] != r1.json()["order_id"]


def test_failed_order_is_not_cached(client, db, make_user, make_product):
    u = make_user()
    p = make_product(stock=1)
    r = client.post("/orders", json=_order_body(p.id, 2), headers=_headers(u, "k1"))
    assert r.status_code == 400

    db.query(Product).filter(Product.id == p.id).update({"stock": 5})
    db.commit()
    r = client.post("/orders", json=_order_body(p.id, 2), headers=_headers(u, "k1"))
    assert r.status_code == 200 and "replay" not in r.json()


def test_status_endpoint(client, make_user, make_product):
    u = make_user()
    p = make_product()
    body = _order_body(p.id)
    body["payment_method"] = "transfer"
    oid = client.post("/orders", json=body, headers=_headers(u)).json()["order_id"]

    r = client.patch(f"/orders/{oid}/status", json={"status": "pagado"})
    assert r.status_code == 200 and r.json()["status"] == "pagado"
    r = client.patch(f"/orders/{oid}/status", json={"status": "pendiente"})
    assert r.status_code == 400 and r.json()["code"] == "ORDER_STATUS_TRANSITION"
    assert client.patch("/orders/999/status", json={"status": "pagado"}).status_code == 404


def test_delete_order(client, make_user, make_product):
    u = make_user()
    p = make_product()
    oid = client.post("/orders", json=_order_body(p.id), headers=_headers(u)).json()["order_id"]
    assert client.delete(f"/orders/{oid}").json() == {"deleted": True, "order_id": oid}
    assert client.get(f"/orders/{oid}").status_code == 404


def test_product_with_sales_cannot_be_deleted(client, make_user, make_product):
    u = make_user()
    sold = make_product(stock=5)
    unsold = make_product("Afinador", price="349.00")
    client.post("/orders", json=_order_body(sold.id), headers=_headers(u))

    r = client.delete(f"/products/{sold.id}")
    assert r.status_code == 409 and r.json()["code"] == "TIENE_VENTAS"
    assert client.get(f"/products/{sold.id}").status_code == 200

    assert client.delete(f"/products/{unsold.id}").status_code == 200
    assert client.get(f"/products/{unsold.id}").status_code == 404


def test_product_display_price(client, make_product):
    p = make_product(price="1000.00")
    js = client.get(f"/products/{p.id}", params={"country": "US"}).json()
    assert js["price"] == 1000.0
    assert js["display_price"]["formatted"] == "$58.00 USD"


def test_cart_endpoints(client, make_user, make_product):
    u = make_user()
    p = make_product(price="189.00")
    h = _headers(u)
    assert client.post("/cart/items", json={"product_id": p.id, "quantity": 2}, headers=h).json()["action"] == "added"
    assert client.post("/cart/items", json={"product_id": p.id}, headers=h).json()["quantity"] == 3
    js = client.get("/cart", headers=h).json()
    assert js["count"] == 3 and js["subtotal"] == 567.0
    client.put(f"/cart/items/{p.id}", json={"quantity": 0}, headers=h)
    assert client.get("/cart/count", headers=h).json() == {"count": 0}


def test_coupon_already_redeemed_race_is_409(client, db, make_user, make_product, make_coupon, monkeypatch):
    u = make_user()
    p = make_product(stock=5)
    c = make_coupon("UNAVEZ", one_per_user=True)
    db.add(CouponUsage(coupon_id=c.id, user_id=u.id, exclusive_user_id=u.id))
    db.commit()
    stale = CouponValidation(valid=True, reason="OK", message="", coupon=db.get(Coupon, c.id), discount=Decimal("50"))
    monkeypatch.setattr(checkout, "validate_coupon", lambda *a, **kw: stale)

    r = client.post("/orders", json=_order_body(p.id, coupon_code="UNAVEZ"), headers=_headers(u))
    assert r.status_code == 409 and r.json()["code"] == "COUPON_ALREADY_USED"
    assert db.query(Order).count() == 0


def test_idempotency_locks_are_released(client, make_user, make_product):
    u = make_user()
    p = make_product(stock=50)
    for i in range(5):
        r = client.post("/orders", json=_order_body(p.id), headers=_headers(u, f"pago-{i}"))
        assert r.status_code == 200
    # Una petición fallida también suelta su candado
    assert client.post("/orders", json=_order_body(p.id, 999), headers=_headers(u, "pago-x")).status_code == 400
    assert len(idem_locks) == 0


def test_cart_subtotal_in_cents(client, make_user, make_product):
    u = make_user()
    a = make_product("Púas", price="0.10", stock=100)
    b = make_product("Cuerdas", price="19.99", stock=10)
    h = _headers(u)
    client.post("/cart/items", json={"product_id": a.id, "quantity": 7}, headers=h)
    client.post("/cart/items", json={"product_id": b.id, "quantity": 3}, headers=h)
    js = client.get("/cart", headers=h).json()
    assert js["count"] == 10 and js["subtotal"] == 60.67
