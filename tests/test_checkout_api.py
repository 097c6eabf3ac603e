def _post(client, path, json, user=None):
    headers = {"X-User-Id": str(user.id)} if user else {}
    r = client.post(path, json=json, headers=headers)
    return r.status_code, r.json()


def test_countries(client):
    r = client.get("/checkout/countries")
    assert r.status_code == 200
    codes = [c["code"] for c in r.json()["countries"]]
    assert len(codes) == 10 and "MX" in codes and "GT" in codes

    js = client.get("/checkout/countries/usd").json()["country"]
    assert js["code"] == "US" and js["free_shipping_threshold"] == 100.0

    r = client.get("/checkout/countries/ZZ")
    assert r.status_code == 400 and r.json() == {"detail": "País no encontrado", "code": "COUNTRY_NOT_FOUND"}


def test_currency_info(client):
    js = client.get("/checkout/currency/ES").json()
    assert js["currency"] == "EUR" and js["symbol"] == "€" and js["exchange_rate"] == 0.053


def test_totals_mx(client):
    st, js = _post(client, "/checkout/totals", {"subtotal": 1000, "country_code": "mx"})
    assert st == 200
    assert js["tax"]["amount"] == 160.0 and js["shipping"]["cost"] == 99.0
    assert js["shipping"]["amount_needed_for_free"] == 500.0
    assert js["total"] == 1259.0 and js["coupon"] is None

    st, js = _post(client, "/checkout/totals", {"subtotal": 1600, "country_code": "MX", "shipping_type": "express"})
    assert st == 200 and js["shipping"]["is_free"] is True and js["total"] == 1856.0


def test_totals_unknown_country(client):
    st, js = _post(client, "/checkout/totals", {"subtotal": 100, "country_code": "ZZ"})
    assert st == 400 and js["code"] == "COUNTRY_NOT_FOUND"


def test_totals_bad_payload(client):
    st, _ = _post(client, "/checkout/totals", {"subtotal": -1, "country_code": "MX"})
    assert st == 422


def test_totals_with_coupons(client, make_coupon):
    make_coupon("ENVIOGRATIS", "free_shipping", "0")
    make_coupon("SAVE10", "percentage", "10", max_discount=50)

    st, js = _post(client, "/checkout/totals", {"subtotal": 500, "country_code": "MX", "coupon_code": "enviogratis"})
    assert st == 200 and js["coupon"]["valid"] is True
    assert js["shipping"]["is_free"] is True and js["total"] == 580.0

    st, js = _post(client, "/checkout/totals", {"subtotal": 1000, "country_code": "MX", "coupon_code": "SAVE10"})
    assert js["discount"] == 50.0 and js["total"] == 1209.0

    # Cupón inválido: se cotiza sin descuento
    st, js = _post(client, "/checkout/totals", {"subtotal": 1000, "country_code": "MX", "coupon_code": "NADA"})
    assert st == 200 and js["coupon"]["valid"] is False and js["discount"] == 0.0 and js["total"] == 1259.0


def test_coupon_validate(client, make_coupon, make_user):
    make_coupon("SAVE10", "percentage", "10", max_discount=50)
    make_coupon("SOLOANA", "fixed", "50", restricted_to_email="ana@example.com")
    beto = make_user("Beto", "beto@example.com")

    st, js = _post(client, "/checkout/coupon/validate", {"code": "save10", "subtotal": 1000})
    assert st == 200 and js["valid"] is True and js["discount"] == 50.0
    assert js["coupon"]["code"] == "SAVE10"

    st, js = _post(client, "/checkout/coupon/validate", {"code": "SOLOANA", "subtotal": 100}, user=beto)
    assert st == 400 and js["code"] == "COUPON_EMAIL_RESTRICTED"
    assert "solo puede ser usado por el email al que fue enviado" in js["detail"]

    st, js = _post(client, "/checkout/coupon/validate", {"code": "NADA", "subtotal": 100})
    assert st == 400 and js["detail"] == "Cupón no encontrado o inactivo"


def test_coupon_admin(client):
    st, js = _post(client, "/coupons", {"code": "verano20", "name": "Verano", "discount_type": "percentage", "discount_value": 20})
    assert st == 200 and js["code"] == "VERANO20" and js["used_count"] == 0
    cid = js["id"]

    st, js = _post(client, "/coupons", {"code": "VERANO20", "name": "Otro", "discount_type": "fixed", "discount_value": 5})
    assert st == 400 and js["code"] == "COUPON_DUPLICATE"

    assert [c["code"] for c in client.get("/coupons").json()["coupons"]] == ["VERANO20"]
    st, js = _post(client, f"/coupons/{cid}/deactivate", {})
    assert st == 200 and js["is_active"] is False
    assert client.get("/coupons").json()["coupons"] == []
