def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    js = r.json()
    assert js["status"] == "ok" and js["app"] and js["version"]
