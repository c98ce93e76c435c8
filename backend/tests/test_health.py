def test_health_endpoints(client):
    assert client.get("/api/health").json() == {"status": "ok"}

    live = client.get("/api/health/live")
    assert live.status_code == 200
    assert live.json()["status"] == "ok"

    ready = client.get("/api/health/ready")
    assert ready.status_code in {200, 503}
    payload = ready.json()
    assert "database" in payload
    assert payload["scheduler"]["regeneration_window_days"] == 14


def test_ready_reports_injected_lock_registry(client, generation_locks):
    generation_locks.acquire("term-1")

    payload = client.get("/api/health/ready").json()

    assert payload["scheduler"]["generation_locks_held"] == 1
