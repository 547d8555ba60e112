class TestHealth:
    def test_health(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["chat"] == {"users": 0, "connections": 0}
        assert response.headers["x-request-id"]

    def test_request_id_is_echoed(self, client):
        response = client.get("/api/v1/health", headers={"X-Request-ID": "abc-123"})

        assert response.headers["x-request-id"] == "abc-123"


class TestMetrics:
    def test_metrics_exposition(self, client):
        client.get("/api/v1/health")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "zlecenia_http_requests_total" in response.text
        assert "zlecenia_chat_active_connections" in response.text
