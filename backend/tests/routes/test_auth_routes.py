from zlecenia.core.config import settings

TEST_PASSWORD = "TestPassword123!"


def _register(client, username="jan", email="jan@technischools.com", password=TEST_PASSWORD):
    return client.post(
        "/api/v1/auth/register",
        json={"username": username, "email": email, "password": password},
    )


class TestRegister:
    def test_register(self, client):
        response = _register(client)

        assert response.status_code == 201
        body = response.json()
        assert body["username"] == "jan"
        assert body["email"] == "jan@technischools.com"
        assert "password_hash" not in body

    def test_register_outside_allowed_domain(self, client):
        response = _register(client, email="jan@gmail.com")

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("application/problem+json")
        assert response.json()["code"] == "INVALID_EMAIL"

    def test_register_taken_email(self, client, alice):
        response = _register(client, username="other", email=alice.email)

        assert response.status_code == 409
        assert response.json()["code"] == "EMAIL_TAKEN"

    def test_unknown_field_is_rejected(self, client):
        response = client.post(
            "/api/v1/auth/register",
            json={
                "username": "jan",
                "email": "jan@technischools.com",
                "password": TEST_PASSWORD,
                "is_admin": True,
            },
        )

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"


class TestLoginAndRefresh:
    def test_login_sets_refresh_cookie(self, client, alice):
        response = client.post(
            "/api/v1/auth/login", json={"email": alice.email, "password": TEST_PASSWORD}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == settings.access_token_expire_minutes * 60
        cookie_header = response.headers["set-cookie"]
        assert f"{settings.refresh_cookie_name}=" in cookie_header
        assert "HttpOnly" in cookie_header
        assert "samesite=strict" in cookie_header.lower()

    def test_login_with_wrong_password(self, client, alice):
        response = client.post("/api/v1/auth/login", json={"email": alice.email, "password": "nope"})

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_CREDENTIALS"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_refresh_with_cookie(self, client, alice):
        client.post("/api/v1/auth/login", json={"email": alice.email, "password": TEST_PASSWORD})

        response = client.post("/api/v1/auth/refresh")

        assert response.status_code == 200
        access_token = response.json()["access_token"]
        me = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {access_token}"})
        assert me.json()["id"] == str(alice.id)

    def test_refresh_cookie_revoked_by_a_later_login(self, client, alice):
        credentials = {"email": alice.email, "password": TEST_PASSWORD}
        first = client.post("/api/v1/auth/login", json=credentials)
        old_cookie = first.cookies[settings.refresh_cookie_name]
        client.post("/api/v1/auth/login", json=credentials)
        client.cookies.clear()

        response = client.post(
            "/api/v1/auth/refresh",
            headers={"Cookie": f"{settings.refresh_cookie_name}={old_cookie}"},
        )

        assert response.status_code == 401
        assert response.json()["code"] == "TOKEN_REVOKED"

    def test_refresh_without_cookie(self, client):
        response = client.post("/api/v1/auth/refresh")

        assert response.status_code == 401
        assert response.json()["code"] == "MISSING_REFRESH_TOKEN"


class TestCurrentUser:
    def test_me(self, client, alice, auth_headers_alice):
        response = client.get("/api/v1/users/me", headers=auth_headers_alice)

        assert response.status_code == 200
        assert response.json()["username"] == "alice"

    def test_me_without_token(self, client):
        assert client.get("/api/v1/users/me").status_code == 401

    def test_me_with_garbage_token(self, client):
        response = client.get("/api/v1/users/me", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"
