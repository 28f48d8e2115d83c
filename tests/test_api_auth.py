import pytest

from conftest import API_KEY, signup_member


class TestApiKeyGateway:
    async def test_missing_api_key(self, client):
        r = await client.post("/api/login", json={"email": "a@example.com", "password": "secret1"})
        assert r.status_code == 401
        assert r.json() == {
            "status": {"type": "error", "message": "Unauthorized: API key is not correct"}
        }

    async def test_api_key_in_header_and_body(self, client):
        await signup_member(client)
        r = await client.post(
            "/api/login",
            headers={"apikey": API_KEY},
            json={"email": "member@example.com", "password": "secret123"},
        )
        assert r.status_code == 200

        r = await client.post(
            "/api/login",
            json={"email": "member@example.com", "password": "secret123", "apikey": API_KEY},
        )
        assert r.status_code == 200

    async def test_wrong_api_key(self, client):
        r = await client.post("/api/login", params={"apikey": "nope"},
                              json={"email": "a@example.com", "password": "secret1"})
        assert r.status_code == 401


class TestSignup:
    async def test_signup_returns_token(self, client):
        r = await client.post(
            "/api/signup",
            params={"apikey": API_KEY},
            json={"email": "New@Example.com", "password": "secret123", "confirmPassword": "secret123"},
        )
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == {"type": "success", "message": "Successfully signed up"}
        assert body["token"].startswith("JWT ")
        assert isinstance(body["id"], int)

    async def test_duplicate_email(self, client):
        await signup_member(client)
        r = await client.post(
            "/api/signup",
            params={"apikey": API_KEY},
            json={"email": "MEMBER@example.com", "password": "secret123", "confirmPassword": "secret123"},
        )
        assert r.status_code == 409
        assert r.json()["status"]["message"] == "Account with that email address already exists."

    async def test_validation_errors_are_listed(self, client):
        r = await client.post(
            "/api/signup",
            params={"apikey": API_KEY},
            json={"email": "bad", "password": "123", "confirmPassword": "456"},
        )
        assert r.status_code == 422
        status = r.json()["status"]
        assert status["type"] == "error"
        params = {item["param"]: item["msg"] for item in status["message"]}
        assert params["email"] == "Please enter a valid email address."
        assert params["password"] == "Password must be at least 6 characters long"
        assert "confirmPassword" in params


class TestLogin:
    async def test_login_success(self, client):
        created = await signup_member(client)
        r = await client.post("/api/login", params={"apikey": API_KEY},
                              json={"email": "member@example.com", "password": "secret123"})
        assert r.status_code == 200
        body = r.json()
        assert body["status"]["message"] == "Successfully logged in."
        assert body["id"] == created["id"]
        assert body["token"].startswith("JWT ")

    @pytest.mark.parametrize("email,password", [
        ("member@example.com", "wrongpass"),
        ("nobody@example.com", "secret123"),
    ])
    async def test_login_failure(self, client, email, password):
        await signup_member(client)
        r = await client.post("/api/login", params={"apikey": API_KEY},
                              json={"email": email, "password": password})
        assert r.status_code == 401
        assert r.json()["status"]["message"] == "Invalid email or password."
