import random
import uuid

BASE = "/api/v1/auth"


def new_username(prefix: str = "user") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def new_phone() -> str:
    return "+336" + "".join(random.choice("0123456789") for _ in range(8))


def register(client, username=None, phone=None):
    username = username or new_username()
    phone = phone or new_phone()
    response = client.post(f"{BASE}/register", json={"username": username, "phone": phone})
    return username, phone, response


def register_verified(client):
    username, phone, _ = register(client)
    response = client.post(f"{BASE}/register/verify", json={"username": username, "code": "654321"})
    assert response.status_code == 200
    return username, phone, response.json()["data"]["token"]


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestRegisterEndpoints:
    def test_register(self, client, fake_gateway):
        username, phone, response = register(client)

        assert response.status_code == 201
        payload = response.json()
        assert payload["succeeded"] is True
        assert payload["message"].startswith("Account created! Code sent to +336")
        assert "data" not in payload
        assert fake_gateway.started == [(phone, "fr")]

    def test_register_missing_phone(self, client):
        response = client.post(f"{BASE}/register", json={"username": new_username()})

        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"

    def test_register_blank_username(self, client):
        response = client.post(f"{BASE}/register", json={"username": "   ", "phone": new_phone()})

        assert response.status_code == 400

    def test_register_invalid_phone(self, client):
        _, _, response = register(client, phone="0612345678")

        assert response.status_code == 400
        assert response.json()["succeeded"] is False
        assert response.json()["message"].startswith("Phone number must start with +")

    def test_register_duplicate_username(self, client):
        username, _, _ = register(client)

        _, _, response = register(client, username=username)

        assert response.status_code == 409
        assert response.json()["message"] == "This username is already taken"

    def test_register_delivery_failure(self, client, fake_gateway):
        fake_gateway.fail_start = True
        username, _, response = register(client)

        assert response.status_code == 502
        assert response.json()["message"] == "Could not send the verification code"

        response = client.post(f"{BASE}/register/resend-code", json={"username": username})
        assert response.status_code == 404

    def test_register_israeli_number(self, client, fake_gateway):
        national = "052" + "".join(random.choice("0123456789") for _ in range(7))

        _, _, response = register_il(client, national)

        assert response.status_code == 201
        assert fake_gateway.started == [("+972" + national[1:], "he")]

    def test_register_israeli_rejects_landline(self, client):
        _, _, response = register_il(client, "02-123-4567")

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid Israeli mobile number format. Use +972501234567"

    def test_sandbox_number_end_to_end(self, client, fake_gateway):
        username, _, response = register_il(client, "0500000000")
        assert response.status_code == 201

        response = client.post(f"{BASE}/register/verify", json={"username": username, "code": "123456"})

        assert response.status_code == 200
        assert response.json()["data"]["account"]["phone"] == "+972500000000"
        assert fake_gateway.started == []
        assert fake_gateway.checked == []

    def test_resend_code(self, client, fake_gateway):
        username, _, _ = register(client)

        response = client.post(f"{BASE}/register/resend-code", json={"username": username})

        assert response.status_code == 200
        assert response.json()["message"].startswith("New code sent to")
        assert len(fake_gateway.started) == 2


def register_il(client, phone):
    username = new_username("il")
    response = client.post(f"{BASE}/register/il", json={"username": username, "phone": phone})
    return username, phone, response


class TestVerifyEndpoint:
    def test_verify_returns_token(self, client):
        username, phone, _ = register(client)

        response = client.post(f"{BASE}/register/verify", json={"username": username, "code": "654321"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["token"]
        assert data["token_type"] == "bearer"
        assert data["account"]["username"] == username
        assert data["account"]["phone"] == phone
        assert data["account"]["phone_verified"] is True

    def test_verify_wrong_code(self, client):
        username, _, _ = register(client)

        response = client.post(f"{BASE}/register/verify", json={"username": username, "code": "000000"})

        assert response.status_code == 400
        assert response.json()["message"] == "Incorrect code (4 attempts remaining)"

    def test_verify_too_many_attempts(self, client):
        username, _, _ = register(client)

        for _ in range(4):
            client.post(f"{BASE}/register/verify", json={"username": username, "code": "000000"})
        response = client.post(f"{BASE}/register/verify", json={"username": username, "code": "000000"})
        assert response.status_code == 429

        response = client.post(f"{BASE}/register/verify", json={"username": username, "code": "654321"})
        assert response.status_code == 400
        assert response.json()["message"] == "Session expired. Request a new code"

    def test_verify_unknown_account(self, client):
        response = client.post(
            f"{BASE}/register/verify", json={"username": new_username(), "code": "654321"}
        )

        assert response.status_code == 404

    def test_verify_gateway_unavailable(self, client, fake_gateway):
        username, _, _ = register(client)
        fake_gateway.fail_check = True

        response = client.post(f"{BASE}/register/verify", json={"username": username, "code": "654321"})

        assert response.status_code == 502


class TestLoginEndpoints:
    def test_request_login_for_verified_account(self, client):
        username, _, _ = register_verified(client)

        response = client.post(f"{BASE}/login/request", json={"username": username})

        assert response.status_code == 200
        payload = response.json()
        assert payload["message"] == "Automatic login"
        assert payload["data"]["token"]
        assert payload["data"]["account"]["last_login_at"] is not None

    def test_request_login_unverified(self, client):
        username, _, _ = register(client)

        response = client.post(f"{BASE}/login/request", json={"username": username})

        assert response.status_code == 403

    def test_request_login_unknown(self, client):
        response = client.post(f"{BASE}/login/request", json={"username": new_username()})

        assert response.status_code == 404

    def test_login_verify_after_request_login(self, client):
        username, _, _ = register_verified(client)
        client.post(f"{BASE}/login/request", json={"username": username})

        response = client.post(f"{BASE}/login/verify", json={"username": username, "code": "654321"})

        assert response.status_code == 400
        assert response.json()["message"] == "Session expired. Request a new code"

    def test_login_verify_unverified(self, client):
        username, _, _ = register(client)

        response = client.post(f"{BASE}/login/verify", json={"username": username, "code": "654321"})

        assert response.status_code == 401
        assert response.json()["message"] == "Login not possible"


class TestProtectedEndpoints:
    def test_profile(self, client):
        username, phone, token = register_verified(client)

        response = client.get(f"{BASE}/profile", headers=auth_header(token))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["username"] == username
        assert data["phone"] == phone

    def test_profile_without_token(self, client):
        response = client.get(f"{BASE}/profile")

        assert response.status_code == 401
        assert response.json()["message"] == "Not authenticated"

    def test_profile_with_invalid_token(self, client):
        response = client.get(f"{BASE}/profile", headers=auth_header("not-a-jwt"))

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    def test_accounts(self, client):
        username, _, token = register_verified(client)

        response = client.get(f"{BASE}/accounts", headers=auth_header(token))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == len(data["accounts"])
        assert username in [a["username"] for a in data["accounts"]]

    def test_history(self, client):
        username, _, token = register_verified(client)
        for _ in range(3):
            client.post(f"{BASE}/login/request", json={"username": username})

        response = client.get(f"{BASE}/history", params={"limit": 2}, headers=auth_header(token))

        assert response.status_code == 200
        history = response.json()["data"]
        assert len(history) == 2
        assert all(entry["succeeded"] for entry in history)
        assert history[0]["source_address"] == "testclient"

    def test_history_limit_bounds(self, client):
        _, _, token = register_verified(client)

        response = client.get(f"{BASE}/history", params={"limit": 0}, headers=auth_header(token))

        assert response.status_code == 400
