from totp_core import BASE32_ALPHABET, generate


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_create_secret(client):
    response = client.post("/api/totp/secret", json={})
    assert response.status_code == 200
    secret = response.get_json()["secret"]
    assert len(secret) == 32
    assert set(secret) <= set(BASE32_ALPHABET)


def test_create_secret_with_length(client):
    response = client.post("/api/totp/secret", json={"length": 16})
    assert len(response.get_json()["secret"]) == 16


def test_create_secret_rejects_bad_length(client):
    assert client.post("/api/totp/secret", json={"length": "x"}).status_code == 400
    assert client.post("/api/totp/secret", json={"length": 0}).status_code == 400


def test_current_code(client, rfc_secret):
    response = client.post("/api/totp/code", json={"secret": rfc_secret})
    assert response.status_code == 200
    data = response.get_json()
    assert len(data["code"]) == 6 and data["code"].isdigit()
    assert data["period"] == 30
    assert 1 <= data["remaining"] <= 30


def test_current_code_requires_secret(client):
    response = client.post("/api/totp/code", json={})
    assert response.status_code == 400
    assert "secret" in response.get_json()["error"]


def test_current_code_invalid_secret(client):
    response = client.post("/api/totp/code", json={"secret": "0000"})
    assert response.status_code == 400
    assert "Invalid base32 character" in response.get_json()["error"]


def test_verify_valid_code(client, rfc_secret):
    code = generate(rfc_secret)
    response = client.post("/api/totp/verify", json={"secret": rfc_secret, "code": code})
    assert response.status_code == 200
    assert response.get_json() == {"valid": True, "outcome": "match"}


def test_verify_short_code(client, rfc_secret):
    response = client.post("/api/totp/verify", json={"secret": rfc_secret, "code": "12345"})
    assert response.get_json() == {"valid": False, "outcome": "no_match"}


def test_verify_malformed_secret(client):
    response = client.post("/api/totp/verify", json={"secret": "0000", "code": "123456"})
    assert response.status_code == 200
    assert response.get_json() == {"valid": False, "outcome": "unavailable"}


def test_verify_requires_fields(client, rfc_secret):
    assert client.post("/api/totp/verify", json={"secret": rfc_secret}).status_code == 400
    assert client.post("/api/totp/verify", data="not json").status_code == 400


def test_verify_rejects_negative_window(client, rfc_secret):
    response = client.post("/api/totp/verify", json={"secret": rfc_secret, "code": "123456", "window": -1})
    assert response.status_code == 400


def test_uri_uses_configured_issuer(client):
    response = client.post("/api/totp/uri", json={"secret": "JBSWY3DPEHPK3PXP", "account": "alice@example.com"})
    assert response.status_code == 200
    assert response.get_json()["uri"] == (
        "otpauth://totp/TestDashboard:alice%40example.com?secret=JBSWY3DPEHPK3PXP&issuer=TestDashboard"
    )


def test_uri_with_explicit_issuer(client):
    response = client.post(
        "/api/totp/uri",
        json={"secret": "JBSWY3DPEHPK3PXP", "account": "bob", "issuer": "My App"},
    )
    assert response.get_json()["uri"].startswith("otpauth://totp/My%20App:bob?")


def test_verify_rejects_window_wider_than_configured(client, rfc_secret):
    response = client.post(
        "/api/totp/verify",
        json={"secret": rfc_secret, "code": "123456", "window": 1000000000},
    )
    assert response.status_code == 400
    assert "window" in response.get_json()["error"]


def test_verify_accepts_narrower_window(client, rfc_secret):
    response = client.post("/api/totp/verify", json={"secret": rfc_secret, "code": generate(rfc_secret), "window": 1})
    assert response.status_code == 200
    assert response.get_json()["valid"] is True


def test_verify_rejects_non_string_code(client, rfc_secret):
    response = client.post("/api/totp/verify", json={"secret": rfc_secret, "code": 0})
    assert response.status_code == 400
    assert "strings" in response.get_json()["error"]


def test_uri_rejects_non_string_fields(client):
    response = client.post("/api/totp/uri", json={"secret": "JBSWY3DPEHPK3PXP", "account": 42})
    assert response.status_code == 400
    response = client.post(
        "/api/totp/uri",
        json={"secret": "JBSWY3DPEHPK3PXP", "account": "bob", "issuer": ["My App"]},
    )
    assert response.status_code == 400
