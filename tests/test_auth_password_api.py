import pytest


@pytest.fixture
def app(make_app):
    return make_app(AUTH_MODE="password", REFRESH_TOKEN_STORAGE="table")


REGISTRATION = {
    "email": "Priya@Example.com",
    "password": "correct-horse-9",
    "firstName": "Priya",
    "lastName": "Rao",
}


def _login(client, password="correct-horse-9"):
    return client.post("/api/auth/login", json={"email": "priya@example.com", "password": password})


def test_register_and_login(client):
    res = client.post("/api/auth/register", json=REGISTRATION)
    assert res.status_code == 201
    user = res.get_json()["data"]["user"]
    assert user["email"] == "priya@example.com"
    assert "password" not in user and "passwordHash" not in user
    assert client.get_cookie("refreshToken") is not None

    res = _login(client)
    assert res.status_code == 200
    assert res.get_json()["message"] == "Login successful"


def test_password_is_hashed(client, store):
    client.post("/api/auth/register", json=REGISTRATION)
    user = store.find_user_by_email("priya@example.com")
    assert user.password_hash.startswith("$argon2")
    assert "correct-horse-9" not in user.password_hash


def test_duplicate_email_is_conflict(client):
    assert client.post("/api/auth/register", json=REGISTRATION).status_code == 201
    res = client.post("/api/auth/register", json=dict(REGISTRATION, email="priya@example.com"))
    assert res.status_code == 409
    assert res.get_json()["message"] == "Email already registered"


def test_short_password_rejected(client):
    res = client.post("/api/auth/register", json=dict(REGISTRATION, password="short"))
    assert res.status_code == 400
    assert res.get_json()["errors"][0]["field"] == "password"


def test_wrong_password_is_401_with_generic_message(client):
    client.post("/api/auth/register", json=REGISTRATION)
    res = _login(client, "not-the-password")
    assert res.status_code == 401
    assert res.get_json()["message"] == "Invalid email or password"

    unknown = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "whatever1"})
    assert unknown.status_code == 401
    assert unknown.get_json()["message"] == "Invalid email or password"


def test_no_attempt_ceiling_without_rate_limit(client):
    client.post("/api/auth/register", json=REGISTRATION)
    for _ in range(5):
        assert _login(client, "not-the-password").status_code == 401
    assert _login(client).status_code == 200


def test_deactivated_account_is_403(client, store):
    client.post("/api/auth/register", json=REGISTRATION)
    store.update(store.find_user_by_email("priya@example.com"), is_active=False)
    res = _login(client)
    assert res.status_code == 403
    assert res.get_json()["message"] == "Account is deactivated"


def test_otp_routes_hidden_in_password_mode(client):
    res = client.post("/api/auth/register/send-otp",
                      json={"phoneNumber": "+15551234567", "firstName": "Priya", "lastName": "Rao"})
    assert res.status_code == 404
    assert client.post("/api/auth/login/send-otp", json={"phoneNumber": "+15551234567"}).status_code == 404
    assert client.post("/api/auth/login/verify-otp", json={}).status_code == 404


def test_sessions_on_two_devices_are_independent(app, client):
    client.post("/api/auth/register", json=REGISTRATION)
    phone, laptop = app.test_client(), app.test_client()

    phone_login = _login(phone)
    _login(laptop)
    headers = {"Authorization": f"Bearer {phone_login.get_json()['data']['accessToken']}"}

    assert phone.post("/api/auth/logout", headers=headers).status_code == 200
    assert phone.post("/api/auth/refresh").status_code == 401
    assert laptop.post("/api/auth/refresh").status_code == 200


def test_logout_all_ends_every_device(app, client):
    client.post("/api/auth/register", json=REGISTRATION)
    phone, laptop = app.test_client(), app.test_client()
    phone_login = _login(phone)
    _login(laptop)
    headers = {"Authorization": f"Bearer {phone_login.get_json()['data']['accessToken']}"}

    assert phone.post("/api/auth/logout-all", headers=headers).status_code == 200
    assert laptop.post("/api/auth/refresh").status_code == 401
