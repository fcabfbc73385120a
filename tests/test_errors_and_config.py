import pytest

from api.config import TestingConfig, get_config, validate_config


def _config(**overrides):
    config = {key: getattr(TestingConfig, key) for key in dir(TestingConfig) if key.isupper()}
    config.update(overrides)
    return config


def test_unknown_route_envelope(client):
    res = client.get("/api/nope")
    assert res.status_code == 404
    assert res.get_json() == {"success": False, "message": "Route GET /api/nope not found"}


def test_validation_error_envelope(client, make_admin, admin_headers):
    res = client.post("/api/districts", headers=admin_headers(make_admin()), json={})
    assert res.status_code == 400
    body = res.get_json()
    assert body["success"] is False
    assert body["message"] == "Validation error"
    assert body["errors"][0]["field"] == "name"


def test_bad_pagination_is_400(client, make_admin, admin_headers):
    res = client.get("/api/districts?page=abc", headers=admin_headers(make_admin()))
    assert res.status_code == 400


def test_pagination_limit_is_capped(client, make_admin, admin_headers):
    res = client.get("/api/districts?limit=1000", headers=admin_headers(make_admin()))
    assert res.get_json()["pagination"]["itemsPerPage"] == 100


def test_health_and_info(client):
    health = client.get("/api/health").get_json()
    assert health["message"] == "Server is running"
    assert health["data"]["status"] == "ok"

    info = client.get("/api/info").get_json()["data"]
    assert info["authMode"] == "otp"
    assert info["environment"] == "test"


def test_root_and_docs(client):
    assert client.get("/").get_json()["docs"] == "/apidocs/"
    doc = client.get("/swagger.json").get_json()
    assert doc["info"]["title"] == "Regional CMS API"
    assert "/api/auth/login/send-otp" in doc["paths"]


def test_get_config_by_name():
    assert get_config("test") is TestingConfig
    assert get_config("production").APP_ENV == "prod"


def test_validate_config_accepts_testing():
    validate_config(_config())


def test_validate_config_rejects_bad_mode():
    with pytest.raises(RuntimeError):
        validate_config(_config(AUTH_MODE="magic-link"))
    with pytest.raises(RuntimeError):
        validate_config(_config(REFRESH_TOKEN_STORAGE="redis"))


def test_validate_config_rejects_shared_secrets():
    with pytest.raises(RuntimeError):
        validate_config(_config(JWT_REFRESH_SECRET=TestingConfig.JWT_ACCESS_SECRET))


def test_validate_config_rejects_short_secrets_in_production():
    config = _config(APP_ENV="prod", JWT_ADMIN_REFRESH_SECRET="short")
    with pytest.raises(RuntimeError, match="JWT_ADMIN_REFRESH_SECRET"):
        validate_config(config)


def test_create_app_refuses_bad_config(make_app):
    with pytest.raises(RuntimeError):
        make_app(AUTH_MODE="carrier-pigeon")


def test_cors_allows_credentials(client):
    res = client.get("/api/health", headers={"Origin": "https://portal.example.com"})
    assert res.headers["Access-Control-Allow-Credentials"] == "true"
