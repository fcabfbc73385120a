import pytest

from services.rate_limiter import (
    MemoryRateLimitStore,
    RateLimiter,
    RateLimitRule,
    RedisRateLimitStore,
    create_rate_limit_store,
)


class FakeTimer:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def timer():
    return FakeTimer()


@pytest.fixture
def limiter(timer):
    rules = {"auth": RateLimitRule("auth", 2, 100, "slow down")}
    return RateLimiter(MemoryRateLimitStore(), rules, timer=timer)


def test_allows_up_to_limit_then_blocks(limiter):
    first = limiter.consume("auth", "1.2.3.4")
    second = limiter.consume("auth", "1.2.3.4")
    third = limiter.consume("auth", "1.2.3.4")
    assert first.allowed and first.remaining == 1
    assert second.allowed and second.remaining == 0
    assert not third.allowed
    # 1000 is the start of window 10, which closes at 1100
    assert third.retry_after == 100


def test_keys_are_counted_separately(limiter):
    limiter.consume("auth", "a")
    limiter.consume("auth", "a")
    assert not limiter.consume("auth", "a").allowed
    assert limiter.consume("auth", "b").allowed


def test_refund_gives_back_a_slot(limiter):
    limiter.consume("auth", "k")
    limiter.consume("auth", "k")
    limiter.refund("auth", "k")
    assert limiter.consume("auth", "k").allowed
    assert not limiter.consume("auth", "k").allowed


def test_window_rollover_resets_count(limiter, timer):
    limiter.consume("auth", "k")
    limiter.consume("auth", "k")
    assert not limiter.consume("auth", "k").allowed
    timer.now = 1100.0
    assert limiter.consume("auth", "k").allowed


def test_refund_after_rollover_hits_the_consumed_window(limiter, timer):
    timer.now = 1099.5
    first = limiter.consume("auth", "k")
    timer.now = 1100.0
    assert limiter.consume("auth", "k").allowed
    limiter.refund("auth", "k", first.window)
    assert limiter.consume("auth", "k").allowed
    assert not limiter.consume("auth", "k").allowed


class ScriptOnlyRedis:
    """Runs registered scripts against a dict; has no bare DECR."""

    def __init__(self):
        self.values = {}

    def register_script(self, script):
        assert "current > 0" in script

        def run(keys=(), args=()):
            current = self.values.get(keys[0])
            if current is not None and current > 0:
                self.values[keys[0]] = current - 1

        return run


def test_redis_refund_never_creates_a_counter():
    client = ScriptOnlyRedis()
    store = RedisRateLimitStore("redis://unused", client=client)
    store.decr("rl:auth:11:k", now=1100.0)
    assert client.values == {}
    client.values["rl:auth:10:k"] = 1
    store.decr("rl:auth:10:k", now=1100.0)
    store.decr("rl:auth:10:k", now=1100.0)
    assert client.values == {"rl:auth:10:k": 0}


def test_disabled_limiter_always_allows(timer):
    rules = {"auth": RateLimitRule("auth", 1, 60)}
    limiter = RateLimiter(MemoryRateLimitStore(), rules, enabled=False, timer=timer)
    for _ in range(5):
        assert limiter.consume("auth", "k").allowed


def test_store_factory():
    assert isinstance(create_rate_limit_store("memory://"), MemoryRateLimitStore)
    assert isinstance(create_rate_limit_store("redis://localhost:6379/0"), RedisRateLimitStore)
    with pytest.raises(ValueError):
        create_rate_limit_store("mongodb://nope")


@pytest.fixture
def limited_app(make_app):
    app = make_app(RATE_LIMIT_ENABLED=True, AUTH_RATE_LIMIT=(2, 900), REGISTER_RATE_LIMIT=(1, 3600))
    app.extensions["cms"].rate_limiter._timer = FakeTimer(9000.0)
    return app


def _admin(app, email):
    services = app.extensions["cms"]
    return services.store.create_admin(
        name="Ops", email=email, password_hash=services.hasher.hash("admin-pass-123"), role="admin"
    )


def test_failed_admin_logins_are_limited(limited_app):
    _admin(limited_app, "ops@example.com")
    client = limited_app.test_client()
    body = {"email": "ops@example.com", "password": "wrong-password"}

    assert client.post("/api/admin/login", json=body).status_code == 401
    assert client.post("/api/admin/login", json=body).status_code == 401
    res = client.post("/api/admin/login", json=body)
    assert res.status_code == 429
    assert res.headers["Retry-After"] == "900"
    assert res.get_json()["errors"][0]["code"] == "RATE_LIMITED"


def test_successful_logins_do_not_use_budget(limited_app):
    _admin(limited_app, "ops@example.com")
    client = limited_app.test_client()
    body = {"email": "ops@example.com", "password": "admin-pass-123"}
    for _ in range(4):
        assert client.post("/api/admin/login", json=body).status_code == 200


def test_limit_is_keyed_by_identifier(limited_app):
    _admin(limited_app, "one@example.com")
    _admin(limited_app, "two@example.com")
    client = limited_app.test_client()
    for _ in range(2):
        client.post("/api/admin/login", json={"email": "one@example.com", "password": "bad-password"})
    blocked = client.post("/api/admin/login", json={"email": "one@example.com", "password": "bad-password"})
    other = client.post("/api/admin/login", json={"email": "two@example.com", "password": "bad-password"})
    assert blocked.status_code == 429
    assert other.status_code == 401


def test_register_otp_limited_per_ip(limited_app):
    client = limited_app.test_client()
    first = client.post("/api/auth/register/send-otp",
                        json={"phoneNumber": "+15557770001", "firstName": "Ravi", "lastName": "Kumar"})
    second = client.post("/api/auth/register/send-otp",
                         json={"phoneNumber": "+15557770002", "firstName": "Ravi", "lastName": "Kumar"})
    assert first.status_code == 200
    assert second.status_code == 429


def test_health_is_never_limited(make_app):
    app = make_app(RATE_LIMIT_ENABLED=True, RATE_LIMIT_MAX_REQUESTS=1)
    app.extensions["cms"].rate_limiter._timer = FakeTimer(9000.0)
    client = app.test_client()
    for _ in range(3):
        assert client.get("/api/health").status_code == 200
    assert client.get("/api/districts").status_code == 401
    assert client.get("/api/districts").status_code == 429
