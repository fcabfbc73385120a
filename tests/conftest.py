import pytest

from api import create_app
from models import storage


@pytest.fixture
def make_app(tmp_path):
    """Build an app with TestingConfig plus overrides; each call gets a fresh in-memory database."""
    apps = []

    def _make(**overrides):
        overrides.setdefault("MEDIA_LOCAL_DIR", str(tmp_path / "media"))
        app = create_app("test", overrides)
        apps.append(app)
        return app

    yield _make
    storage.close()
    if apps:
        storage.drop_all()


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions["cms"]


@pytest.fixture
def clock(services):
    return services.clock


@pytest.fixture
def sms(services):
    return services.sms


@pytest.fixture
def store(services):
    return services.store


@pytest.fixture
def fixed_otp(services, monkeypatch):
    """Every OTP issued during the test is 123456."""
    monkeypatch.setattr(services.otp, "generate", lambda: "123456")
    return "123456"


@pytest.fixture
def make_user(services):
    counter = {"n": 0}

    def _make(phone_number=None, email=None, password=None, verified=True, active=True,
              first_name="Asha", last_name="Patil"):
        counter["n"] += 1
        if phone_number is None and email is None:
            phone_number = f"+1555000{counter['n']:04d}"
        fields = dict(
            phone_number=phone_number,
            email=email,
            first_name=first_name,
            last_name=last_name,
            is_verified=verified,
            is_active=active,
        )
        if password:
            fields["password_hash"] = services.hasher.hash(password)
        return services.store.create_user(**fields)

    return _make


@pytest.fixture
def make_admin(services):
    counter = {"n": 0}

    def _make(role="admin", email=None, password="admin-pass-123", name="Admin User"):
        counter["n"] += 1
        return services.store.create_admin(
            name=name,
            email=email or f"admin{counter['n']}@example.com",
            password_hash=services.hasher.hash(password),
            role=role,
        )

    return _make


@pytest.fixture
def user_headers(services):
    def _headers(user):
        return {"Authorization": f"Bearer {services.user_tokens.issue_access(user.id)}"}

    return _headers


@pytest.fixture
def admin_headers(services):
    def _headers(admin):
        token = services.admin_tokens.issue_access(admin.id, role=admin.role_name)
        return {"Authorization": f"Bearer {token}"}

    return _headers
