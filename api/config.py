"""
Environment-aware configuration.
Values come from the environment; a .env file is loaded if present.
get_config() picks the class from APP_ENV (dev | test | prod).
"""
import os
import tempfile
from dotenv import load_dotenv

load_dotenv()  # Read .env if present


def _bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


def _int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _list(name: str, default: str) -> list:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


def _limit(name: str, default: str) -> tuple:
    """Parse "<max>/<window seconds>", e.g. "5/900"."""
    count, _, window = os.getenv(name, default).partition("/")
    return int(count), int(window or 60)


class BaseConfig:
    APP_NAME = os.getenv("APP_NAME", "regional-cms-api")
    APP_VERSION = "1.0.0"
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = _list("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = _int("PORT", 8000)

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///cms.db")
    SQL_ECHO = _bool("SQL_ECHO", False)
    DB_POOL_SIZE = _int("DB_POOL_SIZE", 20)
    DB_MAX_OVERFLOW = _int("DB_MAX_OVERFLOW", 0)
    DB_POOL_TIMEOUT = _int("DB_POOL_TIMEOUT", 2)
    DB_POOL_RECYCLE = _int("DB_POOL_RECYCLE", 30)
    DB_STATEMENT_TIMEOUT_MS = _int("DB_STATEMENT_TIMEOUT_MS", 5000)

    # JWT: four distinct keys (user access/refresh, admin access/refresh)
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", "dev-access-secret-change-me-0123456789")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "dev-refresh-secret-change-me-0123456789")
    JWT_ADMIN_ACCESS_SECRET = os.getenv("JWT_ADMIN_ACCESS_SECRET", "dev-admin-access-secret-change-me-012345")
    JWT_ADMIN_REFRESH_SECRET = os.getenv("JWT_ADMIN_REFRESH_SECRET", "dev-admin-refresh-secret-change-me-01234")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ACCESS_EXPIRY = os.getenv("JWT_ACCESS_EXPIRY", "15m")
    JWT_REFRESH_EXPIRY = os.getenv("JWT_REFRESH_EXPIRY", "7d")
    JWT_ADMIN_ACCESS_EXPIRY = os.getenv("JWT_ADMIN_ACCESS_EXPIRY", "1d")
    JWT_ADMIN_REFRESH_EXPIRY = os.getenv("JWT_ADMIN_REFRESH_EXPIRY", "30d")

    # Password hashing (argon2): cost factor is the time cost
    PASSWORD_HASH_COST = _int("PASSWORD_HASH_COST", 3)
    PASSWORD_HASH_MEMORY_KIB = _int("PASSWORD_HASH_MEMORY_KIB", 65536)
    PASSWORD_HASH_PARALLELISM = _int("PASSWORD_HASH_PARALLELISM", 4)

    # Auth modes
    AUTH_MODE = os.getenv("AUTH_MODE", "otp")
    REFRESH_TOKEN_STORAGE = os.getenv("REFRESH_TOKEN_STORAGE", "embedded")

    # OTP
    OTP_LENGTH = _int("OTP_LENGTH", 6)
    OTP_TTL_SECONDS = _int("OTP_TTL_SECONDS", 300)
    OTP_MAX_ATTEMPTS = _int("OTP_MAX_ATTEMPTS", 5)
    OTP_RESEND_INTERVAL_SECONDS = _int("OTP_RESEND_INTERVAL_SECONDS", 60)

    # Cookies
    COOKIE_SECURE = _bool("COOKIE_SECURE", False)
    COOKIE_HTTP_ONLY = _bool("COOKIE_HTTP_ONLY", True)
    COOKIE_SAME_SITE = os.getenv("COOKIE_SAME_SITE", "Strict")
    REFRESH_COOKIE_NAME = os.getenv("REFRESH_COOKIE_NAME", "refreshToken")
    ADMIN_REFRESH_COOKIE_NAME = os.getenv("ADMIN_REFRESH_COOKIE_NAME", "adminRefreshToken")

    # Rate limiting
    RATE_LIMIT_ENABLED = _bool("RATE_LIMIT_ENABLED", True)
    RATE_LIMIT_STORAGE_URL = os.getenv("RATE_LIMIT_STORAGE_URL", "memory://")
    RATE_LIMIT_WINDOW_SECONDS = _int("RATE_LIMIT_WINDOW_SECONDS", 900)
    RATE_LIMIT_MAX_REQUESTS = _int("RATE_LIMIT_MAX_REQUESTS", 50000)
    AUTH_RATE_LIMIT = _limit("AUTH_RATE_LIMIT", "5/900")
    REGISTER_RATE_LIMIT = _limit("REGISTER_RATE_LIMIT", "3/3600")
    UPLOAD_RATE_LIMIT = _limit("UPLOAD_RATE_LIMIT", "20/3600")

    # SMS gateway
    SMS_PROVIDER = os.getenv("SMS_PROVIDER", "console")
    SMS_API_URL = os.getenv("SMS_API_URL", "")
    SMS_API_KEY = os.getenv("SMS_API_KEY", "")
    SMS_SENDER_ID = os.getenv("SMS_SENDER_ID", "")
    SMS_TIMEOUT_SECONDS = _int("SMS_TIMEOUT_SECONDS", 5)

    # Media host and uploads
    MEDIA_PROVIDER = os.getenv("MEDIA_PROVIDER", "local")
    MEDIA_API_URL = os.getenv("MEDIA_API_URL", "")
    MEDIA_API_KEY = os.getenv("MEDIA_API_KEY", "")
    MEDIA_ROOT_FOLDER = os.getenv("MEDIA_ROOT_FOLDER", "myapp")
    MEDIA_LOCAL_DIR = os.getenv("MEDIA_LOCAL_DIR", os.path.join(os.getcwd(), "media"))
    MEDIA_PUBLIC_BASE_URL = os.getenv("MEDIA_PUBLIC_BASE_URL", "/media")
    MEDIA_TIMEOUT_SECONDS = _int("MEDIA_TIMEOUT_SECONDS", 10)
    UPLOAD_MAX_FILE_BYTES = _int("UPLOAD_MAX_FILE_BYTES", 5 * 1024 * 1024)
    UPLOAD_MAX_FILES = _int("UPLOAD_MAX_FILES", 10)
    UPLOAD_ALLOWED_FOLDERS = _list("UPLOAD_ALLOWED_FOLDERS", "profilepicture,news,post")
    UPLOAD_ALLOWED_EXTENSIONS = _list("UPLOAD_ALLOWED_EXTENSIONS", "jpg,jpeg,png,webp")
    # Whole-request ceiling; per-file size is checked in the upload view
    MAX_CONTENT_LENGTH = UPLOAD_MAX_FILE_BYTES * UPLOAD_MAX_FILES + 1024 * 1024

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR = os.getenv("LOG_DIR") or None


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    APP_ENV = "dev"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class TestingConfig(BaseConfig):
    TESTING = True
    APP_ENV = "test"
    DATABASE_URL = "sqlite://"
    JWT_ACCESS_SECRET = "test-user-access-secret-0123456789abcdef"
    JWT_REFRESH_SECRET = "test-user-refresh-secret-0123456789abcdef"
    JWT_ADMIN_ACCESS_SECRET = "test-admin-access-secret-0123456789abcdef"
    JWT_ADMIN_REFRESH_SECRET = "test-admin-refresh-secret-0123456789abcde"
    # Fast hashing keeps the suite quick
    PASSWORD_HASH_COST = 1
    PASSWORD_HASH_MEMORY_KIB = 8
    PASSWORD_HASH_PARALLELISM = 1
    AUTH_MODE = "otp"
    REFRESH_TOKEN_STORAGE = "embedded"
    COOKIE_SECURE = False
    RATE_LIMIT_ENABLED = False
    RATE_LIMIT_STORAGE_URL = "memory://"
    SMS_PROVIDER = "memory"
    MEDIA_PROVIDER = "local"
    MEDIA_LOCAL_DIR = os.path.join(tempfile.gettempdir(), "regional-cms-test-media")
    LOG_LEVEL = "WARNING"
    LOG_DIR = None


class ProductionConfig(BaseConfig):
    DEBUG = False
    APP_ENV = "prod"
    COOKIE_SECURE = _bool("COOKIE_SECURE", True)
    SMS_PROVIDER = os.getenv("SMS_PROVIDER", "http")


SECRET_KEYS = ("JWT_ACCESS_SECRET", "JWT_REFRESH_SECRET", "JWT_ADMIN_ACCESS_SECRET", "JWT_ADMIN_REFRESH_SECRET")


def validate_config(config) -> None:
    """
    Refuse to start with unusable settings. In production every signing secret
    must be at least 32 characters and all four must differ.
    """
    if config.get("AUTH_MODE") not in ("otp", "password"):
        raise RuntimeError("AUTH_MODE must be 'otp' or 'password'")
    if config.get("REFRESH_TOKEN_STORAGE") not in ("embedded", "table"):
        raise RuntimeError("REFRESH_TOKEN_STORAGE must be 'embedded' or 'table'")
    secrets = [config.get(key) or "" for key in SECRET_KEYS]
    if len(set(secrets)) != len(secrets):
        raise RuntimeError("JWT access/refresh/admin secrets must all be different")
    if config.get("APP_ENV") in ("prod", "production"):
        weak = [key for key, value in zip(SECRET_KEYS, secrets) if len(value) < 32]
        if weak:
            raise RuntimeError(f"Secrets must be at least 32 characters: {', '.join(weak)}")


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
