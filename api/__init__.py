from flask import Flask, request
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config, validate_config
from .errors import register_error_handlers
from .logging_config import configure_logging
from models import storage  # DBStorage singleton (scoped_session)
from services.container import build_services

# Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Regional CMS API",
        "version": "1.0.0",
        "description": "REST API for user/admin authentication and regional content "
                       "(districts, talukas, categories, posts, news, uploads).",
    },
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}

# Exempt from the general request ceiling
UNLIMITED_PATHS = ("/api/health", "/api/info")


def create_app(config_name: str | None = None, config_overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    Tests build an isolated app per test with create_app("test").
    """
    app = Flask(__name__)

    app.config.from_object(get_config(config_name))
    if config_overrides:
        app.config.update(config_overrides)
    validate_config(app.config)

    configure_logging(app)

    CORS(
        app,
        resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    register_error_handlers(app)

    storage.configure(
        app.config["DATABASE_URL"],
        echo=app.config["SQL_ECHO"],
        pool_size=app.config["DB_POOL_SIZE"],
        max_overflow=app.config["DB_MAX_OVERFLOW"],
        pool_timeout=app.config["DB_POOL_TIMEOUT"],
        pool_recycle=app.config["DB_POOL_RECYCLE"],
        statement_timeout_ms=app.config["DB_STATEMENT_TIMEOUT_MS"],
    )
    app.extensions["cms"] = build_services(app.config, storage)

    @app.before_request
    def general_rate_limit():
        if request.path.startswith("/api/") and request.path not in UNLIMITED_PATHS:
            from utils.decorators import enforce_rate_limit, ip_key
            enforce_rate_limit("general", ip_key())

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .admin import bp as admin_bp
    from .users import bp as users_bp
    from .districts import bp as districts_bp
    from .talukas import bp as talukas_bp
    from .categories import bp as categories_bp
    from .posts import bp as posts_bp
    from .news import bp as news_bp
    from .uploads import bp as uploads_bp, media_bp

    for blueprint in (health_bp, auth_bp, admin_bp, users_bp, districts_bp,
                      talukas_bp, categories_bp, posts_bp, news_bp, uploads_bp):
        app.register_blueprint(blueprint, url_prefix="/api" + (blueprint.url_prefix or ""))
    app.register_blueprint(media_bp)

    from .cli import register_commands
    register_commands(app)

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Regional CMS API",
            "docs": "/apidocs/",
            "health": "/api/health",
        }, 200

    return app
