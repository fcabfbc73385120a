from flask import Blueprint, current_app

from api.responses import success_response
from utils.context import get_services

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up
        schema:
          type: object
          properties:
            success:
              type: boolean
            message:
              type: string
              example: Server is running
    """
    return success_response(
        {
            "status": "ok",
            "version": current_app.config["APP_VERSION"],
            "timestamp": get_services().clock.now().isoformat(),
        },
        "Server is running",
    )


@bp.get("/info")
def info():
    """
    API information
    ---
    tags:
      - Health
    responses:
      200:
        description: Name, version, environment and auth mode
    """
    cfg = current_app.config
    return success_response(
        {
            "name": cfg["APP_NAME"],
            "version": cfg["APP_VERSION"],
            "environment": cfg["APP_ENV"],
            "authMode": get_services().auth_mode.value,
            "docs": "/apidocs/",
        },
        "API information",
    )
