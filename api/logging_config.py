"""
Logging setup: console handler always, plus daily-rotating application.log and
error.log files when LOG_DIR is set. A request logger records method, path,
status and duration for every response (access log).
"""
import logging
import os
import time
from logging.handlers import TimedRotatingFileHandler

from flask import g, request

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)
    root = logging.getLogger()
    root.setLevel(level)

    # Re-running the factory (tests) must not stack handlers
    for handler in list(root.handlers):
        if getattr(handler, "_cms_handler", False):
            root.removeHandler(handler)
            handler.close()

    handlers = [logging.StreamHandler()]
    log_dir = app.config.get("LOG_DIR")
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        app_file = TimedRotatingFileHandler(os.path.join(log_dir, "application.log"), when="midnight", backupCount=14)
        error_file = TimedRotatingFileHandler(os.path.join(log_dir, "error.log"), when="midnight", backupCount=30)
        error_file.setLevel(logging.ERROR)
        handlers += [app_file, error_file]

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._cms_handler = True
        root.addHandler(handler)

    register_request_logger(app)


def client_ip() -> str:
    return request.remote_addr or "unknown"


def register_request_logger(app):
    logger = logging.getLogger("api.requests")

    @app.before_request
    def _start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        started = g.get("request_started")
        duration_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        principal = g.get("principal_id") or "anonymous"
        line = "%s %s %s %.1fms ip=%s principal=%s"
        args = (request.method, request.path, response.status_code, duration_ms, client_ip(), principal)
        # Failures are logged with their severity by the error handlers
        logger.info(line, *args)
        return response
