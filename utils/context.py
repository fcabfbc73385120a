"""Accessors for the app-scoped service container."""
from flask import current_app


def get_services():
    return current_app.extensions["cms"]
