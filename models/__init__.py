"""
Models package.

Exposes the DBStorage singleton as `models.storage`; the application factory
binds it to an engine with storage.configure(...) before the first request.
"""
from models.db_storage import DBStorage

storage = DBStorage()
