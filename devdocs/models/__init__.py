"""Persistence layer: the shared DBStorage instance used by the API."""
from devdocs.models.db_storage import DBStorage

storage = DBStorage()
