#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixin for DevDocs models.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps
- save() and delete() that go through the DBStorage singleton

Notes:
- Timestamps are set in Python (microsecond precision) with func.now() as the server-side fallback.
- For SQLite, func.now() maps to CURRENT_TIMESTAMP, which only has second precision.
"""

from __future__ import annotations

from datetime import datetime, timezone
import uuid

# Importing the package gives access to the global 'storage' instance (DBStorage)
from devdocs import models

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseModel:
    """
    Base mixin for all persistent models: id, created_at, updated_at,
    plus save()/delete() wired to DBStorage.
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        created_at/updated_at are filled on insert unless passed explicitly.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def __str__(self) -> str:
        return f"[{self.__class__.__name__}] ({self.id})"

    def save(self):
        """Touch updated_at and commit the instance through DBStorage."""
        self.updated_at = _utcnow()
        models.storage.new(self)
        models.storage.save()

    def delete(self):
        """
        Hard delete through DBStorage.
        Not committed here; the caller decides when to commit.
        """
        models.storage.delete(self)
