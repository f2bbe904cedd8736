"""Data store access."""

from roost.db.client import DatabaseClient

__all__ = ["DatabaseClient"]
