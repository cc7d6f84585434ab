"""Database models for the application."""

from drillsync.models.storage_entry import StorageEntry
from drillsync.models.kv_repository import SqlAlchemyKeyValueRepository

__all__ = ["StorageEntry", "SqlAlchemyKeyValueRepository"]
