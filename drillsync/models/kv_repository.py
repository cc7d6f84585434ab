"""Repository for the key-value storage table."""

import logging
from drillsync.models.storage_entry import StorageEntry
from drillsync.extensions import db

logger = logging.getLogger(__name__)


class SqlAlchemyKeyValueRepository:
    """String key-value storage using SQLAlchemy.

    Errors are logged and re-raised; the local store decides how to recover.
    """

    def __init__(self, db_instance=None):
        """Initialize the repository."""
        self.db = db_instance or db

    def get(self, key):
        """Get a stored value.

        Args:
            key: Storage key

        Returns:
            The stored string, or None if the key is absent
        """
        entry = self.db.session.get(StorageEntry, key)
        return entry.value if entry else None

    def set(self, key, value):
        """Create or replace a stored value.

        Args:
            key: Storage key
            value: String value
        """
        try:
            entry = self.db.session.get(StorageEntry, key)
            if entry:
                entry.value = value
            else:
                self.db.session.add(StorageEntry(key=key, value=value))
            self.db.session.commit()
        except Exception as e:
            self.db.session.rollback()
            logger.error(f"Error saving storage entry {key}: {str(e)}")
            raise

    def delete(self, key):
        """Delete a stored value.

        Returns:
            True if deleted, False if not found
        """
        entry = self.db.session.get(StorageEntry, key)
        if not entry:
            return False

        try:
            self.db.session.delete(entry)
            self.db.session.commit()
            return True
        except Exception as e:
            self.db.session.rollback()
            logger.error(f"Error deleting storage entry {key}: {str(e)}")
            raise

    def clear(self, keys):
        """Delete every entry whose key is in ``keys``."""
        try:
            StorageEntry.query.filter(StorageEntry.key.in_(list(keys))).delete(synchronize_session=False)
            self.db.session.commit()
        except Exception as e:
            self.db.session.rollback()
            logger.error(f"Error clearing storage entries: {str(e)}")
            raise
