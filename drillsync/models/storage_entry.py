"""Model for the key-value rows behind the local store."""

from datetime import datetime
from drillsync.extensions import db


class StorageEntry(db.Model):
    """One stored string value, addressed by key."""

    __tablename__ = 'storage_entries'

    key = db.Column(db.String(255), primary_key=True)
    value = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        """Return string representation."""
        return f'<StorageEntry {self.key}>'
