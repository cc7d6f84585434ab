"""Direct (non-queued) calls to the remote endpoint.

Logbook entries, inventory snapshots and the various fetches are sent
straight away; a failure is reported to the caller and nothing is queued.
"""

import logging

from drillsync.domain.records import (
    InventorySnapshot,
    LogbookEntry,
    RecordKind,
)
from drillsync.services.steel_service import steel_statistics
from drillsync.services.sync_client import Envelope, SyncResult
from drillsync.services.wear_service import drill_statuses, latest_measurement

log = logging.getLogger(__name__)


class RemoteService:
    """Read/write paths that share the sync envelope but bypass the queue."""

    def __init__(self, client, store, config=None):
        self.client = client
        self.store = store
        self.config = config or store.config

    @property
    def url(self):
        return self.store.get_script_url().value

    def submit_logbook_entry(self, entry: LogbookEntry) -> SyncResult:
        entry.validate()
        return self.client.send(Envelope(RecordKind.LOGBOOK_ENTRY, entry.to_dict()), self.url)

    def update_inventory(self, snapshot: InventorySnapshot) -> SyncResult:
        snapshot.validate()
        return self.client.send(Envelope(RecordKind.INVENTORY_UPDATE, snapshot.to_dict()), self.url)

    def fetch_inventory(self) -> SyncResult:
        return self.client.fetch(RecordKind.INVENTORY_FETCH, self.url)

    def fetch_measurements(self) -> SyncResult:
        return self.client.fetch(RecordKind.MEASUREMENTS_FETCH, self.url)

    def fetch_logbook(self) -> SyncResult:
        return self.client.fetch(RecordKind.LOGBOOK_FETCH, self.url)

    def fetch_steel_changes(self) -> SyncResult:
        return self.client.fetch(RecordKind.STEEL_CHANGES_FETCH, self.url)

    def wear_dashboard(self):
        """Fetch all measurements and classify every drill in the fleet.

        Returns ``(result, dashboard)``; ``dashboard`` is None when the fetch failed.
        """
        result = self.fetch_measurements()
        if not result.success:
            return result, None

        measurements = result.data if isinstance(result.data, list) else []
        measurements = [m for m in measurements if isinstance(m, dict)]
        statuses = drill_statuses(measurements, self.config)
        dashboard = {
            drill_id: {
                "status": status.value,
                "latest": latest_measurement(measurements, drill_id),
            }
            for drill_id, status in statuses.items()
        }
        log.info(f"Wear dashboard built from {len(measurements)} measurements")
        return result, dashboard

    def steel_statistics(self):
        """Fetch the steel change history and keep the latest change per drill and component.

        Returns ``(result, statistics)``; ``statistics`` is None when the fetch failed.
        """
        result = self.fetch_steel_changes()
        if not result.success:
            return result, None

        changes = result.data if isinstance(result.data, list) else []
        return result, steel_statistics(changes, self.config)
