import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from drillsync.domain.records import QUEUED_KINDS, RecordKind
from drillsync.services.sync_client import SyncResult

log = logging.getLogger(__name__)


class SyncOutcome(Enum):
    COMPLETED = "completed"
    PARTIAL_FAILURE = "partial_failure"
    NOTHING_TO_SYNC = "nothing_to_sync"
    NOT_CONFIGURED = "not_configured"
    OFFLINE = "offline"
    BUSY = "busy"


@dataclass
class RecordOutcome:
    kind: RecordKind
    record_id: str
    result: SyncResult

    def to_dict(self):
        return {
            "kind": self.kind.value,
            "id": self.record_id,
            "success": self.result.success,
            "message": self.result.message,
        }


@dataclass
class SyncReport:
    outcome: SyncOutcome
    succeeded: int = 0
    failed: int = 0
    last_error: Optional[str] = None
    results: List[RecordOutcome] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.outcome in (SyncOutcome.COMPLETED, SyncOutcome.NOTHING_TO_SYNC)

    def summary(self) -> str:
        """User-facing text for the pass."""
        if self.outcome is SyncOutcome.COMPLETED:
            return f"Sync complete: {self.succeeded} records uploaded."
        if self.outcome is SyncOutcome.PARTIAL_FAILURE:
            return (f"Finished with warnings. Uploaded: {self.succeeded}, failed: {self.failed}. "
                    f"Last error: {self.last_error}. Failed records are saved on this "
                    f"device and will be retried on the next sync.")
        if self.outcome is SyncOutcome.NOTHING_TO_SYNC:
            return "There were no pending records to upload."
        if self.outcome is SyncOutcome.NOT_CONFIGURED:
            return "Configure the Apps Script URL in settings before syncing."
        if self.outcome is SyncOutcome.OFFLINE:
            return "No internet connection. Records are saved on this device; try again later."
        return "A sync is already running."

    def to_dict(self):
        return {
            "outcome": self.outcome.value,
            "success": self.success,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "last_error": self.last_error,
            "message": self.summary(),
            "results": [r.to_dict() for r in self.results],
        }


class SyncService:
    """Pushes every pending record to the remote endpoint, one at a time."""

    def __init__(self, store, client, connectivity, config=None):
        self.store = store
        self.config = config or store.config
        self.client = client
        self.connectivity = connectivity
        self._running = threading.Lock()

    def collect_pending(self):
        """Pending work in pass order: reports, then steel changes, then measurements."""
        work = []
        for kind in QUEUED_KINDS:
            work.extend((kind, record) for record in self.store.get_pending(kind))
        return work

    def run_pass(self) -> SyncReport:
        """Run one sync pass.

        Records are sent sequentially and marked synced as soon as each upload
        succeeds, so a pass cut short never re-sends what already landed.
        Failed records stay pending and are retried by the next pass.
        """
        if not self.connectivity.is_online:
            log.info("Sync skipped: offline")
            return SyncReport(SyncOutcome.OFFLINE)
        url = self.store.get_script_url().value
        if self.config.is_placeholder(url):
            log.warning("Sync skipped: script URL not configured")
            return SyncReport(SyncOutcome.NOT_CONFIGURED)

        if not self._running.acquire(blocking=False):
            return SyncReport(SyncOutcome.BUSY)
        try:
            return self._run(url)
        finally:
            self._running.release()

    def _run(self, url) -> SyncReport:
        work = self.collect_pending()
        if not work:
            return SyncReport(SyncOutcome.NOTHING_TO_SYNC)

        report = SyncReport(SyncOutcome.COMPLETED)
        log.info(f"Sync pass started with {len(work)} pending records")

        for kind, record in work:
            record_id = record.get('id')
            try:
                result = self.client.send(record, url, kind=kind)
            except Exception as e:
                log.exception(f"Unexpected error uploading {kind.value} {record_id}")
                result = SyncResult(False, f"Unexpected error: {e}")

            report.results.append(RecordOutcome(kind, record_id, result))
            if result.success:
                self.store.mark_synced(kind, record_id)
                report.succeeded += 1
            else:
                report.failed += 1
                report.last_error = result.message

        if report.failed:
            report.outcome = SyncOutcome.PARTIAL_FAILURE
        log.info(f"Sync pass finished: {report.succeeded} uploaded, {report.failed} failed")
        return report
