import threading
from unittest.mock import MagicMock

import pytest

from drillsync.config import SyncConfig
from drillsync.domain.records import RecordKind
from drillsync.errors import RemoteLogicError
from drillsync.services.connectivity import ConnectivityMonitor
from drillsync.services.sync_client import SyncResult
from drillsync.services.sync_service import SyncOutcome, SyncReport, SyncService

from conftest import SCRIPT_URL


def steel_change(record_id):
    return {"id": record_id, "date": "2024-03-01", "drillId": "105",
            "steelType": "Adaptador superior", "serialNumber": f"AS-{record_id}"}


def measurement(record_id):
    return {"id": record_id, "date": "2024-03-01", "drillId": "101",
            "barraSeguidoraSuperior": "9,1"}


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.send.return_value = SyncResult(True, "OK")
    return client


@pytest.fixture
def connectivity():
    return ConnectivityMonitor(initial=True)


@pytest.fixture
def sync_service(store, mock_client, connectivity):
    return SyncService(store, mock_client, connectivity)


def test_partial_failure_keeps_failed_record_pending(sync_service, store, mock_client,
                                                     shift_report_data):
    store.append(RecordKind.SHIFT_REPORT, shift_report_data("r1"))
    store.append(RecordKind.SHIFT_REPORT, shift_report_data("r2"))
    store.append(RecordKind.STEEL_CHANGE, steel_change("s1"))

    def send(record, url, kind=None):
        if record["id"] == "r2":
            return SyncResult.failed(RemoteLogicError("Sheet locked"))
        return SyncResult(True, "OK")
    mock_client.send.side_effect = send

    report = sync_service.run_pass()

    assert report.outcome is SyncOutcome.PARTIAL_FAILURE
    assert report.succeeded == 2
    assert report.failed == 1
    assert report.last_error == "Sheet locked"
    assert "will be retried" in report.summary()

    statuses = {r["id"]: r["status"] for r in store.get_all(RecordKind.SHIFT_REPORT)}
    assert statuses == {"r1": "synced", "r2": "pending"}
    assert store.get_all(RecordKind.STEEL_CHANGE)[0]["status"] == "synced"


def test_failed_records_are_retried_on_the_next_pass(sync_service, store, mock_client,
                                                     shift_report_data):
    store.append(RecordKind.SHIFT_REPORT, shift_report_data("r1"))
    mock_client.send.return_value = SyncResult.failed(RemoteLogicError("busy"))
    sync_service.run_pass()

    mock_client.send.return_value = SyncResult(True, "OK")
    report = sync_service.run_pass()

    assert report.outcome is SyncOutcome.COMPLETED
    assert report.succeeded == 1
    assert mock_client.send.call_count == 2
    assert store.pending_count()["total"] == 0


def test_synced_records_are_not_resent(sync_service, store, mock_client):
    store.append(RecordKind.STEEL_CHANGE, steel_change("s1"))

    sync_service.run_pass()
    report = sync_service.run_pass()

    assert report.outcome is SyncOutcome.NOTHING_TO_SYNC
    assert mock_client.send.call_count == 1


def test_nothing_to_sync_does_not_contact_the_endpoint(sync_service, mock_client):
    report = sync_service.run_pass()

    assert report.outcome is SyncOutcome.NOTHING_TO_SYNC
    assert report.success
    mock_client.send.assert_not_called()


def test_drafts_are_not_uploaded(sync_service, store, mock_client, shift_report_data):
    store.append(RecordKind.SHIFT_REPORT, shift_report_data("r1", status="draft"))

    report = sync_service.run_pass()

    assert report.outcome is SyncOutcome.NOTHING_TO_SYNC
    mock_client.send.assert_not_called()


def test_pass_order_is_reports_then_steel_then_measurements(sync_service, store, mock_client,
                                                            shift_report_data):
    store.append(RecordKind.MEASUREMENT, measurement("m1"))
    store.append(RecordKind.STEEL_CHANGE, steel_change("s1"))
    store.append(RecordKind.SHIFT_REPORT, shift_report_data("r1"))
    store.append(RecordKind.STEEL_CHANGE, steel_change("s2"))

    report = sync_service.run_pass()

    sent = [(call.kwargs["kind"], call.args[0]["id"]) for call in mock_client.send.call_args_list]
    assert sent == [
        (RecordKind.SHIFT_REPORT, "r1"),
        (RecordKind.STEEL_CHANGE, "s1"),
        (RecordKind.STEEL_CHANGE, "s2"),
        (RecordKind.MEASUREMENT, "m1"),
    ]
    assert all(call.args[1] == SCRIPT_URL for call in mock_client.send.call_args_list)
    assert [r.record_id for r in report.results] == ["r1", "s1", "s2", "m1"]


def test_not_configured_when_url_is_a_placeholder(sync_service, store, mock_client):
    store.append(RecordKind.STEEL_CHANGE, steel_change("s1"))
    unconfigured = SyncConfig(default_script_url="INSERT_URL_HERE")
    store.config = unconfigured
    sync_service.config = unconfigured

    report = sync_service.run_pass()

    assert report.outcome is SyncOutcome.NOT_CONFIGURED
    assert not report.success
    mock_client.send.assert_not_called()
    assert store.pending_count()["total"] == 1


def test_offline_pass_is_skipped(sync_service, store, mock_client, connectivity):
    store.append(RecordKind.STEEL_CHANGE, steel_change("s1"))
    connectivity.set_online(False)

    report = sync_service.run_pass()

    assert report.outcome is SyncOutcome.OFFLINE
    mock_client.send.assert_not_called()


def test_offline_is_reported_before_missing_configuration(sync_service, store, mock_client,
                                                        connectivity):
    store.append(RecordKind.STEEL_CHANGE, steel_change("s1"))
    unconfigured = SyncConfig(default_script_url="INSERT_URL_HERE")
    store.config = unconfigured
    sync_service.config = unconfigured
    connectivity.set_online(False)

    report = sync_service.run_pass()

    assert report.outcome is SyncOutcome.OFFLINE
    mock_client.send.assert_not_called()


def test_concurrent_pass_reports_busy(sync_service, store, mock_client):
    store.append(RecordKind.STEEL_CHANGE, steel_change("s1"))
    entered = threading.Event()
    release = threading.Event()

    def slow_send(record, url, kind=None):
        entered.set()
        release.wait(timeout=5)
        return SyncResult(True, "OK")
    mock_client.send.side_effect = slow_send

    results = []
    worker = threading.Thread(target=lambda: results.append(sync_service.run_pass()))
    worker.start()
    assert entered.wait(timeout=5)

    second = sync_service.run_pass()
    release.set()
    worker.join(timeout=5)

    assert second.outcome is SyncOutcome.BUSY
    assert results[0].outcome is SyncOutcome.COMPLETED
    assert mock_client.send.call_count == 1


def test_unexpected_client_error_is_recorded_as_a_failure(sync_service, store, mock_client):
    store.append(RecordKind.STEEL_CHANGE, steel_change("s1"))
    store.append(RecordKind.STEEL_CHANGE, steel_change("s2"))
    mock_client.send.side_effect = [RuntimeError("boom"), SyncResult(True, "OK")]

    report = sync_service.run_pass()

    assert report.outcome is SyncOutcome.PARTIAL_FAILURE
    assert report.succeeded == 1
    assert "boom" in report.last_error
    assert [r["status"] for r in store.get_all(RecordKind.STEEL_CHANGE)] == ["pending", "synced"]


def test_report_to_dict():
    report = SyncReport(SyncOutcome.COMPLETED, succeeded=3)

    data = report.to_dict()

    assert data["outcome"] == "completed"
    assert data["success"] is True
    assert data["succeeded"] == 3
    assert data["message"] == "Sync complete: 3 records uploaded."
