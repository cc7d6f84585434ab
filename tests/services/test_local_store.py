import json

import pytest

from drillsync.domain.records import Measurement, RecordKind
from drillsync.errors import ValidationError
from drillsync.services.local_store import Fallback, LocalStore, Ok

from conftest import SCRIPT_URL, FailingBackend


def steel_change(record_id, **overrides):
    data = {
        "id": record_id,
        "date": "2024-03-01",
        "drillId": "104",
        "shift": "A",
        "steelType": "Tricono",
        "serialNumber": f"SN-{record_id}",
        "comments": "",
    }
    data.update(overrides)
    return data


def test_append_preserves_count_and_order(store):
    ids = [f"id-{n}" for n in range(5)]
    for record_id in ids:
        store.append(RecordKind.STEEL_CHANGE, steel_change(record_id))

    records = store.get_all(RecordKind.STEEL_CHANGE)
    assert [r["id"] for r in records] == ids


def test_append_forces_pending_status(store):
    stored = store.append(RecordKind.STEEL_CHANGE, steel_change("id-1", status="synced"))

    assert stored["status"] == "pending"
    assert store.get_all(RecordKind.STEEL_CHANGE)[0]["status"] == "pending"


def test_append_keeps_shift_report_drafts(store, shift_report_data):
    store.append(RecordKind.SHIFT_REPORT, shift_report_data(status="draft"))

    assert store.get_all(RecordKind.SHIFT_REPORT)[0]["status"] == "draft"
    assert store.get_pending(RecordKind.SHIFT_REPORT) == []


def test_append_accepts_typed_records(store):
    measurement = Measurement(id="id-m1", date="2024-03-01", drill_id="111",
                              barra_patera_superior="6,4")

    store.append(RecordKind.MEASUREMENT, measurement)

    stored = store.get_all(RecordKind.MEASUREMENT)[0]
    assert stored["drillId"] == "111"
    assert stored["barraPatéraSuperior"] == "6,4"
    assert stored["status"] == "pending"


def test_append_does_not_check_id_uniqueness(store):
    store.append(RecordKind.STEEL_CHANGE, steel_change("id-dup"))
    store.append(RecordKind.STEEL_CHANGE, steel_change("id-dup"))

    assert len(store.get_all(RecordKind.STEEL_CHANGE)) == 2


def test_mark_synced_changes_only_the_matching_record(store):
    for record_id in ("a", "b", "c"):
        store.append(RecordKind.STEEL_CHANGE, steel_change(record_id))
    before = store.get_all(RecordKind.STEEL_CHANGE)

    assert store.mark_synced(RecordKind.STEEL_CHANGE, "b") is True

    after = store.get_all(RecordKind.STEEL_CHANGE)
    assert after[1] == {**before[1], "status": "synced"}
    assert after[0] == before[0]
    assert after[2] == before[2]


def test_mark_synced_unknown_id_is_a_noop(store, backend):
    store.append(RecordKind.STEEL_CHANGE, steel_change("a"))
    raw_before = backend.data[store.keys.steel_changes]

    assert store.mark_synced(RecordKind.STEEL_CHANGE, "missing") is False
    assert backend.data[store.keys.steel_changes] == raw_before


def test_mark_synced_is_monotonic(store):
    store.append(RecordKind.STEEL_CHANGE, steel_change("a"))
    store.mark_synced(RecordKind.STEEL_CHANGE, "a")
    store.mark_synced(RecordKind.STEEL_CHANGE, "a")

    assert store.get_all(RecordKind.STEEL_CHANGE)[0]["status"] == "synced"
    assert store.get_pending(RecordKind.STEEL_CHANGE) == []


@pytest.mark.parametrize("raw", ["{not json", "undefined", "null", '{"a": 1}', "42", ""])
def test_corrupt_storage_reads_as_empty_list(sync_config, raw):
    backend = FailingBackend(initial={"steel_changes_v1": raw})
    store = LocalStore(backend, sync_config)

    assert store.get_all(RecordKind.STEEL_CHANGE) == []


def test_corrupt_storage_is_reported_as_fallback(sync_config):
    backend = FailingBackend(initial={"measurements_v1": "[{broken"})
    store = LocalStore(backend, sync_config)

    result = store.load(RecordKind.MEASUREMENT)

    assert isinstance(result, Fallback)
    assert result.value == []
    assert "corrupt" in result.reason


def test_non_object_entries_are_dropped(sync_config):
    backend = FailingBackend(initial={"measurements_v1": json.dumps([1, {"id": "x"}, "y"])})
    store = LocalStore(backend, sync_config)

    assert store.get_all(RecordKind.MEASUREMENT) == [{"id": "x"}]


def test_write_failure_falls_back_to_memory(sync_config):
    backend = FailingBackend(fail_writes=True)
    store = LocalStore(backend, sync_config)

    store.append(RecordKind.STEEL_CHANGE, steel_change("a"))
    store.append(RecordKind.STEEL_CHANGE, steel_change("b"))
    store.mark_synced(RecordKind.STEEL_CHANGE, "a")

    records = store.get_all(RecordKind.STEEL_CHANGE)
    assert [(r["id"], r["status"]) for r in records] == [("a", "synced"), ("b", "pending")]
    assert store.using_fallback
    assert backend.data == {}
    assert isinstance(store.load(RecordKind.STEEL_CHANGE), Fallback)


def test_read_failure_uses_memory_copy(sync_config):
    backend = FailingBackend(fail_reads=True)
    store = LocalStore(backend, sync_config)

    assert store.get_all(RecordKind.MEASUREMENT) == []
    result = store.read(store.keys.measurements)
    assert isinstance(result, Fallback)
    assert "read failed" in result.reason


def test_append_during_read_failure_keeps_stored_records(sync_config):
    backend = FailingBackend()
    store = LocalStore(backend, sync_config)
    store.append(RecordKind.STEEL_CHANGE, steel_change("a"))
    store.append(RecordKind.STEEL_CHANGE, steel_change("b"))
    saved = backend.data[store.keys.steel_changes]

    backend.fail_reads = True
    store.append(RecordKind.STEEL_CHANGE, steel_change("c"))

    assert backend.data[store.keys.steel_changes] == saved
    assert [r["id"] for r in store.get_all(RecordKind.STEEL_CHANGE)] == ["c"]
    assert store.using_fallback

    backend.fail_reads = False
    assert [r["id"] for r in store.get_all(RecordKind.STEEL_CHANGE)] == ["a", "b", "c"]
    assert isinstance(store.load(RecordKind.STEEL_CHANGE), Fallback)


def test_held_records_are_written_once_the_backend_reads_again(sync_config):
    backend = FailingBackend()
    store = LocalStore(backend, sync_config)
    store.append(RecordKind.STEEL_CHANGE, steel_change("a"))
    backend.fail_reads = True
    store.append(RecordKind.STEEL_CHANGE, steel_change("b"))

    backend.fail_reads = False
    store.append(RecordKind.STEEL_CHANGE, steel_change("c"))

    persisted = json.loads(backend.data[store.keys.steel_changes])
    assert [r["id"] for r in persisted] == ["a", "b", "c"]
    assert not store.using_fallback
    assert isinstance(store.load(RecordKind.STEEL_CHANGE), Ok)


def test_mark_synced_and_clear_synced_during_read_failure(sync_config):
    backend = FailingBackend()
    store = LocalStore(backend, sync_config)
    store.append(RecordKind.STEEL_CHANGE, steel_change("a"))
    store.mark_synced(RecordKind.STEEL_CHANGE, "a")
    saved = backend.data[store.keys.steel_changes]

    backend.fail_reads = True
    store.append(RecordKind.STEEL_CHANGE, steel_change("b"))
    assert store.mark_synced(RecordKind.STEEL_CHANGE, "a") is False
    assert store.mark_synced(RecordKind.STEEL_CHANGE, "b") is True
    assert store.clear_synced() == 1

    assert backend.data[store.keys.steel_changes] == saved
    backend.fail_reads = False
    records = store.get_all(RecordKind.STEEL_CHANGE)
    assert [(r["id"], r["status"]) for r in records] == [("a", "synced")]


def test_successful_write_clears_memory_copy(sync_config):
    backend = FailingBackend(fail_writes=True)
    store = LocalStore(backend, sync_config)
    store.append(RecordKind.STEEL_CHANGE, steel_change("a"))

    backend.fail_writes = False
    store.append(RecordKind.STEEL_CHANGE, steel_change("b"))

    assert not store.using_fallback
    assert [r["id"] for r in json.loads(backend.data[store.keys.steel_changes])] == ["a", "b"]
    assert isinstance(store.load(RecordKind.STEEL_CHANGE), Ok)


def test_non_queued_kinds_are_rejected(store):
    with pytest.raises(ValidationError):
        store.append(RecordKind.LOGBOOK_ENTRY, {"id": "x"})


def test_pending_count_and_clear_synced(store, shift_report_data):
    store.append(RecordKind.SHIFT_REPORT, shift_report_data("r1"))
    store.append(RecordKind.SHIFT_REPORT, shift_report_data("r2", status="draft"))
    store.append(RecordKind.STEEL_CHANGE, steel_change("s1"))
    store.append(RecordKind.STEEL_CHANGE, steel_change("s2"))
    store.mark_synced(RecordKind.STEEL_CHANGE, "s1")

    assert store.pending_count() == {
        "shift_report": 1, "steel_change": 1, "measurement": 0, "total": 2,
    }

    assert store.clear_synced() == 1
    assert [r["id"] for r in store.get_all(RecordKind.STEEL_CHANGE)] == ["s2"]
    assert [r["id"] for r in store.get_all(RecordKind.SHIFT_REPORT)] == ["r1", "r2"]


def test_reset_clears_everything(store, backend):
    store.append(RecordKind.STEEL_CHANGE, steel_change("a"))
    store.save_operator_name("J. Rojas")
    store.save_script_url("https://example.com/exec")
    backend.data["unrelated"] = "kept"

    assert isinstance(store.reset(), Ok)

    assert store.get_all(RecordKind.STEEL_CHANGE) == []
    assert store.get_operator_name() == ""
    assert backend.data == {"unrelated": "kept"}


def test_reset_masks_keys_when_backend_fails(sync_config):
    backend = FailingBackend(initial={"steel_changes_v1": json.dumps([steel_change("a")])})
    store = LocalStore(backend, sync_config)
    backend.fail_writes = True

    result = store.reset()

    assert isinstance(result, Fallback)
    assert store.get_all(RecordKind.STEEL_CHANGE) == []


def test_operator_name_roundtrip(store):
    assert store.get_operator_name() == ""
    store.save_operator_name("M. Soto")
    assert store.get_operator_name() == "M. Soto"


def test_script_url_defaults_when_missing(store):
    result = store.get_script_url()

    assert isinstance(result, Fallback)
    assert result.value == SCRIPT_URL


@pytest.mark.parametrize("stored", ["undefined", "null", "https://INSERT_YOUR_URL_HERE"])
def test_script_url_defaults_for_placeholders(store, stored):
    store.write(store.keys.script_url, stored)

    result = store.get_script_url()

    assert isinstance(result, Fallback)
    assert result.value == SCRIPT_URL


def test_script_url_uses_stored_value(store):
    store.save_script_url("  https://script.google.com/macros/s/mine/exec ")

    result = store.get_script_url()

    assert isinstance(result, Ok)
    assert store.script_url == "https://script.google.com/macros/s/mine/exec"
