import logging
from datetime import date

from flask import Blueprint, jsonify, request

from drillsync.domain.ids import generate_id
from drillsync.domain.records import (
    HoleRecord,
    InventorySnapshot,
    LogbookEntry,
    Measurement,
    RecordKind,
    RecordStatus,
    ShiftReport,
    SteelChange,
)
from drillsync.errors import ValidationError
from drillsync.services.container import get_container
from drillsync.services.shift_service import recompute_cumulative, total_meters
from drillsync.services.sync_service import SyncOutcome
from drillsync.services.wear_service import (
    classify_measurement,
    reading_level,
    thresholds_for,
)

api_bp = Blueprint("api", __name__)
log = logging.getLogger(__name__)

SAVED_LOCALLY = "Saved on this device. It will be uploaded on the next sync."

SYNC_STATUS_CODES = {
    SyncOutcome.NOT_CONFIGURED: 503,
    SyncOutcome.OFFLINE: 503,
    SyncOutcome.BUSY: 409,
}


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _with_defaults(data):
    data = dict(data)
    data.setdefault('id', generate_id())
    data.setdefault('date', date.today().isoformat())
    return data


def _result_response(result, **extra):
    """Turn a remote call result into a JSON response, raising on failure."""
    result.raise_for_error()
    payload = {"success": True, "message": result.message, "data": result.data}
    payload.update(extra)
    return jsonify(payload)


def _capture(kind, record_cls):
    data = _with_defaults(_json_body())
    data.setdefault('status', RecordStatus.PENDING.value)
    remember = bool(data.pop('rememberOperator', False))
    container = get_container()

    record = record_cls.from_dict(data)
    if isinstance(record, ShiftReport):
        record.holes = recompute_cumulative(record.holes)
        if remember:
            container.store.save_operator_name(record.operator_name)
    if not (kind is RecordKind.SHIFT_REPORT and record.status is RecordStatus.DRAFT):
        record.validate()

    stored = container.store.append(kind, record)
    return jsonify({"success": True, "message": SAVED_LOCALLY, "record": stored}), 201


def _list(kind):
    store = get_container().store
    status = request.args.get('status')
    records = store.get_all(kind)
    if status:
        records = [r for r in records if r.get('status') == status]
    return jsonify({"records": records, "count": len(records)})


@api_bp.route("/reports", methods=["POST"])
def create_report():
    """Save a shift report locally."""
    return _capture(RecordKind.SHIFT_REPORT, ShiftReport)


@api_bp.route("/reports", methods=["GET"])
def list_reports():
    return _list(RecordKind.SHIFT_REPORT)


@api_bp.route("/steel-changes", methods=["POST"])
def create_steel_change():
    """Save a steel component change locally."""
    return _capture(RecordKind.STEEL_CHANGE, SteelChange)


@api_bp.route("/steel-changes", methods=["GET"])
def list_steel_changes():
    return _list(RecordKind.STEEL_CHANGE)


@api_bp.route("/measurements", methods=["POST"])
def create_measurement():
    """Save a steel measurement locally."""
    return _capture(RecordKind.MEASUREMENT, Measurement)


@api_bp.route("/measurements", methods=["GET"])
def list_measurements():
    return _list(RecordKind.MEASUREMENT)


@api_bp.route("/pending", methods=["GET"])
def pending():
    """Count records still waiting to be uploaded."""
    return jsonify(get_container().store.pending_count())


@api_bp.route("/sync", methods=["POST"])
def sync():
    """Run one sync pass over every pending record."""
    report = get_container().sync_service.run_pass()
    return jsonify(report.to_dict()), SYNC_STATUS_CODES.get(report.outcome, 200)


@api_bp.route("/connectivity", methods=["GET"])
def connectivity_status():
    return jsonify({"online": get_container().connectivity.is_online})


@api_bp.route("/connectivity", methods=["POST"])
def connectivity_event():
    """Receive an ``online`` / ``offline`` event from the device."""
    data = _json_body()
    if 'online' in data:
        online = bool(data['online'])
    elif data.get('event') in ('online', 'offline'):
        online = data['event'] == 'online'
    else:
        raise ValidationError("Expected 'online' (bool) or 'event' ('online' or 'offline')")

    changed = get_container().connectivity.set_online(online)
    return jsonify({"online": online, "changed": changed})


@api_bp.route("/settings", methods=["GET"])
def get_settings():
    store = get_container().store
    url = store.get_script_url()
    return jsonify({
        "script_url": url.value,
        "script_url_source": "default" if url.fallback and url.value == store.config.default_script_url else "stored",
        "operator_name": store.get_operator_name(),
    })


@api_bp.route("/settings", methods=["PUT"])
def update_settings():
    data = _json_body()
    store = get_container().store
    if 'script_url' in data:
        store.save_script_url(data['script_url'])
    if 'operator_name' in data:
        store.save_operator_name(data['operator_name'])
    return get_settings()


@api_bp.route("/storage/clear-synced", methods=["POST"])
def clear_synced():
    """Drop records that have already been uploaded."""
    removed = get_container().store.clear_synced()
    return jsonify({"success": True, "removed": removed})


@api_bp.route("/storage/reset", methods=["POST"])
def reset_storage():
    """Emergency reset: delete every local record, synced or not."""
    data = request.get_json(silent=True) or {}
    if data.get('confirm') is not True:
        raise ValidationError("Reset deletes unsynced records; send {\"confirm\": true} to proceed")
    result = get_container().store.reset()
    log.warning("Local storage reset requested through the API")
    return jsonify({"success": True, "persisted": not result.fallback})


@api_bp.route("/logbook", methods=["POST"])
def create_logbook_entry():
    """Send a logbook entry straight to the remote endpoint."""
    entry = LogbookEntry.from_dict(_with_defaults(_json_body()))
    result = get_container().remote_service.submit_logbook_entry(entry)
    return _result_response(result, id=entry.id)


@api_bp.route("/logbook", methods=["GET"])
def list_logbook():
    return _result_response(get_container().remote_service.fetch_logbook())


@api_bp.route("/steel-changes/remote", methods=["GET"])
def list_remote_steel_changes():
    return _result_response(get_container().remote_service.fetch_steel_changes())


@api_bp.route("/steel-changes/stats", methods=["GET"])
def steel_change_statistics():
    """Latest change of each steel component on every drill."""
    result, statistics = get_container().remote_service.steel_statistics()
    return _result_response(result, drills=statistics)


@api_bp.route("/inventory", methods=["GET"])
def get_inventory():
    return _result_response(get_container().remote_service.fetch_inventory())


@api_bp.route("/inventory", methods=["PUT"])
def update_inventory():
    data = _json_body()
    data.setdefault('date', date.today().isoformat())
    snapshot = InventorySnapshot.from_dict(data)
    result = get_container().remote_service.update_inventory(snapshot)
    return _result_response(result, total_items=snapshot.total_items)


@api_bp.route("/wear", methods=["GET"])
def wear_dashboard():
    """Wear status of every drill from the measurements held remotely."""
    result, dashboard = get_container().remote_service.wear_dashboard()
    return _result_response(result, drills=dashboard)


@api_bp.route("/wear/classify", methods=["POST"])
def classify_wear():
    """Classify one measurement without storing it."""
    data = _with_defaults(_json_body())
    measurement = Measurement.from_dict(data)
    config = get_container().config
    thresholds = thresholds_for(measurement.drill_id, config)
    return jsonify({
        "drill_id": measurement.drill_id,
        "status": classify_measurement(measurement, thresholds).value,
        "thresholds": {"green": thresholds.green, "red": thresholds.red},
        "readings": [
            {"value": value, "level": reading_level(value, thresholds).value}
            for value in measurement.readings
        ],
    })


@api_bp.route("/holes/recompute", methods=["POST"])
def recompute_holes():
    """Recompute cumulative meters for a hole list."""
    data = _json_body()
    raw_holes = data.get('holes')
    if not isinstance(raw_holes, list):
        raise ValidationError("'holes' must be a list")
    holes = recompute_cumulative([HoleRecord.from_dict({**h, 'id': h.get('id') or generate_id()}
                                                      if isinstance(h, dict) else h)
                                  for h in raw_holes])
    return jsonify({
        "holes": [h.to_dict() for h in holes],
        "total_meters": total_meters(holes),
    })
