"""Record types captured in the field.

Field names on the wire (and in local storage) keep the camelCase keys the
Apps Script expects; Python attributes are snake_case. Keys a record does not
know about are carried in ``extra`` so nothing a client sent is dropped.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional

from drillsync.errors import ValidationError


class RecordKind(Enum):
    """Operation tags understood by the remote endpoint."""
    SHIFT_REPORT = "shift_report"
    STEEL_CHANGE = "steel_change"
    MEASUREMENT = "measurement"
    INVENTORY_UPDATE = "inventory_update"
    INVENTORY_FETCH = "inventory_fetch"
    MEASUREMENTS_FETCH = "measurements_fetch"
    LOGBOOK_ENTRY = "logbook_entry"
    LOGBOOK_FETCH = "logbook_fetch"
    STEEL_CHANGES_FETCH = "steel_changes_fetch"

    @property
    def queued(self) -> bool:
        """Whether records of this kind go through the pending/synced queue."""
        return self in QUEUED_KINDS


# Fixed order in which a sync pass visits the queues
QUEUED_KINDS = (RecordKind.SHIFT_REPORT, RecordKind.STEEL_CHANGE, RecordKind.MEASUREMENT)


class RecordStatus(Enum):
    DRAFT = "draft"
    PENDING = "pending"
    SYNCED = "synced"


class ShiftType:
    A = "A"
    B = "B"


class TerrainType:
    SOFT = "Blando"
    MEDIUM = "Medio"
    HARD = "Duro"


STEEL_TYPES = (
    "Amortiguador",
    "Adaptador superior",
    "Barra Seguidora",
    "Barra Patera",
    "Adaptador inferior",
    "Anillo Guia",
    "Tricono",
)


def _to_float(value, default=0.0):
    if value is None or value == '':
        return default
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(',', '.').strip())
    except ValueError:
        return default


def _to_int(value, default=0):
    try:
        return int(round(_to_float(value, default)))
    except (TypeError, ValueError):
        return default


class WireRecord:
    """Mixin mapping dataclass attributes to their wire keys."""

    # attribute name -> wire key
    WIRE_KEYS: Dict[str, str] = {}
    # alternative wire key -> attribute name, accepted on input only
    ALIASES: Dict[str, str] = {}
    REQUIRED: tuple = ()
    CONVERTERS: Dict[str, Any] = {}

    @classmethod
    def wire_key(cls, attr):
        return cls.WIRE_KEYS.get(attr, attr)

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValidationError("Record must be a JSON object", details={"received": type(data).__name__})

        known = {}
        consumed = set()
        for f in fields(cls):
            if f.name == 'extra':
                continue
            key = cls.wire_key(f.name)
            if key in data:
                known[f.name] = data[key]
                consumed.add(key)
        for alias, attr in cls.ALIASES.items():
            if alias in data:
                consumed.add(alias)
                known.setdefault(attr, data[alias])

        extra = {k: v for k, v in data.items() if k not in consumed}
        try:
            for attr, convert in cls.CONVERTERS.items():
                if attr in known:
                    known[attr] = convert(known[attr])
            return cls(extra=extra, **known)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid {cls.__name__} record: {e}")

    def to_dict(self):
        out = {}
        for f in fields(self):
            if f.name == 'extra':
                continue
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, list):
                value = [v.to_dict() if isinstance(v, WireRecord) else v for v in value]
            if value is None:
                continue
            out[self.wire_key(f.name)] = value
        for key, value in self.extra.items():
            out.setdefault(key, value)
        return out

    def validate(self):
        """Raise ValidationError listing any required field left empty."""
        missing = [self.wire_key(attr) for attr in self.REQUIRED
                   if not str(getattr(self, attr) or '').strip()]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}",
                                  details={"missing": missing})
        return self


def _status(value):
    return value if isinstance(value, RecordStatus) else RecordStatus(value)


@dataclass
class HoleRecord(WireRecord):
    id: str
    hole_number: str = "1"
    meters: float = 0.0
    cumulative_meters: float = 0.0
    start_time: str = ""
    end_time: str = ""
    duration_minutes: int = 0
    terrain: str = TerrainType.MEDIUM
    pulldown: str = ""
    rpm: str = ""
    comments: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    WIRE_KEYS = {
        "hole_number": "holeNumber",
        "cumulative_meters": "cumulativeMeters",
        "start_time": "startTime",
        "end_time": "endTime",
        "duration_minutes": "durationMinutes",
    }
    CONVERTERS = {
        "meters": _to_float,
        "cumulative_meters": _to_float,
        "duration_minutes": _to_int,
        "hole_number": str,
    }


def _holes(value):
    return [h if isinstance(h, HoleRecord) else HoleRecord.from_dict(h) for h in (value or [])]


@dataclass
class ShiftReport(WireRecord):
    id: str
    date: str = ""
    shift: str = ShiftType.A
    drill_id: str = ""
    operator_name: str = ""
    bench: str = ""
    phase: str = ""
    mesh: str = ""
    bit_brand: str = ""
    bit_model: str = ""
    bit_serial: str = ""
    bit_diameter: str = ""
    holes: List[HoleRecord] = field(default_factory=list)
    status: RecordStatus = RecordStatus.DRAFT
    ai_summary: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    kind = RecordKind.SHIFT_REPORT
    WIRE_KEYS = {
        "drill_id": "drillId",
        "operator_name": "operatorName",
        "bit_brand": "bitBrand",
        "bit_model": "bitModel",
        "bit_serial": "bitSerial",
        "bit_diameter": "bitDiameter",
        "ai_summary": "aiSummary",
    }
    REQUIRED = ("id", "date", "drill_id", "operator_name")
    CONVERTERS = {"holes": _holes, "status": _status}


@dataclass
class SteelChange(WireRecord):
    id: str
    date: str = ""
    drill_id: str = ""
    shift: str = ShiftType.A
    steel_type: str = ""
    serial_number: str = ""
    brand: Optional[str] = None
    model: Optional[str] = None
    comments: str = ""
    status: RecordStatus = RecordStatus.PENDING
    extra: Dict[str, Any] = field(default_factory=dict)

    kind = RecordKind.STEEL_CHANGE
    WIRE_KEYS = {
        "drill_id": "drillId",
        "steel_type": "steelType",
        "serial_number": "serialNumber",
    }
    REQUIRED = ("id", "date", "drill_id", "steel_type", "serial_number")
    CONVERTERS = {"status": _status}


# The remote sheet reads the accented "Patéra" keys
MEASUREMENT_READINGS = (
    ("barra_seguidora_superior", "barraSeguidoraSuperior"),
    ("barra_seguidora_medio", "barraSeguidoraMedio"),
    ("barra_seguidora_inferior", "barraSeguidoraInferior"),
    ("barra_patera_superior", "barraPatéraSuperior"),
    ("barra_patera_medio", "barraPatéraMedio"),
    ("barra_patera_inferior", "barraPatéraInferior"),
    ("adaptador_inferior_medio", "adaptadorInferiorMedio"),
)


@dataclass
class Measurement(WireRecord):
    id: str
    date: str = ""
    shift: str = ShiftType.A
    drill_id: str = ""
    barra_seguidora_superior: str = ""
    barra_seguidora_medio: str = ""
    barra_seguidora_inferior: str = ""
    barra_patera_superior: str = ""
    barra_patera_medio: str = ""
    barra_patera_inferior: str = ""
    adaptador_inferior_medio: str = ""
    status: RecordStatus = RecordStatus.PENDING
    extra: Dict[str, Any] = field(default_factory=dict)

    kind = RecordKind.MEASUREMENT
    WIRE_KEYS = dict(MEASUREMENT_READINGS, drill_id="drillId")
    ALIASES = {
        "barraPateraSuperior": "barra_patera_superior",
        "barraPateraMedio": "barra_patera_medio",
        "barraPateraInferior": "barra_patera_inferior",
    }
    REQUIRED = ("id", "date", "drill_id")
    CONVERTERS = {"status": _status}

    @property
    def readings(self):
        """The seven dimensional readings, in sheet column order."""
        return [getattr(self, attr) for attr, _ in MEASUREMENT_READINGS]


@dataclass
class LogbookEntry(WireRecord):
    id: str
    date: str = ""
    title: str = ""
    description: str = ""
    responsible: str = ""
    photo_base64: Optional[str] = None
    photo_name: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    kind = RecordKind.LOGBOOK_ENTRY
    WIRE_KEYS = {"photo_base64": "photoBase64", "photo_name": "photoName"}
    REQUIRED = ("id", "date", "title")

    def __post_init__(self):
        if self.photo_base64 and not self.photo_name:
            self.photo_name = f"bitacora_{self.id}.jpg"


@dataclass
class InventorySnapshot(WireRecord):
    """Counts per component for each bit diameter (d1 = 7 7/8", d2 = 10 5/8")."""

    date: str = ""
    inventory: Dict[str, Dict[str, int]] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    kind = RecordKind.INVENTORY_UPDATE
    REQUIRED = ("date",)

    def __post_init__(self):
        cleaned = {}
        for item, counts in (self.inventory or {}).items():
            counts = counts if isinstance(counts, dict) else {}
            cleaned[item] = {
                "d1": max(0, _to_int(counts.get("d1"))),
                "d2": max(0, _to_int(counts.get("d2"))),
            }
        self.inventory = cleaned

    @property
    def total_items(self):
        return sum(c["d1"] + c["d2"] for c in self.inventory.values())


RECORD_TYPES = {
    RecordKind.SHIFT_REPORT: ShiftReport,
    RecordKind.STEEL_CHANGE: SteelChange,
    RecordKind.MEASUREMENT: Measurement,
    RecordKind.LOGBOOK_ENTRY: LogbookEntry,
    RecordKind.INVENTORY_UPDATE: InventorySnapshot,
}


def record_from_dict(kind, data):
    """Build the typed record for ``kind`` from its wire dictionary."""
    try:
        record_cls = RECORD_TYPES[kind]
    except KeyError:
        raise ValidationError(f"Record kind {kind.value} carries no record payload")
    return record_cls.from_dict(data)
