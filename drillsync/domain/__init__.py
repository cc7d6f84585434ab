"""Domain types for field records."""

from drillsync.domain.ids import generate_id
from drillsync.domain.records import (
    QUEUED_KINDS,
    HoleRecord,
    InventorySnapshot,
    LogbookEntry,
    Measurement,
    RecordKind,
    RecordStatus,
    ShiftReport,
    SteelChange,
    record_from_dict,
)

__all__ = [
    "QUEUED_KINDS",
    "HoleRecord",
    "InventorySnapshot",
    "LogbookEntry",
    "Measurement",
    "RecordKind",
    "RecordStatus",
    "ShiftReport",
    "SteelChange",
    "generate_id",
    "record_from_dict",
]
