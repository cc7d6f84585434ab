"""Wear status of drill steel from diameter measurements."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from drillsync.domain.records import MEASUREMENT_READINGS, Measurement

log = logging.getLogger(__name__)


class WearStatus(Enum):
    NO_DATA = "no-data"
    OK = "ok"
    CAUTION = "caution"
    CRITICAL = "critical"


@dataclass(frozen=True)
class WearThresholds:
    green: float
    red: float


def thresholds_for(drill_id, config) -> WearThresholds:
    """Small-model drills wear against their own, lower pair of thresholds."""
    if str(drill_id) in config.small_model_drills:
        return WearThresholds(config.small_green_threshold, config.small_red_threshold)
    return WearThresholds(config.green_threshold, config.red_threshold)


def parse_reading(value) -> Optional[float]:
    """Parse one reading; ``,`` and ``.`` are both decimal separators.

    Empty, unparsable, zero and negative readings mean "not measured" and
    give None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(',', '.')
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if number != number or number <= 0:
        return None
    return number


def classify_readings(readings: Iterable, thresholds: WearThresholds) -> WearStatus:
    values = [v for v in (parse_reading(r) for r in readings) if v is not None]
    if not values:
        return WearStatus.NO_DATA
    # red wins over everything else
    if any(v < thresholds.red for v in values):
        return WearStatus.CRITICAL
    if all(v > thresholds.green for v in values):
        return WearStatus.OK
    return WearStatus.CAUTION


def reading_level(value, thresholds: WearThresholds) -> WearStatus:
    """Level of a single reading, used to colour individual values."""
    return classify_readings([value], thresholds)


def _readings_of(measurement):
    if isinstance(measurement, Measurement):
        return measurement.readings
    out = []
    for attr, key in MEASUREMENT_READINGS:
        value = measurement.get(key)
        if value is None:
            value = measurement.get(key.replace('é', 'e'))
        out.append(value)
    return out


def _drill_of(measurement):
    if isinstance(measurement, Measurement):
        return measurement.drill_id
    return measurement.get('drillId')


def classify_measurement(measurement, thresholds: WearThresholds) -> WearStatus:
    if measurement is None:
        return WearStatus.NO_DATA
    return classify_readings(_readings_of(measurement), thresholds)


def latest_measurement(measurements: List, drill_id):
    """The most recent measurement for a drill: the last one listed for it."""
    latest = None
    for m in measurements:
        if str(_drill_of(m)) == str(drill_id):
            latest = m
    return latest


def drill_statuses(measurements: List, config, drill_ids=None) -> Dict[str, WearStatus]:
    """Status of every drill in the fleet from a list of measurements."""
    statuses = {}
    for drill_id in drill_ids or config.drill_ids:
        latest = latest_measurement(measurements, drill_id)
        statuses[drill_id] = classify_measurement(latest, thresholds_for(drill_id, config))
    log.debug(f"Wear statuses computed for {len(statuses)} drills")
    return statuses
