"""Latest steel component change per drill."""

from typing import Dict, List, Optional

from drillsync.domain.records import STEEL_TYPES


def _field(row, *keys):
    for key in keys:
        value = row.get(key)
        if value not in (None, ''):
            return value
    return None


def _component_key(name) -> str:
    return ' '.join(str(name or '').split()).lower()


def last_change(changes: List[dict], drill_id, component) -> Optional[dict]:
    """The last listed change of ``component`` on ``drill_id``, or None.

    Rows come from the sheet in insertion order, so the last match is the
    most recent. Component names are compared ignoring case and spacing.
    """
    wanted = _component_key(component)
    latest = None
    for row in changes:
        if str(_field(row, 'drillId') or '') != str(drill_id):
            continue
        if _component_key(_field(row, 'component', 'steelType')) == wanted:
            latest = row
    if latest is None:
        return None
    return {
        "date": _field(latest, 'date'),
        "serial": _field(latest, 'serie', 'serialNumber') or '',
        "brand": _field(latest, 'brand') or '',
        "model": _field(latest, 'model') or '',
    }


def steel_statistics(changes: List[dict], config, drill_ids=None,
                     components=STEEL_TYPES) -> Dict[str, Dict[str, Optional[dict]]]:
    """Latest change of every component for every drill in the fleet."""
    rows = [c for c in changes if isinstance(c, dict)]
    return {
        drill_id: {component: last_change(rows, drill_id, component) for component in components}
        for drill_id in drill_ids or config.drill_ids
    }
