"""
Property bag parsing

Attribute bags arrive as dicts, JSON strings (often double-encoded by the
KML export) or not at all. The parser merges them over a table of known
fields with defaults and keeps any unrecognized keys verbatim.
"""

import json
from typing import Any, Dict, Optional

from loguru import logger

from ..config import get_config


# Known fields and their defaults. status/phase defaults come from config.
KNOWN_FIELDS: Dict[str, Any] = {
    # Identity
    "name": "",
    "type": "",
    "id": None,
    "network_id": None,
    "lgd_code": "",
    "gp_code": "",
    "location_code": "",
    # Lifecycle
    "status": "Proposed",
    "phase": "3",
    "existing": False,
    "remarks": "",
    # Display
    "icon": "",
    "styleUrl": "",
    "color": "",
    # Asset
    "asset_type": "",
    "asset_code": "",
    "ont_make": "",
    "equipment": "",
    # Cable
    "cable_len": "",
    "seg_length": "",
    "length": "",
    "num_fibre": "",
    "fiber_pos": "",
    "cable_type": "",
    "laying_method": "",
    # Road alignment
    "direction": "",
    "rd_offset": "",
    "road_name": "",
    "row_authority": "",
    # Administrative hierarchy
    "st_code": "",
    "st_name": "",
    "dt_code": "",
    "dt_name": "",
    "blk_code": "",
    "blk_name": "",
    "gp_name": "",
    # Connection endpoints
    "start_node": "",
    "end_node": "",
    "start_lgd_code": "",
    "end_lgd_code": "",
    # Survey
    "event_type": "",
}


def is_null_value(value: Any) -> bool:
    """True for None and the null-sentinel strings sources use ('NULL', 'N/A', ...)"""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() in get_config().network.null_sentinels
    return False


class PropertyParser:
    """Parses attribute bags into canonical property maps"""

    def __init__(self, defaults: Optional[Dict[str, Any]] = None):
        self.config = get_config()
        self.defaults = dict(KNOWN_FIELDS)
        self.defaults.update(self.config.network.property_defaults)
        if defaults:
            self.defaults.update(defaults)

    def _decode(self, raw: Any) -> Optional[Dict[str, Any]]:
        """Decode to a dict, unwrapping double-encoded JSON; None on failure"""
        value = raw
        # KML exports sometimes stringify twice
        for _ in range(2):
            if not isinstance(value, str):
                break
            text = value.strip()
            if not text:
                return {}
            try:
                value = json.loads(text)
            except json.JSONDecodeError as e:
                logger.warning(f"Could not parse property string ({e.msg}): {text[:80]!r}")
                return None
        if not isinstance(value, dict):
            logger.warning(f"Property bag is {type(value).__name__}, expected an object")
            return None
        return value

    def parse(self, raw: Any) -> Dict[str, Any]:
        """
        Parse a property bag

        Args:
            raw: dict, JSON string or None

        Returns:
            Fresh dict of known fields (defaults filled) plus unrecognized keys.
            An unparseable bag yields an empty dict.
        """
        if raw is None:
            return dict(self.defaults)

        bag = self._decode(raw)
        if bag is None:
            return {}

        parsed = dict(self.defaults)
        for key, value in bag.items():
            if key in self.defaults:
                if is_null_value(value):
                    continue
                parsed[key] = value
            else:
                # Unknown keys pass through untouched
                parsed[key] = value
        return parsed

    def get_text(self, properties: Dict[str, Any], key: str, default: str = "") -> str:
        """Fetch a field as stripped text, treating null sentinels as missing"""
        value = properties.get(key)
        if is_null_value(value):
            return default
        return str(value).strip()
