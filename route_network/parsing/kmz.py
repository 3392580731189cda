"""
KMZ response converter

Maps the {points, lines} response of the KMZ parse service onto the
ingestion payload shape ({points, connections}) the network loader reads.
"""

from typing import Any, Dict, List

from loguru import logger

from .coordinates import CoordinateNormalizer, is_sentinel
from ..config import get_config

INCREMENTAL_CABLE = "Incremental Cable"
EXISTING_STATUSES = ("Accepted", "Existing")


def _to_km(value: Any, divisor: float = 1.0) -> float:
    try:
        return float(value) / divisor
    except (TypeError, ValueError):
        return 0.0


class KMZConverter:
    """Converts KMZ parse responses to the standard ingestion format"""

    def __init__(self, normalizer: CoordinateNormalizer = None):
        self.config = get_config()
        self.normalizer = normalizer or CoordinateNormalizer()

    def convert_point(self, point: Dict[str, Any]) -> Dict[str, Any]:
        properties = dict(point.get("properties") or {})
        point_type = point.get("type", "")
        properties["type"] = point_type
        properties["icon"] = properties.get("asset_type") or point_type
        properties["remarks"] = properties.get("remarks") or ""
        coord = self.normalizer.parse_point(point.get("coordinates"))
        return {
            "name": point.get("name", ""),
            "coordinates": [coord.lng, coord.lat],  # elevation dropped
            "properties": properties,
        }

    @staticmethod
    def _is_incremental(line: Dict[str, Any], properties: Dict[str, Any]) -> bool:
        return INCREMENTAL_CABLE in (
            line.get("type"),
            properties.get("type"),
            properties.get("asset_type"),
        )

    def convert_line(self, line: Dict[str, Any]) -> Dict[str, Any]:
        properties = dict(line.get("properties") or {})
        start = properties.get("start_node") or ""
        end = properties.get("end_node") or ""
        path = self.normalizer.parse_path(line.get("coordinates"))

        # Explicit length (km), else seg_length (m), else properties.length (km)
        if line.get("length"):
            length = _to_km(line["length"])
        elif properties.get("seg_length"):
            length = _to_km(properties["seg_length"], 1000.0)
        elif properties.get("length"):
            length = _to_km(properties["length"])
        else:
            length = 0.0

        incremental = self._is_incremental(line, properties)
        existing = properties.get("status") in EXISTING_STATUSES or incremental

        colors = self.config.network
        color = colors.existing_color if incremental and existing else colors.proposed_color

        return {
            "start": start,
            "end": end,
            "length": length,
            "name": line.get("name") or f"{start} TO {end}",
            "coordinates": [[c.lng, c.lat] for c in path],
            "color": color,
            "existing": existing,
            "properties": properties,
        }

    def convert(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Convert a KMZ parse response

        Args:
            data: {"points": [...], "lines": [...]}

        Returns:
            {"points": [...], "connections": [...]}
        """
        points = [self.convert_point(p) for p in data.get("points") or []]
        connections = [self.convert_line(l) for l in data.get("lines") or []]
        logger.info(f"Converted KMZ data: {len(points)} points, {len(connections)} connections")
        return {"points": points, "connections": connections}


def convert_kmz(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a KMZ parse response with a fresh converter"""
    return KMZConverter().convert(data)


def _is_valid_pair(coord: Any) -> bool:
    return (
        isinstance(coord, (list, tuple))
        and len(coord) == 2
        and all(isinstance(c, (int, float)) and not isinstance(c, bool) for c in coord)
        and not is_sentinel(coord)
    )


def validate_converted(data: Dict[str, Any]) -> bool:
    """Check every point has a pair and every connection has endpoints and >= 2 vertices"""
    points: List[Dict[str, Any]] = data.get("points") or []
    connections: List[Dict[str, Any]] = data.get("connections") or []

    valid_points = all(_is_valid_pair(p.get("coordinates")) for p in points)
    valid_connections = all(
        c.get("start")
        and c.get("end")
        and isinstance(c.get("coordinates"), list)
        and len(c["coordinates"]) >= 2
        and all(_is_valid_pair(coord) for coord in c["coordinates"])
        for c in connections
    )
    return bool(valid_points and valid_connections)
