"""
Connection normalization

Turns raw connection records into canonical Connections: resolved
endpoints, parsed path, length in km, existing/proposed classification
and the derived property bundle used by export.
"""

from typing import Any, Dict, Optional, Tuple

from loguru import logger

from .geometry import path_length_km
from .models import AdminInfo, Connection, PointResolution
from .point_index import PointIndex, normalize_code
from ..config import get_config
from ..parsing.coordinates import CoordinateNormalizer
from ..parsing.properties import PropertyParser, is_null_value

_TRUTHY = ("true", "1", "yes", "y")


def is_truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return False


def _as_float(value: Any) -> Optional[float]:
    if is_null_value(value) or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ConnectionNormalizer:
    """Converts raw connection records into canonical Connections"""

    def __init__(
        self,
        coordinate_normalizer: Optional[CoordinateNormalizer] = None,
        property_parser: Optional[PropertyParser] = None
    ):
        self.config = get_config()
        self.coordinates = coordinate_normalizer or CoordinateNormalizer()
        self.properties = property_parser or PropertyParser()

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def _endpoint_reference(
        self,
        raw: Dict[str, Any],
        properties: Dict[str, Any],
        side: str
    ) -> Tuple[str, str]:
        """Pull (name, lgd_code) for 'start' or 'end' out of a record"""
        value = raw.get(side)
        code = raw.get(f"{side}_lgd_code")
        if isinstance(value, dict):
            code = code or value.get("lgd_code")
            value = value.get("name")
        if is_null_value(value):
            value = properties.get(f"{side}_node")
        if is_null_value(code):
            code = properties.get(f"{side}_lgd_code")
        name = "" if is_null_value(value) else str(value).strip()
        return name, normalize_code(code)

    # ------------------------------------------------------------------
    # Length / classification
    # ------------------------------------------------------------------

    def _length_km(self, raw: Dict[str, Any], properties: Dict[str, Any], path) -> float:
        if len(path) >= 2:
            return path_length_km(path)

        explicit = _as_float(raw.get("length"))
        if explicit is not None:
            return explicit
        seg_length = _as_float(properties.get("seg_length"))
        if seg_length is not None:
            return seg_length / 1000.0  # meters
        prop_length = _as_float(properties.get("length"))
        if prop_length is not None:
            return prop_length
        return 0.0

    def is_existing(self, raw: Dict[str, Any], properties: Dict[str, Any]) -> bool:
        """Existing if any of: existing flag, type 'existing', status Accepted, phase 1"""
        if is_truthy(raw.get("existing")) or is_truthy(properties.get("existing")):
            return True
        for source in (raw, properties):
            connection_type = source.get("type")
            if isinstance(connection_type, str) and connection_type.strip().lower() == "existing":
                return True
        status = raw.get("status") or properties.get("status")
        if isinstance(status, str) and status.strip() == "Accepted":
            return True
        phase = raw.get("phase") if not is_null_value(raw.get("phase")) else properties.get("phase")
        return str(phase).strip() == "1"

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    def normalize(
        self,
        raw: Dict[str, Any],
        index: PointIndex,
        admin: Optional[AdminInfo] = None
    ) -> Connection:
        """
        Normalize one raw connection record

        Args:
            raw: Connection record ({start, end, coordinates?, length?, ...})
            index: PointIndex over the network's points
            admin: Network-level administrative metadata

        Returns:
            Connection (endpoints may be unresolved, never dropped)
        """
        admin = admin or AdminInfo()
        net_config = self.config.network
        properties = self.properties.parse(raw.get("properties"))

        start_name, start_code = self._endpoint_reference(raw, properties, "start")
        end_name, end_code = self._endpoint_reference(raw, properties, "end")
        start: PointResolution = index.resolve(start_name, start_code)
        end: PointResolution = index.resolve(end_name, end_code)

        raw_path = raw.get("coordinates")
        if raw_path is None:
            raw_path = raw.get("path")
        path = self.coordinates.parse_path(raw_path) if raw_path is not None else []

        length_km = self._length_km(raw, properties, path)
        existing = self.is_existing(raw, properties)
        color = net_config.existing_color if existing else net_config.proposed_color

        status = properties.get("status", net_config.property_defaults["status"])
        if existing and status == net_config.property_defaults["status"]:
            status = "Existing"

        derived = {
            "asset_type": properties.get("asset_type") or (
                net_config.default_asset_type_existing if existing else net_config.default_asset_type_proposed
            ),
            "num_fibre": properties.get("num_fibre") or net_config.default_fiber_count,
            "length_m": round(length_km * 1000, 3),
            "start_lgd_code": start.point.lgd_code if start.point is not None else start_code,
            "end_lgd_code": end.point.lgd_code if end.point is not None else end_code,
            "st_code": admin.st_code,
            "dt_code": admin.dt_code,
            "blk_code": admin.blk_code,
            "status": status,
        }

        name = raw.get("name")
        if is_null_value(name):
            name = f"{start.name} TO {end.name}"

        connection = Connection(
            start=start,
            end=end,
            path=path,
            length_km=length_km,
            existing=existing,
            color=color,
            name=str(name),
            properties=properties,
            derived=derived,
        )

        if connection.unresolved:
            logger.warning(
                f"Unresolved endpoint(s) on {connection.name!r}: "
                f"start={start.reference!r} ({start.strategy.value}), end={end.reference!r} ({end.strategy.value})"
            )
        else:
            logger.debug(
                f"Connection {connection.name!r}: {length_km:.3f} km, "
                f"{'existing' if existing else 'proposed'}"
            )
        return connection
