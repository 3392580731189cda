"""
Coordinate normalization

Parses the coordinate encodings found in uploaded/KML-derived records into
canonical (lng, lat) pairs:
- JSON-encoded strings ("[78.1, 17.4]", "[[78.1, 17.4], [78.2, 17.5]]")
- KML coordinate text ("78.1,17.4,0 78.2,17.5,0")
- 2/3-element numeric arrays (elevation dropped)
- {"lat": .., "lng": ..} style objects
- Nested arrays of the above (paths)

Never raises: anything unparseable becomes SENTINEL and is recorded in
the normalizer's `invalid` log.
"""

import json
import math
import re
from dataclasses import dataclass
from typing import Any, List, NamedTuple, Optional, Tuple

from loguru import logger


class Coordinate(NamedTuple):
    """Canonical coordinate, longitude first"""
    lng: float
    lat: float

    def as_latlng(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


SENTINEL = Coordinate(0.0, 0.0)

LNG_LAT = "lnglat"
LAT_LNG = "latlng"

# Anything beyond this magnitude can't be a latitude
LAT_LIMIT = 90.0

_KML_TEXT = re.compile(r"^\s*-?\d+(\.\d+)?\s*,\s*-?\d+(\.\d+)?(\s*,\s*-?\d+(\.\d+)?)?(\s+|$)")

_LAT_KEYS = ("lat", "latitude")
_LNG_KEYS = ("lng", "lon", "long", "longitude")


@dataclass
class InvalidCoordinate:
    """Side-log entry for a value that fell back to SENTINEL"""
    raw: Any
    reason: str


def is_sentinel(coord: Optional[Tuple[float, float]]) -> bool:
    """True for the (0, 0) fallback pair (or a missing coordinate)"""
    if coord is None:
        return True
    return coord[0] == 0.0 and coord[1] == 0.0


def valid_coordinates(coords: List[Coordinate]) -> List[Coordinate]:
    """Drop sentinel pairs before bounds/distance computations"""
    return [c for c in coords if not is_sentinel(c)]


class CoordinateNormalizer:
    """Normalizes raw coordinate values of unknown shape"""

    def __init__(self):
        self.invalid: List[InvalidCoordinate] = []

    def reset(self):
        self.invalid = []

    def _reject(self, raw: Any, reason: str) -> Coordinate:
        self.invalid.append(InvalidCoordinate(raw=raw, reason=reason))
        logger.warning(f"Invalid coordinate {raw!r}: {reason}; using (0, 0)")
        return SENTINEL

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_kml_text(text: str) -> Optional[List[List[float]]]:
        """Parse 'lng,lat[,alt] lng,lat[,alt] ...' KML coordinate text"""
        if not _KML_TEXT.match(text):
            return None
        tuples = []
        for chunk in re.sub(r"\s*,\s*", ",", text.strip()).split():
            parts = chunk.split(",")
            if len(parts) < 2:
                return None
            try:
                tuples.append([float(p) for p in parts[:2]])
            except ValueError:
                return None
        return tuples or None

    def _decode(self, raw: Any) -> Tuple[Any, Optional[str]]:
        """Decode strings; returns (value, error)"""
        if not isinstance(raw, str):
            return raw, None
        text = raw.strip()
        if not text:
            return None, "empty string"
        try:
            return json.loads(text), None
        except json.JSONDecodeError as e:
            kml = self._parse_kml_text(text)
            if kml is not None:
                return (kml[0] if len(kml) == 1 else kml), None
            return None, f"not JSON ({e.msg})"

    # ------------------------------------------------------------------
    # Pairs
    # ------------------------------------------------------------------

    @staticmethod
    def _to_float(value: Any) -> Optional[float]:
        if isinstance(value, bool):
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(number):
            return None
        return number

    @staticmethod
    def _is_pair_like(value: Any) -> bool:
        if isinstance(value, dict):
            return any(k in value for k in _LAT_KEYS) and any(k in value for k in _LNG_KEYS)
        if isinstance(value, (list, tuple)):
            return 2 <= len(value) <= 3 and not any(isinstance(v, (list, tuple, dict)) for v in value)
        return False

    def _pair_from_dict(self, raw: Any, value: dict) -> Coordinate:
        lat = next((value[k] for k in _LAT_KEYS if k in value), None)
        lng = next((value[k] for k in _LNG_KEYS if k in value), None)
        lat_f, lng_f = self._to_float(lat), self._to_float(lng)
        if lat_f is None or lng_f is None:
            return self._reject(raw, "non-numeric lat/lng")
        return self._checked(raw, lng_f, lat_f)

    def _pair_from_sequence(self, raw: Any, value: Any, order: Optional[str]) -> Coordinate:
        first, second = self._to_float(value[0]), self._to_float(value[1])
        if first is None or second is None:
            return self._reject(raw, "non-numeric component")

        if order == LAT_LNG:
            return self._checked(raw, second, first)
        if order == LNG_LAT:
            return self._checked(raw, first, second)

        # Larger magnitude >= 90 must be the longitude
        if abs(second) > abs(first) and abs(second) >= LAT_LIMIT:
            return self._checked(raw, second, first)
        return self._checked(raw, first, second)

    def _checked(self, raw: Any, lng: float, lat: float) -> Coordinate:
        if abs(lat) > LAT_LIMIT or abs(lng) > 180.0:
            return self._reject(raw, f"out of range (lng={lng}, lat={lat})")
        return Coordinate(lng, lat)

    def _pair(self, raw: Any, value: Any, order: Optional[str]) -> Coordinate:
        if isinstance(value, dict):
            if "coordinates" in value and not self._is_pair_like(value):
                return self._pair(raw, value["coordinates"], order)
            return self._pair_from_dict(raw, value)
        if isinstance(value, (list, tuple)):
            if len(value) < 2:
                return self._reject(raw, f"expected 2 components, got {len(value)}")
            if isinstance(value[0], (list, tuple, dict)):
                # A path where a point was expected: use its first vertex
                return self._pair(raw, value[0], order)
            return self._pair_from_sequence(raw, value, order)
        return self._reject(raw, f"unsupported type {type(value).__name__}")

    def parse_point(self, raw: Any, order: Optional[str] = None) -> Coordinate:
        """
        Parse a single coordinate pair

        Args:
            raw: String, sequence or lat/lng mapping
            order: LNG_LAT / LAT_LNG when the source order is known;
                   otherwise the magnitude heuristic decides

        Returns:
            Coordinate, or SENTINEL if the value can't be parsed
        """
        value, error = self._decode(raw)
        if error:
            return self._reject(raw, error)
        if value is None:
            return self._reject(raw, "missing")
        return self._pair(raw, value, order)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def parse_path(self, raw: Any, order: Optional[str] = None) -> List[Coordinate]:
        """
        Parse an ordered path of coordinates

        Vertices that fail to parse are dropped from the result, so a path
        with no parseable vertex comes back empty. A literal (0, 0) vertex
        is kept.
        """
        value, error = self._decode(raw)
        if error:
            self._reject(raw, error)
            return []
        if value is None:
            return []

        if isinstance(value, dict):
            if "coordinates" in value:
                return self.parse_path(value["coordinates"], order)
            value = [value]
        elif not isinstance(value, (list, tuple)):
            self._reject(raw, f"unsupported path type {type(value).__name__}")
            return []
        elif self._is_pair_like(value):
            # Single pair given where a path was expected
            value = [value]

        path = []
        for vertex in value:
            # Tolerate one extra level of nesting (multi-part geometries)
            if isinstance(vertex, (list, tuple)) and vertex and not self._is_pair_like(vertex) \
                    and all(isinstance(v, (list, tuple, dict)) for v in vertex):
                path.extend(self.parse_path(vertex, order))
                continue
            rejected = len(self.invalid)
            if isinstance(vertex, str):
                coord = self.parse_point(vertex, order)
            else:
                coord = self._pair(vertex, vertex, order)
            if len(self.invalid) == rejected:
                path.append(coord)
        return path
