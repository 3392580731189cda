"""
Network loader

Ingests whole networks into a NetworkGraph:
- load(): {points, connections, network} payloads (file upload / preview)
- load_loop(): {loop, mainPointName} payloads (bulk upload responses)

One malformed record never blocks the rest of the batch.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from loguru import logger

from .connections import ConnectionNormalizer, is_truthy
from .graph import NetworkGraph
from .models import AdminInfo, Connection, LoopConnection, Point, SegmentDetail, SegmentKey
from .point_index import PointIndex, normalize_code
from .geometry import path_length_km, point_at_fraction
from ..config import get_config
from ..models import IngestionPayload, LoopPayload
from ..parsing.coordinates import CoordinateNormalizer
from ..parsing.properties import PropertyParser, is_null_value

ADMIN_FIELDS = ("st_code", "st_name", "dt_code", "dt_name", "blk_code", "blk_name")


@dataclass
class LoadReport:
    """What an ingestion run produced, including degraded records"""
    points: List[Point] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)
    unresolved: List[Connection] = field(default_factory=list)
    pathless: List[Connection] = field(default_factory=list)
    skipped: List[Any] = field(default_factory=list)
    invalid_coordinates: int = 0

    def summary(self) -> Dict[str, int]:
        return {
            "points": len(self.points),
            "connections": len(self.connections),
            "unresolved": len(self.unresolved),
            "pathless": len(self.pathless),
            "skipped": len(self.skipped),
            "invalid_coordinates": self.invalid_coordinates,
        }


class NetworkLoader:
    """Builds a NetworkGraph from ingestion payloads"""

    def __init__(self):
        self.config = get_config()
        self.coordinates = CoordinateNormalizer()
        self.properties = PropertyParser()
        self.connection_normalizer = ConnectionNormalizer(self.coordinates, self.properties)

    # ============================================================
    # Points
    # ============================================================

    def parse_point(self, raw: Dict[str, Any], position: int) -> Point:
        properties = self.properties.parse(raw.get("properties"))
        coordinates = self.coordinates.parse_point(raw.get("coordinates"))

        lgd_code = normalize_code(raw.get("lgd_code")) or normalize_code(properties.get("lgd_code"))
        name = raw.get("name")
        if is_null_value(name):
            name = properties.get("name") or lgd_code or f"Unnamed {position + 1}"
            logger.warning(f"Point #{position + 1} has no name; using {name!r}")
        point_type = raw.get("type") or properties.get("type") or ""

        return Point(
            name=str(name).strip(),
            coordinates=coordinates,
            lgd_code=lgd_code,
            properties=properties,
            type=str(point_type),
            id=raw.get("id"),
            network_id=raw.get("network_id"),
        )

    @staticmethod
    def _admin_from(network: Dict[str, Any], points: List[Point]) -> AdminInfo:
        """Admin metadata from the network block, else the first point's properties"""
        source = points[0].properties if points else {}
        values = {}
        for name in ADMIN_FIELDS:
            value = network.get(name)
            if is_null_value(value):
                value = source.get(name)
            values[name] = "" if is_null_value(value) else str(value)
        return AdminInfo(**values)

    # ============================================================
    # Public
    # ============================================================

    def load(self, payload: Union[Dict[str, Any], IngestionPayload], graph: NetworkGraph) -> LoadReport:
        """
        Ingest a {points, connections, network} payload into graph

        Segments are keyed origin-first: SegmentKey(start, end).

        Args:
            payload: Ingestion payload (dict or model)
            graph: Target graph (points are appended, segments merged)

        Returns:
            LoadReport with the parsed records and diagnostics
        """
        if not isinstance(payload, IngestionPayload):
            payload = IngestionPayload.model_validate(payload)

        self.coordinates.reset()
        report = LoadReport()

        for position, raw in enumerate(payload.points):
            if not isinstance(raw, dict):
                logger.warning(f"Skipping point #{position + 1}: expected an object, got {type(raw).__name__}")
                report.skipped.append(raw)
                continue
            point = self.parse_point(raw, position)
            report.points.append(point)
        graph.add_points(report.points)

        network = payload.network or {}
        graph.admin = self._admin_from(network, report.points)
        main_point = network.get("mainPointName")
        if is_null_value(main_point):
            main_point = graph.admin.blk_name or None
        graph.main_point_name = main_point

        index = PointIndex(graph.points)
        segments = dict(graph.segments)
        for position, raw in enumerate(payload.connections):
            if not isinstance(raw, dict):
                logger.warning(f"Skipping connection #{position + 1}: expected an object, got {type(raw).__name__}")
                report.skipped.append(raw)
                continue

            connection = self.connection_normalizer.normalize(raw, index, graph.admin)
            report.connections.append(connection)
            if connection.unresolved:
                report.unresolved.append(connection)
            if len(connection.path) < 2:
                report.pathless.append(connection)

            # Unnamed endpoints get a per-record placeholder so unresolved records stay distinct
            placeholder = f"?{position + 1}"
            key = SegmentKey(connection.start.name or placeholder, connection.end.name or placeholder)
            if key in segments:
                logger.debug(f"Segment {key} appears more than once; last record wins")
            segments[key] = SegmentDetail(
                path=list(connection.path),
                length_km=connection.length_km,
                existing=connection.existing,
                color=connection.color,
                start_code=connection.derived.get("start_lgd_code", ""),
                end_code=connection.derived.get("end_lgd_code", ""),
                label_position=point_at_fraction(connection.path, 0.5),
            )

            # A point's loop entry carries the first connection touching it
            for side in (connection.start, connection.end):
                if side.point is None:
                    continue
                entry = graph.find_point(side.point.name)
                if entry is not None and entry.connection is None:
                    entry.connection = LoopConnection(
                        length=connection.length_km,
                        existing=connection.existing,
                        color=connection.color,
                    )
                    entry.route = list(connection.path)

        graph.replace_segments(segments)
        report.invalid_coordinates = len(self.coordinates.invalid)

        logger.info(
            f"Loaded network: {len(report.points)} points, {len(report.connections)} connections "
            f"({len(report.unresolved)} unresolved, {len(report.pathless)} without path), "
            f"existing {graph.existing_length:.2f} km, proposed {graph.proposed_length:.2f} km"
        )
        return report

    def load_loop(self, payload: Union[Dict[str, Any], LoopPayload], graph: NetworkGraph) -> LoadReport:
        """
        Ingest a bulk-upload {loop, mainPointName} payload into graph

        Each loop item carries its point, its outbound connection
        ({from, to, length, existing, color}) and its route geometry.
        """
        if not isinstance(payload, LoopPayload):
            payload = LoopPayload.model_validate(payload)

        self.coordinates.reset()
        report = LoadReport()
        segments = dict(graph.segments)

        for position, item in enumerate(payload.loop):
            if not isinstance(item, dict):
                logger.warning(f"Skipping loop item #{position + 1}: expected an object")
                report.skipped.append(item)
                continue

            point = self.parse_point(item, position)
            report.points.append(point)
            entry = graph.add_point(point)

            connection = item.get("connection") or {}
            features = (item.get("route") or {}).get("features") or []
            geometry = features[0].get("geometry") if features and isinstance(features[0], dict) else None
            raw_path = geometry.get("coordinates") if isinstance(geometry, dict) else None
            path = self.coordinates.parse_path(raw_path) if raw_path is not None else []
            if len(path) < 2:
                continue

            existing = is_truthy(connection.get("existing"))
            try:
                length = float(connection.get("length") or 0)
            except (TypeError, ValueError):
                length = path_length_km(path)
            color = connection.get("color") or (
                self.config.network.existing_color if existing else self.config.network.proposed_color
            )
            entry.connection = LoopConnection(length=length, existing=existing, color=color)
            entry.route = path

            origin = connection.get("from") or point.name
            destination = connection.get("to") or point.name
            segments[SegmentKey(str(origin), str(destination))] = SegmentDetail(
                path=list(path),
                length_km=length,
                existing=existing,
                color=color,
                label_position=point_at_fraction(path, 0.5),
            )

        graph.replace_segments(segments)
        main_point = payload.mainPointName
        graph.main_point_name = None if is_null_value(main_point) else main_point
        if report.points:
            graph.admin = self._admin_from({}, report.points)
        report.invalid_coordinates = len(self.coordinates.invalid)

        logger.info(f"Loaded bulk loop: {len(report.points)} points, {len(segments)} segments")
        return report
