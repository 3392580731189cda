"""
Route planning session

Top-level orchestrator: owns the network graph, the edit engine, the
persistence gateway and the drawing registry for one planning session.

  1. Load a network (payload, KMZ parse result, bulk upload, stored preview)
  2. Render segments and point markers on the drawing surface
  3. Edit routes through the engine (service failures become notifications)
  4. Save, verify-and-save or download the current network
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from .config import PlannerConfig, get_config
from .editing.commands import (
    CandidateRequest,
    DeleteRequest,
    DragPreview,
    DragRelease,
    SelectCandidate,
    UndoRequest,
)
from .editing.drawing import DrawingSurface, Resource, ResourceRegistry
from .editing.engine import CandidateSegment, RouteEditEngine
from .exceptions import EditStateError, NoRouteError, ServiceError
from .network.graph import NetworkGraph
from .network.ingest import LoadReport, NetworkLoader
from .network.models import SegmentKey
from .parsing.kmz import KMZConverter, validate_converted
from .services.api_client import TraceAPIClient
from .services.network_api import NetworkService
from .services.notifications import Notification, Notifier
from .services.persistence import PersistenceGateway, UserIdentity
from .services.routing import RoutingService

PathLike = Union[str, Path]


class RoutePlanningSession:
    """
    One interactive planning session

    Usage:
        session = RoutePlanningSession()
        session.load_payload({"points": [...], "connections": [...]})
        session.request_candidates(CandidateRequest(...))
        session.save()
    """

    def __init__(
        self,
        config: Optional[PlannerConfig] = None,
        client: Optional[TraceAPIClient] = None,
        surface: Optional[DrawingSurface] = None,
        user: Optional[UserIdentity] = None
    ):
        self.config = config or get_config()
        self.client = client or TraceAPIClient()
        self.surface = surface or ResourceRegistry()
        self.notifier = Notifier()

        self.graph = NetworkGraph()
        self.loader = NetworkLoader()
        self.engine = RouteEditEngine(self.graph, RoutingService(self.client), self.surface)
        self.gateway = PersistenceGateway(self.client, self.notifier, user)
        self.networks = NetworkService(self.client)

        # Resources drawn for loaded segments and points (not engine-owned)
        self.segment_lines: Dict[SegmentKey, Resource] = {}
        self.markers: List[Resource] = []
        self.last_report: Optional[LoadReport] = None

    # ============================================================
    # Loading
    # ============================================================

    def clear_map_data(self):
        """Release every drawing resource and reset all network state"""
        self.engine.release_all()
        for resource in self.segment_lines.values():
            self.surface.release(resource)
        for resource in self.markers:
            self.surface.release(resource)
        self.segment_lines = {}
        self.markers = []
        if isinstance(self.surface, ResourceRegistry):
            self.surface.release_all()
        self.graph.clear()
        self.last_report = None
        logger.debug("Map data cleared")

    def _render(self):
        for entry in self.graph.loop:
            if entry.point.valid:
                self.markers.append(self.surface.draw_marker(entry.point.coordinates, entry.point.name))
        for key, detail in self.graph.segments.items():
            if len(detail.path) >= 2:
                self.segment_lines[key] = self.surface.draw_polyline(detail.path, detail.color)

    def _finish_load(self, report: LoadReport) -> LoadReport:
        self.last_report = report
        self._render()
        summary = report.summary()
        logger.info(
            f"Session network: {summary['points']} points, {len(self.graph.segments)} segments, "
            f"total {self.graph.total_length:.2f} km"
        )
        return report

    def load_payload(self, payload: Dict[str, Any]) -> LoadReport:
        """Reset and ingest a {points, connections, network} payload"""
        self.clear_map_data()
        return self._finish_load(self.loader.load(payload, self.graph))

    def load_loop(self, payload: Dict[str, Any]) -> LoadReport:
        """Reset and ingest a {loop, mainPointName} payload"""
        self.clear_map_data()
        return self._finish_load(self.loader.load_loop(payload, self.graph))

    def load_kmz(self, data: Dict[str, Any]) -> LoadReport:
        """Reset and ingest a KMZ parse response ({points, lines})"""
        payload = KMZConverter(self.loader.coordinates).convert(data)
        if not validate_converted(payload):
            logger.warning("KMZ data has invalid coordinates; affected records load degraded")
        return self.load_payload(payload)

    def _load_any(self, data: Dict[str, Any]) -> LoadReport:
        if "loop" in data:
            return self.load_loop(data)
        return self.load_payload(data)

    def load_bulk_upload(self, points_file: PathLike, connections_file: PathLike) -> Optional[LoadReport]:
        """Upload two files for network generation and load the result"""
        try:
            data = self.networks.upload(points_file, connections_file)
        except ServiceError as e:
            self.notifier.error(f"Upload failed: {e}")
            return None
        report = self._load_any(data)
        self.notifier.success(f"Network generated: {len(self.graph.loop)} points")
        return report

    def load_preview(self, network_id: Union[int, str]) -> Optional[LoadReport]:
        """Load a stored network for preview"""
        try:
            data = self.networks.fetch_network(network_id)
        except ServiceError as e:
            self.notifier.error(f"Error loading network {network_id}: {e}")
            return None
        return self._load_any(data)

    # ============================================================
    # Editing
    # ============================================================

    def _retire_segment_line(self, key: Optional[SegmentKey]):
        """Drop the loaded polyline for a segment the engine now draws"""
        if key is None:
            return
        for candidate in (key, key.reversed()):
            resource = self.segment_lines.pop(candidate, None)
            if resource is not None:
                self.surface.release(resource)

    def request_candidates(self, request: CandidateRequest) -> List[CandidateSegment]:
        try:
            return self.engine.request_candidates(request)
        except NoRouteError as e:
            self.notifier.error(str(e))
        except ServiceError as e:
            self.notifier.error(f"Error fetching routes: {e}")
        return []

    def select_candidate(self, command: SelectCandidate) -> Optional[SegmentKey]:
        try:
            key = self.engine.select_candidate(command)
        except EditStateError as e:
            self.notifier.error(str(e))
            return None
        self._retire_segment_line(key)
        return key

    def preview_drag(self, command: DragPreview):
        try:
            return self.engine.preview_drag(command)
        except EditStateError as e:
            self.notifier.error(str(e))
            return None

    def release_drag(self, command: DragRelease) -> Optional[SegmentKey]:
        try:
            return self.engine.release_drag(command)
        except NoRouteError:
            self.notifier.error("No route found")
        except (ServiceError, EditStateError) as e:
            self.notifier.error(f"Error computing route: {e}")
        return None

    def undo(self, command: UndoRequest) -> bool:
        try:
            return self.engine.undo(command)
        except EditStateError as e:
            self.notifier.error(str(e))
            return False

    def delete(self, command: DeleteRequest) -> Optional[SegmentKey]:
        try:
            key = self.engine.delete(command)
        except EditStateError as e:
            self.notifier.error(str(e))
            return None
        self._retire_segment_line(key)
        return key

    # ============================================================
    # Persistence
    # ============================================================

    def save(self) -> Notification:
        return self.gateway.save(self.graph)

    def verify_and_save(self) -> Notification:
        return self.gateway.verify_and_save(self.graph)

    def download(self, fmt: str, target_dir: PathLike = ".") -> Notification:
        return self.gateway.download(self.graph, fmt, target_dir)
