"""
Route edit engine

Interactive rerouting between two picked points:

  UNSELECTED -> SELECTED (handles attached) -> EDITING (drag preview)
             -> COMMITTED (server path applied) -> SELECTED
  any non-editing state -> DELETED

Only one segment is SELECTED at a time. Graph writes happen on select,
on a committed drag, on undo and on delete; never mid-drag.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from loguru import logger

from .commands import (
    CandidateRequest,
    DeleteRequest,
    DragPreview,
    DragRelease,
    SelectCandidate,
    UndoRequest,
    segment_id_for,
)
from .drawing import DrawingSurface, Resource, ResourceRegistry
from ..config import get_config
from ..exceptions import EditStateError, NoRouteError, ServiceError
from ..network.geometry import index_at_fraction, path_length_km, point_at_fraction
from ..network.graph import NetworkGraph
from ..network.models import SegmentKey, UndoEntry
from ..parsing.coordinates import Coordinate
from ..services.routing import RoutingService


class SegmentState(Enum):
    UNSELECTED = "unselected"
    SELECTED = "selected"
    EDITING = "editing"
    COMMITTED = "committed"
    DELETED = "deleted"


@dataclass
class CandidateSegment:
    """One routed variant between a picked point pair"""
    segment_id: str
    route_key: str
    rank: int
    origin_name: str
    destination_name: str
    path: List[Coordinate]
    distance_km: float
    color: str
    label_km: Optional[float] = None
    state: SegmentState = SegmentState.UNSELECTED
    label_position: Optional[Coordinate] = None
    graph_key: Optional[SegmentKey] = None
    polyline: Optional[Resource] = None
    label: Optional[Resource] = None
    preview: Optional[Resource] = None
    handles: List[Resource] = field(default_factory=list)


@dataclass
class RouteGroup:
    route_key: str
    origin_name: str
    destination_name: str
    segment_ids: List[str] = field(default_factory=list)


@dataclass
class RouteSelection:
    """The one editable segment, if any"""
    route_key: Optional[str] = None
    selected_segment_id: Optional[str] = None

    def clear(self):
        self.route_key = None
        self.selected_segment_id = None


def distance_text(distance_km: float) -> str:
    return f"{distance_km:.2f} km"


class RouteEditEngine:
    """Candidate generation, selection, drag-to-reroute, undo and delete"""

    def __init__(
        self,
        graph: NetworkGraph,
        routing: Optional[RoutingService] = None,
        surface: Optional[DrawingSurface] = None
    ):
        self.config = get_config()
        self.graph = graph
        self.routing = routing or RoutingService()
        self.surface = surface or ResourceRegistry()
        self.candidates: Dict[str, CandidateSegment] = {}
        self.groups: Dict[str, RouteGroup] = {}
        self.selection = RouteSelection()

    # ============================================================
    # Helpers
    # ============================================================

    def get(self, segment_id: str) -> CandidateSegment:
        candidate = self.candidates.get(segment_id)
        if candidate is None:
            raise EditStateError(f"Unknown segment {segment_id!r}")
        return candidate

    def state_of(self, segment_id: str) -> SegmentState:
        candidate = self.candidates.get(segment_id)
        return candidate.state if candidate is not None else SegmentState.DELETED

    def _release_handles(self, candidate: CandidateSegment):
        for handle in candidate.handles:
            self.surface.release(handle)
        candidate.handles = []
        self.surface.release(candidate.preview)
        candidate.preview = None

    def _release(self, candidate: CandidateSegment):
        self._release_handles(candidate)
        self.surface.release(candidate.polyline)
        self.surface.release(candidate.label)
        candidate.polyline = None
        candidate.label = None

    def _discard(self, segment_id: str):
        """Drop a candidate with its resources and undo log"""
        candidate = self.candidates.pop(segment_id, None)
        if candidate is None:
            return
        self._release(candidate)
        self.graph.drop_history(segment_id)
        group = self.groups.get(candidate.route_key)
        if group is not None and segment_id in group.segment_ids:
            group.segment_ids.remove(segment_id)
        if self.selection.selected_segment_id == segment_id:
            self.selection.clear()

    def _handle_positions(self, path: List[Coordinate]) -> List[Coordinate]:
        return [path[index_at_fraction(len(path), f)] for f in self.config.network.handle_fractions]

    def _attach_handles(self, candidate: CandidateSegment):
        self._release_handles(candidate)
        candidate.handles = [
            self.surface.draw_handle(position, index)
            for index, position in enumerate(self._handle_positions(candidate.path))
        ]

    def _reposition_handles(self, candidate: CandidateSegment):
        if not candidate.handles:
            self._attach_handles(candidate)
            return
        for handle, position in zip(candidate.handles, self._handle_positions(candidate.path)):
            self.surface.update(handle, position=position)

    @staticmethod
    def anchors(path: List[Coordinate], handle_index: int, handle_count: int) -> Tuple[Coordinate, Coordinate]:
        """
        Fixed points a dragged handle is rerouted between

        The start handle reroutes between the second vertex and the end,
        the end handle between the start and the second-to-last vertex,
        and interior handles between the two path ends.
        """
        if len(path) < 2:
            raise EditStateError("Segment path is too short to edit")
        if handle_index <= 0:
            return path[1], path[-1]
        if handle_index >= handle_count - 1:
            return path[0], path[-2]
        return path[0], path[-1]

    def _apply_path(self, candidate: CandidateSegment, path: List[Coordinate], distance_km: float,
                    label_position: Optional[Coordinate], label_km: Optional[float] = None):
        # distance_km goes to the graph; label_km (service distance when known) is what the label shows
        candidate.path = list(path)
        candidate.distance_km = distance_km
        candidate.label_km = distance_km if label_km is None else label_km
        candidate.label_position = label_position
        text = distance_text(candidate.label_km)
        self.surface.update(candidate.polyline, path=candidate.path)
        if candidate.label is None:
            candidate.label = self.surface.draw_label(label_position, text)
        else:
            self.surface.update(candidate.label, position=label_position, text=text)

    def _write_graph(self, candidate: CandidateSegment) -> Optional[SegmentKey]:
        key = self.graph.select_alternate_route(
            candidate.path, candidate.origin_name, candidate.destination_name, candidate.distance_km
        )
        candidate.graph_key = key
        return key

    # ============================================================
    # Candidates
    # ============================================================

    def request_candidates(self, request: CandidateRequest) -> List[CandidateSegment]:
        """
        Fetch up to three alternative routes and register them as variants

        A previous group for the same point pair is replaced.

        Raises:
            ServiceError: Routing request failed (nothing changed)
            NoRouteError: Service found no route (nothing changed)
        """
        routes = self.routing.show_route(request.origin, request.destination)
        if not routes:
            raise NoRouteError(f"No route found between {request.origin_name} and {request.destination_name}")

        route_key = request.route_key
        previous = self.groups.pop(route_key, None)
        if previous is not None:
            for segment_id in list(previous.segment_ids):
                self._discard(segment_id)

        group = RouteGroup(route_key, request.origin_name, request.destination_name)
        colors = self.config.network.candidate_colors
        created = []
        for rank, route in enumerate(routes[:self.config.network.max_candidates]):
            segment_id = segment_id_for(route_key, rank)
            label_position = point_at_fraction(route.path, self.config.network.candidate_label_fraction)
            candidate = CandidateSegment(
                segment_id=segment_id,
                route_key=route_key,
                rank=rank,
                origin_name=request.origin_name,
                destination_name=request.destination_name,
                path=list(route.path),
                distance_km=route.distance_km,
                color=colors[rank % len(colors)],
                label_km=route.distance_km,
                label_position=label_position,
            )
            candidate.polyline = self.surface.draw_polyline(candidate.path, candidate.color)
            candidate.label = self.surface.draw_label(label_position, distance_text(route.distance_km))
            self.candidates[segment_id] = candidate
            group.segment_ids.append(segment_id)
            created.append(candidate)

        self.groups[route_key] = group
        logger.info(f"{len(created)} candidate route(s) for {route_key}")
        return created

    def select_candidate(self, command: SelectCandidate) -> Optional[SegmentKey]:
        """
        Promote one variant to SELECTED

        The other variants (and their labels) are discarded, five drag
        handles are attached, and the route is written to the graph.
        """
        segment_id = segment_id_for(command.route_key, command.rank)
        candidate = self.get(segment_id)
        if candidate.state in (SegmentState.EDITING, SegmentState.DELETED):
            raise EditStateError(f"Cannot select {segment_id} while {candidate.state.value}")

        previous_id = self.selection.selected_segment_id
        if previous_id and previous_id != segment_id and previous_id in self.candidates:
            previous = self.candidates[previous_id]
            if previous.state == SegmentState.EDITING:
                raise EditStateError(f"Finish editing {previous_id} first")
            self._release_handles(previous)
            previous.state = SegmentState.UNSELECTED

        group = self.groups.get(command.route_key)
        if group is not None:
            for other_id in list(group.segment_ids):
                if other_id != segment_id:
                    self._discard(other_id)

        self._attach_handles(candidate)
        candidate.state = SegmentState.SELECTED
        self.selection.route_key = command.route_key
        self.selection.selected_segment_id = segment_id
        logger.info(f"Selected {segment_id} ({candidate.distance_km:.2f} km)")
        return self._write_graph(candidate)

    # ============================================================
    # Drag to reroute
    # ============================================================

    def _editable(self, segment_id: str) -> CandidateSegment:
        candidate = self.get(segment_id)
        if self.selection.selected_segment_id != segment_id or \
                candidate.state not in (SegmentState.SELECTED, SegmentState.EDITING):
            raise EditStateError(f"Segment {segment_id} is not selected for editing")
        return candidate

    def preview_drag(self, command: DragPreview) -> Tuple[Coordinate, Coordinate, Coordinate]:
        """Show the (anchor, dragged point, anchor) preview; no graph change"""
        candidate = self._editable(command.segment_id)
        start, end = self.anchors(candidate.path, command.handle_index, len(candidate.handles))
        triangle = (start, command.position, end)

        candidate.state = SegmentState.EDITING
        if candidate.preview is None:
            candidate.preview = self.surface.draw_preview(list(triangle))
        else:
            self.surface.update(candidate.preview, path=list(triangle))
        if 0 <= command.handle_index < len(candidate.handles):
            self.surface.update(candidate.handles[command.handle_index], position=command.position)
        return triangle

    def release_drag(self, command: DragRelease) -> Optional[SegmentKey]:
        """
        Reroute through the released handle position

        On success the pre-edit snapshot is pushed onto the undo log and
        the new path replaces the old one. On failure the old path stays
        and the error propagates.
        """
        candidate = self._editable(command.segment_id)
        self.surface.release(candidate.preview)
        candidate.preview = None

        origin, destination = self.anchors(candidate.path, command.handle_index, len(candidate.handles))
        try:
            route = self.routing.compute_route(command.position, origin, destination)
        except (NoRouteError, ServiceError):
            candidate.state = SegmentState.SELECTED
            self._reposition_handles(candidate)
            logger.warning(f"Reroute of {command.segment_id} rejected; keeping previous path")
            raise

        self.graph.push_history(candidate.segment_id, UndoEntry(
            path=tuple(candidate.path),
            distance_km=candidate.label_km if candidate.label_km is not None else candidate.distance_km,
            label_position=candidate.label_position,
        ))

        path = route.path
        self._apply_path(
            candidate,
            path,
            path_length_km(path),
            point_at_fraction(path, self.config.network.candidate_label_fraction),
            label_km=route.distance_km,
        )
        candidate.state = SegmentState.COMMITTED
        self._reposition_handles(candidate)
        key = self._write_graph(candidate)
        candidate.state = SegmentState.SELECTED
        logger.info(f"Rerouted {candidate.segment_id}: {candidate.distance_km:.2f} km")
        return key

    # ============================================================
    # Undo / delete
    # ============================================================

    def undo(self, command: UndoRequest) -> bool:
        """
        Restore the most recent pre-edit snapshot (one level per call)

        Returns:
            False when there is nothing to undo
        """
        candidate = self.get(command.segment_id)
        if candidate.state == SegmentState.EDITING:
            raise EditStateError(f"Cannot undo {command.segment_id} mid-drag")

        entry = self.graph.pop_history(command.segment_id)
        if entry is None:
            return False

        path = list(entry.path)
        label_position = entry.label_position or point_at_fraction(path, 0.5)
        self._apply_path(candidate, path, path_length_km(path), label_position, label_km=entry.distance_km)
        if self.selection.selected_segment_id == candidate.segment_id:
            self._reposition_handles(candidate)
        self._write_graph(candidate)
        logger.info(f"Undid last edit on {command.segment_id} ({len(self.graph.history_for(command.segment_id))} left)")
        return True

    def delete(self, command: DeleteRequest) -> Optional[SegmentKey]:
        """Delete a segment: resources, undo log and graph entry"""
        candidate = self.get(command.segment_id)
        if candidate.state == SegmentState.EDITING:
            raise EditStateError(f"Cannot delete {command.segment_id} mid-drag")

        self._discard(command.segment_id)
        group = self.groups.get(candidate.route_key)
        if group is not None and not group.segment_ids:
            del self.groups[candidate.route_key]
        candidate.state = SegmentState.DELETED
        return self.graph.delete_segment(candidate.origin_name, candidate.destination_name, candidate.graph_key)

    def release_all(self):
        """Release every resource the engine holds and forget all state"""
        for segment_id in list(self.candidates):
            self._release(self.candidates[segment_id])
        self.candidates = {}
        self.groups = {}
        self.selection.clear()
