"""Tests for the route edit engine state machine."""

import pytest

from route_network.editing.commands import (
    CandidateRequest,
    DeleteRequest,
    DragPreview,
    DragRelease,
    SelectCandidate,
    UndoRequest,
)
from route_network.editing.drawing import HANDLE, LABEL, POLYLINE, PREVIEW, ResourceRegistry
from route_network.editing.engine import RouteEditEngine, SegmentState
from route_network.exceptions import EditStateError, NoRouteError, ServiceError
from route_network.network.geometry import path_length_km
from route_network.network.models import SegmentKey
from route_network.parsing.coordinates import Coordinate
from route_network.services.routing import RouteCandidate

from conftest import make_point

A = Coordinate(77.0, 12.0)
B = Coordinate(77.1, 12.1)
SEGMENT_ID = "A-B-route1"


def _straight(start, end, steps=8):
    return [
        Coordinate(start.lng + (end.lng - start.lng) * i / steps, start.lat + (end.lat - start.lat) * i / steps)
        for i in range(steps + 1)
    ]


class FakeRouting:
    """Stands in for RoutingService; compute_route detours through the dragged point."""

    def __init__(self, candidates=3, fail_with=None):
        self.candidates = candidates
        self.fail_with = fail_with
        self.compute_calls = []

    def show_route(self, origin, destination):
        if self.fail_with is not None:
            raise self.fail_with
        return [
            RouteCandidate(path=_straight(origin, destination, 8 + rank), distance_km=15.0 + rank, rank=rank)
            for rank in range(self.candidates)
        ]

    def compute_route(self, new_pos, origin, destination):
        self.compute_calls.append((new_pos, origin, destination))
        if self.fail_with is not None:
            raise self.fail_with
        path = _straight(origin, new_pos, 4)[:-1] + _straight(new_pos, destination, 4)
        return RouteCandidate(path=path, distance_km=21.5)


@pytest.fixture
def surface():
    return ResourceRegistry()


@pytest.fixture
def routing():
    return FakeRouting()


@pytest.fixture
def engine(two_point_graph, routing, surface):
    return RouteEditEngine(two_point_graph, routing, surface)


def _request():
    return CandidateRequest("A", A, "B", B)


def _select(engine):
    engine.request_candidates(_request())
    return engine.select_candidate(SelectCandidate("A-B", 0))


# --- Candidates ---


def test_request_candidates_registers_variants(engine, surface):
    candidates = engine.request_candidates(_request())

    assert [c.segment_id for c in candidates] == ["A-B-route1", "A-B-route2", "A-B-route3"]
    assert [c.color for c in candidates] == ["blue", "green", "gray"]
    assert all(c.state == SegmentState.UNSELECTED for c in candidates)
    assert surface.live_count(POLYLINE) == 3
    assert surface.live_count(LABEL) == 3
    # label at the 25% mark
    assert candidates[0].label_position == candidates[0].path[2]
    assert candidates[0].label.text == "15.00 km"


def test_request_replaces_previous_group(engine, surface):
    engine.request_candidates(_request())
    engine.request_candidates(_request())
    assert surface.live_count(POLYLINE) == 3
    assert len(engine.candidates) == 3


def test_no_route_leaves_state_unchanged(two_point_graph, surface):
    engine = RouteEditEngine(two_point_graph, FakeRouting(candidates=0), surface)
    with pytest.raises(NoRouteError):
        engine.request_candidates(_request())
    assert engine.candidates == {}
    assert surface.live_count() == 0


def test_failed_request_keeps_existing_group(two_point_graph, surface, routing):
    engine = RouteEditEngine(two_point_graph, routing, surface)
    engine.request_candidates(_request())
    routing.fail_with = ServiceError("down")
    with pytest.raises(ServiceError):
        engine.request_candidates(_request())
    assert len(engine.candidates) == 3


# --- Selection ---


def test_select_discards_other_variants(engine, surface, two_point_graph):
    key = _select(engine)

    assert key == SegmentKey("B", "A")
    assert list(engine.candidates) == [SEGMENT_ID]
    assert engine.state_of(SEGMENT_ID) == SegmentState.SELECTED
    assert engine.state_of("A-B-route2") == SegmentState.DELETED
    assert surface.live_count(POLYLINE) == 1
    assert surface.live_count(LABEL) == 1
    assert surface.live_count(HANDLE) == 5

    detail = two_point_graph.get_segment(key)
    assert detail.color == "#00FFFF"
    assert detail.length_km == 15.0


def test_handles_sit_at_path_fractions(engine):
    _select(engine)
    candidate = engine.get(SEGMENT_ID)
    path = candidate.path  # 9 vertices
    assert [h.position for h in candidate.handles] == [path[0], path[2], path[4], path[6], path[8]]


def test_only_one_segment_holds_handles(engine, surface, two_point_graph):
    two_point_graph.add_point(make_point("C", 77.2, 12.2))
    _select(engine)
    engine.request_candidates(CandidateRequest("B", B, "C", Coordinate(77.2, 12.2)))
    engine.select_candidate(SelectCandidate("B-C", 1))

    assert engine.selection.selected_segment_id == "B-C-route2"
    assert engine.state_of(SEGMENT_ID) == SegmentState.UNSELECTED
    assert engine.get(SEGMENT_ID).handles == []
    assert surface.live_count(HANDLE) == 5


# --- Drag ---


def test_preview_returns_triangle_without_graph_change(engine, two_point_graph):
    key = _select(engine)
    before = two_point_graph.get_segment(key).path
    path = engine.get(SEGMENT_ID).path
    drag_to = Coordinate(77.08, 12.02)

    triangle = engine.preview_drag(DragPreview(SEGMENT_ID, 2, drag_to))

    assert triangle == (path[0], drag_to, path[-1])
    assert engine.state_of(SEGMENT_ID) == SegmentState.EDITING
    assert two_point_graph.get_segment(key).path == before


def test_end_handle_anchors():
    path = _straight(A, B)
    assert RouteEditEngine.anchors(path, 0, 5) == (path[1], path[-1])
    assert RouteEditEngine.anchors(path, 4, 5) == (path[0], path[-2])
    assert RouteEditEngine.anchors(path, 3, 5) == (path[0], path[-1])


def test_release_commits_new_path(engine, routing, surface, two_point_graph):
    key = _select(engine)
    original = list(engine.get(SEGMENT_ID).path)
    drag_to = Coordinate(77.08, 12.02)

    engine.preview_drag(DragPreview(SEGMENT_ID, 2, drag_to))
    result = engine.release_drag(DragRelease(SEGMENT_ID, 2, drag_to))

    candidate = engine.get(SEGMENT_ID)
    assert result == key
    assert routing.compute_calls == [(drag_to, original[0], original[-1])]
    assert drag_to in candidate.path
    assert candidate.state == SegmentState.SELECTED
    assert candidate.distance_km == pytest.approx(path_length_km(candidate.path))
    assert surface.live_count(PREVIEW) == 0
    assert two_point_graph.get_segment(key).path == candidate.path
    assert len(two_point_graph.history_for(SEGMENT_ID)) == 1
    assert [h.position for h in candidate.handles][0] == candidate.path[0]


def test_failed_reroute_keeps_path(engine, routing, two_point_graph):
    key = _select(engine)
    original = list(engine.get(SEGMENT_ID).path)
    routing.fail_with = NoRouteError("No route found")

    engine.preview_drag(DragPreview(SEGMENT_ID, 1, Coordinate(77.03, 12.0)))
    with pytest.raises(NoRouteError):
        engine.release_drag(DragRelease(SEGMENT_ID, 1, Coordinate(77.03, 12.0)))

    assert engine.get(SEGMENT_ID).path == original
    assert engine.state_of(SEGMENT_ID) == SegmentState.SELECTED
    assert two_point_graph.get_segment(key).path == original
    assert len(two_point_graph.history_for(SEGMENT_ID)) == 0


def test_release_labels_service_distance(engine, two_point_graph):
    """The label shows the service distance; the graph keeps the path length."""
    key = _select(engine)
    engine.release_drag(DragRelease(SEGMENT_ID, 2, Coordinate(77.08, 12.02)))

    candidate = engine.get(SEGMENT_ID)
    assert candidate.label.text == "21.50 km"
    assert two_point_graph.get_segment(key).length_km == pytest.approx(path_length_km(candidate.path))

    assert engine.undo(UndoRequest(SEGMENT_ID)) is True
    assert candidate.label.text == "15.00 km"
    assert two_point_graph.get_segment(key).length_km == pytest.approx(path_length_km(candidate.path))


def test_drag_requires_selection(engine):
    engine.request_candidates(_request())
    with pytest.raises(EditStateError):
        engine.preview_drag(DragPreview(SEGMENT_ID, 0, A))


# --- Undo ---


def test_n_edits_then_n_undos_restore_original(engine, two_point_graph):
    key = _select(engine)
    original = list(engine.get(SEGMENT_ID).path)
    positions = [Coordinate(77.02, 12.04), Coordinate(77.06, 12.03), Coordinate(77.04, 12.08)]

    for position in positions:
        engine.release_drag(DragRelease(SEGMENT_ID, 2, position))
    assert len(two_point_graph.history_for(SEGMENT_ID)) == 3

    for _ in positions:
        assert engine.undo(UndoRequest(SEGMENT_ID)) is True

    candidate = engine.get(SEGMENT_ID)
    assert candidate.path == original
    assert two_point_graph.get_segment(key).path == original
    assert [h.position for h in candidate.handles] == [original[0], original[2], original[4], original[6], original[8]]
    assert engine.undo(UndoRequest(SEGMENT_ID)) is False


def test_undo_without_edits_is_noop(engine):
    _select(engine)
    assert engine.undo(UndoRequest(SEGMENT_ID)) is False


# --- Delete ---


def test_delete_releases_everything(engine, surface, two_point_graph):
    _select(engine)
    engine.release_drag(DragRelease(SEGMENT_ID, 2, Coordinate(77.02, 12.04)))

    removed = engine.delete(DeleteRequest(SEGMENT_ID))

    assert removed == SegmentKey("B", "A")
    assert len(two_point_graph.segments) == 0
    assert two_point_graph.find_point("B").route == []
    assert len(two_point_graph.history_for(SEGMENT_ID)) == 0
    assert engine.state_of(SEGMENT_ID) == SegmentState.DELETED
    assert engine.selection.selected_segment_id is None
    assert surface.live_count() == 0


def test_delete_unselected_candidate(engine, surface):
    engine.request_candidates(_request())
    engine.delete(DeleteRequest("A-B-route2"))
    assert set(engine.candidates) == {"A-B-route1", "A-B-route3"}
    assert surface.live_count(POLYLINE) == 2


def test_delete_while_editing_is_rejected(engine):
    _select(engine)
    engine.preview_drag(DragPreview(SEGMENT_ID, 1, Coordinate(77.03, 12.0)))
    with pytest.raises(EditStateError):
        engine.delete(DeleteRequest(SEGMENT_ID))
    assert SEGMENT_ID in engine.candidates


def test_delete_twice_is_rejected(engine):
    _select(engine)
    engine.delete(DeleteRequest(SEGMENT_ID))
    with pytest.raises(EditStateError):
        engine.delete(DeleteRequest(SEGMENT_ID))


def test_release_all(engine, surface):
    _select(engine)
    engine.release_all()
    assert surface.live_count() == 0
    assert engine.candidates == {}
    assert engine.selection.selected_segment_id is None


def test_delete_after_nearest_point_select(engine, surface, two_point_graph):
    """A destination matched by nearest point is still deleted by the key that was written."""
    request = CandidateRequest("A", A, "B (GP)", B)
    engine.request_candidates(request)
    key = engine.select_candidate(SelectCandidate(request.route_key, 0))
    assert key == SegmentKey("B", "A")
    assert two_point_graph.proposed_length == pytest.approx(15.0)

    segment_id = engine.selection.selected_segment_id
    removed = engine.delete(DeleteRequest(segment_id))

    assert removed == key
    assert len(two_point_graph.segments) == 0
    assert two_point_graph.proposed_length == 0.0
    assert two_point_graph.find_point("B").route == []
    assert surface.live_count() == 0
