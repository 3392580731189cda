"""Tests for the route planning session."""

import pytest

from route_network.editing.commands import (
    CandidateRequest,
    DeleteRequest,
    DragPreview,
    DragRelease,
    SelectCandidate,
)
from route_network.editing.drawing import HANDLE, MARKER, POLYLINE, ResourceRegistry
from route_network.network.models import SegmentKey
from route_network.parsing.coordinates import Coordinate
from route_network.services.persistence import UserIdentity
from route_network.session import RoutePlanningSession

from conftest import FakeResponse, make_client

A = Coordinate(77.0, 12.0)
B = Coordinate(77.1, 12.1)


def _network():
    return {
        "points": [
            {"name": "A", "coordinates": [77.0, 12.0], "lgd_code": "1001"},
            {"name": "B", "coordinates": [77.1, 12.1], "lgd_code": "1002"},
            {"name": "C", "coordinates": [77.2, 12.0], "lgd_code": "1003"},
        ],
        "connections": [
            {"start": "A", "end": "C", "coordinates": [[77.0, 12.0], [77.2, 12.0]], "existing": True},
        ],
    }


def _show_route(call):
    return FakeResponse([
        {"route": [[12.0, 77.0], [12.05, 77.05], [12.1, 77.1]], "distance": 15.6},
        {"route": [[12.0, 77.0], [12.0, 77.1], [12.1, 77.1]], "distance": 21.9},
    ])


def _compute_route(call):
    new_pos = call["json"]["newPos"]
    return FakeResponse({
        "route": [[12.0, 77.0], [new_pos["lat"], new_pos["lng"]], [12.1, 77.1]],
        "distance": 17.0,
    })


@pytest.fixture
def session():
    client, _ = make_client({
        "show-route": _show_route,
        "compute-route": _compute_route,
        "save-kml": FakeResponse({"ok": True}),
    })
    session = RoutePlanningSession(client=client, surface=ResourceRegistry())
    session.load_payload(_network())
    return session


def test_load_renders_markers_and_segments(session):
    assert session.surface.live_count(MARKER) == 3
    assert session.surface.live_count(POLYLINE) == 1
    assert session.graph.existing_length > 0
    assert session.last_report.summary()["connections"] == 1


def test_reload_replaces_previous_network(session):
    session.load_payload({"points": [{"name": "Solo", "coordinates": [77.5, 12.5]}]})
    assert [p.name for p in session.graph.points] == ["Solo"]
    assert len(session.graph.segments) == 0
    assert session.surface.live_count() == 1


def test_full_edit_flow(session):
    candidates = session.request_candidates(CandidateRequest("A", A, "B", B))
    assert len(candidates) == 2

    key = session.select_candidate(SelectCandidate("A-B", 0))
    assert key == SegmentKey("B", "A")
    assert session.surface.live_count(HANDLE) == 5

    drag_to = Coordinate(77.08, 12.02)
    session.preview_drag(DragPreview("A-B-route1", 2, drag_to))
    assert session.release_drag(DragRelease("A-B-route1", 2, drag_to)) == key
    assert session.graph.get_segment(key).path[1] == drag_to

    assert session.save().ok
    graph = session.graph
    assert graph.total_length == pytest.approx(graph.existing_length + graph.proposed_length)


def test_routing_failure_becomes_notification(session):
    session.client.session.routes["show-route"] = FakeResponse({"error": "OSRM down"}, status_code=502)
    before = dict(session.graph.segments)

    assert session.request_candidates(CandidateRequest("A", A, "B", B)) == []

    assert session.notifier.current.message == "Error fetching routes: OSRM down"
    assert dict(session.graph.segments) == before


def test_failed_reroute_becomes_notification(session):
    session.request_candidates(CandidateRequest("A", A, "B", B))
    key = session.select_candidate(SelectCandidate("A-B", 0))
    path_before = list(session.graph.get_segment(key).path)
    session.client.session.routes["compute-route"] = FakeResponse([])

    assert session.release_drag(DragRelease("A-B-route1", 2, Coordinate(77.08, 12.02))) is None

    assert session.notifier.current.message == "No route found"
    assert session.graph.get_segment(key).path == path_before


def test_illegal_edit_becomes_notification(session):
    assert session.delete(DeleteRequest("missing-route1")) is None
    assert not session.notifier.current.ok


def test_delete_loaded_segment(session):
    session.request_candidates(CandidateRequest("A", A, "C", Coordinate(77.2, 12.0)))
    session.select_candidate(SelectCandidate("A-C", 0))
    # the loaded A->C polyline gives way to the selected route
    assert SegmentKey("A", "C") not in session.segment_lines

    removed = session.delete(DeleteRequest("A-C-route1"))
    assert removed in (SegmentKey("C", "A"), SegmentKey("A", "C"))
    assert session.graph.find_point("C").route == []


def test_clear_map_data_releases_everything(session):
    session.request_candidates(CandidateRequest("A", A, "B", B))
    session.select_candidate(SelectCandidate("A-B", 0))
    session.preview_drag(DragPreview("A-B-route1", 1, Coordinate(77.02, 12.01)))

    session.clear_map_data()

    assert session.surface.live_count() == 0
    assert session.graph.loop == []
    assert len(session.graph.segments) == 0
    assert session.engine.candidates == {}
    assert session.engine.selection.selected_segment_id is None
    assert session.graph.admin.blk_code == ""


def test_load_kmz(session):
    session.load_kmz({
        "points": [
            {"name": "P1", "coordinates": [78.1, 17.4, 0], "properties": {}},
            {"name": "P2", "coordinates": [78.2, 17.5, 0], "properties": {}},
        ],
        "lines": [
            {"coordinates": [[78.1, 17.4], [78.2, 17.5]],
             "properties": {"start_node": "P1", "end_node": "P2", "status": "Accepted"}},
        ],
    })
    assert [p.name for p in session.graph.points] == ["P1", "P2"]
    assert session.graph.get_segment(("P1", "P2")).existing is True


def test_load_preview_loop_payload():
    client, session_http = make_client({"get-networks/9": FakeResponse({
        "mainPointName": "Hub",
        "loop": [{"name": "Hub", "coordinates": [78.1, 17.4]}],
    })})
    session = RoutePlanningSession(client=client)
    report = session.load_preview(9)
    assert report is not None
    assert session.graph.main_point_name == "Hub"
    assert session_http.paths() == ["get-networks/9"]


def test_load_preview_failure_is_notified():
    client, _ = make_client()
    session = RoutePlanningSession(client=client)
    assert session.load_preview(404) is None
    assert not session.notifier.current.ok


def test_bulk_upload(tmp_path):
    points = tmp_path / "points.csv"
    connections = tmp_path / "connections.csv"
    points.write_text("name,lat,lng\n")
    connections.write_text("start,end\n")
    client, _ = make_client({"upload": FakeResponse(_network())})
    session = RoutePlanningSession(client=client, user=UserIdentity(7, "planner"))

    report = session.load_bulk_upload(points, connections)

    assert report.summary()["points"] == 3
    assert session.notifier.current.ok
    assert session.gateway.build_payload(session.graph).user_id == 7
