"""Tests for the network graph."""

import pytest

from route_network.network.graph import NetworkGraph
from route_network.network.models import (
    LoopConnection,
    SegmentDetail,
    SegmentKey,
    UndoEntry,
)
from route_network.exceptions import InvalidSegmentKeyError
from route_network.parsing.coordinates import SENTINEL, Coordinate

from conftest import make_point

PATH = [Coordinate(77.0, 12.0), Coordinate(77.05, 12.05), Coordinate(77.1, 12.1)]


def _detail(length, existing=False):
    return SegmentDetail(path=list(PATH), length_km=length, existing=existing)


def _assert_totals(graph):
    assert graph.total_length == pytest.approx(graph.existing_length + graph.proposed_length)


def test_segment_key_roundtrip():
    key = SegmentKey("A", "B")
    assert str(key) == "A TO B"
    assert SegmentKey.parse("A TO B") == key
    assert SegmentKey.coerce(("A", "B")) == key
    assert key.reversed() == SegmentKey("B", "A")
    with pytest.raises(InvalidSegmentKeyError):
        SegmentKey.parse("A-B")


def test_totals_follow_every_mutation():
    graph = NetworkGraph()
    graph.set_segment(("A", "B"), _detail(2.0, existing=True))
    graph.set_segment(("B", "C"), _detail(3.5))
    assert graph.existing_length == pytest.approx(2.0)
    assert graph.proposed_length == pytest.approx(3.5)
    _assert_totals(graph)

    graph.remove_segment("B TO C")
    assert graph.proposed_length == 0.0
    _assert_totals(graph)

    graph.replace_segments({SegmentKey("X", "Y"): _detail(1.25)})
    assert graph.existing_length == 0.0
    assert graph.total_length == pytest.approx(1.25)


def test_segments_view_is_read_only():
    graph = NetworkGraph()
    with pytest.raises(TypeError):
        graph.segments[SegmentKey("A", "B")] = _detail(1.0)


def test_duplicate_point_names_keep_first(two_point_graph):
    entry = two_point_graph.add_point(make_point("A", 1.0, 1.0))
    assert entry.point.coordinates == Coordinate(77.0, 12.0)
    assert len(two_point_graph.loop) == 2


def test_nearest_point_skips_sentinel():
    graph = NetworkGraph()
    graph.add_points([make_point("Broken", *SENTINEL), make_point("Far", 10.0, 10.0)])
    assert graph.nearest_point((0.1, 0.1)).name == "Far"


def test_select_alternate_route_by_name(two_point_graph):
    key = two_point_graph.select_alternate_route(PATH, "A", "B", 15.6)
    assert key == SegmentKey("B", "A")

    detail = two_point_graph.get_segment(key)
    assert detail.color == "#00FFFF"
    assert detail.existing is False
    assert detail.start_code == "1001"
    assert detail.end_code == "1002"
    assert detail.label_position == PATH[1]

    entry = two_point_graph.find_point("B")
    assert entry.route == PATH
    assert entry.connection.length == 15.6
    assert two_point_graph.proposed_length == pytest.approx(15.6)
    _assert_totals(two_point_graph)


def test_select_alternate_route_nearest_fallback(two_point_graph):
    """An unknown destination name falls back to the point nearest the path end."""
    key = two_point_graph.select_alternate_route(PATH, "A", "Renamed B", 15.6)
    assert key == SegmentKey("B", "A")
    assert two_point_graph.find_point("B").connection is not None


def test_select_alternate_route_empty_path(two_point_graph):
    assert two_point_graph.select_alternate_route([], "A", "B", 1.0) is None
    assert len(two_point_graph.segments) == 0


def test_delete_clears_route_but_keeps_point(two_point_graph):
    two_point_graph.select_alternate_route(PATH, "A", "B", 15.6)

    removed = two_point_graph.delete_segment("A", "B")

    assert removed == SegmentKey("B", "A")
    assert SegmentKey("B", "A") not in two_point_graph.segments
    entry = two_point_graph.find_point("B")
    assert entry.route == []
    assert entry.connection is None
    assert entry.name == "B"
    assert entry.point.coordinates == Coordinate(77.1, 12.1)
    assert two_point_graph.total_length == 0.0


def test_delete_origin_first_key(two_point_graph):
    """Segments keyed at ingestion (origin-first) can be deleted too."""
    two_point_graph.set_segment(("A", "B"), _detail(4.0))
    assert two_point_graph.delete_segment("A", "B") == SegmentKey("A", "B")
    assert len(two_point_graph.segments) == 0


def test_delete_missing_segment(two_point_graph):
    assert two_point_graph.delete_segment("A", "B") is None


def test_history_is_lifo(two_point_graph):
    first = UndoEntry(path=tuple(PATH[:2]), distance_km=1.0)
    second = UndoEntry(path=tuple(PATH), distance_km=2.0)
    two_point_graph.push_history("A-B-route1", first)
    two_point_graph.push_history("A-B-route1", second)

    assert len(two_point_graph.history_for("A-B-route1")) == 2
    assert two_point_graph.pop_history("A-B-route1") == second
    assert two_point_graph.pop_history("A-B-route1") == first
    assert two_point_graph.pop_history("A-B-route1") is None


def test_attach_route_and_bounds(two_point_graph):
    entry = two_point_graph.attach_route("A", LoopConnection(1.0, True, "#00AA00"), PATH)
    assert entry.route == PATH
    assert two_point_graph.attach_route("Missing", LoopConnection(1.0, True, "#00AA00"), PATH) is None
    assert two_point_graph.bounds() == (77.0, 12.0, 77.1, 12.1)


def test_snapshot_shape(two_point_graph):
    two_point_graph.main_point_name = "A"
    two_point_graph.select_alternate_route(PATH, "A", "B", 15.6)

    payload = two_point_graph.to_snapshot(1, " ").model_dump(mode="json")

    assert set(payload) == {"globalData", "polylineHistory", "user_id", "user_name"}
    global_data = payload["globalData"]
    assert global_data["mainPointName"] == "A"
    assert global_data["totalLength"] == pytest.approx(15.6)
    assert global_data["proposedlength"] == pytest.approx(15.6)
    assert global_data["existinglength"] == 0.0
    assert [item["name"] for item in global_data["loop"]] == ["A", "B"]
    assert global_data["loop"][1]["route"]["features"][0]["geometry"]["coordinates"][0] == [77.0, 12.0]

    entry = payload["polylineHistory"]["B TO A"]
    assert entry["polyline"]["coordinates"][0] == {"lat": 12.0, "lng": 77.0}
    assert entry["segmentData"]["startCords"] == "1001"
    assert entry["segmentData"]["connection"]["color"] == "#00FFFF"


def test_clear_resets_everything(two_point_graph):
    two_point_graph.select_alternate_route(PATH, "A", "B", 15.6)
    two_point_graph.push_history("x", UndoEntry(path=tuple(PATH), distance_km=1.0))
    two_point_graph.clear()
    assert two_point_graph.loop == []
    assert len(two_point_graph.segments) == 0
    assert two_point_graph.total_length == 0.0
    assert len(two_point_graph.history_for("x")) == 0
    assert two_point_graph.main_point_name is None
