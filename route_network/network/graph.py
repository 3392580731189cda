"""
Network graph

The single source of truth for the current network: loop entries (each
point with its one outbound route), the directed segment map, derived
length totals and per-segment undo logs.

Totals are never set by hand. Every write to the segment map recomputes
them, so total == existing + proposed holds after any mutation.
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from loguru import logger

from .geometry import coordinate_bounds, nearest_index, point_at_fraction
from .models import (
    AdminInfo,
    LoopConnection,
    LoopEntry,
    Point,
    SegmentDetail,
    SegmentHistory,
    SegmentKey,
    UndoEntry,
)
from ..config import get_config
from ..models import (
    GlobalData,
    LatLng,
    LoopConnectionModel,
    LoopEntryModel,
    PolylineEntry,
    PolylineModel,
    RouteFeature,
    RouteGeometry,
    RouteModel,
    SegmentConnection,
    SegmentData,
    SnapshotPayload,
)
from ..parsing.coordinates import Coordinate

KeyLike = Union[SegmentKey, Tuple[str, str], str]


class NetworkGraph:
    """Authoritative in-memory network state"""

    def __init__(self):
        self.config = get_config()
        self.loop: List[LoopEntry] = []
        self._loop_by_name: Dict[str, LoopEntry] = {}
        self._segments: Dict[SegmentKey, SegmentDetail] = {}
        self._histories: Dict[str, SegmentHistory] = {}
        self.admin = AdminInfo()
        self.main_point_name: Optional[str] = None
        self._existing_length = 0.0
        self._proposed_length = 0.0

    # ============================================================
    # Totals
    # ============================================================

    @property
    def existing_length(self) -> float:
        return self._existing_length

    @property
    def proposed_length(self) -> float:
        return self._proposed_length

    @property
    def total_length(self) -> float:
        return self._existing_length + self._proposed_length

    def _recompute_totals(self):
        existing = 0.0
        proposed = 0.0
        for detail in self._segments.values():
            if detail.existing:
                existing += detail.length_km or 0.0
            else:
                proposed += detail.length_km or 0.0
        self._existing_length = existing
        self._proposed_length = proposed

    # ============================================================
    # Points / loop
    # ============================================================

    def add_point(self, point: Point) -> LoopEntry:
        """Append a loop entry for a point (names are unique; repeats return the first)"""
        entry = self._loop_by_name.get(point.name)
        if entry is not None:
            logger.debug(f"Point {point.name!r} already in the network; keeping the first")
            return entry
        entry = LoopEntry(point=point)
        self.loop.append(entry)
        self._loop_by_name[point.name] = entry
        return entry

    def add_points(self, points: Iterable[Point]):
        for point in points:
            self.add_point(point)

    @property
    def points(self) -> List[Point]:
        return [entry.point for entry in self.loop]

    def find_point(self, name: Optional[str]) -> Optional[LoopEntry]:
        if not name:
            return None
        return self._loop_by_name.get(name)

    def nearest_point(self, coord: Tuple[float, float]) -> Optional[LoopEntry]:
        """
        Nearest loop entry by planar (degree-space) distance

        Points sitting on the (0, 0) sentinel are skipped.
        """
        candidates = [entry for entry in self.loop if entry.point.valid]
        index = nearest_index(coord, [entry.point.coordinates for entry in candidates])
        return candidates[index] if index is not None else None

    def attach_route(self, name: str, connection: LoopConnection, route: List[Coordinate]) -> Optional[LoopEntry]:
        """Set a point's outbound connection and route"""
        entry = self.find_point(name)
        if entry is None:
            return None
        entry.connection = connection
        entry.route = list(route)
        return entry

    def bounds(self) -> Optional[Tuple[float, float, float, float]]:
        """(min_lng, min_lat, max_lng, max_lat) over valid point coordinates"""
        return coordinate_bounds([entry.point.coordinates for entry in self.loop])

    # ============================================================
    # Segments
    # ============================================================

    @property
    def segments(self) -> Mapping[SegmentKey, SegmentDetail]:
        """Read-only view; write through set_segment/remove_segment"""
        return MappingProxyType(self._segments)

    def get_segment(self, key: KeyLike) -> Optional[SegmentDetail]:
        return self._segments.get(SegmentKey.coerce(key))

    def set_segment(self, key: KeyLike, detail: SegmentDetail) -> SegmentKey:
        key = SegmentKey.coerce(key)
        self._segments[key] = detail
        self._recompute_totals()
        return key

    def remove_segment(self, key: KeyLike) -> Optional[SegmentDetail]:
        detail = self._segments.pop(SegmentKey.coerce(key), None)
        self._recompute_totals()
        return detail

    def replace_segments(self, segments: Mapping[KeyLike, SegmentDetail]):
        self._segments = {SegmentKey.coerce(k): v for k, v in segments.items()}
        self._recompute_totals()

    # ============================================================
    # Route edits
    # ============================================================

    def select_alternate_route(
        self,
        path: List[Coordinate],
        origin_name: str,
        destination_name: str,
        length_km: float
    ) -> Optional[SegmentKey]:
        """
        Record a chosen route between two points

        The destination is resolved by name, falling back to the point
        nearest the path's terminal vertex. The segment is keyed
        destination-first: SegmentKey(destination, origin).

        Returns:
            The key written, or None if no destination could be found
        """
        if not path:
            logger.error(f"Cannot select an empty route {origin_name!r} -> {destination_name!r}")
            return None

        destination = self.find_point(destination_name)
        if destination is None:
            destination = self.nearest_point(path[-1])
            if destination is None:
                logger.error(f"End point {destination_name!r} not found")
                return None
            logger.info(f"End point {destination_name!r} not found by name; using nearest {destination.name!r}")

        origin = self.find_point(origin_name)
        connection = LoopConnection(
            length=length_km,
            existing=False,
            color=self.config.network.selected_route_color,
        )

        # Destination always resolves to a loop entry, so its route is replaced in place
        destination.connection = connection
        destination.route = list(path)

        key = SegmentKey(destination.name, origin_name)
        self.set_segment(key, SegmentDetail(
            path=list(path),
            length_km=length_km,
            existing=False,
            color=connection.color,
            start_code=origin.point.lgd_code if origin is not None else "",
            end_code=destination.point.lgd_code,
            label_position=point_at_fraction(path, 0.5),
        ))
        logger.debug(f"Selected route {key}: {length_km:.3f} km")
        return key

    def delete_segment(
        self,
        origin_name: str,
        destination_name: str,
        written_key: Optional[KeyLike] = None
    ) -> Optional[SegmentKey]:
        """
        Delete the route between two points

        Removes the segment (written_key when given, then the
        destination-first key, then the origin-first key written at
        ingestion) and clears the destination point's route and
        connection. The point itself stays.

        Args:
            written_key: Key returned by select_alternate_route; its origin
                is the resolved destination, which may be a nearest-point
                fallback rather than destination_name

        Returns:
            The key removed, or None if no key was present
        """
        keys = [SegmentKey(destination_name, origin_name), SegmentKey(origin_name, destination_name)]
        if written_key is not None:
            written_key = SegmentKey.coerce(written_key)
            keys.insert(0, written_key)
            destination_name = written_key.origin

        removed = None
        for key in keys:
            if key in self._segments:
                self.remove_segment(key)
                removed = key
                break

        entry = self.find_point(destination_name)
        if entry is not None:
            entry.clear_route()

        if removed is None:
            logger.warning(f"No segment between {origin_name!r} and {destination_name!r}")
        else:
            logger.info(f"Deleted segment {removed}")
        return removed

    # ============================================================
    # Undo logs
    # ============================================================

    def history_for(self, segment_id: str) -> SegmentHistory:
        return self._histories.get(segment_id, SegmentHistory())

    def push_history(self, segment_id: str, entry: UndoEntry):
        self._histories[segment_id] = self.history_for(segment_id).push(entry)

    def pop_history(self, segment_id: str) -> Optional[UndoEntry]:
        entry, remaining = self.history_for(segment_id).pop()
        if entry is not None:
            self._histories[segment_id] = remaining
        return entry

    def drop_history(self, segment_id: str):
        self._histories.pop(segment_id, None)

    # ============================================================
    # Reset / snapshot
    # ============================================================

    def clear(self):
        """Tear down all state (whole-graph reset)"""
        self.loop = []
        self._loop_by_name = {}
        self._segments = {}
        self._histories = {}
        self.admin = AdminInfo()
        self.main_point_name = None
        self._recompute_totals()

    def to_global_data(self) -> GlobalData:
        loop = []
        for entry in self.loop:
            point = entry.point
            loop.append(LoopEntryModel(
                name=point.name,
                coordinates=[point.coordinates.lng, point.coordinates.lat],
                lgd_code=point.lgd_code or "",
                connection=LoopConnectionModel(
                    length=entry.connection.length,
                    existing=entry.connection.existing,
                    color=entry.connection.color,
                ) if entry.connection is not None else None,
                route=RouteModel(features=[RouteFeature(geometry=RouteGeometry(
                    coordinates=[[c.lng, c.lat] for c in entry.route]
                ))]) if entry.route else None,
            ))

        return GlobalData(
            loop=loop,
            mainPointName=self.main_point_name,
            totalLength=self.total_length,
            proposedlength=self.proposed_length,
            existinglength=self.existing_length,
            st_code=self.admin.st_code,
            st_name=self.admin.st_name,
            dt_code=self.admin.dt_code,
            dt_name=self.admin.dt_name,
            blk_code=self.admin.blk_code,
            blk_name=self.admin.blk_name,
        )

    def to_polyline_history(self) -> Dict[str, PolylineEntry]:
        history = {}
        for key, detail in self._segments.items():
            history[str(key)] = PolylineEntry(
                polyline=PolylineModel(coordinates=[LatLng(lat=c.lat, lng=c.lng) for c in detail.path]),
                segmentData=SegmentData(
                    connection=SegmentConnection(
                        length=detail.length_km,
                        existing=detail.existing,
                        color=detail.color or None,
                    ),
                    startCords=detail.start_code,
                    endCords=detail.end_code,
                ),
            )
        return history

    def to_snapshot(self, user_id: int, user_name: str) -> SnapshotPayload:
        """Persistence snapshot: loop + segments + acting user"""
        return SnapshotPayload(
            globalData=self.to_global_data(),
            polylineHistory=self.to_polyline_history(),
            user_id=user_id,
            user_name=user_name,
        )
