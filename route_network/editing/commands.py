"""
Edit commands

Every RouteEditEngine operation takes one of these explicitly, so the
engine never reads mode flags from shared UI state.
"""

from dataclasses import dataclass

from ..parsing.coordinates import Coordinate


@dataclass(frozen=True)
class CandidateRequest:
    """Ask the routing service for alternatives between two picked points"""
    origin_name: str
    origin: Coordinate
    destination_name: str
    destination: Coordinate

    @property
    def route_key(self) -> str:
        return route_key_for(self.origin_name, self.destination_name)


@dataclass(frozen=True)
class SelectCandidate:
    route_key: str
    rank: int  # 0-based


@dataclass(frozen=True)
class DragPreview:
    segment_id: str
    handle_index: int
    position: Coordinate


@dataclass(frozen=True)
class DragRelease:
    segment_id: str
    handle_index: int
    position: Coordinate


@dataclass(frozen=True)
class UndoRequest:
    segment_id: str


@dataclass(frozen=True)
class DeleteRequest:
    segment_id: str


def route_key_for(origin_name: str, destination_name: str) -> str:
    return f"{origin_name}-{destination_name}"


def segment_id_for(route_key: str, rank: int) -> str:
    return f"{route_key}-route{rank + 1}"
