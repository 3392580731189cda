"""
Network data models

Data classes for points, connections, segments and their edit history
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union

from ..exceptions import InvalidSegmentKeyError
from ..parsing.coordinates import Coordinate, is_sentinel

SEGMENT_SEPARATOR = " TO "


@dataclass
class Point:
    """A network point (GP, block HQ, junction, ...)"""
    name: str
    coordinates: Coordinate
    lgd_code: str = ""
    properties: Dict[str, Any] = field(default_factory=dict)
    type: str = ""
    id: Optional[Any] = None
    network_id: Optional[Any] = None

    @property
    def valid(self) -> bool:
        """False when the coordinates fell back to the (0, 0) sentinel"""
        return not is_sentinel(self.coordinates)


class MatchStrategy(Enum):
    """How an endpoint reference was matched to a point"""
    CODE = "code"
    EXACT_NAME = "exact_name"
    UPPER_NAME = "upper_name"
    BASE_NAME = "base_name"
    VARIANT = "variant"
    SUBSTRING = "substring"
    UNRESOLVED = "unresolved"


STRATEGY_CONFIDENCE = {
    MatchStrategy.CODE: 1.0,
    MatchStrategy.EXACT_NAME: 0.95,
    MatchStrategy.UPPER_NAME: 0.9,
    MatchStrategy.BASE_NAME: 0.75,
    MatchStrategy.VARIANT: 0.7,
    MatchStrategy.SUBSTRING: 0.4,
    MatchStrategy.UNRESOLVED: 0.0,
}


@dataclass
class PointResolution:
    """Outcome of resolving an endpoint reference; point is None when unresolved"""
    reference: str
    point: Optional[Point]
    strategy: MatchStrategy
    code: str = ""

    @property
    def confidence(self) -> float:
        return STRATEGY_CONFIDENCE[self.strategy]

    @property
    def resolved(self) -> bool:
        return self.point is not None

    @property
    def name(self) -> str:
        """Resolved point name, or the raw reference when unresolved"""
        return self.point.name if self.point is not None else self.reference


@dataclass
class Connection:
    """A cable connection between two (possibly unresolved) points"""
    start: PointResolution
    end: PointResolution
    path: List[Coordinate] = field(default_factory=list)
    length_km: float = 0.0
    existing: bool = False
    color: str = ""
    name: str = ""
    properties: Dict[str, Any] = field(default_factory=dict)
    derived: Dict[str, Any] = field(default_factory=dict)

    @property
    def unresolved(self) -> bool:
        return not (self.start.resolved and self.end.resolved)


class SegmentKey(NamedTuple):
    """Directed (origin, destination) edge key"""
    origin: str
    destination: str

    def __str__(self) -> str:
        return f"{self.origin}{SEGMENT_SEPARATOR}{self.destination}"

    def reversed(self) -> "SegmentKey":
        return SegmentKey(self.destination, self.origin)

    @classmethod
    def parse(cls, text: str) -> "SegmentKey":
        """Split an 'A TO B' string"""
        origin, sep, destination = text.partition(SEGMENT_SEPARATOR)
        if not sep or not origin or not destination:
            raise InvalidSegmentKeyError(f"Invalid segment key: {text!r}")
        return cls(origin, destination)

    @classmethod
    def coerce(cls, key: Union["SegmentKey", Tuple[str, str], str]) -> "SegmentKey":
        if isinstance(key, SegmentKey):
            return key
        if isinstance(key, str):
            return cls.parse(key)
        if isinstance(key, tuple) and len(key) == 2:
            return cls(str(key[0]), str(key[1]))
        raise InvalidSegmentKeyError(f"Invalid segment key: {key!r}")


@dataclass
class SegmentDetail:
    """Per-segment record (the persisted polyline history entry)"""
    path: List[Coordinate]
    length_km: float
    existing: bool
    color: str = ""
    start_code: str = ""
    end_code: str = ""
    label_position: Optional[Coordinate] = None


@dataclass
class LoopConnection:
    length: float
    existing: bool
    color: str


@dataclass
class LoopEntry:
    """A point paired with its single outbound route"""
    point: Point
    connection: Optional[LoopConnection] = None
    route: List[Coordinate] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.point.name

    def clear_route(self):
        self.connection = None
        self.route = []


@dataclass(frozen=True)
class UndoEntry:
    """Snapshot of a segment taken just before a committed edit"""
    path: Tuple[Coordinate, ...]
    distance_km: float  # as labelled; the graph length is recomputed from path
    label_position: Optional[Coordinate] = None


@dataclass(frozen=True)
class SegmentHistory:
    """Immutable LIFO log of undo snapshots"""
    entries: Tuple[UndoEntry, ...] = ()

    def push(self, entry: UndoEntry) -> "SegmentHistory":
        return replace(self, entries=self.entries + (entry,))

    def pop(self) -> Tuple[Optional[UndoEntry], "SegmentHistory"]:
        if not self.entries:
            return None, self
        return self.entries[-1], replace(self, entries=self.entries[:-1])

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class AdminInfo:
    """Administrative metadata of a network"""
    st_code: str = ""
    st_name: str = ""
    dt_code: str = ""
    dt_name: str = ""
    blk_code: str = ""
    blk_name: str = ""
