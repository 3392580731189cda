"""
Network construction

- PointIndex: multi-strategy endpoint resolution
- ConnectionNormalizer: raw connection records -> Connections
- NetworkGraph: loop entries, segments, totals, undo logs
- NetworkLoader: whole-payload ingestion
"""

from .models import (
    Point,
    Connection,
    MatchStrategy,
    PointResolution,
    SegmentKey,
    SegmentDetail,
    LoopEntry,
    LoopConnection,
    UndoEntry,
    SegmentHistory,
    AdminInfo,
)
from .point_index import PointIndex
from .connections import ConnectionNormalizer
from .graph import NetworkGraph
from .ingest import NetworkLoader, LoadReport

__all__ = [
    "Point",
    "Connection",
    "MatchStrategy",
    "PointResolution",
    "SegmentKey",
    "SegmentDetail",
    "LoopEntry",
    "LoopConnection",
    "UndoEntry",
    "SegmentHistory",
    "AdminInfo",
    "PointIndex",
    "ConnectionNormalizer",
    "NetworkGraph",
    "NetworkLoader",
    "LoadReport",
]
