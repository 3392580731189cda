"""
Interactive route editing

- commands: explicit inputs for each edit operation
- drawing: the map-resource boundary and its in-process registry
- engine: candidate / select / drag / undo / delete state machine
"""

from .commands import (
    CandidateRequest,
    SelectCandidate,
    DragPreview,
    DragRelease,
    UndoRequest,
    DeleteRequest,
    route_key_for,
    segment_id_for,
)
from .drawing import DrawingSurface, Resource, ResourceRegistry
from .engine import CandidateSegment, RouteEditEngine, RouteGroup, RouteSelection, SegmentState

__all__ = [
    "CandidateRequest",
    "SelectCandidate",
    "DragPreview",
    "DragRelease",
    "UndoRequest",
    "DeleteRequest",
    "route_key_for",
    "segment_id_for",
    "DrawingSurface",
    "Resource",
    "ResourceRegistry",
    "CandidateSegment",
    "RouteEditEngine",
    "RouteGroup",
    "RouteSelection",
    "SegmentState",
]
