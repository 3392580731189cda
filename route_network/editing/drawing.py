"""
Drawing resources

The map layer owns polylines, markers, labels and drag handles. The
planner only needs to create, move and release them, so it talks to a
DrawingSurface. ResourceRegistry is the in-process surface: it keeps
every live resource so a reset can be checked for leaks.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from itertools import count
from typing import Dict, List, Optional

from loguru import logger

from ..parsing.coordinates import Coordinate

POLYLINE = "polyline"
MARKER = "marker"
LABEL = "label"
HANDLE = "handle"
PREVIEW = "preview"


@dataclass
class Resource:
    """Handle to one externally held drawing resource"""
    id: int
    kind: str
    path: List[Coordinate] = field(default_factory=list)
    position: Optional[Coordinate] = None
    text: str = ""
    color: str = ""
    index: int = 0
    released: bool = False


class DrawingSurface(ABC):
    """Boundary to the map renderer"""

    @abstractmethod
    def draw_polyline(self, path: List[Coordinate], color: str) -> Resource:
        ...

    @abstractmethod
    def draw_preview(self, path: List[Coordinate]) -> Resource:
        ...

    @abstractmethod
    def draw_marker(self, position: Coordinate, title: str) -> Resource:
        ...

    @abstractmethod
    def draw_label(self, position: Coordinate, text: str) -> Resource:
        ...

    @abstractmethod
    def draw_handle(self, position: Coordinate, index: int) -> Resource:
        ...

    @abstractmethod
    def update(
        self,
        resource: Resource,
        path: Optional[List[Coordinate]] = None,
        position: Optional[Coordinate] = None,
        text: Optional[str] = None
    ):
        ...

    @abstractmethod
    def release(self, resource: Optional[Resource]):
        ...


class ResourceRegistry(DrawingSurface):
    """In-process surface that tracks live resources"""

    def __init__(self):
        self._ids = count(1)
        self._live: Dict[int, Resource] = {}

    def _add(self, resource: Resource) -> Resource:
        self._live[resource.id] = resource
        return resource

    def draw_polyline(self, path: List[Coordinate], color: str) -> Resource:
        return self._add(Resource(id=next(self._ids), kind=POLYLINE, path=list(path), color=color))

    def draw_preview(self, path: List[Coordinate]) -> Resource:
        return self._add(Resource(id=next(self._ids), kind=PREVIEW, path=list(path), color="#888"))

    def draw_marker(self, position: Coordinate, title: str) -> Resource:
        return self._add(Resource(id=next(self._ids), kind=MARKER, position=position, text=title))

    def draw_label(self, position: Coordinate, text: str) -> Resource:
        return self._add(Resource(id=next(self._ids), kind=LABEL, position=position, text=text))

    def draw_handle(self, position: Coordinate, index: int) -> Resource:
        return self._add(Resource(id=next(self._ids), kind=HANDLE, position=position, index=index))

    def update(self, resource, path=None, position=None, text=None):
        if resource is None or resource.released:
            return
        if path is not None:
            resource.path = list(path)
        if position is not None:
            resource.position = position
        if text is not None:
            resource.text = text

    def release(self, resource):
        if resource is None or resource.released:
            return
        resource.released = True
        self._live.pop(resource.id, None)

    def live(self, kind: Optional[str] = None) -> List[Resource]:
        return [r for r in self._live.values() if kind is None or r.kind == kind]

    def live_count(self, kind: Optional[str] = None) -> int:
        return len(self.live(kind))

    def release_all(self):
        """Drop every live resource"""
        if self._live:
            logger.debug(f"Releasing {len(self._live)} drawing resource(s)")
        for resource in list(self._live.values()):
            self.release(resource)
