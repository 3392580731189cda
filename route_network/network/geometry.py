"""
Geometry utility functions

Distance and path helpers shared by connection normalization, the graph
and the route editor. All coordinates are (lng, lat).
"""

import math
from typing import List, Optional, Sequence, Tuple

from shapely.geometry import MultiPoint, Point as ShapelyPoint

from ..parsing.coordinates import Coordinate, valid_coordinates

EARTH_RADIUS_M = 6371000  # Earth radius in meters


def haversine_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float
) -> float:
    """Calculate distance between two points in meters"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = math.sin(delta_phi/2)**2 + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda/2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1-a))

    return EARTH_RADIUS_M * c


def path_length_km(path: Sequence[Tuple[float, float]]) -> float:
    """Chained great-circle length of a (lng, lat) path in kilometers"""
    if len(path) < 2:
        return 0.0

    length = 0.0
    for i in range(len(path) - 1):
        length += haversine_distance(
            path[i][1], path[i][0],
            path[i+1][1], path[i+1][0]
        )

    return length / 1000.0


def index_at_fraction(path_len: int, fraction: float) -> int:
    """Vertex index at a path fraction: floor(len * f), clamped to the last vertex"""
    if path_len <= 0:
        return 0
    return min(int(math.floor(path_len * fraction)), path_len - 1)


def point_at_fraction(path: Sequence[Coordinate], fraction: float) -> Optional[Coordinate]:
    """Vertex sitting at a path fraction (None for an empty path)"""
    if not path:
        return None
    return path[index_at_fraction(len(path), fraction)]


def planar_distance(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """Euclidean distance in coordinate-degree space (not geodesic)"""
    return ShapelyPoint(a[0], a[1]).distance(ShapelyPoint(b[0], b[1]))


def nearest_index(target: Tuple[float, float], candidates: List[Tuple[float, float]]) -> Optional[int]:
    """
    Index of the candidate nearest to target by planar distance

    Ties resolve to the earliest candidate.
    """
    best_index = None
    best_dist = math.inf
    origin = ShapelyPoint(target[0], target[1])
    for i, coord in enumerate(candidates):
        dist = origin.distance(ShapelyPoint(coord[0], coord[1]))
        if dist < best_dist:
            best_index, best_dist = i, dist
    return best_index


def coordinate_bounds(coords: List[Coordinate]) -> Optional[Tuple[float, float, float, float]]:
    """(min_lng, min_lat, max_lng, max_lat) of the non-sentinel coordinates"""
    usable = valid_coordinates(coords)
    if not usable:
        return None
    return MultiPoint([(c.lng, c.lat) for c in usable]).bounds
