"""
Routing service

Black-box path finding behind the trace API:
- show-route: up to three alternative routes between two points
- compute-route: a route through a moved waypoint between two anchors

Route vertices come back as [lat, lng].
"""

from dataclasses import dataclass
from typing import Any, List, Optional

from loguru import logger
from pydantic import ValidationError

from .api_client import TraceAPIClient
from ..config import get_config
from ..exceptions import NoRouteError
from ..models import RouteResult
from ..parsing.coordinates import LAT_LNG, Coordinate, CoordinateNormalizer


@dataclass
class RouteCandidate:
    """A routed path with the service-reported distance (km)"""
    path: List[Coordinate]
    distance_km: float
    rank: int = 0


class RoutingService:
    """Client for the routing endpoints"""

    def __init__(self, client: Optional[TraceAPIClient] = None):
        self.config = get_config()
        self.client = client or TraceAPIClient()
        self.normalizer = CoordinateNormalizer()

    def _parse_results(self, data: Any) -> List[RouteResult]:
        items = data if isinstance(data, list) else [data]
        results = []
        for item in items:
            try:
                results.append(RouteResult.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Ignoring malformed route result: {e.error_count()} error(s)")
        return results

    def _candidate(self, result: RouteResult, rank: int) -> RouteCandidate:
        return RouteCandidate(
            path=self.normalizer.parse_path(result.route, order=LAT_LNG),
            distance_km=float(result.distance),
            rank=rank,
        )

    def show_route(self, origin: Coordinate, destination: Coordinate) -> List[RouteCandidate]:
        """
        Request alternative routes between two points

        Returns:
            Up to max_candidates candidates, best first; empty routes dropped

        Raises:
            ServiceError: If the request fails
        """
        params = {
            "lat1": origin.lat,
            "lng1": origin.lng,
            "lat2": destination.lat,
            "lng2": destination.lng,
        }
        data = self.client.get_json(self.config.api.show_route_path, params=params)
        results = self._parse_results(data)[:self.config.network.max_candidates]

        candidates = []
        for rank, result in enumerate(results):
            candidate = self._candidate(result, rank)
            if len(candidate.path) >= 2:
                candidates.append(candidate)
            else:
                logger.warning(f"Route candidate {rank + 1} has no usable path")
        logger.info(f"Routing service returned {len(candidates)} candidate(s)")
        return candidates

    def compute_route(self, new_pos: Coordinate, origin: Coordinate, destination: Coordinate) -> RouteCandidate:
        """
        Recompute a route through a moved waypoint

        Raises:
            NoRouteError: If the service answers without a route
            ServiceError: If the request fails
        """
        body = {
            "newPos": new_pos.as_latlng(),
            "origin": origin.as_latlng(),
            "destination": destination.as_latlng(),
        }
        data = self.client.post_json(self.config.api.compute_route_path, body)
        results = self._parse_results(data) if data else []
        if not results or not results[0].route:
            raise NoRouteError("No route found")

        candidate = self._candidate(results[0], 0)
        if len(candidate.path) < 2:
            raise NoRouteError("No route found")
        return candidate

