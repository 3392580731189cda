"""
Network service

Bulk upload (AI-assisted network generation), preview loading of a stored
network, and place search.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from loguru import logger
from pydantic import ValidationError

from .api_client import TraceAPIClient
from ..config import get_config
from ..exceptions import ServiceError
from ..models import Place

PathLike = Union[str, Path]


class NetworkService:
    """Client for upload / get-networks / search-location"""

    def __init__(self, client: Optional[TraceAPIClient] = None):
        self.config = get_config()
        self.client = client or TraceAPIClient()

    def upload(self, points_file: PathLike, connections_file: PathLike) -> Dict[str, Any]:
        """
        Upload a points file and a connections file for network generation

        Returns:
            The generated payload (loop shape or points/connections shape)
        """
        points_path, connections_path = Path(points_file), Path(connections_file)
        logger.info(f"Uploading {points_path.name} + {connections_path.name}")
        with open(points_path, "rb") as points_fh, open(connections_path, "rb") as connections_fh:
            files = {
                "pointsFile": (points_path.name, points_fh),
                "connectionsFile": (connections_path.name, connections_fh),
            }
            result = self.client.post_files(self.config.api.upload_path, files)
        if not isinstance(result, dict):
            raise ServiceError("Upload returned an unexpected response")
        return result

    def fetch_network(self, network_id: Union[int, str]) -> Dict[str, Any]:
        """
        Load a stored network for preview

        The endpoint sometimes wraps the payload as a JSON string.
        """
        data = self.client.get_json(f"{self.config.api.network_path}/{network_id}")
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise ServiceError(f"Network {network_id} returned invalid JSON") from e
        if not isinstance(data, dict):
            raise ServiceError(f"Network {network_id} returned an unexpected response")
        return data

    def search_location(self, query: str) -> List[Place]:
        """Search places by free text; a blank query makes no request"""
        if not query or not query.strip():
            return []
        data = self.client.get_json(self.config.api.search_path, params={"query": query.strip()})
        places = []
        for item in data if isinstance(data, list) else []:
            try:
                places.append(Place.model_validate(item))
            except ValidationError:
                logger.debug(f"Skipping malformed place result: {item!r}")
        return places
