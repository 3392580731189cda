"""
Persistence gateway

Save / verify-and-save / download against the trace backend. Each call is
single-shot, reports its outcome as a Notification, and never touches the
graph.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from loguru import logger

from .api_client import TraceAPIClient
from .notifications import Notification, Notifier
from ..config import get_config
from ..exceptions import PayloadTooLargeError, ServiceError
from ..models import SnapshotPayload
from ..network.graph import NetworkGraph

_FILENAME = re.compile(r'filename="(.+)"')


def _default_user_id() -> int:
    return get_config().persistence.default_user_id


def _default_user_name() -> str:
    return get_config().persistence.default_user_name


@dataclass
class UserIdentity:
    """Acting user recorded with every snapshot"""
    user_id: int = field(default_factory=_default_user_id)
    user_name: str = field(default_factory=_default_user_name)


class PersistenceGateway:
    """Submits graph snapshots to the persistence endpoints"""

    def __init__(
        self,
        client: Optional[TraceAPIClient] = None,
        notifier: Optional[Notifier] = None,
        user: Optional[UserIdentity] = None
    ):
        self.config = get_config()
        self.client = client or TraceAPIClient()
        self.notifier = notifier or Notifier()
        self.user = user or UserIdentity()
        self.last_download: Optional[Path] = None

    def build_payload(self, graph: NetworkGraph) -> SnapshotPayload:
        return graph.to_snapshot(self.user.user_id, self.user.user_name)

    def _submit(self, path: str, graph: NetworkGraph, failure_prefix: str) -> Notification:
        payload = self.build_payload(graph)
        try:
            self.client.post_json(path, payload.model_dump(mode="json"))
        except ServiceError as e:
            return self.notifier.error(f"{failure_prefix}: {e}")
        return self.notifier.success("KML saved successfully")

    def save(self, graph: NetworkGraph) -> Notification:
        """Submit a draft snapshot (save-kml)"""
        logger.info(f"Saving draft network ({len(graph.segments)} segments)")
        return self._submit(self.config.api.save_path, graph, "Error saving KML")

    def verify_and_save(self, graph: NetworkGraph) -> Notification:
        """Submit a snapshot to the commit/verify endpoint (save-to-db)"""
        logger.info(f"Verifying and saving network ({len(graph.segments)} segments)")
        return self._submit(self.config.api.verify_save_path, graph, "Error saving KML")

    def check_size(self, body: str) -> float:
        """
        Size of a serialized payload in MB

        Raises:
            PayloadTooLargeError: Above the configured download limit
        """
        size_mb = len(body.encode("utf-8")) / (1024 * 1024)
        if size_mb > self.config.persistence.max_download_mb:
            raise PayloadTooLargeError(f"Payload too large ({size_mb:.2f} MB)")
        return size_mb

    @staticmethod
    def filename_from(content_disposition: Optional[str], fmt: str) -> str:
        match = _FILENAME.search(content_disposition or "")
        name = Path(match.group(1)).name if match else ""
        return name or f"routes.{fmt}"

    def download(self, graph: NetworkGraph, fmt: str, target_dir: Union[str, Path] = ".") -> Notification:
        """
        Export the network as a KML or CSV file

        Oversized payloads are rejected before any request is made.

        Args:
            graph: Network to export
            fmt: 'kml' or 'csv'
            target_dir: Directory the returned file is written to

        Returns:
            Notification describing the outcome
        """
        fmt = fmt.lower()
        if fmt not in self.config.persistence.download_formats:
            raise ValueError(f"Unsupported download format {fmt!r}; expected one of {self.config.persistence.download_formats}")

        body = self.build_payload(graph).model_dump_json()
        try:
            size_mb = self.check_size(body)
        except PayloadTooLargeError as e:
            return self.notifier.error(f"Error: {e}")

        logger.info(f"Requesting {fmt} export ({size_mb:.2f} MB payload)")
        try:
            response = self.client.post_data(f"{self.config.api.download_path}/{fmt}", body)
        except ServiceError as e:
            return self.notifier.error(str(e))

        filename = self.filename_from(response.headers.get("Content-Disposition"), fmt)
        target = Path(target_dir)
        target.mkdir(parents=True, exist_ok=True)
        output = target / filename
        output.write_bytes(response.content)
        self.last_download = output
        logger.info(f"Saved {fmt} export to {output}")
        return self.notifier.success(f"{fmt} file downloaded")
