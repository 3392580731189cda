"""
Trace API client

Handles communication with the trace backend (routing, persistence,
bulk ingestion). Calls are single-shot: failures are raised as
ServiceError and never retried here.
"""

from typing import Any, Dict, Optional

import requests
from loguru import logger

from ..config import get_config
from ..exceptions import ServiceError


class TraceAPIClient:
    """Thin requests wrapper around the trace API"""

    def __init__(self, session: Optional[Any] = None, base_url: Optional[str] = None):
        self.config = get_config()
        self.session = session or requests.Session()
        self.base_url = (base_url or self.config.api.trace_api_url).rstrip("/")
        self.timeout = self.config.api.request_timeout
        self.headers = {"User-Agent": self.config.api.user_agent}

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, method: str, path: str, **kwargs) -> requests.Response:
        """
        Execute a request and check its status

        Raises:
            ServiceError: On transport failure or non-2xx status
        """
        url = self.url(path)
        headers = dict(self.headers)
        headers.update(kwargs.pop("headers", None) or {})
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response
        except requests.exceptions.Timeout as e:
            logger.error(f"Trace API timeout: {method} {url}")
            raise ServiceError(f"Request to {path} timed out") from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            message = self._error_message(e.response) or f"Server error: {status}"
            logger.error(f"Trace API {method} {url} failed: HTTP {status}")
            raise ServiceError(message, status_code=status) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Trace API {method} {url} failed: {e}")
            raise ServiceError(f"Request to {path} failed: {e}") from e

    @staticmethod
    def _error_message(response: Optional[requests.Response]) -> Optional[str]:
        """The backend reports failures as {"error": "..."}"""
        if response is None:
            return None
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return None

    @staticmethod
    def _json(response: requests.Response, path: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ServiceError(f"Invalid JSON from {path}") from e

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._json(self.request("GET", path, params=params), path)

    def post_json(self, path: str, body: Any) -> Any:
        return self._json(self.request("POST", path, json=body), path)

    def post_data(self, path: str, data: str) -> requests.Response:
        """POST pre-serialized JSON and hand back the raw response (downloads)"""
        return self.request("POST", path, data=data, headers={"Content-Type": "application/json"})

    def post_files(self, path: str, files: Dict[str, Any]) -> Any:
        return self._json(self.request("POST", path, files=files), path)
