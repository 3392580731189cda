"""Shared fixtures: fake HTTP session and small network builders."""

import json

import pytest
import requests

from route_network.network.graph import NetworkGraph
from route_network.network.models import Point
from route_network.parsing.coordinates import Coordinate
from route_network.services.api_client import TraceAPIClient

BASE_URL = "https://trace.test"


class FakeResponse:
    """Just enough of requests.Response for the trace client."""

    def __init__(self, payload=None, status_code=200, headers=None, content=None):
        self._payload = payload
        self.status_code = status_code
        self.headers = headers or {}
        if content is None and payload is not None:
            content = json.dumps(payload).encode("utf-8")
        self.content = content or b""

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Routes requests by endpoint path and records every call.

    A route value may be a FakeResponse, an exception instance (raised)
    or a callable taking the call record and returning either.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def request(self, method, url, **kwargs):
        path = url[len(BASE_URL) + 1:] if url.startswith(BASE_URL) else url
        call = {"method": method, "path": path, **kwargs}
        self.calls.append(call)
        outcome = self.routes.get(path)
        if outcome is None:
            return FakeResponse({"error": f"no route for {path}"}, status_code=404)
        if callable(outcome) and not isinstance(outcome, FakeResponse):
            outcome = outcome(call)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def paths(self):
        return [call["path"] for call in self.calls]


def make_client(routes=None):
    session = FakeSession(routes)
    return TraceAPIClient(session=session, base_url=BASE_URL), session


def make_point(name, lng, lat, lgd_code=""):
    return Point(name=name, coordinates=Coordinate(lng, lat), lgd_code=lgd_code)


@pytest.fixture
def fake_api():
    """(client, session) pair with no routes registered."""
    return make_client()


@pytest.fixture
def two_point_graph():
    """Graph with points A and B about 15 km apart."""
    graph = NetworkGraph()
    graph.add_points([
        make_point("A", 77.0, 12.0, "1001"),
        make_point("B", 77.1, 12.1, "1002"),
    ])
    return graph
