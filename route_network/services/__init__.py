"""
Trace API services

- TraceAPIClient: requests wrapper (single-shot, no retries)
- RoutingService: show-route / compute-route
- PersistenceGateway: save / verify-and-save / download
- NetworkService: bulk upload, preview load, place search
- Notifier: transient success/error notifications
"""

from .api_client import TraceAPIClient
from .routing import RouteCandidate, RoutingService
from .notifications import Notification, Notifier
from .persistence import PersistenceGateway, UserIdentity
from .network_api import NetworkService

__all__ = [
    "TraceAPIClient",
    "RouteCandidate",
    "RoutingService",
    "Notification",
    "Notifier",
    "PersistenceGateway",
    "UserIdentity",
    "NetworkService",
]
