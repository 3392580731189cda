"""
Exceptions raised by the route network planner
"""


class RouteNetworkError(Exception):
    """Base class for all planner errors"""


class ServiceError(RouteNetworkError):
    """Raised when a trace API call fails (transport or HTTP status)"""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class NoRouteError(RouteNetworkError):
    """Raised when the routing service answers without a usable route"""


class PayloadTooLargeError(RouteNetworkError):
    """Raised when a snapshot exceeds the download size limit"""


class InvalidSegmentKeyError(RouteNetworkError, ValueError):
    """Raised when a segment/route key can't be split into two endpoints"""


class EditStateError(RouteNetworkError):
    """Raised when an edit command is not legal in the segment's current state"""
