class MonitorError(Exception):
    """Base exception for all crossing monitor errors."""
    pass


class UpstreamError(MonitorError):
    """Raised when a provider call yields no usable route measurement."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class PersistenceError(MonitorError):
    """Raised when a reading could not be appended to its durable log."""

    def __init__(self, route_id: str, path: str, reason: str) -> None:
        super().__init__(f"Failed to write {path} for route {route_id}: {reason}")
        self.route_id = route_id
        self.path = path
        self.reason = reason


class ConfigurationError(MonitorError):
    """Raised when configuration is invalid. Only ever raised at startup."""
    pass
