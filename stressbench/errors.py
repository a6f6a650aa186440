"""Custom exceptions for stressbench."""


class StressBenchError(Exception):
    """Base exception for all stressbench errors."""
    pass


class ConfigError(StressBenchError, ValueError):
    """Raised when a test configuration is rejected before a run starts."""
    pass


class InvalidStateError(StressBenchError):
    """Raised when a lifecycle call is not allowed in the current run state."""

    def __init__(self, action: str, status: str):
        self.action = action
        self.status = status
        super().__init__(f"Cannot {action} while test is {status}")


class TransportError(StressBenchError):
    """Raised when a forwarding proxy answers with an unusable payload."""
    pass
