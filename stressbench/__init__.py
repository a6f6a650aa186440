"""HTTP load generation and measurement engine."""

__version__ = "0.1.0"

from .core.controller import TestRunController
from .core.models import (
    AssertionRule,
    RampUpConfig,
    RequestResult,
    SuccessCondition,
    TestConfig,
    TestMetrics,
    TestStatus,
    TimeSeriesPoint,
)
from .core.transport import HttpTransport, ProxyTransport, TransportResponse
from .errors import ConfigError, InvalidStateError, StressBenchError, TransportError

__all__ = [
    "TestRunController",
    "AssertionRule",
    "RampUpConfig",
    "RequestResult",
    "SuccessCondition",
    "TestConfig",
    "TestMetrics",
    "TestStatus",
    "TimeSeriesPoint",
    "HttpTransport",
    "ProxyTransport",
    "TransportResponse",
    "ConfigError",
    "InvalidStateError",
    "StressBenchError",
    "TransportError",
]
