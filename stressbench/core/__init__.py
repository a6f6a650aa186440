"""Core stress test engine components."""

from .models import TestConfig, TestMetrics, RequestResult, TimeSeriesPoint
from .rate_controller import RateController
from .concurrency import ConcurrencyGate
from .dispatcher import RequestDispatcher
from .metrics import MetricsAggregator
from .series import TimeSeriesRecorder, RequestLog
from .controller import TestRunController

__all__ = [
    "TestConfig",
    "TestMetrics",
    "RequestResult",
    "TimeSeriesPoint",
    "RateController",
    "ConcurrencyGate",
    "RequestDispatcher",
    "MetricsAggregator",
    "TimeSeriesRecorder",
    "RequestLog",
    "TestRunController",
]
