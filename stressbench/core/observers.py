"""Observer hooks for run progress, results and metric samples."""

import logging
from typing import List, Optional, Sequence

from .models import RequestResult, TestConfig, TestMetrics, TestStatus, TimeSeriesPoint

logger = logging.getLogger(__name__)


class RunObserver:
    """Base observer with no-op hooks for run lifecycle events."""

    def on_run_start(self, config: TestConfig) -> None:
        """Called once the run has been validated and is about to emit requests."""

    def on_status_change(self, status: TestStatus) -> None:
        """Called on every state machine transition."""

    def on_result(self, result: RequestResult) -> None:
        """Called for each recorded (non-aborted) request result."""

    def on_metrics(self, metrics: TestMetrics) -> None:
        """Called on every sampling tick with a fresh snapshot."""

    def on_point(self, point: TimeSeriesPoint) -> None:
        """Called on every sampling tick with the new chart point."""

    def on_run_complete(self, metrics: TestMetrics) -> None:
        """Called after a run reaches its stop condition."""


class CompositeRunObserver(RunObserver):
    """Fan-out observer that notifies multiple observers.

    A failing observer is logged and skipped; it never stops the run.
    """

    def __init__(self, observers: Optional[Sequence[RunObserver]] = None) -> None:
        self._observers: List[RunObserver] = []
        if observers:
            for observer in observers:
                self.add_observer(observer)

    def add_observer(self, observer: Optional[RunObserver]) -> None:
        if observer is None:
            return
        self._observers.append(observer)

    def remove_observer(self, observer: RunObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _call(self, method: str, *args) -> None:
        for observer in list(self._observers):
            callback = getattr(observer, method, None)
            if callable(callback):
                try:
                    callback(*args)
                except Exception:
                    logger.warning(
                        f"Observer {observer.__class__.__name__}.{method} failed", exc_info=True
                    )

    def on_run_start(self, config: TestConfig) -> None:
        self._call("on_run_start", config)

    def on_status_change(self, status: TestStatus) -> None:
        self._call("on_status_change", status)

    def on_result(self, result: RequestResult) -> None:
        self._call("on_result", result)

    def on_metrics(self, metrics: TestMetrics) -> None:
        self._call("on_metrics", metrics)

    def on_point(self, point: TimeSeriesPoint) -> None:
        self._call("on_point", point)

    def on_run_complete(self, metrics: TestMetrics) -> None:
        self._call("on_run_complete", metrics)
