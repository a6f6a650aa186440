"""Run orchestration: pacing, sampling and the test lifecycle."""

import asyncio
import copy
import logging
import time
from typing import Optional, Sequence, Set

from ..errors import ConfigError, InvalidStateError
from ..presets import BUFFER_DEFAULTS, ENGINE_DEFAULTS
from .concurrency import ConcurrencyGate
from .dispatcher import RequestDispatcher
from .metrics import MetricsAggregator
from .models import RequestResult, TestConfig, TestMetrics, TestStatus
from .observers import CompositeRunObserver, RunObserver
from .rate_controller import RateController
from .series import RequestLog, TimeSeriesRecorder
from .success import SuccessEvaluator
from .transport import Transport


class RunClock:
    """Monotonic run clock that can exclude paused intervals."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self._started: Optional[float] = None
        self._paused_at: Optional[float] = None
        self._paused_total = 0.0

    def start(self) -> None:
        self.reset()
        self._started = time.monotonic()

    def pause(self) -> None:
        if self._started is not None and self._paused_at is None:
            self._paused_at = time.monotonic()

    def resume(self) -> None:
        if self._paused_at is not None:
            self._paused_total += time.monotonic() - self._paused_at
            self._paused_at = None

    def wall_elapsed(self) -> float:
        """Seconds since start, paused time included."""
        if self._started is None:
            return 0.0
        return time.monotonic() - self._started

    def active_elapsed(self) -> float:
        """Seconds since start, paused time excluded."""
        if self._started is None:
            return 0.0
        end = self._paused_at if self._paused_at is not None else time.monotonic()
        return end - self._started - self._paused_total


class TestRunController:
    """
    Drives a stress test run.

    States: idle -> running <-> paused -> completed, with stop() returning
    running/paused runs to idle and configuration failures moving to error.

    While running, two loops share the event loop: the pacing loop turns the
    RateController's target into request launches, and the sampling loop
    snapshots metrics into the time series. Every launched request is its
    own task and holds a ConcurrencyGate slot only around the transport call.

    Ramp-up progress and the duration stop condition follow the active run
    clock, which stands still while the run is paused.
    """

    __test__ = False

    def __init__(
        self,
        transport: Transport,
        observers: Optional[Sequence[RunObserver]] = None,
        sampling_interval: float = ENGINE_DEFAULTS["sampling_interval_seconds"],
        tick_interval: float = ENGINE_DEFAULTS["pacing_tick_seconds"],
        completion_poll_interval: float = ENGINE_DEFAULTS["completion_poll_seconds"],
        series_cap: int = BUFFER_DEFAULTS["time_series_cap"],
        log_cap: int = BUFFER_DEFAULTS["request_log_cap"],
    ):
        self.transport = transport
        self.observers = CompositeRunObserver(observers)
        self.sampling_interval = sampling_interval
        self.tick_interval = tick_interval
        self.completion_poll_interval = completion_poll_interval

        self.aggregator = MetricsAggregator()
        self.recorder = TimeSeriesRecorder(series_cap)
        self.request_log = RequestLog(log_cap)
        self.metrics = TestMetrics()

        self.status = TestStatus.IDLE
        self.config: Optional[TestConfig] = None
        self.rate_controller: Optional[RateController] = None
        self.gate: Optional[ConcurrencyGate] = None
        self.dispatcher: Optional[RequestDispatcher] = None

        self._clock = RunClock()
        self._abort = asyncio.Event()
        self._paused = False
        self._requests_sent = 0
        self._inflight: Set[asyncio.Task] = set()
        self._run_task: Optional[asyncio.Task] = None
        self._last_progress_log = 0

        self.logger = logging.getLogger(__name__)

    # Lifecycle

    async def start(self, config: TestConfig) -> None:
        """Validate `config`, reset all run state and begin emitting requests."""
        if self.status in (TestStatus.RUNNING, TestStatus.PAUSED):
            raise InvalidStateError("start", self.status.value)

        try:
            config.validate()
        except ConfigError as e:
            self.logger.error(f"Rejected test configuration: {e}")
            self._set_status(TestStatus.ERROR)
            raise

        self.config = copy.deepcopy(config)
        self.rate_controller = RateController(self.config.qps, self.config.ramp_up)
        self.gate = ConcurrencyGate(self.config.concurrency)
        self.dispatcher = RequestDispatcher(
            self.transport,
            SuccessEvaluator(self.config.success_condition),
            self.gate,
        )

        self._clear_run_state()
        self.aggregator.reset(total_requests=self.config.expected_total_requests)
        self._abort = asyncio.Event()
        self._paused = False
        self._clock.start()

        self._log_start()
        self._set_status(TestStatus.RUNNING)
        self.observers.on_run_start(self.config)
        self._run_task = asyncio.create_task(self._run())

    async def wait(self) -> TestMetrics:
        """Wait until the run completes or is stopped; return the last snapshot."""
        if self._run_task is not None:
            await asyncio.wait({self._run_task})
            if not self._run_task.cancelled() and self._run_task.exception() is not None:
                raise self._run_task.exception()
        return self.metrics

    async def run(self, config: TestConfig) -> TestMetrics:
        """Start a run and wait for it to finish."""
        await self.start(config)
        return await self.wait()

    def pause(self) -> None:
        """Stop launching new requests; in-flight requests still get recorded."""
        if self.status != TestStatus.RUNNING:
            raise InvalidStateError("pause", self.status.value)
        self._paused = True
        self._clock.pause()
        self._set_status(TestStatus.PAUSED)

    def resume(self) -> None:
        """Continue launching requests from the current point of the run."""
        if self.status != TestStatus.PAUSED:
            raise InvalidStateError("resume", self.status.value)
        self._clock.resume()
        self._paused = False
        self._set_status(TestStatus.RUNNING)

    async def stop(self) -> None:
        """Abort the run: cancel in-flight requests, halt both loops, go idle."""
        if self.status not in (TestStatus.RUNNING, TestStatus.PAUSED):
            return

        self.logger.info("Stopping test...")
        self._abort.set()
        self._paused = False

        tasks = list(self._inflight)
        if self._run_task is not None and not self._run_task.done():
            tasks.append(self._run_task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()

        self._set_status(TestStatus.IDLE)

    async def reset(self) -> None:
        """Stop any active run and discard its metrics, series and log."""
        await self.stop()
        self._clear_run_state()
        self.aggregator.reset()
        self._clock.reset()
        self._set_status(TestStatus.IDLE)

    # Views

    def active_count(self) -> int:
        """Requests currently holding a concurrency slot."""
        return self.gate.active_count() if self.gate is not None else 0

    @property
    def requests_sent(self) -> int:
        return self._requests_sent

    @property
    def elapsed(self) -> float:
        """Active run time in seconds (paused time excluded)."""
        return self._clock.active_elapsed()

    # Internals

    def _set_status(self, status: TestStatus) -> None:
        if status != self.status:
            self.logger.info(f"Test status: {self.status.value} -> {status.value}")
        self.status = status
        self.observers.on_status_change(status)

    def _clear_run_state(self) -> None:
        self.metrics = TestMetrics()
        self.recorder.clear()
        self.request_log.clear()
        self._requests_sent = 0
        self._inflight = set()
        self._last_progress_log = 0

    def _log_start(self) -> None:
        config = self.config
        self.logger.info("Starting stress test:")
        self.logger.info(f"  Target: {config.method} {config.url}")
        self.logger.info(f"  Rate: {config.qps} QPS, concurrency {config.concurrency}")
        if config.is_duration_based:
            self.logger.info(f"  Duration: {config.total_duration}s")
        else:
            self.logger.info(f"  Total requests: {config.total_requests}")
        if config.ramp_up_enabled:
            ramp = config.ramp_up
            self.logger.info(
                f"  Ramp-up: {ramp.mode} from {ramp.start_qps} QPS over {ramp.duration}s"
            )

    async def _run(self) -> None:
        pacing = asyncio.create_task(self._pacing_loop())
        sampling = asyncio.create_task(self._sampling_loop())
        try:
            await self._wait_for_completion(pacing, sampling)
        except Exception:
            self.logger.exception("Control loop failed; aborting test")
            self._abort.set()
            for task in list(self._inflight):
                task.cancel()
            self._set_status(TestStatus.ERROR)
            raise
        finally:
            pacing.cancel()
            sampling.cancel()
            await asyncio.gather(pacing, sampling, return_exceptions=True)

        self._sample()
        self._set_status(TestStatus.COMPLETED)
        self.logger.info(
            f"Test completed: {self.metrics.completed_requests} requests, "
            f"{self.metrics.error_rate:.2f}% errors"
        )
        self.observers.on_run_complete(self.metrics)

    def _emission_finished(self, elapsed: float) -> bool:
        if self.config.is_duration_based:
            return elapsed >= self.config.total_duration
        return self._requests_sent >= self.config.total_requests

    async def _pacing_loop(self) -> None:
        """Launch requests at the target rate, carrying fractional time between ticks."""
        rate = self.rate_controller
        # Pre-load one interval so the first request leaves immediately
        accumulated_ms = 1000 / rate.start_qps
        last_tick = time.monotonic()

        while not self._abort.is_set():
            now = time.monotonic()
            delta_ms = (now - last_tick) * 1000
            last_tick = now

            if not self._paused:
                elapsed = self._clock.active_elapsed()
                if self._emission_finished(elapsed):
                    return

                interval_ms = 1000 / rate.target_qps_at(elapsed)
                accumulated_ms += delta_ms
                while accumulated_ms >= interval_ms:
                    accumulated_ms -= interval_ms
                    if self._emission_finished(elapsed):
                        return
                    self._launch_request()

            await asyncio.sleep(self.tick_interval)

    def _launch_request(self) -> None:
        self._requests_sent += 1
        task = asyncio.create_task(self._execute_request())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _execute_request(self) -> None:
        result = await self.dispatcher.dispatch(self.config, self._abort)
        if result.is_aborted or self._abort.is_set():
            return
        self._record(result)

    def _record(self, result: RequestResult) -> None:
        self.aggregator.ingest(result)
        self.request_log.append(result)
        self.observers.on_result(result)

    async def _sampling_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sampling_interval)
            self._sample()

    def _sample(self) -> None:
        metrics = self.aggregator.snapshot()
        target_qps = self.rate_controller.target_qps_at(self._clock.active_elapsed())
        point = self.recorder.capture(metrics, self.active_count(), target_qps)
        self.metrics = metrics
        self.observers.on_metrics(metrics)
        self.observers.on_point(point)
        self._log_progress(metrics)

    def _log_progress(self, metrics: TestMetrics) -> None:
        bucket = int(metrics.elapsed_time // ENGINE_DEFAULTS["progress_log_seconds"])
        if bucket > self._last_progress_log:
            self._last_progress_log = bucket
            self.logger.info(
                f"Completed {metrics.completed_requests} requests "
                f"({metrics.elapsed_time:.1f}s elapsed, {metrics.current_qps} QPS, "
                f"{metrics.avg_latency:.0f}ms avg)"
            )

    async def _wait_for_completion(self, *loops: asyncio.Task) -> None:
        config = self.config
        while True:
            await asyncio.sleep(self.completion_poll_interval)
            for loop in loops:
                if loop.done() and not loop.cancelled() and loop.exception() is not None:
                    raise loop.exception()

            if config.is_duration_based:
                if self._clock.active_elapsed() >= config.total_duration and not self._inflight:
                    return
            else:
                completed = self.aggregator.completed_count
                if completed >= config.total_requests:
                    return
                if self._requests_sent >= config.total_requests and not self._inflight:
                    return
