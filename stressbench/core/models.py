"""Data models for stress test runs."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any
from urllib.parse import urlparse

from ..errors import ConfigError
from ..presets import RAMP_UP_DEFAULTS, REQUEST_DEFAULTS, SUPPORTED_METHODS


# Assertion operators understood by the success evaluator
OPERATORS = ("equals", "notEquals", "contains", "notContains", "exists", "notExists")
PRESENCE_OPERATORS = ("exists", "notExists")
LOGIC_OPERATORS = ("AND", "OR")
RAMP_UP_MODES = ("linear", "step")

# Business code recorded when the configured field is missing from the body
ABSENT_CODE = "N/A"

# Error text of a request that never reached the transport
ABORTED_ERROR = "Aborted"
TIMEOUT_ERROR = "timeout"


class TestStatus(str, Enum):
    """Lifecycle states of a test run."""

    __test__ = False

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class AssertionRule:
    """A single check against a field of the JSON response body."""

    field: str
    operator: str = "equals"
    value: Optional[str] = None

    def validate(self) -> None:
        if not self.field or not self.field.strip():
            raise ConfigError("Assertion rule requires a field path")
        if self.operator not in OPERATORS:
            raise ConfigError(
                f"Unknown assertion operator '{self.operator}' "
                f"(expected one of {', '.join(OPERATORS)})"
            )
        if self.operator not in PRESENCE_OPERATORS and self.value is None:
            raise ConfigError(
                f"Assertion operator '{self.operator}' on '{self.field}' requires a value"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssertionRule":
        value = data.get("value")
        return cls(
            field=data.get("field", ""),
            operator=data.get("operator", "equals"),
            value=None if value is None else str(value),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "operator": self.operator, "value": self.value}


@dataclass
class SuccessCondition:
    """One or more assertion rules combined with AND/OR logic."""

    rules: List[AssertionRule] = field(default_factory=list)
    logic: str = "AND"
    enabled: bool = True

    @classmethod
    def single(
        cls, field_path: str, operator: str, value: Optional[str] = None
    ) -> "SuccessCondition":
        """Build a condition holding exactly one rule."""
        return cls(rules=[AssertionRule(field_path, operator, value)])

    @property
    def is_active(self) -> bool:
        return self.enabled and bool(self.rules)

    def validate(self) -> None:
        if not self.enabled:
            return
        if not self.rules:
            raise ConfigError("Success condition is enabled but has no rules")
        if self.logic not in LOGIC_OPERATORS:
            raise ConfigError(f"Success condition logic must be AND or OR, got '{self.logic}'")
        for rule in self.rules:
            rule.validate()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SuccessCondition":
        # A template may hold a single flat rule instead of a rule list
        if "rules" in data:
            rules = [AssertionRule.from_dict(r) for r in data["rules"]]
        else:
            rules = [AssertionRule.from_dict(data)]
        return cls(
            rules=rules,
            logic=str(data.get("logic", "AND")).upper(),
            enabled=bool(data.get("enabled", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "logic": self.logic,
            "rules": [r.to_dict() for r in self.rules],
        }


@dataclass
class RampUpConfig:
    """Gradual increase from start_qps to the target rate."""

    enabled: bool = False
    duration: float = RAMP_UP_DEFAULTS["duration"]
    start_qps: float = RAMP_UP_DEFAULTS["start_qps"]
    mode: str = RAMP_UP_DEFAULTS["mode"]

    # Step mode only
    step_interval: float = RAMP_UP_DEFAULTS["step_interval"]
    step_size: Optional[float] = None

    def validate(self, target_qps: float) -> None:
        if not self.enabled:
            return
        if self.mode not in RAMP_UP_MODES:
            raise ConfigError(f"Ramp-up mode must be linear or step, got '{self.mode}'")
        if self.duration <= 0:
            raise ConfigError("Ramp-up duration must be positive")
        if self.start_qps < 1:
            raise ConfigError("Ramp-up start QPS must be at least 1")
        if self.start_qps >= target_qps:
            raise ConfigError(
                f"Ramp-up start QPS ({self.start_qps}) must be below target QPS ({target_qps})"
            )
        if self.mode == "step":
            if self.step_interval <= 0:
                raise ConfigError("Ramp-up step interval must be positive")
            if self.step_size is not None and self.step_size <= 0:
                raise ConfigError("Ramp-up step size must be positive")

    def resolved_step_size(self, target_qps: float) -> float:
        """Step size to use, derived so the ramp finishes within its duration."""
        if self.step_size:
            return self.step_size
        steps = self.duration / self.step_interval
        return max(1.0, float(math.ceil((target_qps - self.start_qps) / steps)))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RampUpConfig":
        step_size = data.get("stepSize", data.get("step_size"))
        return cls(
            enabled=bool(data.get("enabled", True)),
            duration=float(data.get("duration") or RAMP_UP_DEFAULTS["duration"]),
            start_qps=float(data.get("startQps", data.get("start_qps")) or RAMP_UP_DEFAULTS["start_qps"]),
            mode=data.get("mode", RAMP_UP_DEFAULTS["mode"]),
            step_interval=float(
                data.get("stepInterval", data.get("step_interval")) or RAMP_UP_DEFAULTS["step_interval"]
            ),
            step_size=float(step_size) if step_size is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "duration": self.duration,
            "start_qps": self.start_qps,
            "mode": self.mode,
            "step_interval": self.step_interval,
            "step_size": self.step_size,
        }


@dataclass
class TestConfig:
    """Configuration for a single stress test run."""

    __test__ = False

    url: str
    method: str = REQUEST_DEFAULTS["method"]
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    # Load shape
    concurrency: int = 1
    qps: float = 1

    # Stop condition: exactly one of these is set
    duration: Optional[float] = None
    total_requests: Optional[int] = None

    timeout_ms: int = REQUEST_DEFAULTS["timeout_ms"]
    success_condition: Optional[SuccessCondition] = None
    ramp_up: Optional[RampUpConfig] = None

    @property
    def is_duration_based(self) -> bool:
        """Check if this run stops on elapsed time."""
        return self.duration is not None

    @property
    def is_count_based(self) -> bool:
        """Check if this run stops after a number of requests."""
        return self.total_requests is not None

    @property
    def ramp_up_enabled(self) -> bool:
        return self.ramp_up is not None and self.ramp_up.enabled

    @property
    def total_duration(self) -> Optional[float]:
        """Run length in seconds; ramp-up time is added on top of the duration."""
        if self.duration is None:
            return None
        if self.ramp_up_enabled:
            return self.ramp_up.duration + self.duration
        return self.duration

    @property
    def expected_total_requests(self) -> int:
        if self.is_duration_based:
            return int(math.ceil(self.qps * self.duration))
        return self.total_requests or 0

    @property
    def request_body(self) -> Optional[str]:
        """Body to send; GET requests never carry one."""
        if self.method == "GET" or not self.body:
            return None
        return self.body

    def validate(self) -> None:
        """Reject configurations that cannot run. Raises ConfigError."""
        parsed = urlparse(self.url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError(f"Target URL must be an absolute http(s) URL, got '{self.url}'")
        if self.method not in SUPPORTED_METHODS:
            raise ConfigError(
                f"Unsupported HTTP method '{self.method}' "
                f"(expected one of {', '.join(SUPPORTED_METHODS)})"
            )
        if self.concurrency < 1:
            raise ConfigError("Concurrency must be at least 1")
        if self.qps < 1:
            raise ConfigError("QPS must be at least 1")
        if self.is_duration_based == self.is_count_based:
            raise ConfigError("Exactly one of duration or total_requests must be set")
        if self.is_duration_based and self.duration <= 0:
            raise ConfigError("Duration must be positive")
        if self.is_count_based and self.total_requests < 1:
            raise ConfigError("Total requests must be at least 1")
        if self.timeout_ms <= 0:
            raise ConfigError("Timeout must be positive")
        if self.success_condition is not None:
            self.success_condition.validate()
        if self.ramp_up is not None:
            self.ramp_up.validate(self.qps)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestConfig":
        """Build a config from a saved template; duration 0 means count mode."""
        duration = data.get("duration")
        total_requests = data.get("totalRequests", data.get("total_requests"))
        if duration:
            total_requests = None
        else:
            duration = None
        condition = data.get("successCondition", data.get("success_condition"))
        ramp_up = data.get("rampUp", data.get("ramp_up"))
        return cls(
            url=data.get("url", ""),
            method=str(data.get("method", REQUEST_DEFAULTS["method"])).upper(),
            headers=dict(data.get("headers") or {}),
            body=data.get("body") or "",
            concurrency=int(data.get("concurrency", 1)),
            qps=float(data.get("qps", 1)),
            duration=float(duration) if duration is not None else None,
            total_requests=int(total_requests) if total_requests is not None else None,
            timeout_ms=int(data.get("timeout", data.get("timeout_ms", REQUEST_DEFAULTS["timeout_ms"]))),
            success_condition=SuccessCondition.from_dict(condition) if condition else None,
            ramp_up=RampUpConfig.from_dict(ramp_up) if ramp_up else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "url": self.url,
            "method": self.method,
            "headers": dict(self.headers),
            "body": self.body,
            "concurrency": self.concurrency,
            "qps": self.qps,
            "duration": self.duration,
            "total_requests": self.total_requests,
            "timeout_ms": self.timeout_ms,
            "success_condition": self.success_condition.to_dict() if self.success_condition else None,
            "ramp_up": self.ramp_up.to_dict() if self.ramp_up else None,
        }


@dataclass(frozen=True)
class RequestResult:
    """Outcome of one completed request attempt."""

    id: int
    timestamp: float  # wall clock, seconds since epoch, at completion
    duration_ms: float
    status: int  # 0 for transport failures and timeouts
    success: bool
    error: Optional[str] = None
    size_bytes: Optional[int] = None
    business_code: Optional[str] = None

    @property
    def is_aborted(self) -> bool:
        return self.error == ABORTED_ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "duration_ms": self.duration_ms,
            "status": self.status,
            "success": self.success,
            "error": self.error,
            "size_bytes": self.size_bytes,
            "business_code": self.business_code,
        }


@dataclass
class TestMetrics:
    """Point-in-time view derived from all recorded results."""

    __test__ = False

    total_requests: int = 0
    completed_requests: int = 0
    success_count: int = 0
    fail_count: int = 0

    # Latency (milliseconds)
    avg_latency: float = 0.0
    min_latency: float = 0.0
    max_latency: float = 0.0
    p50_latency: float = 0.0
    p90_latency: float = 0.0
    p95_latency: float = 0.0
    p99_latency: float = 0.0

    current_qps: int = 0
    throughput: float = 0.0
    error_rate: float = 0.0
    elapsed_time: float = 0.0

    status_codes: Dict[int, int] = field(default_factory=dict)
    business_codes: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "total_requests": self.total_requests,
            "completed_requests": self.completed_requests,
            "success_count": self.success_count,
            "fail_count": self.fail_count,
            "avg_latency": self.avg_latency,
            "min_latency": self.min_latency,
            "max_latency": self.max_latency,
            "p50_latency": self.p50_latency,
            "p90_latency": self.p90_latency,
            "p95_latency": self.p95_latency,
            "p99_latency": self.p99_latency,
            "current_qps": self.current_qps,
            "throughput": self.throughput,
            "error_rate": self.error_rate,
            "elapsed_time": self.elapsed_time,
            "status_codes": dict(self.status_codes),
            "business_codes": dict(self.business_codes),
        }


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One sample of the live chart series."""

    time: int  # whole seconds since start
    qps: int
    latency: float
    error_rate: float
    active_connections: int
    target_qps: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "qps": self.qps,
            "latency": self.latency,
            "error_rate": self.error_rate,
            "active_connections": self.active_connections,
            "target_qps": self.target_qps,
        }
