"""Predefined engine and CLI defaults."""

# Request defaults (match the forwarding proxy's own limits)
REQUEST_DEFAULTS = {
    "method": "GET",
    "timeout_ms": 30000,
    "min_timeout_ms": 1000,
    "max_timeout_ms": 300000,
}

# Ramp-up defaults used when a ramp-up block omits a value
RAMP_UP_DEFAULTS = {
    "duration": 10.0,
    "start_qps": 1.0,
    "mode": "linear",
    "step_interval": 5.0,
}

# Control loop cadence
ENGINE_DEFAULTS = {
    "pacing_tick_seconds": 0.01,
    "sampling_interval_seconds": 0.5,
    "completion_poll_seconds": 0.05,
    "current_qps_window_ms": 1000,
    "progress_log_seconds": 5,
}

# Bounded buffers: 600 points at 500ms covers five minutes of charting
BUFFER_DEFAULTS = {
    "time_series_cap": 600,
    "request_log_cap": 500,
}

# Forwarding proxy server
PROXY_DEFAULTS = {
    "host": "127.0.0.1",
    "port": 8787,
    "path": "/api/proxy",
}

SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")
