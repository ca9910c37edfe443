"""
apps/leaderboard/metrics.py
============================
In-process counters and timings for the leaderboard cache, rendered in the
Prometheus text format at GET /api/metrics/.

Tracked:
  leaderboard_cache_hits_total{purpose,window}
  leaderboard_cache_misses_total{purpose,window}
  leaderboard_cache_errors_total{op}
  leaderboard_compute_seconds            (summary, p50/p95/p99)

Values live per process. Each gunicorn worker reports its own numbers.
"""

import threading
import time
from contextlib import contextmanager

_lock = threading.Lock()

_counters: dict[str, float] = {}
_histograms: dict[str, list[float]] = {}

HISTOGRAM_WINDOW = 10_000


def _metric_key(name: str, labels: dict | None = None) -> str:
    """Return a fully qualified metric name with labels."""
    if not labels:
        return name
    label_str = ",".join(f'{k}="{v}"' for k, v in sorted(labels.items()))
    return f"{name}{{{label_str}}}"


def inc_counter(name: str, value: float = 1.0, labels: dict | None = None) -> None:
    key = _metric_key(name, labels)
    with _lock:
        _counters[key] = _counters.get(key, 0.0) + value


def get_counter(name: str, labels: dict | None = None) -> float:
    return _counters.get(_metric_key(name, labels), 0.0)


def observe_histogram(name: str, value: float) -> None:
    with _lock:
        values = _histograms.setdefault(name, [])
        values.append(value)
        # Keep the most recent observations only
        if len(values) > HISTOGRAM_WINDOW:
            del values[:-HISTOGRAM_WINDOW]


def reset() -> None:
    with _lock:
        _counters.clear()
        _histograms.clear()


def _percentile(values: list[float], pct: float) -> float:
    if not values:
        return 0.0
    sorted_vals = sorted(values)
    idx = int(len(sorted_vals) * pct / 100)
    return sorted_vals[min(idx, len(sorted_vals) - 1)]


def render_metrics() -> str:
    with _lock:
        counters = dict(_counters)
        histograms = {k: list(v) for k, v in _histograms.items()}

    lines = []
    seen_types = set()
    for key, value in sorted(counters.items()):
        base_name = key.split("{")[0]
        if base_name not in seen_types:
            lines.append(f"# TYPE {base_name} counter")
            seen_types.add(base_name)
        lines.append(f"{key} {value:.2f}")

    for name, values in sorted(histograms.items()):
        lines.append(f"# TYPE {name} summary")
        lines.append(f'{name}{{quantile="0.5"}} {_percentile(values, 50):.6f}')
        lines.append(f'{name}{{quantile="0.95"}} {_percentile(values, 95):.6f}')
        lines.append(f'{name}{{quantile="0.99"}} {_percentile(values, 99):.6f}')
        lines.append(f"{name}_count {len(values)}")
        lines.append(f"{name}_sum {sum(values):.6f}")

    return "\n".join(lines) + "\n"


@contextmanager
def timed(histogram_name: str):
    """
    Record the wall-clock time of a block into a histogram.

    Usage:
        with timed("leaderboard_compute_seconds"):
            posters = aggregator.top(window, limit)
    """
    start = time.monotonic()
    try:
        yield
    finally:
        observe_histogram(histogram_name, time.monotonic() - start)
