"""
Avatar Color Metrics
In-process counters and per-stage timings for extraction and cache behaviour.
"""
import time
from collections import Counter, defaultdict
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import numpy as np


class MetricsCollector:
    """Counters and stage timings for one process.

    Mutation only happens on the event loop thread, so there is no lock.
    Counter names:
        extractions_total, fallback_total, failed_total_<stage>,
        cache_hits_<layer>, cache_misses_<layer>, swatch_dedup_joins
    """

    def __init__(self):
        self._counters: Counter = Counter()
        self._timings: Dict[str, List[float]] = defaultdict(list)
        self._start_time = time.time()

    def increment(self, name: str, amount: int = 1):
        self._counters[name] += amount

    def record_extraction(self):
        self.increment("extractions_total")

    def record_fallback(self):
        self.increment("fallback_total")

    def record_failure(self, stage: str):
        """Count a degraded outcome for a stage ("primary", "fallback", "avatar_color")."""
        self.increment(f"failed_total_{stage}")

    def record_cache_hit(self, layer: str):
        self.increment(f"cache_hits_{layer}")

    def record_cache_miss(self, layer: str):
        self.increment(f"cache_misses_{layer}")

    def record_timing(self, stage: str, duration_ms: float):
        self._timings[f"{stage}_duration_ms"].append(duration_ms)

    def get_counters(self) -> Dict[str, int]:
        return dict(self._counters)

    def get_timing_stats(self) -> Dict[str, Dict[str, float]]:
        """Count, mean, min, max, p50 and p95 per recorded stage."""
        stats = {}
        for name, samples in self._timings.items():
            if not samples:
                continue
            values = np.asarray(samples, dtype=np.float64)
            p50, p95 = np.percentile(values, [50, 95])
            stats[name] = {
                "count": int(values.size),
                "mean": float(values.mean()),
                "min": float(values.min()),
                "max": float(values.max()),
                "p50": float(p50),
                "p95": float(p95),
            }
        return stats

    def cache_hit_rate(self, layer: str) -> float:
        hits = self._counters[f"cache_hits_{layer}"]
        lookups = hits + self._counters[f"cache_misses_{layer}"]
        return hits / lookups if lookups else 0.0

    def get_summary(self) -> Dict[str, Any]:
        return {
            "uptime_seconds": time.time() - self._start_time,
            "counters": self.get_counters(),
            "timing_stats": self.get_timing_stats(),
        }

    def reset(self):
        """Clear everything (used between tests)."""
        self._counters.clear()
        self._timings.clear()
        self._start_time = time.time()


_metrics: Optional[MetricsCollector] = None


def get_metrics_instance() -> MetricsCollector:
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def reset_metrics():
    if _metrics is not None:
        _metrics.reset()


@contextmanager
def performance_monitor(stage: str):
    """Record the wall-clock duration of a pipeline stage, even if it raises."""
    start = time.perf_counter()
    try:
        yield
    finally:
        get_metrics_instance().record_timing(stage, (time.perf_counter() - start) * 1000)
