"""In-process counters, gauges and sample histograms for scoring activity."""

from __future__ import annotations

import math
import re
import threading
import time
from collections import defaultdict, deque
from contextlib import contextmanager
from statistics import mean
from typing import Deque, Dict, Iterator, List, MutableMapping, Sequence

_INVALID_METRIC_CHARS = re.compile(r"[^a-zA-Z0-9_:]")
QUANTILES = (("p50", 0.5), ("p90", 0.9), ("p99", 0.99))


def prometheus_name(name: str) -> str:
    """Map a dotted metric name onto the Prometheus name charset."""

    cleaned = _INVALID_METRIC_CHARS.sub("_", name) or "_"
    return f"_{cleaned}" if cleaned[0].isdigit() else cleaned


def _nearest_rank(ordered: Sequence[float], quantile: float) -> float:
    if not ordered:
        return 0.0
    index = min(max(math.ceil(quantile * len(ordered)) - 1, 0), len(ordered) - 1)
    return float(ordered[index])


class MetricsRegistry:
    """Thread-safe registry; histograms keep the most recent ``max_samples`` values."""

    def __init__(self, *, max_samples: int = 1024) -> None:
        self._lock = threading.RLock()
        self._counters: MutableMapping[str, float] = defaultdict(float)
        self._gauges: Dict[str, float] = {}
        self._samples: MutableMapping[str, Deque[float]] = defaultdict(
            lambda: deque(maxlen=max_samples)
        )

    def increment(self, name: str, amount: float = 1.0) -> None:
        with self._lock:
            self._counters[name] += amount

    def get(self, name: str) -> float:
        with self._lock:
            return self._counters.get(name, 0.0)

    def gauge(self, name: str, value: float) -> None:
        with self._lock:
            self._gauges[name] = float(value)

    def observe(self, name: str, value: float) -> None:
        with self._lock:
            self._samples[name].append(float(value))

    @contextmanager
    def timer(self, name: str) -> Iterator[None]:
        """Observe the wall-clock seconds spent inside the block under ``name``."""

        started = time.perf_counter()
        try:
            yield
        finally:
            self.observe(name, time.perf_counter() - started)

    def summarize(self, name: str) -> Dict[str, float]:
        with self._lock:
            ordered = sorted(self._samples.get(name, ()))
        if not ordered:
            return {}
        summary = {"count": float(len(ordered)), "avg": mean(ordered)}
        for label, quantile in QUANTILES:
            summary[label] = _nearest_rank(ordered, quantile)
        return summary

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            counters = dict(self._counters)
            gauges = dict(self._gauges)
            names = list(self._samples)
        return {
            "counters": counters,
            "gauges": gauges,
            "histograms": {name: self.summarize(name) for name in names},
        }

    def export_prometheus(self) -> str:
        snapshot = self.snapshot()
        lines: List[str] = []
        for kind in ("counters", "gauges"):
            metric_type = "counter" if kind == "counters" else "gauge"
            for name, value in snapshot[kind].items():
                exported = prometheus_name(name)
                lines += [f"# TYPE {exported} {metric_type}", f"{exported} {value}"]
        for name, summary in snapshot["histograms"].items():
            if not summary:
                continue
            exported = prometheus_name(name)
            lines.append(f"# TYPE {exported} summary")
            for label, _ in QUANTILES:
                lines.append(f'{exported}{{quantile="{label}"}} {summary[label]}')
            lines.append(f"{exported}_count {summary['count']}")
            lines.append(f"{exported}_avg {summary['avg']}")
        return "\n".join(lines) + "\n"

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._samples.clear()


METRICS = MetricsRegistry()


__all__ = ["METRICS", "MetricsRegistry", "prometheus_name"]
