"""Prometheus-compatible counters for the audio and camera pipelines.

No external dependencies: renders the text exposition format directly.

Tracked metrics:
- cuesense_events_total (counter, by dispatch slot)
- cuesense_ticks_total (counter, by pipeline)
- cuesense_skipped_ticks_total (counter, by pipeline)
- cuesense_tick_latency_seconds (histogram, by pipeline)
- cuesense_hand_detection_rate (gauge)
- cuesense_listener_errors_total (counter)
"""

from __future__ import annotations

import threading
import time
from collections import Counter

PIPELINES = ("audio", "camera")


class _Histogram:
    """Simple histogram with configurable buckets."""

    def __init__(self, buckets: list[float]):
        self.buckets = sorted(buckets)
        self.bucket_counts = [0] * len(self.buckets)
        self.count = 0
        self.sum = 0.0
        self._lock = threading.Lock()

    def observe(self, value: float):
        with self._lock:
            self.count += 1
            self.sum += value
            for i, b in enumerate(self.buckets):
                if value <= b:
                    self.bucket_counts[i] += 1

    def render(self, name: str, labels: str) -> list[str]:
        lines = []
        with self._lock:
            for i, b in enumerate(self.buckets):
                lines.append(f'{name}_bucket{{{labels},le="{b}"}} {self.bucket_counts[i]}')
            lines.append(f'{name}_bucket{{{labels},le="+Inf"}} {self.count}')
            lines.append(f"{name}_sum{{{labels}}} {self.sum:.6f}")
            lines.append(f"{name}_count{{{labels}}} {self.count}")
        return lines


class MetricsCollector:
    """Collects event and tick statistics; render() produces Prometheus text."""

    def __init__(self):
        self._event_counts: Counter = Counter()
        self._ticks: Counter = Counter()
        self._skipped: Counter = Counter()
        self._hand_detection_rate = 0.0
        self._listener_errors = 0
        self._lock = threading.Lock()

        # Latency buckets from 0.1 ms to one 30 Hz frame
        self._latency = {
            p: _Histogram([0.0001, 0.0005, 0.001, 0.002, 0.005, 0.010, 0.016, 0.033])
            for p in PIPELINES
        }
        self._start_time = time.time()

    def record_event(self, slot: str):
        with self._lock:
            self._event_counts[slot] += 1

    def record_tick(self, pipeline: str, latency_seconds: float, skipped: bool = False):
        with self._lock:
            self._ticks[pipeline] += 1
            if skipped:
                self._skipped[pipeline] += 1
        if pipeline in self._latency:
            self._latency[pipeline].observe(latency_seconds)

    def record_hands(self, hands_detected: int):
        rate = 1.0 if hands_detected > 0 else 0.0
        with self._lock:
            self._hand_detection_rate = 0.95 * self._hand_detection_rate + 0.05 * rate

    def set_listener_errors(self, count: int):
        self._listener_errors = count

    def render(self) -> str:
        """Render all metrics in Prometheus text exposition format."""
        lines: list[str] = []

        uptime = time.time() - self._start_time
        lines.append("# HELP cuesense_uptime_seconds Time since collector creation")
        lines.append("# TYPE cuesense_uptime_seconds gauge")
        lines.append(f"cuesense_uptime_seconds {uptime:.1f}")
        lines.append("")

        lines.append("# HELP cuesense_events_total Events dispatched by slot")
        lines.append("# TYPE cuesense_events_total counter")
        with self._lock:
            for slot, count in sorted(self._event_counts.items()):
                lines.append(f'cuesense_events_total{{slot="{slot}"}} {count}')
        lines.append("")

        lines.append("# HELP cuesense_ticks_total Ticks processed by pipeline")
        lines.append("# TYPE cuesense_ticks_total counter")
        with self._lock:
            for pipeline, count in sorted(self._ticks.items()):
                lines.append(f'cuesense_ticks_total{{pipeline="{pipeline}"}} {count}')
        lines.append("")

        lines.append("# HELP cuesense_skipped_ticks_total Ticks skipped for missing input")
        lines.append("# TYPE cuesense_skipped_ticks_total counter")
        with self._lock:
            for pipeline, count in sorted(self._skipped.items()):
                lines.append(f'cuesense_skipped_ticks_total{{pipeline="{pipeline}"}} {count}')
        lines.append("")

        lines.append("# HELP cuesense_tick_latency_seconds Tick processing latency in seconds")
        lines.append("# TYPE cuesense_tick_latency_seconds histogram")
        for pipeline in PIPELINES:
            lines.extend(self._latency[pipeline].render(
                "cuesense_tick_latency_seconds", f'pipeline="{pipeline}"'
            ))
        lines.append("")

        lines.append("# HELP cuesense_hand_detection_rate Exponential moving average of hand presence")
        lines.append("# TYPE cuesense_hand_detection_rate gauge")
        lines.append(f"cuesense_hand_detection_rate {self._hand_detection_rate:.4f}")
        lines.append("")

        lines.append("# HELP cuesense_listener_errors_total Listener exceptions caught during dispatch")
        lines.append("# TYPE cuesense_listener_errors_total counter")
        lines.append(f"cuesense_listener_errors_total {self._listener_errors}")
        lines.append("")

        return "\n".join(lines) + "\n"

    @property
    def event_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._event_counts)

    @property
    def tick_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._ticks)
