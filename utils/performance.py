"""Performance monitoring utilities using Prometheus metrics."""

from __future__ import annotations

import time
from contextlib import contextmanager

import psutil
from prometheus_client import Counter, Gauge, Histogram


draws_total = Counter("draw_batches_total", "Draw batches by outcome", labelnames=("outcome",))
draw_rejections_total = Counter("draw_rejections_total", "Rejected draw requests", labelnames=("reason",))
undo_total = Counter("draw_undo_total", "Undone draw batches")
reveal_duration = Histogram(
    "draw_reveal_duration_seconds",
    "Wall time from selection to commit of a batch",
    buckets=(1, 2, 5, 10, 15, 20, 30, 60, 120),
)
remaining_entries = Gauge("draw_remaining_entries", "Entries not drawn yet")
total_entries = Gauge("draw_total_entries", "Entries in the configured pool")


class PerformanceMonitor:
    def __init__(self) -> None:
        self.metrics = {
            "draws_total": draws_total,
            "draw_rejections_total": draw_rejections_total,
            "undo_total": undo_total,
            "reveal_duration": reveal_duration,
            "remaining_entries": remaining_entries,
            "total_entries": total_entries,
        }

    @contextmanager
    def track_reveal(self):
        start = time.perf_counter()
        try:
            yield
        finally:
            reveal_duration.observe(time.perf_counter() - start)

    def record_draw(self, outcome: str) -> None:
        draws_total.labels(outcome=outcome).inc()

    def record_rejection(self, reason: str) -> None:
        draw_rejections_total.labels(reason=reason).inc()

    def record_undo(self) -> None:
        undo_total.inc()

    def record_pool(self, remaining: int, total: int) -> None:
        remaining_entries.set(remaining)
        total_entries.set(total)

    def gather_host_metrics(self) -> dict:
        process = psutil.Process()
        memory_info = process.memory_info()
        return {
            "memory_rss": memory_info.rss,
            "cpu_percent": process.cpu_percent(interval=None),
        }
