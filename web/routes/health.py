"""Health check blueprint."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from services import call_in_loop
from utils.performance import PerformanceMonitor


health_bp = Blueprint("health", __name__)
monitor = PerformanceMonitor()


@health_bp.route("/health")
def health_check():
    engine = current_app.config["DRAW_ENGINE"]
    snapshot = call_in_loop(engine.snapshot, timeout=5.0)
    host_metrics = monitor.gather_host_metrics()

    data = {
        "status": "ok",
        "draw_state": snapshot.state.value,
        "remaining_entries": snapshot.remaining_count,
        "total_entries": snapshot.total_count,
        "prizes_drawn": len(snapshot.history),
        "prizes_total": len(snapshot.prizes),
        "host": host_metrics,
    }
    return jsonify(data)
