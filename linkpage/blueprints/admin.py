"""
Admin Blueprint - Health Checks and Metrics

Provides monitoring and operational endpoints.
"""

import logging
import time
from typing import Any, Dict

from flask import Blueprint, Response, current_app, jsonify
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__)

_STARTED = time.time()

# Prometheus metrics
registry = CollectorRegistry()
request_counter = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=registry
)
request_latency = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["endpoint"],
    registry=registry
)
pending_handoffs = Gauge(
    "pending_handoffs",
    "Handoffs currently held in memory",
    registry=registry
)
index_entries = Gauge(
    "reverse_index_entries",
    "Entries in the alphanumeric identifier index",
    registry=registry
)


def observe_request(request, response, elapsed: float) -> None:
    """Record one finished request (called from the factory's after_request)."""
    endpoint = request.url_rule.rule if request.url_rule is not None else "unmatched"
    request_counter.labels(request.method, endpoint, str(response.status_code)).inc()
    request_latency.labels(endpoint).observe(elapsed)


def _services() -> Dict[str, Any]:
    return current_app.extensions["linkpage"]


@admin_bp.route("/health")
def health():
    """
    Health check endpoint.

    Returns:
        JSON health status with service information
    """
    cfg = current_app.config["APP_CONFIG"]
    services = _services()
    index = services["index"]

    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": time.time(),
        "service": cfg["APP_NAME"],
        "version": cfg["APP_VERSION"],
        "components": {
            "bdo": {"backend": services["bdo"].backend},
            "addie": {"backend": services["payments"].backend},
            "reverse_index": {"entries": len(index), "dirty": index.dirty},
            "handoffs": services["handoffs"].stats(),
        },
    }
    return jsonify(health_status), 200


@admin_bp.route("/health/live")
def liveness():
    """
    Liveness probe - checks if app is running.

    Returns:
        200 if process is alive
    """
    return jsonify({"status": "alive"}), 200


@admin_bp.route("/health/ready")
def readiness():
    """
    Readiness probe: the identifier index is loaded before any traffic.

    Returns:
        200 if ready, 503 if not ready
    """
    if "linkpage" not in current_app.extensions:
        return jsonify({"status": "not_ready", "error": "services not initialised"}), 503
    return jsonify({"status": "ready"}), 200


@admin_bp.route("/metrics")
def metrics_json():
    """
    JSON metrics endpoint for monitoring.

    Returns:
        JSON metrics data
    """
    cfg = current_app.config["APP_CONFIG"]
    services = _services()
    return jsonify({
        "timestamp": time.time(),
        "application": {
            "name": cfg["APP_NAME"],
            "version": cfg["APP_VERSION"],
            "uptime": time.time() - _STARTED,
        },
        "handoffs": services["handoffs"].stats(),
        "reverse_index": {"entries": len(services["index"])},
    }), 200


@admin_bp.route("/metrics/prometheus")
def metrics_prometheus():
    """
    Prometheus metrics endpoint.

    Returns:
        Prometheus text format metrics
    """
    services = _services()
    pending_handoffs.set(len(services["handoffs"]))
    index_entries.set(len(services["index"]))

    metrics = generate_latest(registry)
    return Response(metrics, mimetype="text/plain; version=0.0.4")
