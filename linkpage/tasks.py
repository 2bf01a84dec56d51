"""Periodic housekeeping: handoff expiry sweep, index flush and index backup."""

import logging
from typing import Callable

from flask import Flask

from linkpage.realtime import socketio

logger = logging.getLogger(__name__)

INDEX_CHECK_INTERVAL = 60


def _every(interval: float, name: str, job: Callable[[], object]) -> None:
    """Run ``job`` forever, ``interval`` seconds apart; a failed tick is logged and skipped."""
    while True:
        socketio.sleep(interval)
        try:
            job()
        except Exception as e:
            logger.error(f"Background task {name} failed: {e}", exc_info=True)


def start_background_tasks(app: Flask) -> None:
    cfg = app.config["APP_CONFIG"]
    services = app.extensions["linkpage"]
    handoffs = services["handoffs"]
    index = services["index"]
    bdo = services["bdo"]

    def sweep():
        removed = handoffs.sweep()
        if removed:
            logger.info(f"Swept {removed} expired handoffs")

    socketio.start_background_task(_every, cfg["HANDOFF_SWEEP_INTERVAL"], "handoff-sweep", sweep)
    socketio.start_background_task(_every, INDEX_CHECK_INTERVAL, "index-flush", index.flush_if_stale)
    socketio.start_background_task(
        _every, cfg["MAPPINGS_BACKUP_INTERVAL"], "index-backup", lambda: index.backup_if_due(bdo)
    )
    logger.info("Background tasks started")
