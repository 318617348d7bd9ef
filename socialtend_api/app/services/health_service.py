"""
Health checks for liveness/readiness probes and the metrics endpoint.

Readiness is unhealthy when the database does not answer, when more
than ``ERROR_RATE_THRESHOLD`` errors were logged in the last five
minutes, or when the process uses more than ``MEMORY_THRESHOLD_PERCENT``
of physical memory.
"""

import logging
import os
import resource
import sqlite3
import sys
import time
from typing import Any, Dict, List

from socialtend_api.app.core.clock import utcnow_iso
from socialtend_api.app.core.db import get_connection
from socialtend_api.app.core.logging_config import recent_logs

logger = logging.getLogger(__name__)

ERROR_RATE_THRESHOLD = 10
ERROR_RATE_WINDOW_SECONDS = 5 * 60
MEMORY_THRESHOLD_PERCENT = 90

_started_at = time.monotonic()


def check_database() -> str:
    """Return ``up`` when ``SELECT 1`` succeeds, otherwise ``down``."""
    try:
        conn = get_connection()
        try:
            conn.execute("SELECT 1").fetchone()
        finally:
            conn.close()
    except sqlite3.Error as exc:
        logger.error("Database health check failed: %s", exc)
        return "down"
    return "up"


def get_memory_usage() -> Dict[str, int]:
    """Peak resident memory of the process compared to physical memory, in MB."""
    max_rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is reported in bytes on macOS and in kilobytes elsewhere.
    used_bytes = max_rss if sys.platform == "darwin" else max_rss * 1024
    total_bytes = os.sysconf("SC_PHYS_PAGES") * os.sysconf("SC_PAGE_SIZE")
    return {
        "used": round(used_bytes / 1024 / 1024),
        "total": round(total_bytes / 1024 / 1024),
        "percentage": round(used_bytes / total_bytes * 100) if total_bytes else 0,
    }


def get_health_status() -> Dict[str, Any]:
    errors: List[str] = []
    database = check_database()
    if database == "down":
        errors.append("Database connection failed")
    recent_errors = recent_logs.error_count(ERROR_RATE_WINDOW_SECONDS)
    if recent_errors > ERROR_RATE_THRESHOLD:
        errors.append(f"High error rate: {recent_errors} errors in last 5 minutes")
    memory = get_memory_usage()
    if memory["percentage"] > MEMORY_THRESHOLD_PERCENT:
        errors.append(f"High memory usage: {memory['percentage']}%")
    health: Dict[str, Any] = {
        "status": "healthy" if not errors else "unhealthy",
        "timestamp": utcnow_iso(),
        "services": {"database": database, "server": "up"},
        "uptime": round(time.monotonic() - _started_at, 3),
        "memory": memory,
    }
    if errors:
        health["errors"] = errors
    return health


def get_metrics() -> Dict[str, Any]:
    metrics = get_health_status()
    metrics["logs"] = {
        "recent": recent_logs.get_logs(limit=50),
        "error_count": recent_logs.error_count(60 * 60),
        "error_count_last_5_min": recent_logs.error_count(ERROR_RATE_WINDOW_SECONDS),
    }
    return metrics
