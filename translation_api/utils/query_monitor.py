"""
Database Query Monitor

Slow query logging and Prometheus instrumentation via SQLAlchemy event
listeners. Attach once at startup to instrument every statement.
"""

import logging
import time

from sqlalchemy import event

from translation_api.utils.metrics import DB_QUERIES_TOTAL, DB_QUERY_DURATION_SECONDS

logger = logging.getLogger(__name__)

_slow_threshold_ms = 100


def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    conn.info.setdefault("query_start_time", []).append(time.perf_counter())


def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    starts = conn.info.get("query_start_time")
    if not starts:
        return
    duration = time.perf_counter() - starts.pop()

    trimmed = statement.strip()
    operation = trimmed.split()[0].lower() if trimmed else "unknown"

    DB_QUERIES_TOTAL.labels(operation=operation).inc()
    DB_QUERY_DURATION_SECONDS.labels(operation=operation).observe(duration)

    duration_ms = duration * 1000
    if duration_ms > _slow_threshold_ms:
        logger.warning("Slow query detected (%.1fms): %s", duration_ms, trimmed[:200])


def install_query_monitor(engine, slow_threshold_ms: int = 100) -> None:
    """Install event listeners on the async engine; a second call only updates the threshold."""
    global _slow_threshold_ms
    _slow_threshold_ms = slow_threshold_ms

    sync_engine = engine.sync_engine
    if event.contains(sync_engine, "before_cursor_execute", _before_cursor_execute):
        return
    event.listen(sync_engine, "before_cursor_execute", _before_cursor_execute)
    event.listen(sync_engine, "after_cursor_execute", _after_cursor_execute)
    logger.info(f"Query monitor installed (slow threshold {slow_threshold_ms}ms)")
