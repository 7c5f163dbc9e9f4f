"""Fire-and-forget audit writer.

Lifecycle operations must never block on, or fail because of, audit
logging.  :class:`AuditWriter` hands each event to a single background
thread and logs any failure instead of raising it.

Example
-------
>>> from pathlib import Path
>>> from aumos_egress_store.context import RequestContext
>>> with AuditWriter(AuditLogger(Path("/tmp/egress_audit.jsonl"))) as writer:
...     writer.record_async(RequestContext(uid="u-1"), {"action": "create-egress-store"})
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING

from aumos_egress_store.audit.logger import AuditLogger

if TYPE_CHECKING:
    from aumos_egress_store.context import RequestContext

logger = logging.getLogger(__name__)


class AuditWriter:
    """Writes audit events to an :class:`AuditLogger` off the caller's thread.

    Parameters
    ----------
    audit_logger:
        Destination for the records.
    """

    def __init__(self, audit_logger: AuditLogger) -> None:
        self._audit_logger = audit_logger
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="egress-audit")
        self._pending: set[Future[None]] = set()
        self._lock = threading.Lock()
        self._closed = False

    def record_async(self, request_context: "RequestContext", event: dict[str, object]) -> None:
        """Queue ``event`` for writing; never raises."""
        entry: dict[str, object] = {
            "actor": request_context.uid,
            "actor_is_admin": request_context.is_admin,
            **event,
        }
        try:
            with self._lock:
                if self._closed:
                    logger.warning("Audit writer is closed; dropping event %s", event.get("action"))
                    return
                future = self._executor.submit(self._audit_logger.log, entry)
                self._pending.add(future)
            future.add_done_callback(self._on_done)
        except RuntimeError:
            logger.warning("Audit executor unavailable; dropping event %s", event.get("action"), exc_info=True)

    def flush(self, timeout: float | None = None) -> None:
        """Wait until every queued event has been written (or failed)."""
        with self._lock:
            pending = set(self._pending)
        wait(pending, timeout=timeout)

    def close(self) -> None:
        """Flush and stop the background thread."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "AuditWriter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    def _on_done(self, future: Future[None]) -> None:
        with self._lock:
            self._pending.discard(future)
        error = future.exception()
        if error is not None:
            logger.warning("Failed to write audit event: %s", error)
