"""Event log and hook dispatch for pipeline events.

Every published event is logged to ``event_wal`` under its form and recheck
``seq`` before any hook runs. A row ends ``delivered``, ``skipped`` (no plugin
implements the hook) or ``failed``; ``replay()`` re-delivers pending and
failed rows in signal order.

INVARIANT: Plugin failures are warnings, never errors.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from sqlalchemy import insert, select, update

from formpipe.domain.events import PipelineEvent, event_from_json
from formpipe.infrastructure.database.schema import event_wal
from formpipe.services._helpers import now_iso

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from formpipe.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

PENDING = "pending"
DELIVERED = "delivered"
SKIPPED = "skipped"
FAILED = "failed"


class EventBus:
    """Log pipeline events per form and signal, then call plugin hooks.

    Parameters:
        engine: SQLAlchemy engine with the ``event_wal`` table.
        plugin_manager: PluginManager holding the hook implementations.
        sync: Call hooks on the publishing thread (tests, ``--sync``).
        max_workers: Thread pool size for background dispatch.
    """

    def __init__(
        self,
        engine: Engine,
        plugin_manager: PluginManager,
        *,
        sync: bool = False,
        max_workers: int = 2,
    ) -> None:
        self._engine = engine
        self._pm = plugin_manager
        self._sync = sync
        self._executor: ThreadPoolExecutor | None = (
            None if sync else ThreadPoolExecutor(max_workers=max_workers)
        )
        self._lock = threading.Lock()
        self._futures: list[Future[None]] = []

    def publish(self, event: PipelineEvent) -> int:
        """Log *event*, then deliver it to its hook. Returns the log row id."""
        event_id = self._log_event(event)
        if not self._pm.implementers(event.hook_name):
            self._set_status(event_id, SKIPPED)
        elif self._sync or self._executor is None:
            self._deliver(event_id, event)
        else:
            future = self._executor.submit(self._deliver, event_id, event)
            with self._lock:
                self._futures.append(future)
        return event_id

    def replay(self, form_id: str | None = None) -> list[dict[str, Any]]:
        """Re-deliver pending and failed events synchronously, oldest signal first."""
        self.flush()
        query = select(event_wal).where(event_wal.c.status.in_([PENDING, FAILED]))
        if form_id is not None:
            query = query.where(event_wal.c.form_id == form_id)
        with self._engine.connect() as conn:
            rows = conn.execute(
                query.order_by(event_wal.c.form_id, event_wal.c.seq, event_wal.c.id)
            ).fetchall()

        results: list[dict[str, Any]] = []
        for row in rows:
            event = event_from_json(row.hook_name, row.payload)
            status = self._deliver(row.id, event)
            results.append(
                {"id": row.id, "hook_name": row.hook_name, "seq": row.seq, "status": status}
            )
        return results

    def history(self, form_id: str) -> list[dict[str, Any]]:
        """Logged events for *form_id*, ordered by signal ``seq``."""
        self.flush()
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(event_wal)
                .where(event_wal.c.form_id == form_id)
                .order_by(event_wal.c.seq, event_wal.c.id)
            ).fetchall()
        return [
            {
                "id": row.id,
                "hook_name": row.hook_name,
                "seq": row.seq,
                "status": row.status,
                "error": row.error,
            }
            for row in rows
        ]

    def flush(self) -> None:
        """Wait for in-flight background deliveries."""
        with self._lock:
            futures, self._futures = self._futures, []
        for future in futures:
            try:
                future.result(timeout=30)
            except Exception:
                logger.debug("Background hook delivery raised", exc_info=True)

    def shutdown(self) -> None:
        """Flush, then stop the thread pool."""
        self.flush()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _log_event(self, event: PipelineEvent) -> int:
        with self._engine.begin() as conn:
            result = conn.execute(
                insert(event_wal).values(
                    hook_name=event.hook_name,
                    form_id=event.form_id,
                    seq=event.seq,
                    payload=event.model_dump_json(),
                    status=PENDING,
                    created=now_iso(),
                )
            )
            assert result.lastrowid is not None
            return result.lastrowid

    def _deliver(self, event_id: int, event: PipelineEvent) -> str:
        hook_fn = getattr(self._pm.hook, event.hook_name)
        try:
            hook_fn(**event.hook_kwargs())
        except Exception as exc:
            logger.warning(
                "Hook %s failed for %s#%s: %s", event.hook_name, event.form_id, event.seq, exc
            )
            self._set_status(event_id, FAILED, error=str(exc))
            return FAILED
        self._set_status(event_id, DELIVERED)
        return DELIVERED

    def _set_status(self, event_id: int, status: str, *, error: str | None = None) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                update(event_wal)
                .where(event_wal.c.id == event_id)
                .values(
                    status=status,
                    error=error,
                    completed=None if status == FAILED else now_iso(),
                )
            )
