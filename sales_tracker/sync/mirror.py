"""
Best-effort mirroring of the dataset to an external spreadsheet endpoint.

After every store mutation the full snapshot of users, inquiries and
conveyances is posted to one fixed URL. Each push replaces the remote
state wholesale, so pushes are neither queued, retried nor ordered; a
stale push arriving late is acceptable.

Automatic pushes run on a background thread and never raise. Only
``force_sync`` reports a failure to its caller.
"""

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Dict, List, Optional

import requests

from ..core.errors import SyncFailure
from ..storage.repository import EntityStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class HttpTransport:
    """POSTs a snapshot to the mirror endpoint.

    The body is sent as ``text/plain`` so a browser-style endpoint (such as
    a spreadsheet web app) accepts it without a pre-flight request. The
    response is not read; the endpoint gives no usable success signal.
    """

    def __init__(self, endpoint: str, timeout: float = DEFAULT_TIMEOUT):
        if not endpoint or not endpoint.strip():
            raise ValueError("endpoint is required and cannot be empty")
        self.endpoint = endpoint
        self.timeout = timeout

    def send(self, snapshot: Dict[str, List[Dict[str, Any]]]) -> None:
        """Send one snapshot.

        Raises:
            SyncFailure: If the request could not be delivered
        """
        try:
            requests.post(
                self.endpoint,
                data=json.dumps(snapshot),
                headers={"Content-Type": "text/plain"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SyncFailure(f"Mirror push to {self.endpoint} failed: {e}") from e


class MirrorSync:
    """Schedules a snapshot push after each store mutation."""

    def __init__(self, store: EntityStore, transport, max_workers: int = 2):
        """Subscribe to ``store`` and push through ``transport``.

        Args:
            store: Store whose mutations trigger pushes
            transport: Object with ``send(snapshot)`` raising SyncFailure
            max_workers: Background threads available for pushes
        """
        self.store = store
        self.transport = transport
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="mirror-sync"
        )
        self._pending: List[Future] = []
        self._lock = threading.Lock()
        store.add_listener(self._on_mutation)

    def _on_mutation(self, key: str) -> None:
        self.schedule()

    def schedule(self) -> Optional[Future]:
        """Queue a background push and return immediately."""
        try:
            future = self._executor.submit(self._push_quietly)
        except RuntimeError as e:
            # executor already shut down
            logger.warning("Mirror push not scheduled: %s", e)
            return None
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(future)
        return future

    def _push_quietly(self) -> bool:
        try:
            self.push()
        except Exception as e:
            logger.warning("Auto-sync failed: %s", e)
            return False
        return True

    def push(self) -> None:
        """Snapshot the store and send it on the calling thread."""
        snapshot = self.store.snapshot()
        logger.info(
            "Syncing %d users, %d inquiries, %d conveyances to mirror",
            len(snapshot["users"]),
            len(snapshot["inquiries"]),
            len(snapshot["conveyances"]),
        )
        self.transport.send(snapshot)
        logger.info("Sync request sent")

    def force_sync(self) -> bool:
        """Push now and report the outcome.

        Returns:
            True once the request has been sent

        Raises:
            SyncFailure: If the push failed
        """
        try:
            self.push()
        except SyncFailure:
            raise
        except Exception as e:
            raise SyncFailure(f"Sync failed: {e}") from e
        return True

    def flush(self, timeout: Optional[float] = None) -> None:
        """Wait for the pushes scheduled so far to finish."""
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def close(self, wait_for_pending: bool = True) -> None:
        self.store.remove_listener(self._on_mutation)
        self._executor.shutdown(wait=wait_for_pending)


def build_mirror(store: EntityStore, endpoint: Optional[str], timeout: float = DEFAULT_TIMEOUT) -> Optional[MirrorSync]:
    """Attach an HTTP mirror to ``store``, or return None when no endpoint is set."""
    if not endpoint:
        logger.debug("Mirror endpoint not configured; sync disabled")
        return None
    return MirrorSync(store, HttpTransport(endpoint, timeout))
