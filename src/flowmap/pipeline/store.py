"""Single-flight access to the reconciled flow features.

FlowDataStore is the one object the application asks for flow features.
The first request starts a FlowDataWorker; every later request, whether
the run is still in flight or long finished, shares the same future. The
outcome (features or failure) is cached for the life of the store and the
reconciliation is never retried.
"""

import asyncio
import logging
import queue
import threading
from concurrent.futures import Future
from typing import Callable, Optional, Tuple, TYPE_CHECKING

from flowmap.data.models import FlowFeature
from flowmap.pipeline.reconciler import FlowReconciler
from flowmap.pipeline.worker import DataError, DataLoaded, FlowDataWorker, LoadRequest, WorkerMessage

if TYPE_CHECKING:
    from flowmap.schemas import InternalConfig

__all__ = ['FlowDataStore', 'FlowDataError']

logger = logging.getLogger(__name__)

Subscriber = Callable[[Optional[Tuple[FlowFeature, ...]], Optional[str]], None]


class FlowDataError(RuntimeError):
    """Raised to consumers when the reconciliation failed.

    The message is the worker's failure reason. Every consumer of a store
    receives the same instance.
    """
    pass


class FlowDataStore:
    """Runs the reconciliation at most once and shares its outcome.

    **Lifecycle:**

    1. Idle: nothing requested yet.
    2. Loading: first request() started the worker; waiters block on the
       shared future.
    3. Done: the future holds the feature tuple or a FlowDataError. Both
       are final; a new store (or process) is needed to try again.

    **Thread Safety:** request(), get(), subscribe() may be called from any
    thread. A lock guards the "started" flag so only the first caller
    starts the worker.

    Example usage::

        store = FlowDataStore(config)
        features = store.get()            # blocks until loaded

        future = store.request()          # non-blocking
        store.subscribe(lambda data, error: print(len(data or ()), error))

        features = await store.aget()     # from asyncio code
    """

    def __init__(self, config: "InternalConfig", reconciler: Optional[FlowReconciler] = None):
        """Initialize store.

        Parameters
        ----------
        config : InternalConfig
            Runtime configuration. ``table_path`` is required.

        reconciler : FlowReconciler, optional
            Created from ``config`` if not provided. Allows injection for testing.

        Raises
        ------
        ValueError
            If ``config.table_path`` is not set.
        """
        if not config.table_path:
            raise ValueError("table_path is required")

        self.config = config
        self.reconciler = reconciler or FlowReconciler(config)

        self._lock = threading.Lock()
        self._started = False
        self._future: Future = Future()
        self._inbox: queue.Queue = queue.Queue(maxsize=1)
        self.worker: Optional[FlowDataWorker] = None

    # ========================================================================
    # Requests
    # ========================================================================

    def request(self) -> Future:
        """Return the shared future, starting the worker on first call.

        Returns
        -------
        concurrent.futures.Future
            Resolves to ``tuple[FlowFeature, ...]`` or raises FlowDataError.
            The same future is returned on every call.
        """
        with self._lock:
            if not self._started:
                self._started = True
                self._start_worker()
        return self._future

    def get(self, timeout: Optional[float] = None) -> Tuple[FlowFeature, ...]:
        """Block until the features are available and return them.

        Parameters
        ----------
        timeout : float, optional
            Seconds to wait. None waits indefinitely.

        Raises
        ------
        FlowDataError
            If the reconciliation failed (same instance for every caller).
        concurrent.futures.TimeoutError
            If ``timeout`` elapsed first. The run keeps going.
        """
        return self.request().result(timeout=timeout)

    async def aget(self) -> Tuple[FlowFeature, ...]:
        """Await the features from asyncio code."""
        return await asyncio.wrap_future(self.request())

    def subscribe(self, callback: Subscriber) -> None:
        """Call ``callback(features, error)`` once the outcome is known.

        On success ``error`` is None; on failure ``features`` is None and
        ``error`` is the failure message. If the store is already done the
        callback runs immediately in the calling thread.
        """
        def _notify(future: Future):
            error = future.exception()
            if error is None:
                callback(future.result(), None)
            else:
                callback(None, str(error))

        self.request().add_done_callback(_notify)

    # ========================================================================
    # State
    # ========================================================================

    @property
    def started(self) -> bool:
        return self._started

    def loading(self) -> bool:
        """True while the worker is running."""
        return self._started and not self._future.done()

    def done(self) -> bool:
        """True once the outcome (success or failure) is cached."""
        return self._future.done()

    # ========================================================================
    # Worker plumbing
    # ========================================================================

    def _start_worker(self):
        # Must run under self._lock, before the future is handed out
        self._future.set_running_or_notify_cancel()

        try:
            self.worker = FlowDataWorker(
                inbox=self._inbox,
                reply=self._on_message,
                reconciler=self.reconciler,
            )
            self.worker.start()

            logger.info("Requesting flow data from worker...")
            self._inbox.put(LoadRequest(self.config.table_path, tuple(self.config.sources)))
        except Exception as e:
            # The future is shared; it must settle even if no worker runs
            logger.exception("Could not start flow data worker")
            self._fail(f"Could not start flow data worker: {e}", cause=e)

    def _fail(self, message: str, cause: Optional[BaseException] = None):
        if self._future.done():
            return
        error = FlowDataError(message)
        error.__cause__ = cause
        self._future.set_exception(error)

    def _on_message(self, message: WorkerMessage):
        """Settle the shared future from the worker's reply."""
        if isinstance(message, DataLoaded):
            logger.info("Flow data loaded from worker: %d features", len(message.payload))
            self._future.set_result(message.payload)
        elif isinstance(message, DataError):
            logger.error("Error from worker: %s", message.message)
            self._fail(message.message, cause=message.cause)
        else:
            logger.error("Unexpected worker message: %r", message)
            self._fail(f"Unexpected worker message: {message!r}")
