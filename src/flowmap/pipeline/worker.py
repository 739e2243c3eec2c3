"""Background worker that runs one reconciliation off the calling thread.

The worker speaks a tiny typed protocol:

- request: ``LoadRequest`` read from its inbox queue
- response: exactly one ``DataLoaded`` or ``DataError`` passed to ``reply``

After replying the thread exits; a worker is never reused.
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple, Union, TYPE_CHECKING

from flowmap.data.models import FlowFeature, GeometrySourceConfig

if TYPE_CHECKING:
    from flowmap.pipeline.reconciler import FlowReconciler

__all__ = ['FlowDataWorker', 'LoadRequest', 'DataLoaded', 'DataError', 'WorkerMessage']

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadRequest:
    """Ask the worker to reconcile ``table_path`` with ``sources``."""
    table_path: str
    sources: Tuple[GeometrySourceConfig, ...] = ()


@dataclass(frozen=True)
class DataLoaded:
    """Successful reconciliation."""
    payload: Tuple[FlowFeature, ...]


@dataclass(frozen=True)
class DataError:
    """Failed reconciliation. ``message`` is the underlying reason."""
    message: str
    cause: Optional[BaseException] = field(default=None, compare=False)


WorkerMessage = Union[DataLoaded, DataError]


class FlowDataWorker(threading.Thread):
    """Runs a single reconciliation request in a daemon thread.

    Example usage (typically called by FlowDataStore)::

        inbox = queue.Queue(maxsize=1)
        worker = FlowDataWorker(inbox, reply=handle_message, reconciler=reconciler)
        worker.start()
        inbox.put(LoadRequest(table_path, tuple(sources)))
    """

    def __init__(self, inbox: queue.Queue,
                 reply: Callable[[WorkerMessage], None],
                 reconciler: "FlowReconciler",
                 name: str = "FlowDataWorker"):
        """Initialize worker.

        Parameters
        ----------
        inbox : queue.Queue
            Queue the LoadRequest is read from. Only the first item is used.

        reply : callable
            Called once with DataLoaded or DataError, from the worker thread.

        reconciler : FlowReconciler
            Performs the actual work.

        name : str, optional
            Thread name for logging (default: "FlowDataWorker").
        """
        super().__init__(daemon=True, name=name)
        self.inbox = inbox
        self.reply = reply
        self.reconciler = reconciler

    def handle(self, request) -> WorkerMessage:
        """Execute one request and build the response message. Never raises."""
        if not isinstance(request, LoadRequest):
            return DataError(f"Unknown request: {request!r}")

        try:
            features = self.reconciler.reconcile(request.table_path, request.sources)
        except Exception as e:
            logger.exception("Error loading flow data from %s", request.table_path)
            return DataError(str(e) or type(e).__name__, cause=e)

        return DataLoaded(tuple(features))

    def run(self):
        """Read one request, reply once, exit.

        Notes
        -----
        Called automatically by thread.start(). Do not call directly.
        """
        request = self.inbox.get()
        message: WorkerMessage = DataError("Flow data worker stopped before replying")
        try:
            message = self.handle(request)
        finally:
            # Always reply, even if handle() was interrupted
            self.inbox.task_done()
            self._deliver(message)

        logger.debug("%s delivered %s and is exiting", self.name, type(message).__name__)

    def _deliver(self, message: WorkerMessage):
        try:
            self.reply(message)
        except Exception as e:
            logger.exception("Reply handler failed for %s", type(message).__name__)
            if isinstance(message, DataLoaded):
                self.reply(DataError(f"Could not deliver flow data: {e}", cause=e))
