"""Pipeline modules.

- reconciler: Joins the flow table with geometry sources
- worker: Background thread running one reconciliation
- store: Single-flight, cached access to the result
"""

from flowmap.pipeline.reconciler import FlowReconciler
from flowmap.pipeline.worker import FlowDataWorker, LoadRequest, DataLoaded, DataError
from flowmap.pipeline.store import FlowDataStore, FlowDataError

__all__ = [
    "FlowReconciler",
    "FlowDataWorker",
    "LoadRequest",
    "DataLoaded",
    "DataError",
    "FlowDataStore",
    "FlowDataError",
]
