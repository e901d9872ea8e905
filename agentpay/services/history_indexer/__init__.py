"""
History indexer.

Rebuilds per-agent lifecycle history from AgentPay events.
"""

from .aggregator import FoldResult, LifecycleAggregator
from .collector import CollectionResult, EventCollector, decode_log, iter_chunks
from .core import HistoryIndexerService
from .reconciler import SnapshotReconciler, classify_termination
from .timestamps import BlockTimestampResolver

__all__ = [
    "BlockTimestampResolver",
    "CollectionResult",
    "EventCollector",
    "FoldResult",
    "HistoryIndexerService",
    "LifecycleAggregator",
    "SnapshotReconciler",
    "classify_termination",
    "decode_log",
    "iter_chunks",
]
