"""
Domain models.

Plain dataclasses: nothing here is persisted, every value is re-derived
from the ledger on each run.
"""

from agentpay.models.agent import DueCandidate, ScheduledPaymentSnapshot
from agentpay.models.lifecycle import (
    EventKind,
    LifecycleAggregate,
    LifecycleEvent,
    TerminationStatus,
)
from agentpay.models.reports import (
    ExecutionFailure,
    ExecutionReceipt,
    HistoryResult,
    KeeperState,
    TickReport,
)


__all__ = [
    "DueCandidate",
    "EventKind",
    "ExecutionFailure",
    "ExecutionReceipt",
    "HistoryResult",
    "KeeperState",
    "LifecycleAggregate",
    "LifecycleEvent",
    "ScheduledPaymentSnapshot",
    "TerminationStatus",
    "TickReport",
]
