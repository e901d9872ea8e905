"""
Result models for keeper ticks, executions and indexer runs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from agentpay.models.lifecycle import LifecycleAggregate, LifecycleEvent


class KeeperState(str, Enum):
    """Per-agent outcome of one keeper tick."""

    SKIPPED = "skipped"
    WAITING = "waiting"
    DUE = "due"
    EXECUTED = "executed"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    EXECUTION_FAILED = "execution_failed"


@dataclass(frozen=True)
class ExecutionReceipt:
    """Outcome of a mined execution transaction."""

    success: bool
    tx_hash: str
    block_number: int | None = None
    gas_used: int | None = None
    revert_reason: str | None = None


@dataclass(frozen=True)
class ExecutionFailure:
    """One failed agent within a tick."""

    agent_id: int
    reason: str


@dataclass
class TickReport:
    """Summary of one keeper tick."""

    tick_timestamp: int
    scanned_count: int = 0
    due_count: int = 0
    executed_count: int = 0
    insufficient_count: int = 0
    failures: list[ExecutionFailure] = field(default_factory=list)
    states: dict[int, KeeperState] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Structured payload for the per-tick log line."""
        return {
            "tick_timestamp": self.tick_timestamp,
            "scanned_count": self.scanned_count,
            "due_count": self.due_count,
            "executed_count": self.executed_count,
            "insufficient_count": self.insufficient_count,
            "failures": [
                {"id": failure.agent_id, "reason": failure.reason}
                for failure in self.failures
            ],
        }


@dataclass
class HistoryResult:
    """Output of one history indexer run."""

    events: list[LifecycleEvent] = field(default_factory=list)
    aggregates: list[LifecycleAggregate] = field(default_factory=list)
    orphan_events: list[LifecycleEvent] = field(default_factory=list)
    error: str | None = None
    from_block: int | None = None
    to_block: int | None = None
    chunks_total: int = 0
    chunks_failed: int = 0

    def as_dict(self) -> dict[str, Any]:
        """JSON-serializable output contract."""
        return {
            "events": [event.as_dict() for event in self.events],
            "aggregates": [aggregate.as_dict() for aggregate in self.aggregates],
            "orphan_events": [event.as_dict() for event in self.orphan_events],
            "error": self.error,
            "from_block": self.from_block,
            "to_block": self.to_block,
            "chunks_total": self.chunks_total,
            "chunks_failed": self.chunks_failed,
        }
