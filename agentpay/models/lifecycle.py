"""
Lifecycle models.

Events read from the AgentPay log and the per-agent aggregates folded from them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventKind(str, Enum):
    """Kinds of lifecycle events emitted by AgentPay."""

    CREATED = "created"
    EXECUTED = "executed"
    CANCELLED = "cancelled"
    PAUSED = "paused"
    RESUMED = "resumed"
    TOPPED_UP = "topped_up"
    WITHDRAWN = "withdrawn"


class TerminationStatus(str, Enum):
    """
    Termination status of an agent.

    Always recomputed from events and the current snapshot, never stored.
    """

    ACTIVE = "active"
    COMPLETED = "completed"
    DELETED = "deleted"


@dataclass(frozen=True)
class LifecycleEvent:
    """One AgentPay log entry."""

    agent_id: int
    kind: EventKind
    tx_hash: str
    block_number: int
    log_index: int = 0
    timestamp: int = 0
    amount: int | None = None
    sender: str | None = None
    recipient: str | None = None
    interval: int | None = None
    is_active: bool | None = None

    @property
    def sort_key(self) -> tuple[int, int]:
        """Chain order of the event."""
        return (self.block_number, self.log_index)

    def as_dict(self) -> dict[str, Any]:
        """JSON-safe representation (amounts as decimal strings)."""
        data: dict[str, Any] = {
            "agent_id": self.agent_id,
            "type": self.kind.value,
            "tx_hash": self.tx_hash,
            "block_number": self.block_number,
            "log_index": self.log_index,
            "timestamp": self.timestamp,
        }
        if self.amount is not None:
            data["amount"] = str(self.amount)
        if self.sender is not None:
            data["from"] = self.sender
        if self.recipient is not None:
            data["to"] = self.recipient
        if self.interval is not None:
            data["interval"] = self.interval
        if self.is_active is not None:
            data["is_active"] = self.is_active
        return data


@dataclass
class LifecycleAggregate:
    """
    Derived summary of one agent's history.

    Rebuilt on every indexer run. total_executions and total_paid always
    equal the count and sum of the executed events folded for this agent.
    """

    agent_id: int
    owner: str
    recipient: str
    amount: int
    token: str
    interval: int
    description: str = ""
    created_at: int = 0
    terminated_at: int | None = None
    status: TerminationStatus = TerminationStatus.ACTIVE
    total_executions: int = 0
    total_paid: int = 0
    events: list[LifecycleEvent] = field(default_factory=list)
    cancelled: bool = False

    def as_dict(self) -> dict[str, Any]:
        """JSON-safe representation (amounts as decimal strings)."""
        return {
            "id": self.agent_id,
            "description": self.description,
            "from": self.owner,
            "to": self.recipient,
            "amount": str(self.amount),
            "token": self.token,
            "interval": self.interval,
            "created_at": self.created_at,
            "terminated_at": self.terminated_at,
            "status": self.status.value,
            "total_executions": self.total_executions,
            "total_paid": str(self.total_paid),
            "events": [event.as_dict() for event in self.events],
        }
