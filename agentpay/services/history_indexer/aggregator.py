"""
Lifecycle Aggregator.

Folds collected events, in the order received, into per-agent aggregates.
Each event kind has one handler in a dispatch table; adding a kind means
adding one handler.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from loguru import logger

from agentpay.config.constants import NATIVE_TOKEN
from agentpay.models.lifecycle import (
    EventKind,
    LifecycleAggregate,
    LifecycleEvent,
    TerminationStatus,
)


@dataclass
class FoldResult:
    """Aggregates keyed by agent id plus executed events with no known create."""

    aggregates: dict[int, LifecycleAggregate] = field(default_factory=dict)
    orphans: list[LifecycleEvent] = field(default_factory=list)


Handler = Callable[[FoldResult, LifecycleEvent], None]


def _on_created(state: FoldResult, event: LifecycleEvent) -> None:
    if event.agent_id in state.aggregates:
        logger.debug(f"[Indexer] Duplicate create for agent #{event.agent_id} ignored")
        return

    aggregate = LifecycleAggregate(
        agent_id=event.agent_id,
        owner=event.sender or "",
        recipient=event.recipient or "",
        amount=event.amount or 0,
        token=NATIVE_TOKEN,
        interval=event.interval or 0,
        created_at=event.timestamp,
    )
    aggregate.events.append(event)
    state.aggregates[event.agent_id] = aggregate


def _on_executed(state: FoldResult, event: LifecycleEvent) -> None:
    aggregate = state.aggregates.get(event.agent_id)
    if aggregate is None:
        state.orphans.append(event)
        return

    aggregate.total_executions += 1
    aggregate.total_paid += event.amount or 0
    aggregate.events.append(event)


def _on_cancelled(state: FoldResult, event: LifecycleEvent) -> None:
    aggregate = state.aggregates.get(event.agent_id)
    if aggregate is None:
        return

    aggregate.status = TerminationStatus.DELETED
    aggregate.cancelled = True
    aggregate.terminated_at = event.timestamp
    aggregate.events.append(event)


def _append_only(state: FoldResult, event: LifecycleEvent) -> None:
    aggregate = state.aggregates.get(event.agent_id)
    if aggregate is not None:
        aggregate.events.append(event)


FOLD_HANDLERS: dict[EventKind, Handler] = {
    EventKind.CREATED: _on_created,
    EventKind.EXECUTED: _on_executed,
    EventKind.CANCELLED: _on_cancelled,
    EventKind.PAUSED: _append_only,
    EventKind.RESUMED: _append_only,
    EventKind.TOPPED_UP: _append_only,
    EventKind.WITHDRAWN: _append_only,
}


class LifecycleAggregator:
    """
    Pure fold from an ordered event list to lifecycle aggregates.

    Rules:
    - created: opens an aggregate (first create wins)
    - executed: bumps count and total paid; unknown id -> orphan
    - cancelled: status deleted, authoritative
    - paused / resumed / topped_up / withdrawn: appended only

    Events for ids that were never created (other than executed) are not
    attributable to an aggregate and are dropped from the map.
    """

    def __init__(self, handlers: dict[EventKind, Handler] | None = None):
        self.handlers = handlers or FOLD_HANDLERS

    def fold(self, events: Iterable[LifecycleEvent]) -> FoldResult:
        """
        Fold events into fresh aggregates.

        Args:
            events: Events in discovery (chunk) order

        Returns:
            FoldResult with aggregates and orphan executions
        """
        state = FoldResult()
        for event in events:
            handler = self.handlers.get(event.kind)
            if handler is None:
                logger.warning(f"[Indexer] No fold handler for {event.kind}, skipping")
                continue
            handler(state, event)

        if state.orphans:
            logger.debug(
                f"[Indexer] {len(state.orphans)} executed events without a create"
            )
        return state
