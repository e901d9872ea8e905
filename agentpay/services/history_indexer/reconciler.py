"""
Snapshot Reconciler.

Overlays current ledger truth onto event-derived aggregates and derives the
termination status.
"""

import asyncio
import time
from collections.abc import Iterable
from typing import Protocol

from loguru import logger

from agentpay.config.constants import DEFAULT_SNAPSHOT_CONCURRENCY
from agentpay.models.agent import ScheduledPaymentSnapshot
from agentpay.models.lifecycle import LifecycleAggregate, TerminationStatus


class SnapshotSource(Protocol):
    async def get_payment(self, agent_id: int) -> ScheduledPaymentSnapshot: ...


def classify_termination(
    aggregate: LifecycleAggregate,
    snapshot: ScheduledPaymentSnapshot,
    now: int,
) -> tuple[TerminationStatus, int | None]:
    """
    Derive the termination status of an agent.

    Evaluated in fixed priority order:
    1. A cancel event was seen -> deleted (never downgraded)
    2. Inactive with an end date that has passed -> completed at end date
    3. Inactive with both balances zero -> deleted
    4. Anything else -> active

    Rule 3 is a heuristic: the ledger can deactivate and drain an agent
    without emitting a cancel event, and an agent that simply ran out of
    funds while paused is indistinguishable from one that was deleted.

    Args:
        aggregate: Event-derived aggregate
        snapshot: Current ledger snapshot for the same id
        now: Current unix time

    Returns:
        (status, terminated_at)
    """
    if aggregate.cancelled or aggregate.status == TerminationStatus.DELETED:
        return TerminationStatus.DELETED, aggregate.terminated_at

    if not snapshot.is_active and snapshot.end_date > 0 and now >= snapshot.end_date:
        return TerminationStatus.COMPLETED, snapshot.end_date

    if not snapshot.is_active and snapshot.balance == 0 and snapshot.token_balance == 0:
        return TerminationStatus.DELETED, aggregate.terminated_at

    return TerminationStatus.ACTIVE, None


class SnapshotReconciler:
    """Merges snapshots into aggregates with bounded concurrency."""

    def __init__(
        self,
        ledger: SnapshotSource,
        concurrency: int = DEFAULT_SNAPSHOT_CONCURRENCY,
    ):
        self.ledger = ledger
        self.concurrency = concurrency

    async def reconcile(
        self,
        aggregates: Iterable[LifecycleAggregate],
        now: int | None = None,
    ) -> list[LifecycleAggregate]:
        """
        Enrich aggregates in place from their current snapshots.

        Aggregates already deleted by a cancel event are not fetched. A failed
        snapshot read is logged and leaves that aggregate as folded.

        Args:
            aggregates: Aggregates from the fold
            now: Unix time used for end-date checks (defaults to wall clock)

        Returns:
            The same aggregates, as a list
        """
        aggregates = list(aggregates)
        now = int(time.time()) if now is None else now
        semaphore = asyncio.Semaphore(self.concurrency)

        async def enrich(aggregate: LifecycleAggregate) -> bool:
            async with semaphore:
                try:
                    snapshot = await self.ledger.get_payment(aggregate.agent_id)
                except Exception as e:
                    logger.warning(
                        f"[Indexer] Snapshot for agent #{aggregate.agent_id} unavailable: {e}"
                    )
                    return False

            aggregate.description = snapshot.description or f"Agent #{aggregate.agent_id}"
            aggregate.token = snapshot.token
            aggregate.recipient = snapshot.recipient
            aggregate.amount = snapshot.amount
            aggregate.status, aggregate.terminated_at = classify_termination(
                aggregate, snapshot, now
            )
            return True

        pending = [
            aggregate
            for aggregate in aggregates
            if aggregate.status != TerminationStatus.DELETED
        ]
        for aggregate in aggregates:
            if aggregate.status == TerminationStatus.DELETED and not aggregate.description:
                aggregate.description = f"Agent #{aggregate.agent_id}"

        results = await asyncio.gather(*(enrich(aggregate) for aggregate in pending))

        failed = results.count(False)
        logger.info(
            f"[Indexer] Reconciled {len(pending) - failed}/{len(pending)} agents "
            f"({len(aggregates) - len(pending)} already deleted)"
        )
        return aggregates
