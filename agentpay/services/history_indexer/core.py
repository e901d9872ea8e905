"""
History Indexer Service.

Rebuilds the AgentPay audit history on demand: collect events, fold them into
aggregates, reconcile against current snapshots. Nothing is cached between
calls; every invocation re-derives from the ledger.
"""

import time
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

from loguru import logger

from agentpay.config.settings import Settings
from agentpay.models.lifecycle import LifecycleEvent
from agentpay.models.reports import HistoryResult
from agentpay.services.ledger.constants import EVENT_EXECUTED
from agentpay.utils.security import mask_address

from .aggregator import LifecycleAggregator
from .collector import EventCollector, decode_log, iter_chunks
from .reconciler import SnapshotReconciler
from .timestamps import BlockTimestampResolver


def _newest_first(event: LifecycleEvent) -> tuple[int, int, int]:
    return (event.timestamp, event.block_number, event.log_index)


class HistoryIndexerService:
    """
    Event-sourced history of AgentPay agents.

    Composes EventCollector -> LifecycleAggregator -> SnapshotReconciler.
    """

    def __init__(self, ledger: Any, settings: Settings):
        """
        Initialize history indexer.

        Args:
            ledger: LedgerClient (or anything with the same read methods)
            settings: Application settings
        """
        self.ledger = ledger
        self.settings = settings
        self.timestamps = BlockTimestampResolver(
            ledger, concurrency=settings.timestamp_concurrency
        )
        self.collector = EventCollector(
            ledger,
            chunk_size=settings.log_chunk_size,
            timestamp_resolver=self.timestamps,
        )
        self.aggregator = LifecycleAggregator()
        self.reconciler = SnapshotReconciler(
            ledger, concurrency=settings.snapshot_concurrency
        )

    async def _resolve_range(
        self,
        from_block: int | None,
        to_block: int | None,
    ) -> tuple[int, int]:
        """Fill in range defaults; raises if the ledger is unreachable."""
        latest = await self.ledger.get_block_number()
        start = self.settings.deploy_block if from_block is None else from_block
        end = latest if to_block is None else min(to_block, latest)
        return start, end

    async def build_history(
        self,
        owner: str | None = None,
        from_block: int | None = None,
        to_block: int | None = None,
        now: int | None = None,
    ) -> HistoryResult:
        """
        Build the full event timeline and lifecycle aggregates.

        Args:
            owner: Restrict the history to agents created by this owner
            from_block: First block (defaults to DEPLOY_BLOCK)
            to_block: Last block (defaults to the latest block)
            now: Unix time for termination checks (defaults to wall clock)

        Returns:
            HistoryResult. Partial when some chunks failed; `error` is set
            only when the ledger could not be reached at all.
        """
        try:
            start, end = await self._resolve_range(from_block, to_block)
        except Exception as e:
            logger.error(f"[Indexer] Ledger unreachable: {e}")
            return HistoryResult(
                error=f"Failed to fetch history: {e}",
                from_block=from_block,
                to_block=to_block,
            )

        logger.info(
            f"[Indexer] Building history for blocks {start}-{end}"
            + (f", owner {mask_address(owner)}" if owner else "")
        )

        collected = await self.collector.collect(start, end, owner=owner)
        folded = self.aggregator.fold(collected.events)
        aggregates = await self.reconciler.reconcile(
            folded.aggregates.values(),
            now=int(time.time()) if now is None else now,
        )

        for aggregate in aggregates:
            aggregate.events.sort(key=_newest_first, reverse=True)
        aggregates.sort(key=lambda a: (a.created_at, a.agent_id), reverse=True)

        # Timeline holds only events attached to an aggregate or kept as orphans
        timeline = [event for aggregate in aggregates for event in aggregate.events]
        timeline.extend(folded.orphans)
        events = sorted(timeline, key=_newest_first, reverse=True)

        logger.success(
            f"[Indexer] History built: {len(events)} events, "
            f"{len(aggregates)} agents, {len(folded.orphans)} orphans"
        )

        return HistoryResult(
            events=events,
            aggregates=aggregates,
            orphan_events=sorted(folded.orphans, key=_newest_first, reverse=True),
            from_block=start,
            to_block=end,
            chunks_total=collected.chunks_total,
            chunks_failed=collected.chunks_failed,
        )

    async def _scan_executed(
        self,
        fetch: Callable[[int, int], Awaitable[list[Any]]],
        from_block: int,
        to_block: int,
    ) -> list[LifecycleEvent]:
        """Chunked scan of executed events through `fetch(start, end)`."""
        events: list[LifecycleEvent] = []
        for chunk_start, chunk_end in iter_chunks(
            from_block, to_block, self.settings.log_chunk_size
        ):
            try:
                logs = await fetch(chunk_start, chunk_end)
            except Exception as e:
                logger.warning(f"[Indexer] Chunk {chunk_start}-{chunk_end} error: {e}")
                continue
            events.extend(decode_log(EVENT_EXECUTED, log) for log in logs)
        return events

    async def get_execution_history(
        self,
        agent_id: int,
        from_block: int | None = None,
        to_block: int | None = None,
    ) -> list[LifecycleEvent]:
        """
        Executions of a single agent, newest block first.

        Args:
            agent_id: Scheduled payment ID
            from_block: First block (defaults to DEPLOY_BLOCK)
            to_block: Last block (defaults to the latest block)

        Returns:
            Timestamped executed events
        """
        start, end = await self._resolve_range(from_block, to_block)
        events = await self._scan_executed(
            lambda a, b: self.ledger.get_execution_events(agent_id, a, b),
            start,
            end,
        )

        timestamps = await self.timestamps.resolve(e.block_number for e in events)
        events = [
            replace(e, timestamp=timestamps.get(e.block_number, 0)) for e in events
        ]
        events.sort(key=lambda e: e.sort_key, reverse=True)

        logger.info(f"[Indexer] Agent #{agent_id}: {len(events)} executions")
        return events

    async def get_paid_totals(
        self,
        owner: str,
        from_block: int | None = None,
        to_block: int | None = None,
    ) -> dict[int, int]:
        """
        Total amount paid per agent for one owner.

        Args:
            owner: Owner address
            from_block: First block (defaults to DEPLOY_BLOCK)
            to_block: Last block (defaults to the latest block)

        Returns:
            Mapping agent id -> total paid (wei)
        """
        start, end = await self._resolve_range(from_block, to_block)
        events = await self._scan_executed(
            lambda a, b: self.ledger.get_events(EVENT_EXECUTED, a, b, owner),
            start,
            end,
        )

        totals: dict[int, int] = defaultdict(int)
        for event in events:
            totals[event.agent_id] += event.amount or 0
        return dict(totals)
