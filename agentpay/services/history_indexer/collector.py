"""
Event Collector.

Walks a block range in fixed-size chunks, fetching every AgentPay lifecycle
event type per chunk in parallel, then stamps all events with block
timestamps in one batched pass.
"""

import asyncio
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

from loguru import logger
from web3 import Web3

from agentpay.config.constants import DEFAULT_LOG_CHUNK_SIZE
from agentpay.models.lifecycle import EventKind, LifecycleEvent
from agentpay.services.ledger.constants import (
    EVENT_CANCELLED,
    EVENT_CREATED,
    EVENT_EXECUTED,
    EVENT_KIND_BY_NAME,
    EVENT_STATUS_UPDATED,
    EVENT_TOP_UP,
    EVENT_WITHDRAWN,
    LOG_EVENT_NAMES,
)
from agentpay.utils.security import mask_address

from .timestamps import BlockTimestampResolver


class EventSource(Protocol):
    async def get_events(
        self,
        event_name: str,
        from_block: int,
        to_block: int,
        owner: str | None = None,
    ) -> list[Any]: ...

    async def get_block_timestamp(self, block_number: int) -> int: ...


@dataclass
class CollectionResult:
    """Events gathered over a block range plus chunk bookkeeping."""

    events: list[LifecycleEvent] = field(default_factory=list)
    chunks_total: int = 0
    chunks_failed: int = 0
    failed_ranges: list[tuple[int, int]] = field(default_factory=list)


def iter_chunks(from_block: int, to_block: int, chunk_size: int) -> Iterator[tuple[int, int]]:
    """
    Split an inclusive block range into inclusive chunks, in increasing order.

    >>> list(iter_chunks(0, 20, 10))
    [(0, 9), (10, 19), (20, 20)]
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    current = from_block
    while current <= to_block:
        chunk_end = min(current + chunk_size - 1, to_block)
        yield current, chunk_end
        current = chunk_end + 1


def _hex(value: Any) -> str:
    if isinstance(value, str):
        return value
    return Web3.to_hex(value)


def decode_log(event_name: str, log: Any) -> LifecycleEvent:
    """
    Convert one decoded AgentPay log into a LifecycleEvent (timestamp 0).

    Args:
        event_name: Contract event name the log was fetched for
        log: web3 event log with args, transactionHash, blockNumber, logIndex

    Returns:
        LifecycleEvent
    """
    args = log["args"]

    if event_name == EVENT_STATUS_UPDATED:
        is_active = bool(args["isActive"])
        kind = EventKind.RESUMED if is_active else EventKind.PAUSED
    else:
        is_active = None
        kind = EVENT_KIND_BY_NAME[event_name]

    payload: dict[str, Any] = {}
    if event_name == EVENT_CREATED:
        payload = {
            "sender": args["from"],
            "recipient": args["to"],
            "amount": int(args["amount"]),
            "interval": int(args["interval"]),
        }
    elif event_name == EVENT_EXECUTED:
        payload = {
            "sender": args["from"],
            "recipient": args["to"],
            "amount": int(args["amount"]),
        }
    elif event_name in (EVENT_TOP_UP, EVENT_WITHDRAWN):
        payload = {"amount": int(args["amount"])}
    elif event_name == EVENT_STATUS_UPDATED:
        payload = {"is_active": is_active}
    elif event_name != EVENT_CANCELLED:
        raise ValueError(f"Unsupported event: {event_name}")

    return LifecycleEvent(
        agent_id=int(args["id"]),
        kind=kind,
        tx_hash=_hex(log["transactionHash"]),
        block_number=int(log["blockNumber"]),
        log_index=int(log.get("logIndex", 0) or 0),
        **payload,
    )


class EventCollector:
    """
    Collects AgentPay lifecycle events over a block range.

    Chunks are processed strictly in increasing block order. A failed chunk
    is logged and skipped; the rest of the range is still collected.
    """

    def __init__(
        self,
        ledger: EventSource,
        chunk_size: int = DEFAULT_LOG_CHUNK_SIZE,
        timestamp_resolver: BlockTimestampResolver | None = None,
    ):
        """
        Initialize collector.

        Args:
            ledger: Ledger client (get_events / get_block_timestamp)
            chunk_size: Blocks per log request
            timestamp_resolver: Resolver for block timestamps
        """
        self.ledger = ledger
        self.chunk_size = chunk_size
        self.timestamp_resolver = timestamp_resolver or BlockTimestampResolver(ledger)

    async def collect(
        self,
        from_block: int,
        to_block: int,
        owner: str | None = None,
    ) -> CollectionResult:
        """
        Collect and timestamp all lifecycle events in [from_block, to_block].

        Args:
            from_block: First block (inclusive)
            to_block: Last block (inclusive)
            owner: Optional owner filter for created/executed events

        Returns:
            CollectionResult with events in chunk order
        """
        result = CollectionResult()
        total_blocks = max(0, to_block - from_block + 1)

        logger.info(
            f"[Indexer] Collecting events {from_block} -> {to_block} "
            f"({total_blocks} blocks, owner={mask_address(owner) if owner else 'any'})"
        )

        for chunk_start, chunk_end in iter_chunks(from_block, to_block, self.chunk_size):
            result.chunks_total += 1
            try:
                chunk_events = await self._collect_chunk(chunk_start, chunk_end, owner)
            except Exception as chunk_error:
                result.chunks_failed += 1
                result.failed_ranges.append((chunk_start, chunk_end))
                logger.warning(
                    f"[Indexer] Chunk {chunk_start}-{chunk_end} error: {chunk_error}"
                )
                continue

            result.events.extend(chunk_events)

            if result.chunks_total % 10 == 0:
                progress = (chunk_end - from_block + 1) / total_blocks * 100
                logger.info(
                    f"[Indexer] Progress: {progress:.1f}% "
                    f"({len(result.events)} events)"
                )

        timestamps = await self.timestamp_resolver.resolve(
            event.block_number for event in result.events
        )
        result.events = [
            replace(event, timestamp=timestamps.get(event.block_number, 0))
            for event in result.events
        ]

        logger.info(
            f"[Indexer] Collected {len(result.events)} events in "
            f"{result.chunks_total} chunks ({result.chunks_failed} failed)"
        )
        return result

    async def _collect_chunk(
        self,
        chunk_start: int,
        chunk_end: int,
        owner: str | None,
    ) -> list[LifecycleEvent]:
        """Fetch all event kinds for one chunk concurrently."""
        batches = await asyncio.gather(
            *(
                self.ledger.get_events(event_name, chunk_start, chunk_end, owner)
                for event_name in LOG_EVENT_NAMES
            ),
            return_exceptions=True,
        )

        for batch in batches:
            if isinstance(batch, BaseException):
                raise batch

        events: list[LifecycleEvent] = []
        for event_name, logs in zip(LOG_EVENT_NAMES, batches):
            decoded = []
            for log in logs:
                try:
                    decoded.append(decode_log(event_name, log))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(
                        f"[Indexer] Skipping malformed {event_name} log "
                        f"in {chunk_start}-{chunk_end}: {e}"
                    )
            decoded.sort(key=lambda event: event.sort_key)
            events.extend(decoded)
        return events
