"""
Block Timestamp Resolver.

Resolves wall-clock timestamps for a set of block numbers, requesting each
distinct block once.
"""

import asyncio
from collections.abc import Iterable
from typing import Protocol

from loguru import logger


class BlockTimestampSource(Protocol):
    async def get_block_timestamp(self, block_number: int) -> int: ...


class BlockTimestampResolver:
    """Batched, deduplicated block timestamp lookups."""

    def __init__(self, ledger: BlockTimestampSource, concurrency: int = 8):
        """
        Initialize resolver.

        Args:
            ledger: Anything exposing get_block_timestamp
            concurrency: Maximum parallel block requests
        """
        self.ledger = ledger
        self.concurrency = concurrency

    async def resolve(self, block_numbers: Iterable[int]) -> dict[int, int]:
        """
        Resolve timestamps for the given blocks.

        Blocks whose lookup fails are left out of the result; callers treat
        a missing entry as timestamp 0.

        Args:
            block_numbers: Block numbers, duplicates allowed

        Returns:
            Mapping block number -> unix timestamp
        """
        unique_blocks = sorted(set(block_numbers))
        if not unique_blocks:
            return {}

        semaphore = asyncio.Semaphore(self.concurrency)

        async def fetch(block_number: int) -> tuple[int, int | None]:
            async with semaphore:
                try:
                    return block_number, await self.ledger.get_block_timestamp(block_number)
                except Exception as e:
                    logger.warning(
                        f"[Indexer] Timestamp for block {block_number} unavailable: {e}"
                    )
                    return block_number, None

        results = await asyncio.gather(*(fetch(n) for n in unique_blocks))
        timestamps = {
            block_number: timestamp
            for block_number, timestamp in results
            if timestamp is not None
        }

        logger.debug(
            f"[Indexer] Resolved {len(timestamps)}/{len(unique_blocks)} block timestamps"
        )
        return timestamps
