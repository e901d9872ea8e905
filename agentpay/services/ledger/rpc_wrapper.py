"""
Ledger RPC call helpers.

Every contract and node call goes through `with_timeout`; idempotent reads
additionally go through `rpc_call_with_retry`.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from loguru import logger

from agentpay.config.constants import (
    BLOCKCHAIN_MAX_RETRIES,
    BLOCKCHAIN_RETRY_DELAY_BASE,
    BLOCKCHAIN_TIMEOUT,
)
from agentpay.utils.exceptions import LedgerFetchError

T = TypeVar("T")


class BlockchainTimeoutError(LedgerFetchError):
    """Ledger call exceeded its timeout."""
    pass


class BlockchainError(LedgerFetchError):
    """Ledger read still failing after every retry."""
    pass


async def with_timeout(
    coro: Awaitable[T],
    timeout: float = BLOCKCHAIN_TIMEOUT,
    operation_name: str = "RPC call",
) -> T:
    """
    Await a ledger call, bounded by `timeout` seconds.

    Raises:
        BlockchainTimeoutError: The call did not finish in time
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except TimeoutError as e:
        error_msg = f"[Ledger] {operation_name} timed out after {timeout}s"
        logger.error(error_msg)
        raise BlockchainTimeoutError(error_msg) from e


def retry_delay(attempt: int) -> float:
    """Backoff before the next attempt: 1s, 2s, 4s..."""
    return BLOCKCHAIN_RETRY_DELAY_BASE ** attempt


async def rpc_call_with_retry(
    coro_factory: Callable[[], Awaitable[Any]],
    max_retries: int = BLOCKCHAIN_MAX_RETRIES,
    timeout: float = BLOCKCHAIN_TIMEOUT,
    operation_name: str = "RPC call",
    non_retryable: tuple[type[BaseException], ...] = (),
) -> Any:
    """
    Run an idempotent ledger read, retrying transient failures.

    Args:
        coro_factory: Builds a fresh coroutine for each attempt
        max_retries: Attempts in total
        timeout: Timeout per attempt in seconds
        operation_name: Label used in log lines
        non_retryable: Errors that are deterministic for this read (a
            contract revert, say); raised on the first occurrence

    Raises:
        BlockchainTimeoutError: The last attempt timed out
        BlockchainError: Every attempt failed
    """
    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            result = await with_timeout(
                coro_factory(),
                timeout=timeout,
                operation_name=operation_name,
            )
        except Exception as e:
            if non_retryable and isinstance(e, non_retryable):
                raise
            last_error = e
            if attempt + 1 < max_retries:
                delay = retry_delay(attempt)
                logger.warning(
                    f"[Ledger] {operation_name} attempt {attempt + 1}/{max_retries} "
                    f"failed: {e}; retrying in {delay}s"
                )
                await asyncio.sleep(delay)
            continue

        if attempt > 0:
            logger.info(f"[Ledger] {operation_name} recovered on attempt {attempt + 1}")
        return result

    logger.error(f"[Ledger] {operation_name} failed after {max_retries} attempts: {last_error}")
    if isinstance(last_error, BlockchainTimeoutError):
        raise last_error
    raise BlockchainError(
        f"{operation_name} failed after {max_retries} attempts: {last_error}"
    ) from last_error
