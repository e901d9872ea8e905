"""
Keeper Scheduler.

Long-running loop that scans every AgentPay id, finds due agents and submits
their executions. Each tick is a pure function of the ledger state and the
wall clock; the only state kept between ticks is for health reporting.
"""

import asyncio
import json
import time
from typing import Any

from loguru import logger

from agentpay.config.constants import (
    HEALTH_STALE_TICK_FACTOR,
    HEALTH_STALE_TICK_SLACK_SECONDS,
    RATE_LIMIT_MARKERS,
)
from agentpay.config.settings import Settings
from agentpay.models.agent import DueCandidate
from agentpay.models.reports import ExecutionFailure, KeeperState, TickReport
from agentpay.utils.exceptions import (
    GasEstimationError,
    SubmissionError,
    must_log,
    must_raise,
)

from .classifier import classify_entity, is_underfunded
from .executor import KeeperExecutor


def is_rate_limited(error: BaseException | str) -> bool:
    """True if an RPC error (or its message) reports HTTP 429."""
    message = str(error)
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


class KeeperScheduler:
    """
    Keeper loop over all scheduled payments.

    Per tick:
    - read nextScheduledPaymentId
    - for each id, sequentially: read snapshot, classify, execute if due
      and funded
    - log a structured TickReport

    Errors for one id never stop the tick.
    """

    def __init__(self, ledger: Any, executor: KeeperExecutor, settings: Settings):
        """
        Initialize scheduler.

        Args:
            ledger: LedgerClient
            executor: Executor used for due agents
            settings: Application settings
        """
        self.ledger = ledger
        self.executor = executor
        self.settings = settings

        self.tick_count = 0
        self.last_report: TickReport | None = None
        self.last_tick_at: float | None = None
        self.last_error: str | None = None
        self.started_at: float | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def tick(self, now: int | None = None) -> TickReport:
        """
        Run one scan over all agents.

        Args:
            now: Tick time (defaults to wall clock)

        Returns:
            TickReport

        Raises:
            Exception: Only when the id count itself cannot be read, or on
                configuration errors
        """
        now = int(time.time()) if now is None else now
        report = TickReport(tick_timestamp=now)

        count = await self.ledger.get_payment_count()

        for agent_id in range(count):
            report.scanned_count += 1
            try:
                report.states[agent_id] = await self._process_agent(agent_id, now, report)
            except (GasEstimationError, SubmissionError) as e:
                report.states[agent_id] = KeeperState.EXECUTION_FAILED
                report.failures.append(ExecutionFailure(agent_id, e.reason))
            except Exception as e:
                if must_raise(e):
                    raise
                if must_log(e):
                    logger.error(f"[Keeper] Error checking agent #{agent_id}: {e}")
                else:
                    logger.exception(f"[Keeper] Unexpected error for agent #{agent_id}: {e}")
                report.failures.append(ExecutionFailure(agent_id, str(e)))

        return report

    async def _process_agent(
        self,
        agent_id: int,
        now: int,
        report: TickReport,
    ) -> KeeperState:
        snapshot = await self.ledger.get_payment(agent_id)
        state = classify_entity(snapshot, now)
        if state != KeeperState.DUE:
            return state

        report.due_count += 1
        logger.info(
            f"[Keeper] Agent #{agent_id} is due "
            f"(next execution {snapshot.next_execution}, now {now})"
        )
        return await self._handle_due(DueCandidate(agent_id, snapshot), report)

    async def _handle_due(self, candidate: DueCandidate, report: TickReport) -> KeeperState:
        """Balance gate, then execute."""
        snapshot = candidate.snapshot
        if is_underfunded(snapshot):
            report.insufficient_count += 1
            logger.warning(
                f"[Keeper] Agent #{candidate.agent_id} insufficient balance: "
                f"{snapshot.available_balance} < {snapshot.amount}"
            )
            return KeeperState.INSUFFICIENT_BALANCE

        await self.executor.execute(candidate.agent_id)
        report.executed_count += 1
        return KeeperState.EXECUTED

    def _record(self, report: TickReport) -> None:
        self.tick_count += 1
        self.last_report = report
        self.last_tick_at = time.time()
        self.last_error = None

        payload = report.as_dict()
        logger.bind(tick=payload).info(
            f"[Keeper] Tick {self.tick_count}: {json.dumps(payload)}"
        )

    async def run_forever(self) -> None:
        """
        Tick until stopped.

        Sleeps KEEPER_POLL_INTERVAL between ticks, or RATE_LIMIT_BACKOFF after
        the RPC reports rate limiting.
        """
        self._running = True
        self.started_at = time.time()
        logger.info(
            f"[Keeper] Loop started (interval {self.settings.keeper_poll_interval}s)"
        )

        try:
            while self._running:
                rate_limited = False
                try:
                    report = await self.tick()
                    self._record(report)
                    rate_limited = any(is_rate_limited(f.reason) for f in report.failures)
                except Exception as e:
                    if must_raise(e):
                        raise
                    self.last_error = str(e)
                    logger.error(f"[Keeper] Loop error: {e}")
                    rate_limited = is_rate_limited(e)

                delay = self.settings.keeper_poll_interval
                if rate_limited:
                    delay = self.settings.rate_limit_backoff
                    logger.warning(f"[Keeper] Rate limited, waiting {delay}s")

                if self._running:
                    await asyncio.sleep(delay)
        finally:
            self._running = False
            logger.info("[Keeper] Loop stopped")

    def stop(self) -> None:
        """Ask the loop to exit after the current tick."""
        self._running = False

    def is_stale(self, now: float | None = None) -> bool:
        """
        True if a tick has completed before but none recently.

        Limit: HEALTH_STALE_TICK_FACTOR poll intervals plus slack.
        """
        if self.last_tick_at is None:
            return False
        now = time.time() if now is None else now
        limit = (
            self.settings.keeper_poll_interval * HEALTH_STALE_TICK_FACTOR
            + HEALTH_STALE_TICK_SLACK_SECONDS
        )
        return now - self.last_tick_at > limit

    def status(self) -> dict[str, Any]:
        """Snapshot of loop state for the health endpoint."""
        now = time.time()
        return {
            "running": self._running,
            "tick_count": self.tick_count,
            "seconds_since_last_tick": (
                round(now - self.last_tick_at, 1) if self.last_tick_at else None
            ),
            "last_error": self.last_error,
            "last_report": self.last_report.as_dict() if self.last_report else None,
        }
