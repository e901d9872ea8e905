"""
Keeper entity classification.
"""

from agentpay.models.agent import ScheduledPaymentSnapshot
from agentpay.models.reports import KeeperState


def classify_entity(snapshot: ScheduledPaymentSnapshot, now: int) -> KeeperState:
    """
    Classify one agent for the current tick.

    - inactive with both balances zero -> skipped (deleted or drained)
    - inactive with funds -> waiting (paused)
    - active and not yet due -> waiting
    - active and next_execution <= now -> due

    Args:
        snapshot: Current ledger snapshot
        now: Tick time (unix seconds)

    Returns:
        KeeperState
    """
    if not snapshot.is_active:
        return KeeperState.WAITING if snapshot.has_funds else KeeperState.SKIPPED

    if snapshot.next_execution > now:
        return KeeperState.WAITING

    return KeeperState.DUE


def is_underfunded(snapshot: ScheduledPaymentSnapshot) -> bool:
    """True when the balance of the agent's own token cannot cover one payment."""
    return snapshot.available_balance < snapshot.amount
