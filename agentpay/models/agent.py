"""
Scheduled payment (agent) snapshot model.

Read-only copy of one AgentPay record as returned by getScheduledPayment.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from agentpay.config.constants import NATIVE_TOKEN


@dataclass(frozen=True)
class ScheduledPaymentSnapshot:
    """Current ledger truth for one recurring payment."""

    id: int
    owner: str
    recipient: str
    amount: int
    token: str
    interval: int
    next_execution: int
    is_active: bool
    description: str
    balance: int
    token_balance: int
    end_date: int = 0

    @classmethod
    def from_contract_tuple(cls, raw: Sequence[Any]) -> "ScheduledPaymentSnapshot":
        """
        Build a snapshot from the ScheduledPayment struct tuple.

        Struct order: id, from, to, amount, token, nextExecution, interval,
        isActive, description, balance, tokenBalance, endDate.

        Args:
            raw: Decoded struct as returned by the contract call

        Returns:
            ScheduledPaymentSnapshot
        """
        (
            payment_id,
            owner,
            recipient,
            amount,
            token,
            next_execution,
            interval,
            is_active,
            description,
            balance,
            token_balance,
            end_date,
        ) = raw
        return cls(
            id=int(payment_id),
            owner=owner,
            recipient=recipient,
            amount=int(amount),
            token=token,
            interval=int(interval),
            next_execution=int(next_execution),
            is_active=bool(is_active),
            description=description,
            balance=int(balance),
            token_balance=int(token_balance),
            end_date=int(end_date),
        )

    @property
    def is_native(self) -> bool:
        """True when the agent pays in the chain's native coin."""
        return self.token.lower() == NATIVE_TOKEN

    @property
    def available_balance(self) -> int:
        """Balance held in the agent's own token kind."""
        return self.balance if self.is_native else self.token_balance

    @property
    def has_funds(self) -> bool:
        """True if either balance is non-zero."""
        return self.balance > 0 or self.token_balance > 0


@dataclass(frozen=True)
class DueCandidate:
    """Agent found due during one keeper tick."""

    agent_id: int
    snapshot: ScheduledPaymentSnapshot
