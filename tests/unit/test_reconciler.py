"""Tests for termination classification and snapshot reconciliation."""

import pytest

from agentpay.models.lifecycle import LifecycleAggregate, TerminationStatus
from agentpay.services.history_indexer.reconciler import (
    SnapshotReconciler,
    classify_termination,
)
from tests.fakes import OWNER_A, RECIPIENT, TOKEN, FakeLedger, make_snapshot

NOW = 2_000_000_000


def make_aggregate(agent_id=7, **overrides):
    fields = {
        "agent_id": agent_id,
        "owner": OWNER_A,
        "recipient": "0x0000000000000000000000000000000000000001",
        "amount": 1,
        "token": "0x0000000000000000000000000000000000000000",
        "interval": 3600,
        "created_at": 1000,
    }
    fields.update(overrides)
    return LifecycleAggregate(**fields)


class TestClassifyTermination:
    """Priority order of the three-way classification."""

    def test_active_snapshot_is_active(self):
        """Active agent with funds stays active."""
        status, terminated_at = classify_termination(
            make_aggregate(), make_snapshot(7, is_active=True, balance=50), NOW
        )
        assert status == TerminationStatus.ACTIVE
        assert terminated_at is None

    def test_cancelled_wins_over_snapshot(self):
        """Cancel event keeps deleted even if the snapshot looks active."""
        aggregate = make_aggregate(
            status=TerminationStatus.DELETED, cancelled=True, terminated_at=4000
        )
        status, terminated_at = classify_termination(
            aggregate, make_snapshot(7, is_active=True, balance=1000), NOW
        )
        assert status == TerminationStatus.DELETED
        assert terminated_at == 4000

    def test_cancelled_ignores_end_date(self):
        """Cancel beats a passed end date."""
        aggregate = make_aggregate(status=TerminationStatus.DELETED, cancelled=True)
        snapshot = make_snapshot(7, is_active=False, end_date=NOW - 10, balance=0)

        status, _ = classify_termination(aggregate, snapshot, NOW)

        assert status == TerminationStatus.DELETED

    def test_inactive_past_end_date_is_completed(self):
        """Inactive with end date reached -> completed at end date."""
        end_date = NOW - 100
        snapshot = make_snapshot(7, is_active=False, end_date=end_date, balance=0)

        status, terminated_at = classify_termination(make_aggregate(), snapshot, NOW)

        assert status == TerminationStatus.COMPLETED
        assert terminated_at == end_date

    def test_end_date_exactly_now_is_completed(self):
        """now >= end_date is inclusive."""
        snapshot = make_snapshot(7, is_active=False, end_date=NOW, balance=10)

        status, _ = classify_termination(make_aggregate(), snapshot, NOW)

        assert status == TerminationStatus.COMPLETED

    def test_inactive_future_end_date_with_funds_is_active(self):
        """Paused agent before its end date is still active."""
        snapshot = make_snapshot(7, is_active=False, end_date=NOW + 100, balance=10)

        status, _ = classify_termination(make_aggregate(), snapshot, NOW)

        assert status == TerminationStatus.ACTIVE

    def test_inactive_and_drained_is_deleted(self):
        """Inactive with both balances zero counts as deleted."""
        snapshot = make_snapshot(7, is_active=False, balance=0, token_balance=0)

        status, terminated_at = classify_termination(make_aggregate(), snapshot, NOW)

        assert status == TerminationStatus.DELETED
        assert terminated_at is None

    def test_inactive_with_token_balance_is_active(self):
        """Any remaining balance keeps a paused agent active."""
        snapshot = make_snapshot(7, is_active=False, balance=0, token_balance=5)

        status, _ = classify_termination(make_aggregate(), snapshot, NOW)

        assert status == TerminationStatus.ACTIVE


class TestSnapshotReconciler:
    """Snapshot overlay onto aggregates."""

    @pytest.mark.asyncio
    async def test_overlays_snapshot_fields(self):
        """Description, token, recipient and amount come from the snapshot."""
        ledger = FakeLedger(
            payments={7: make_snapshot(7, description="Rent", token=TOKEN, amount=250)}
        )
        aggregate = make_aggregate()

        [result] = await SnapshotReconciler(ledger).reconcile([aggregate], now=NOW)

        assert result is aggregate
        assert aggregate.description == "Rent"
        assert aggregate.token == TOKEN
        assert aggregate.recipient == RECIPIENT
        assert aggregate.amount == 250
        assert aggregate.status == TerminationStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_empty_description_falls_back(self):
        """Missing description becomes 'Agent #<id>'."""
        ledger = FakeLedger(payments={7: make_snapshot(7, description="")})
        aggregate = make_aggregate()

        await SnapshotReconciler(ledger).reconcile([aggregate], now=NOW)

        assert aggregate.description == "Agent #7"

    @pytest.mark.asyncio
    async def test_deleted_aggregates_are_not_fetched(self):
        """Cancelled agents skip the snapshot read."""
        ledger = FakeLedger(payments={7: make_snapshot(7)})
        aggregate = make_aggregate(status=TerminationStatus.DELETED, cancelled=True)

        await SnapshotReconciler(ledger).reconcile([aggregate], now=NOW)

        assert ledger.payment_calls == []
        assert aggregate.status == TerminationStatus.DELETED
        assert aggregate.description == "Agent #7"

    @pytest.mark.asyncio
    async def test_snapshot_failure_leaves_aggregate_untouched(self):
        """One failed read does not affect the other aggregates."""
        ledger = FakeLedger(
            payments={
                1: make_snapshot(1, description="One"),
                2: make_snapshot(2, is_active=False, balance=0),
            }
        )
        ledger.failing_payments[1] = ConnectionError("boom")
        first = make_aggregate(1, amount=42)
        second = make_aggregate(2)

        await SnapshotReconciler(ledger, concurrency=1).reconcile([first, second], now=NOW)

        assert first.amount == 42
        assert first.description == ""
        assert first.status == TerminationStatus.ACTIVE
        assert second.status == TerminationStatus.DELETED
