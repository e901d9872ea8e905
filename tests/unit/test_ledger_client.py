"""Tests for LedgerClient against a mocked web3 surface."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from web3 import Web3
from web3.exceptions import ContractLogicError

from agentpay.config.settings import Settings
from agentpay.models.agent import ScheduledPaymentSnapshot
from agentpay.services.ledger.client import LedgerClient
from agentpay.services.ledger.constants import CONTRACT_REGISTRY, explorer_tx_url
from agentpay.services.ledger.rpc_wrapper import BlockchainError
from agentpay.utils.exceptions import LedgerConfigurationError

CONTRACT = CONTRACT_REGISTRY[5003]
OWNER = "0x000000000000000000000000000000000000000a"
KEY = "0x" + "11" * 32


@pytest.fixture
def mock_web3():
    """Mock AsyncWeb3 with an eth namespace."""
    web3 = MagicMock()
    web3.eth.wait_for_transaction_receipt = AsyncMock()
    return web3


@pytest.fixture
def client(mock_web3):
    return LedgerClient(mock_web3, CONTRACT, chain_id=5003, private_key=KEY)


class TestLedgerReads:
    """Read paths."""

    @pytest.mark.asyncio
    async def test_owner_filter_on_created(self, client):
        get_logs = AsyncMock(return_value=[{"args": {}}])
        client.contract.events.ScheduledPaymentCreated.get_logs = get_logs

        logs = await client.get_events("ScheduledPaymentCreated", 0, 99, owner=OWNER)

        assert logs == [{"args": {}}]
        get_logs.assert_awaited_once_with(
            from_block=0,
            to_block=99,
            argument_filters={"from": Web3.to_checksum_address(OWNER)},
        )

    @pytest.mark.asyncio
    async def test_owner_filter_not_applied_to_cancel(self, client):
        get_logs = AsyncMock(return_value=[])
        client.contract.events.ScheduledPaymentCancelled.get_logs = get_logs

        await client.get_events("ScheduledPaymentCancelled", 10, 20, owner=OWNER)

        get_logs.assert_awaited_once_with(from_block=10, to_block=20, argument_filters=None)

    @pytest.mark.asyncio
    async def test_execution_events_filter_by_id(self, client):
        get_logs = AsyncMock(return_value=[])
        client.contract.events.ScheduledPaymentExecuted.get_logs = get_logs

        await client.get_execution_events(4, 0, 50)

        get_logs.assert_awaited_once_with(
            from_block=0, to_block=50, argument_filters={"id": 4}
        )

    @pytest.mark.asyncio
    async def test_get_payment_decodes_struct(self, client):
        raw = (
            2,
            OWNER,
            "0x00000000000000000000000000000000000000c0",
            100,
            "0x0000000000000000000000000000000000000000",
            1_700_000_000,
            3600,
            True,
            "Salary",
            500,
            0,
            0,
        )
        client.contract.functions.getScheduledPayment.return_value.call = AsyncMock(
            return_value=raw
        )

        snapshot = await client.get_payment(2)

        assert isinstance(snapshot, ScheduledPaymentSnapshot)
        assert snapshot.id == 2
        assert snapshot.next_execution == 1_700_000_000
        assert snapshot.interval == 3600
        assert snapshot.is_native is True
        assert snapshot.available_balance == 500

    @pytest.mark.asyncio
    async def test_payment_count(self, client):
        client.contract.functions.nextScheduledPaymentId.return_value.call = AsyncMock(
            return_value=12
        )

        assert await client.get_payment_count() == 12

    @pytest.mark.asyncio
    async def test_get_payment_retries_transient_error(self, client):
        raw = (3, OWNER, OWNER, 1, "0x0000000000000000000000000000000000000000", 0, 60, True, "", 1, 0, 0)
        call = AsyncMock(side_effect=[ConnectionError("reset by peer"), raw])
        client.contract.functions.getScheduledPayment.return_value.call = call
        sleep = AsyncMock()

        with patch("agentpay.services.ledger.rpc_wrapper.asyncio.sleep", sleep):
            snapshot = await client.get_payment(3)

        assert snapshot.id == 3
        assert call.await_count == 2
        sleep.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_get_payment_revert_not_retried(self, client):
        call = AsyncMock(side_effect=ContractLogicError("execution reverted"))
        client.contract.functions.getScheduledPayment.return_value.call = call
        sleep = AsyncMock()

        with patch("agentpay.services.ledger.rpc_wrapper.asyncio.sleep", sleep):
            with pytest.raises(ContractLogicError):
                await client.get_payment(3)

        assert call.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_block_timestamp_gives_up_after_retries(self, client, mock_web3):
        mock_web3.eth.get_block = AsyncMock(side_effect=ConnectionError("down"))
        sleep = AsyncMock()

        with patch("agentpay.services.ledger.rpc_wrapper.asyncio.sleep", sleep):
            with pytest.raises(BlockchainError, match="get_block\\(9\\)"):
                await client.get_block_timestamp(9)

        assert mock_web3.eth.get_block.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1, 2]


class TestLedgerWrites:
    """Submission paths."""

    @pytest.mark.asyncio
    async def test_estimate_requires_key(self, mock_web3):
        client = LedgerClient(mock_web3, CONTRACT, chain_id=5003)

        with pytest.raises(LedgerConfigurationError):
            await client.estimate_execution_gas(1)

    def test_keeper_address_derived_from_key(self, client):
        assert client.keeper_address.startswith("0x")
        assert len(client.keeper_address) == 42

    @pytest.mark.asyncio
    async def test_successful_receipt(self, client, mock_web3):
        mock_web3.eth.wait_for_transaction_receipt.return_value = {
            "status": 1,
            "blockNumber": 77,
            "gasUsed": 90_000,
        }

        receipt = await client.await_confirmation("0xabc")

        assert receipt.success is True
        assert receipt.block_number == 77
        assert receipt.gas_used == 90_000
        assert receipt.revert_reason is None

    @pytest.mark.asyncio
    async def test_reverted_receipt_replays_at_mined_block(self, client, mock_web3):
        mock_web3.eth.wait_for_transaction_receipt.return_value = {
            "status": 0,
            "blockNumber": 77,
            "gasUsed": 30_000,
        }
        mock_web3.eth.get_transaction = AsyncMock(
            return_value={"from": OWNER, "to": CONTRACT, "input": "0x1234", "gas": 200_000}
        )
        mock_web3.eth.call = AsyncMock(
            side_effect=ContractLogicError("execution reverted: Not due yet")
        )

        receipt = await client.await_confirmation("0xabc")

        assert receipt.success is False
        assert receipt.revert_reason == "Payment is not due yet"
        assert mock_web3.eth.call.await_args.args[1] == 77


class TestFromSettings:
    """Configuration failures surface before any RPC."""

    @pytest.mark.asyncio
    async def test_missing_rpc_url(self):
        settings = Settings(_env_file=None, rpc_url=None)

        with pytest.raises(LedgerConfigurationError, match="RPC_URL"):
            await LedgerClient.from_settings(settings)

    @pytest.mark.asyncio
    async def test_unknown_chain_without_address(self):
        settings = Settings(
            _env_file=None,
            rpc_url="http://localhost:8545",
            chain_id=1,
            contract_address=None,
        )

        with pytest.raises(LedgerConfigurationError, match="chain ID 1"):
            await LedgerClient.from_settings(settings)

    @pytest.mark.asyncio
    async def test_registry_address_for_known_chain(self):
        settings = Settings(_env_file=None, rpc_url="http://localhost:8545", chain_id=5000)

        client = await LedgerClient.from_settings(settings)

        assert client.contract_address.lower() == CONTRACT_REGISTRY[5000].lower()
        assert client.chain_id == 5000


class TestExplorerUrl:
    def test_known_chain(self):
        assert explorer_tx_url(5000, "0xabc") == "https://mantlescan.xyz/tx/0xabc"

    def test_unknown_chain_falls_back(self):
        assert explorer_tx_url(1, "0xabc") == "https://sepolia.mantlescan.xyz/tx/0xabc"
