"""
AgentPay Ledger Client.

Thin async query/submit interface to the AgentPay contract. Shared by the
history indexer (reads only) and the keeper (reads + execution submits).
"""

import asyncio
from typing import Any

from eth_account import Account
from loguru import logger
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, Web3Exception

from agentpay.config.constants import (
    BLOCKCHAIN_RECEIPT_TIMEOUT,
    BLOCKCHAIN_RPC_TIMEOUT,
    BLOCKCHAIN_TIMEOUT,
)
from agentpay.config.settings import Settings
from agentpay.models.agent import ScheduledPaymentSnapshot
from agentpay.models.reports import ExecutionReceipt
from agentpay.utils.exceptions import LedgerConfigurationError
from agentpay.utils.security import mask_address

from .constants import AGENT_PAY_ABI, CONTRACT_REGISTRY, OWNER_FILTERABLE_EVENTS
from .revert_reasons import extract_revert_reason
from .rpc_wrapper import rpc_call_with_retry, with_timeout


class LedgerClient:
    """
    Async client for the AgentPay contract.

    Features:
    - Record reads (payment count, single payment snapshot)
    - Ranged event log reads with optional owner filter
    - Block timestamps
    - Execution gas estimation, signing, submission and confirmation
    """

    def __init__(
        self,
        web3: AsyncWeb3,
        contract_address: str,
        chain_id: int | None = None,
        private_key: str | None = None,
        timeout: float = BLOCKCHAIN_TIMEOUT,
        receipt_timeout: float = BLOCKCHAIN_RECEIPT_TIMEOUT,
    ):
        """
        Initialize ledger client.

        Args:
            web3: AsyncWeb3 instance
            contract_address: AgentPay contract address
            chain_id: Chain ID used when signing transactions
            private_key: Keeper key; only needed for submissions
            timeout: Per-call RPC timeout in seconds
            receipt_timeout: Seconds to wait for an execution receipt
        """
        self.web3 = web3
        self.chain_id = chain_id
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.contract = web3.eth.contract(
            address=self.contract_address,
            abi=AGENT_PAY_ABI,
        )
        self.timeout = timeout
        self.receipt_timeout = receipt_timeout

        self._private_key = private_key
        self.keeper_address: str | None = (
            Account.from_key(private_key).address if private_key else None
        )
        # One in-flight submission at a time per keeper key
        self._nonce_lock = asyncio.Lock()

    @classmethod
    async def from_settings(cls, settings: Settings) -> "LedgerClient":
        """
        Build a client from application settings.

        Resolves the contract address from settings, falling back to the
        known deployment for the connected chain.

        Raises:
            LedgerConfigurationError: No RPC endpoint, or no contract
                address for the current chain
        """
        if not settings.rpc_url:
            raise LedgerConfigurationError("RPC_URL is not configured")

        web3 = AsyncWeb3(
            AsyncHTTPProvider(
                settings.rpc_url,
                request_kwargs={"timeout": BLOCKCHAIN_RPC_TIMEOUT},
            )
        )

        chain_id = settings.chain_id
        if chain_id is None:
            try:
                chain_id = await with_timeout(
                    web3.eth.chain_id,
                    operation_name="eth_chainId",
                )
            except Exception as e:
                raise LedgerConfigurationError(
                    f"Cannot determine chain ID from {settings.rpc_url}: {e}"
                ) from e

        contract_address = settings.contract_address or CONTRACT_REGISTRY.get(chain_id)
        if not contract_address:
            raise LedgerConfigurationError(
                f"No AgentPay contract configured for chain ID {chain_id}"
            )

        logger.info(
            f"[Ledger] Chain ID {chain_id}, contract {contract_address}"
        )

        return cls(
            web3=web3,
            contract_address=contract_address,
            chain_id=chain_id,
            private_key=settings.keeper_private_key,
            receipt_timeout=settings.receipt_timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.web3.provider.disconnect()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_block_number(self) -> int:
        """Get current block number (retried, used as the connectivity probe)."""
        return await rpc_call_with_retry(
            lambda: self.web3.eth.block_number,
            timeout=self.timeout,
            operation_name="eth_blockNumber",
        )

    async def get_payment_count(self) -> int:
        """Current id upper bound (nextScheduledPaymentId)."""
        count = await rpc_call_with_retry(
            lambda: self.contract.functions.nextScheduledPaymentId().call(),
            timeout=self.timeout,
            operation_name="nextScheduledPaymentId",
            non_retryable=(ContractLogicError,),
        )
        return int(count)

    async def get_payment(self, agent_id: int) -> ScheduledPaymentSnapshot:
        """
        Read the current snapshot of one scheduled payment.

        Args:
            agent_id: Scheduled payment ID

        Returns:
            ScheduledPaymentSnapshot
        """
        raw = await rpc_call_with_retry(
            lambda: self.contract.functions.getScheduledPayment(agent_id).call(),
            timeout=self.timeout,
            operation_name=f"getScheduledPayment({agent_id})",
            non_retryable=(ContractLogicError,),
        )
        return ScheduledPaymentSnapshot.from_contract_tuple(raw)

    async def get_events(
        self,
        event_name: str,
        from_block: int,
        to_block: int,
        owner: str | None = None,
    ) -> list[Any]:
        """
        Fetch raw logs of one event type in an inclusive block range.

        Args:
            event_name: AgentPay event name
            from_block: First block (inclusive)
            to_block: Last block (inclusive)
            owner: Optional owner filter; applied to events indexing `from`

        Returns:
            List of decoded event logs
        """
        argument_filters = None
        if owner and event_name in OWNER_FILTERABLE_EVENTS:
            argument_filters = {"from": Web3.to_checksum_address(owner)}

        event = getattr(self.contract.events, event_name)
        logs = await with_timeout(
            event.get_logs(
                from_block=from_block,
                to_block=to_block,
                argument_filters=argument_filters,
            ),
            timeout=self.timeout,
            operation_name=f"get_logs {event_name} {from_block}-{to_block}",
        )
        return list(logs)

    async def get_execution_events(
        self,
        agent_id: int,
        from_block: int,
        to_block: int,
    ) -> list[Any]:
        """Fetch ScheduledPaymentExecuted logs for a single agent id."""
        logs = await with_timeout(
            self.contract.events.ScheduledPaymentExecuted.get_logs(
                from_block=from_block,
                to_block=to_block,
                argument_filters={"id": agent_id},
            ),
            timeout=self.timeout,
            operation_name=f"get_logs executed #{agent_id} {from_block}-{to_block}",
        )
        return list(logs)

    async def get_block_timestamp(self, block_number: int) -> int:
        """Wall-clock timestamp of a block."""
        block = await rpc_call_with_retry(
            lambda: self.web3.eth.get_block(block_number),
            timeout=self.timeout,
            operation_name=f"get_block({block_number})",
        )
        return int(block["timestamp"])

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _require_keeper(self) -> str:
        if not self._private_key or not self.keeper_address:
            raise LedgerConfigurationError("KEEPER_PRIVATE_KEY is not configured")
        return self.keeper_address

    async def estimate_execution_gas(self, agent_id: int) -> int:
        """
        Dry-run executeScheduledPayment and return the gas estimate.

        Raises whatever web3 raises on revert (ContractLogicError etc.).
        """
        keeper = self._require_keeper()
        estimate = await with_timeout(
            self.contract.functions.executeScheduledPayment(agent_id).estimate_gas(
                {"from": keeper}
            ),
            timeout=self.timeout,
            operation_name=f"estimate_gas executeScheduledPayment({agent_id})",
        )
        return int(estimate)

    async def submit_execution(self, agent_id: int, gas_limit: int) -> str:
        """
        Sign and send executeScheduledPayment(agent_id).

        Args:
            agent_id: Scheduled payment ID
            gas_limit: Gas limit including safety buffer

        Returns:
            Transaction hash (0x-prefixed hex)
        """
        keeper = self._require_keeper()

        async with self._nonce_lock:
            nonce = await with_timeout(
                self.web3.eth.get_transaction_count(keeper, "pending"),
                timeout=self.timeout,
                operation_name="get_transaction_count",
            )
            gas_price = await with_timeout(
                self.web3.eth.gas_price,
                timeout=self.timeout,
                operation_name="gas_price",
            )

            tx_params: dict[str, Any] = {
                "from": keeper,
                "gas": gas_limit,
                "gasPrice": gas_price,
                "nonce": nonce,
            }
            if self.chain_id is not None:
                tx_params["chainId"] = self.chain_id

            transaction = await with_timeout(
                self.contract.functions.executeScheduledPayment(agent_id).build_transaction(
                    tx_params
                ),
                timeout=self.timeout,
                operation_name="build_transaction",
            )

            # Account lives only for the signature
            account = Account.from_key(self._private_key)
            try:
                signed_tx = account.sign_transaction(transaction)
            finally:
                del account

            tx_hash = await with_timeout(
                self.web3.eth.send_raw_transaction(signed_tx.raw_transaction),
                timeout=self.timeout,
                operation_name="send_raw_transaction",
            )

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.debug(
            f"[Ledger] Sent execution #{agent_id} from {mask_address(keeper)}: "
            f"{tx_hash_hex} (gas={gas_limit}, nonce={nonce})"
        )
        return tx_hash_hex

    async def await_confirmation(self, tx_hash: str) -> ExecutionReceipt:
        """
        Wait for a transaction receipt.

        On a reverted receipt, replays the call against the state at the
        mined block to recover the revert reason.

        Raises:
            web3.exceptions.TimeExhausted: Receipt not available in time
        """
        receipt = await self.web3.eth.wait_for_transaction_receipt(
            tx_hash,
            timeout=self.receipt_timeout,
        )

        if receipt["status"] == 1:
            return ExecutionReceipt(
                success=True,
                tx_hash=tx_hash,
                block_number=receipt["blockNumber"],
                gas_used=receipt["gasUsed"],
            )

        return ExecutionReceipt(
            success=False,
            tx_hash=tx_hash,
            block_number=receipt["blockNumber"],
            gas_used=receipt["gasUsed"],
            revert_reason=await self._replay_revert_reason(tx_hash, receipt["blockNumber"]),
        )

    async def _replay_revert_reason(self, tx_hash: str, block_number: int) -> str:
        """Re-run a reverted transaction as eth_call to read its reason."""
        try:
            tx = await with_timeout(
                self.web3.eth.get_transaction(tx_hash),
                timeout=self.timeout,
                operation_name="get_transaction",
            )
            await with_timeout(
                self.web3.eth.call(
                    {
                        "from": tx["from"],
                        "to": tx["to"],
                        "data": tx["input"],
                        "gas": tx["gas"],
                    },
                    block_number,
                ),
                timeout=self.timeout,
                operation_name="eth_call replay",
            )
        except ContractLogicError as e:
            return extract_revert_reason(e)
        except (Web3Exception, ValueError) as e:
            logger.debug(f"[Ledger] Revert replay failed for {tx_hash}: {e}")
        return "Transaction reverted"
