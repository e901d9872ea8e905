"""
Keeper Executor.

Two-step execution of a due agent: dry-run gas estimate, then a signed
submission with a buffered gas limit. Estimation failure never spends gas.
"""

from typing import Any

from loguru import logger
from web3.exceptions import TimeExhausted

from agentpay.config.constants import GAS_LIMIT_MULTIPLIER
from agentpay.models.reports import ExecutionReceipt
from agentpay.services.ledger.constants import explorer_tx_url
from agentpay.services.ledger.revert_reasons import extract_revert_reason
from agentpay.utils.exceptions import (
    ExecutionRevertedError,
    GasEstimationError,
    LedgerConfigurationError,
    SubmissionError,
)
from agentpay.utils.security import mask_tx_hash


class KeeperExecutor:
    """
    Executes executeScheduledPayment(id) for one agent.

    Features:
    - Gas estimation with safety multiplier
    - Signing and submission through the ledger client
    - Receipt confirmation with revert reason mapping
    """

    def __init__(self, ledger: Any, gas_multiplier: float = GAS_LIMIT_MULTIPLIER):
        """
        Initialize executor.

        Args:
            ledger: LedgerClient with a keeper key configured
            gas_multiplier: Buffer applied to the gas estimate
        """
        self.ledger = ledger
        self.gas_multiplier = gas_multiplier

    async def estimate(self, agent_id: int) -> int:
        """
        Estimate the buffered gas limit for an execution.

        Raises:
            GasEstimationError: Dry-run reverted or could not be estimated
        """
        try:
            estimate = await self.ledger.estimate_execution_gas(agent_id)
        except LedgerConfigurationError:
            raise
        except Exception as e:
            reason = extract_revert_reason(e)
            logger.warning(f"[Keeper] Gas estimation failed for #{agent_id}: {reason}")
            raise GasEstimationError(agent_id, reason) from e

        gas_limit = int(estimate * self.gas_multiplier)
        logger.debug(
            f"[Keeper] #{agent_id} gas estimate {estimate}, limit {gas_limit}"
        )
        return gas_limit

    async def execute(self, agent_id: int) -> ExecutionReceipt:
        """
        Estimate, submit and confirm one execution.

        Args:
            agent_id: Scheduled payment ID

        Returns:
            Successful ExecutionReceipt

        Raises:
            GasEstimationError: Dry-run failed, nothing was sent
            SubmissionError: Signing/sending failed or no receipt in time
            ExecutionRevertedError: Transaction mined with status 0
        """
        gas_limit = await self.estimate(agent_id)

        try:
            tx_hash = await self.ledger.submit_execution(agent_id, gas_limit)
        except LedgerConfigurationError:
            raise
        except Exception as e:
            reason = extract_revert_reason(e)
            logger.error(f"[Keeper] Submission failed for #{agent_id}: {reason}")
            raise SubmissionError(agent_id, reason) from e

        logger.info(
            f"[Keeper] Execution #{agent_id} sent: "
            f"{explorer_tx_url(self.ledger.chain_id, tx_hash)}"
        )

        try:
            receipt = await self.ledger.await_confirmation(tx_hash)
        except TimeExhausted as e:
            logger.error(f"[Keeper] No receipt for #{agent_id} ({mask_tx_hash(tx_hash)})")
            raise SubmissionError(agent_id, "Receipt timeout", tx_hash=tx_hash) from e
        except Exception as e:
            logger.error(f"[Keeper] Confirmation failed for #{agent_id}: {e}")
            raise SubmissionError(agent_id, str(e), tx_hash=tx_hash) from e

        if not receipt.success:
            reason = receipt.revert_reason or "Transaction reverted"
            logger.error(f"[Keeper] Execution #{agent_id} reverted: {reason}")
            raise ExecutionRevertedError(agent_id, reason, tx_hash=tx_hash)

        logger.success(
            f"[Keeper] Execution #{agent_id} confirmed in block "
            f"{receipt.block_number} (gas used {receipt.gas_used})"
        )
        return receipt
