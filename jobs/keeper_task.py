"""
Keeper process entrypoint.

Starts the health check server and runs the keeper loop until interrupted.
Exits with status 1 on configuration errors (no RPC, no contract for the
chain, no keeper key).
"""

import asyncio
import sys

from loguru import logger

from agentpay.config.settings import Settings, settings
from agentpay.services.keeper import KeeperExecutor, KeeperScheduler
from agentpay.services.ledger import LedgerClient
from agentpay.utils.exceptions import LedgerConfigurationError
from agentpay.utils.logging import setup_logging
from agentpay.utils.security import mask_address
from jobs.health import set_keeper, start_health_server, stop_health_server


async def run_keeper(config: Settings) -> None:
    """
    Build the keeper from settings and run it.

    Raises:
        LedgerConfigurationError: Missing key, RPC or contract
    """
    if not config.keeper_private_key:
        raise LedgerConfigurationError("KEEPER_PRIVATE_KEY environment variable is not set")

    ledger = await LedgerClient.from_settings(config)
    executor = KeeperExecutor(ledger, gas_multiplier=config.gas_limit_multiplier)
    keeper = KeeperScheduler(ledger, executor, config)

    logger.info(f"[Keeper] Operator: {mask_address(ledger.keeper_address)}")
    logger.info(f"[Keeper] Chain ID: {ledger.chain_id}")
    logger.info(f"[Keeper] Contract: {ledger.contract_address}")

    runner = None
    if config.health_check_enabled:
        try:
            runner, _site = await start_health_server(port=config.health_check_port)
            set_keeper(keeper)
        except OSError as e:
            logger.warning(f"Failed to start health check server: {e}")

    try:
        await keeper.run_forever()
    finally:
        keeper.stop()
        set_keeper(None)
        if runner is not None:
            await stop_health_server(runner)
        await ledger.close()


def main() -> None:
    """Console entrypoint."""
    setup_logging(settings.log_level, settings.log_file)

    try:
        asyncio.run(run_keeper(settings))
    except KeyboardInterrupt:
        logger.info("Keeper stopped by user (KeyboardInterrupt)")
    except LedgerConfigurationError as e:
        logger.error(f"[Keeper] Configuration error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Keeper crashed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
