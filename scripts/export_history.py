#!/usr/bin/env python3
"""
Export AgentPay History.

Rebuilds the event timeline and per-agent lifecycle aggregates from the
contract's event log and prints them as JSON.

Usage:
    python scripts/export_history.py [--owner ADDR] [--from-block N] [--to-block N]
    python scripts/export_history.py --agent-id 7
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger  # noqa: E402

from agentpay.config.settings import settings  # noqa: E402
from agentpay.services.history_indexer import HistoryIndexerService  # noqa: E402
from agentpay.services.ledger import LedgerClient  # noqa: E402
from agentpay.utils.exceptions import LedgerConfigurationError  # noqa: E402
from agentpay.utils.logging import setup_logging  # noqa: E402


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export AgentPay lifecycle history as JSON")
    parser.add_argument("--owner", help="Only agents created by this address")
    parser.add_argument("--from-block", type=int, default=None, help="First block to scan")
    parser.add_argument("--to-block", type=int, default=None, help="Last block to scan")
    parser.add_argument(
        "--agent-id",
        type=int,
        default=None,
        help="Only print the execution history of this agent",
    )
    parser.add_argument("--indent", type=int, default=2, help="JSON indent")
    return parser.parse_args(argv)


async def export(args: argparse.Namespace) -> dict:
    """Run the indexer and return the JSON-ready payload."""
    ledger = await LedgerClient.from_settings(settings)
    try:
        indexer = HistoryIndexerService(ledger, settings)

        if args.agent_id is not None:
            executions = await indexer.get_execution_history(
                args.agent_id,
                from_block=args.from_block,
                to_block=args.to_block,
            )
            return {
                "agent_id": args.agent_id,
                "executions": [event.as_dict() for event in executions],
            }

        result = await indexer.build_history(
            owner=args.owner,
            from_block=args.from_block,
            to_block=args.to_block,
        )
        return result.as_dict()
    finally:
        await ledger.close()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(settings.log_level, settings.log_file)

    try:
        payload = asyncio.run(export(args))
    except LedgerConfigurationError as e:
        logger.error(f"[Indexer] Configuration error: {e}")
        return 1

    print(json.dumps(payload, indent=args.indent))
    return 0 if not payload.get("error") else 2


if __name__ == "__main__":
    sys.exit(main())
