"""
Smoke check against the live API using credentials from the environment.

    DASBUDGET_REFRESH_TOKEN=... DASBUDGET_API_KEY=... python -m dasbudget --since 1700000000
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import load_config
from .core import DasBudget, DasBudgetError

logger = logging.getLogger("dasbudget.smoke")


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="dasbudget", description=__doc__.strip().splitlines()[0])
    parser.add_argument("--since", type=float, default=None, help="Only transactions created at or after this epoch second.")
    parser.add_argument("--budget-id", default=None, help="Budget to query instead of the default one.")
    parser.add_argument("--env-file", default=None, help="Path to a .env file with DASBUDGET_* variables.")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    overrides = {"budget_id": args.budget_id} if args.budget_id else {}
    config = load_config(args.env_file, **overrides)

    async with DasBudget(config) as client:
        await client.initialize()
        logger.info("Authenticated as %s", client.user_id)

        transactions = await client.transactions(since=args.since)
        logger.info("Transactions: %d", len(transactions))

        expenses = await client.expenses()
        logger.info("Expenses: %d", len(expenses))

        accounts = await client.accounts()
        logger.info("Accounts: %d", len(accounts))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = _parse_args(argv)
    try:
        return asyncio.run(run(args))
    except (DasBudgetError, ValueError) as exc:
        logger.error("Smoke check failed: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
