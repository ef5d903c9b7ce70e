#!/usr/bin/env python3
"""Add plans to the catalog.

RUN:
    DATABASE_URL=postgresql+asyncpg://... python scripts/seed_plans.py
    DATABASE_URL=... python scripts/seed_plans.py --name Team --price-cents 4900 --interval month

With no --name, the default catalog below is created.  There is no HTTP
endpoint for plan creation; this script is the operator's path.  The
plan-catalog cache entry is invalidated when REDIS_URL is set.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from saas_billing.core.config import Settings, load_settings
from saas_billing.core.errors import AppError
from saas_billing.core.logging import setup_logging
from saas_billing.main import build_context
from saas_billing.repos.store import SqlStore

DEFAULT_CATALOG = (
    {"name": "Starter", "description": "For small teams", "price_cents": 900, "interval": "month"},
    {"name": "Pro", "description": "For growing teams", "price_cents": 2900, "interval": "month"},
    {"name": "Pro Annual", "description": "Pro, billed yearly", "price_cents": 29000, "interval": "year"},
)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--name")
    parser.add_argument("--description", default="")
    parser.add_argument("--price-cents", type=int, default=0)
    parser.add_argument("--interval", choices=("month", "year"), default="month")
    return parser.parse_args(argv)


async def _seed(settings: Settings, plans: list[dict]) -> int:
    ctx = build_context(settings)
    try:
        for fields in plans:
            plan = await ctx.ledger.create_plan(**fields)
            print(f"  {plan.id}  {plan.name:<16} {plan.price_cents:>8}  /{plan.interval.value}")
    except AppError as e:
        print(f"Failed: {e.code}: {e.message}", file=sys.stderr)
        return 1
    finally:
        if isinstance(ctx.store, SqlStore):
            await ctx.store.dispose()
        if ctx.redis is not None:
            await ctx.redis.aclose()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = load_settings()
    setup_logging(settings.log_level, json_format=settings.log_json)
    if settings.database_url is None:
        print("DATABASE_URL is not set; plans would vanish with this process.", file=sys.stderr)
        return 1

    if args.name:
        plans = [
            {
                "name": args.name,
                "description": args.description,
                "price_cents": args.price_cents,
                "interval": args.interval,
            }
        ]
    else:
        plans = [dict(p) for p in DEFAULT_CATALOG]

    print(f"Creating {len(plans)} plan(s):")
    return asyncio.run(_seed(settings, plans))


if __name__ == "__main__":
    sys.exit(main())
