#!/usr/bin/env python3
"""
Manually run one time-boxed catalog sync pass (no email report).

Usage (inside the API container):
    python scripts/run_sync_catalog.py
    python scripts/run_sync_catalog.py --minutes 5
"""
import argparse
import asyncio
import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s: %(message)s",
    stream=sys.stdout,
)

from gardenatlas.tasks.sync_catalog import SyncConfig, run_sync


async def main(minutes: float | None) -> None:
    config = SyncConfig.from_settings()
    if minutes is not None:
        config.max_runtime = minutes * 60
    print(f"Starting {config.source} sync (budget {config.max_runtime / 60:.0f} min)...\n")
    result = await run_sync(config)
    print(f"\nSync finished: {result.summary()}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--minutes", type=float, default=None, help="Override the run time budget")
    args = parser.parse_args()
    asyncio.run(main(args.minutes))
