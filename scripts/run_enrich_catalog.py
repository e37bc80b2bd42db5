#!/usr/bin/env python3
"""
Manually run the OpenFarm enrichment pass.

Usage (inside the API container):
    python scripts/run_enrich_catalog.py [batch_size]
"""
import asyncio
import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s: %(message)s",
    stream=sys.stdout,
)

from gardenatlas.tasks.enrich_catalog import run_enrichment


async def main() -> None:
    batch_size = int(sys.argv[1]) if len(sys.argv) > 1 else None
    print("Starting enrichment pass...\n")
    result = await run_enrichment(batch_size=batch_size)
    print(f"\nEnrichment finished: {result.summary()}")


if __name__ == "__main__":
    asyncio.run(main())
