#!/usr/bin/env python3
"""Export one CSV of inquiries per salesman, with a lead summary for each."""

import asyncio
import logging
import sys
from pathlib import Path

from crm_sync.clients import HTTPTransport
from crm_sync.models import FilterKey
from crm_sync.settings import SyncSettings
from crm_sync.sync import CollectionEngine, ReferenceData, inquiry_stats

OUTPUT_DIR = Path("output/inquiries")

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")


async def export_salesman(engine: CollectionEngine, salesman) -> None:
    """Fetch the first page and download the full CSV for one salesman."""
    await engine.set_filter(FilterKey.OWNER_ID, salesman.id)
    state = engine.state()
    if state.error:
        print(f"  {salesman.name}: {state.error.message}")
        return

    stats = inquiry_stats(state)
    print(
        f"  {salesman.name:<25} total={stats.total:<5} "
        f"red={stats.high_priority} orange={stats.medium_priority} green={stats.low_priority}"
    )
    if stats.total == 0:
        return

    folder = OUTPUT_DIR / salesman.id
    path = await engine.export(folder)
    print(f"    -> {path}")


async def main(base_url: str | None = None):
    settings = SyncSettings(base_url=base_url) if base_url else SyncSettings()

    with HTTPTransport.from_settings(settings) as transport:
        reference = ReferenceData.from_settings(transport, settings)
        await reference.load()
        if reference.error:
            print(f"Could not load salesmen: {reference.error.message}")
            return

        print(f"Found {len(reference.salesmen)} salesmen\n")
        async with CollectionEngine("inquiries", transport, settings=settings) as engine:
            for salesman in reference.salesmen:
                await export_salesman(engine, salesman)


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None))
