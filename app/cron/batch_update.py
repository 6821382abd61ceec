from __future__ import annotations

"""Cron job: re-resolve DKIM key records for stale domain/selector pairs.

Flow:
1. Select up to ``BATCH_UPDATE_NUM_RECORDS`` pairs whose
   ``last_record_update`` is at least 24h old, oldest first.
2. For each pair, look up ``<selector>._domainkey.<domain>`` in DNS.
3. Store a new key record, or bump ``last_seen_at`` on the known one.
4. Schedule witness generation for records that are not yet verified.
5. Advance the pair's ``last_record_update``.

Pairs are processed one at a time.  An error on any pair is logged and
re-raised, which aborts the rest of the batch; that pair keeps its old
timestamp so the next run picks it up again.

Normally triggered through ``GET /api/batch_update`` (Vercel Cron).  Can also
be run directly::

    python -m app.cron.batch_update
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from starlette.background import BackgroundTasks

from app.models import DkimRecord, DomainSelectorPair
from app.settings import STALENESS_HOURS, BatchUpdateConfig
from app.utils.dependencies import get_supabase_async
from app.utils.dns_fetch import dkim_query_name, fetch_dkim_dns_record
from app.utils.logger import configure_logging, logger
from app.utils.records import find_stale_pairs, update_pair_timestamp, upsert_dkim_record
from app.utils.witness import generate_witness


async def fetch_and_store_dkim_record(
    supabase,
    pair: DomainSelectorPair,
    background_tasks: BackgroundTasks,
) -> Optional[DkimRecord]:
    """Fetch the pair's current key record and reconcile it with the store.

    Returns the stored record, or ``None`` when DNS has no key for the pair.
    """
    logger.info(f"fetching {dkim_query_name(pair.domain, pair.selector)} from dns")
    dns_record = await fetch_dkim_dns_record(pair.domain, pair.selector)
    if dns_record is None:
        logger.info(f"no record found for {pair.selector}, {pair.domain}")
        return None

    record = await upsert_dkim_record(supabase, pair, dns_record)

    if not record.provenance_verified:
        background_tasks.add_task(generate_witness, supabase, pair, record)
    return record


async def refresh_stale_pairs(
    supabase,
    config: BatchUpdateConfig,
    background_tasks: BackgroundTasks,
    now: Optional[datetime] = None,
) -> List[DomainSelectorPair]:
    """Run one batch.  Returns the pairs selected for processing."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(hours=STALENESS_HOURS)

    pairs = await find_stale_pairs(supabase, cutoff, config.batch_limit)
    logger.info(f"found {len(pairs)} records to update, max limit: {config.batch_limit}")

    for pair in pairs:
        try:
            await fetch_and_store_dkim_record(supabase, pair, background_tasks)
            await update_pair_timestamp(supabase, pair, datetime.now(timezone.utc))
        except Exception as e:
            logger.error(f"error updating {pair.domain}, {pair.selector}: {e}")
            raise

    return pairs


async def _run() -> None:
    configure_logging()
    config = BatchUpdateConfig.from_env()
    background_tasks = BackgroundTasks()

    async for supabase in get_supabase_async():
        try:
            pairs = await refresh_stale_pairs(supabase, config, background_tasks)
        finally:
            # Witnesses scheduled before a failure still get generated
            await background_tasks()
        print(f"Refreshed {len(pairs)} domain/selector pairs")


if __name__ == "__main__":
    asyncio.run(_run())
