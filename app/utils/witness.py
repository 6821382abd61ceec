"""Provenance witness generation for newly observed DKIM key records.

The proof itself is produced by an external prover reachable at
``WITNESS_SERVICE_URL``.  This helper is always scheduled as a background
task, so it never raises: the refresh loop that scheduled it has moved on.
"""

from __future__ import annotations

from typing import Optional

import httpx

import app as app_config
from app.models import DkimRecord, DomainSelectorPair
from app.utils.logger import logger
from app.utils.records import mark_provenance_verified

WITNESS_TIMEOUT_SECONDS = 30


async def generate_witness(
    supabase,
    pair: DomainSelectorPair,
    record: DkimRecord,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> None:
    endpoint = app_config.WITNESS_SERVICE_URL
    if not endpoint:
        logger.info(f"WITNESS_SERVICE_URL not set – skipping witness for record {record} (dev mode)")
        return

    payload = {
        "domain": pair.domain,
        "selector": pair.selector,
        "value": record.value,
        "record_id": record.id,
    }
    try:
        async with httpx.AsyncClient(timeout=WITNESS_TIMEOUT_SECONDS, transport=transport) as client:
            resp = await client.post(endpoint, json=payload)
            resp.raise_for_status()
        await mark_provenance_verified(supabase, record.id)
        logger.info(f"witness generated for record {record} of pair {pair}")
    except Exception as e:  # noqa: BLE001
        # Witness failures must not reach the refresh loop
        logger.error(f"witness generation failed for record {record} of pair {pair}: {e}")
