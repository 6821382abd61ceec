"""Store gateway for domain/selector pairs and their DKIM key-record history.

Tables
------
``domain_selector_pairs``  id, domain, selector, last_record_update
``dkim_records``           id, domain_selector_pair_id, value, key_type,
                           key_data, first_seen_at, last_seen_at,
                           provenance_verified

``dkim_records`` has a unique constraint on
``(domain_selector_pair_id, value)``; :func:`upsert_dkim_record` relies on it.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

from app.models import DkimDnsRecord, DkimRecord, DomainSelectorPair
from app.utils.database import insert_data, query_many, query_one, update_data
from app.utils.dns_fetch import parse_dkim_tags
from app.utils.logger import logger

PAIRS_TABLE = "domain_selector_pairs"
RECORDS_TABLE = "dkim_records"


async def find_stale_pairs(supabase, cutoff: datetime, limit: int) -> List[DomainSelectorPair]:
    """Pairs last refreshed at or before ``cutoff``, oldest first."""
    if limit <= 0:
        return []
    rows = await query_many(
        supabase,
        PAIRS_TABLE,
        match={"last_record_update": ("lte", cutoff.isoformat())},
        order_by=("last_record_update", False),
        limit=limit,
    )
    return [DomainSelectorPair(**row) for row in rows]


async def find_dkim_record(supabase, pair: DomainSelectorPair, value: str) -> Optional[DkimRecord]:
    row = await query_one(
        supabase,
        RECORDS_TABLE,
        match={"domain_selector_pair_id": pair.id, "value": value},
    )
    return DkimRecord(**row) if row else None


async def create_dkim_record(
    supabase,
    pair: DomainSelectorPair,
    dns_record: DkimDnsRecord,
) -> Optional[DkimRecord]:
    """Insert a never-seen value. Returns ``None`` if the value already exists."""
    tags = parse_dkim_tags(dns_record.value)
    key_data = tags.get("p")
    seen_at = dns_record.timestamp.isoformat()
    result = await insert_data(
        supabase,
        RECORDS_TABLE,
        {
            "domain_selector_pair_id": pair.id,
            "value": dns_record.value,
            # k= defaults to rsa (RFC 6376 3.6.1)
            "key_type": tags.get("k", "rsa") if key_data is not None else None,
            "key_data": key_data,
            "first_seen_at": seen_at,
            "last_seen_at": seen_at,
            "provenance_verified": False,
        },
    )
    if result == "duplicate":
        return None
    record = DkimRecord(**result[0])
    logger.info(f"created dkim record {record} for domain/selector pair {pair}")
    return record


async def update_record_timestamp(supabase, record_id: int, timestamp: datetime) -> Optional[DkimRecord]:
    rows = await update_data(
        supabase,
        RECORDS_TABLE,
        update_values={"last_seen_at": timestamp.isoformat()},
        filters={"id": record_id},
        error_message="Failed to update dkim record lastSeenAt",
    )
    return DkimRecord(**rows[0]) if rows else None


async def update_pair_timestamp(supabase, pair: DomainSelectorPair, timestamp: datetime) -> None:
    await update_data(
        supabase,
        PAIRS_TABLE,
        update_values={"last_record_update": timestamp.isoformat()},
        filters={"id": pair.id},
        error_message="Failed to update domain/selector pair timestamp",
    )


async def upsert_dkim_record(supabase, pair: DomainSelectorPair, dns_record: DkimDnsRecord) -> DkimRecord:
    """Create the record, or touch ``last_seen_at`` when the value is known.

    The insert goes first so two overlapping runs cannot both create the same
    value: the loser gets the duplicate signal and falls through to the update.
    """
    record = await create_dkim_record(supabase, pair, dns_record)
    if record is not None:
        return record

    existing = await find_dkim_record(supabase, pair, dns_record.value)
    if existing is None:
        raise RuntimeError(f"dkim record for {pair} reported duplicate but was not found")
    logger.info(
        f"record already exists: {existing} for domain/selector pair {pair}, "
        f"updating lastSeenAt to {dns_record.timestamp.isoformat()}"
    )
    updated = await update_record_timestamp(supabase, existing.id, dns_record.timestamp)
    return updated or existing.model_copy(update={"last_seen_at": dns_record.timestamp})


async def mark_provenance_verified(supabase, record_id: int) -> None:
    await update_data(
        supabase,
        RECORDS_TABLE,
        update_values={"provenance_verified": True},
        filters={"id": record_id},
        error_message="Failed to mark dkim record provenance verified",
    )


async def find_records_for_domain(
    supabase,
    domain: str,
    selector: Optional[str] = None,
) -> List[Tuple[DomainSelectorPair, DkimRecord]]:
    """All tracked key records of ``domain``, most recently seen first."""
    match = {"domain": domain}
    if selector:
        match["selector"] = selector
    pairs = {
        row["id"]: DomainSelectorPair(**row)
        for row in await query_many(supabase, PAIRS_TABLE, match=match)
    }
    if not pairs:
        return []
    rows = await query_many(
        supabase,
        RECORDS_TABLE,
        match={"domain_selector_pair_id": ("in", list(pairs))},
        order_by=("last_seen_at", True),
    )
    return [(pairs[row["domain_selector_pair_id"]], DkimRecord(**row)) for row in rows]
