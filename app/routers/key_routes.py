from __future__ import annotations

"""Public DKIM key lookup – archived key records for a domain."""

from fastapi import APIRouter, Depends, Query

from app.models import KeyLookupItem, KeyLookupResponse
from app.utils.dependencies import get_supabase_async
from app.utils.records import find_records_for_domain

router = APIRouter(prefix="/api", tags=["keys"])


@router.get("/key", response_model=KeyLookupResponse)
async def lookup_keys(
    domain: str = Query(..., min_length=1),
    selector: str | None = Query(None),
    supabase=Depends(get_supabase_async),
):
    domain = domain.strip().lower()
    rows = await find_records_for_domain(supabase, domain, selector)
    return KeyLookupResponse(
        domain=domain,
        records=[
            KeyLookupItem(
                domain=pair.domain,
                selector=pair.selector,
                value=record.value,
                key_type=record.key_type,
                first_seen_at=record.first_seen_at,
                last_seen_at=record.last_seen_at,
                provenance_verified=record.provenance_verified,
                last_record_update=pair.last_record_update,
            )
            for pair, record in rows
        ],
    )
