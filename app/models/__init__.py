from __future__ import annotations

"""Unified models namespace – contains both API (request/response) and DB models.

Call-sites can simply::

    from app.models import DomainSelectorPair, DkimDnsRecord, BatchUpdateResponse
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.db import DkimRecord, DomainSelectorPair

__all__ = [
    "BatchUpdateResponse",
    "DkimDnsRecord",
    "DkimRecord",
    "DomainSelectorPair",
    "KeyLookupItem",
    "KeyLookupResponse",
]

# ---------------------------------------------------------------------------
# DNS lookup result
# ---------------------------------------------------------------------------

class DkimDnsRecord(BaseModel):
    """A DKIM TXT record as observed in DNS at ``timestamp``."""
    domain: str
    selector: str
    value: str
    timestamp: datetime

# ---------------------------------------------------------------------------
# API  Pydantic models
# ---------------------------------------------------------------------------

class BatchUpdateResponse(BaseModel):
    # Wire format keeps the camelCase key existing cron consumers expect
    model_config = ConfigDict(populate_by_name=True)

    updated_records: List[DomainSelectorPair] = Field(
        default_factory=list,
        alias="updatedRecords",
        description="Pairs selected for this run (pre-update shape)",
    )

class KeyLookupItem(BaseModel):
    domain: str
    selector: str
    value: str
    key_type: Optional[str] = None
    first_seen_at: datetime
    last_seen_at: datetime
    provenance_verified: bool
    last_record_update: Optional[datetime] = None

class KeyLookupResponse(BaseModel):
    domain: str
    records: List[KeyLookupItem] = Field(default_factory=list)
