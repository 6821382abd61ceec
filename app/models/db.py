from __future__ import annotations

"""Persistence / Supabase row models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, constr

__all__ = [
    "DomainSelectorPair",
    "DkimRecord",
]


class DomainSelectorPair(BaseModel):
    """Row in `domain_selector_pairs`."""

    # Keep extra columns so API responses echo the full selected row
    model_config = ConfigDict(extra="allow")

    id: int = Field(..., description="Primary key (bigserial, db-generated)")
    domain: constr(strip_whitespace=True, min_length=1)  # type: ignore[valid-type]
    selector: constr(strip_whitespace=True, min_length=1)  # type: ignore[valid-type]
    last_record_update: Optional[datetime] = Field(None, description="Last refresh attempt")

    def __str__(self) -> str:
        return f"#{self.id} {self.domain}, {self.selector}"


class DkimRecord(BaseModel):
    """Row in `dkim_records` – one observed key value per pair."""

    id: int = Field(..., description="Primary key (bigserial, db-generated)")
    domain_selector_pair_id: int
    value: str = Field(..., description="Raw TXT record content")
    key_type: Optional[str] = Field(None, description="`k=` tag (rsa / ed25519)")
    key_data: Optional[str] = Field(None, description="`p=` tag, base64 public key")
    first_seen_at: datetime
    last_seen_at: datetime
    provenance_verified: bool = False

    def __str__(self) -> str:
        value = self.value if len(self.value) <= 40 else self.value[:37] + "..."
        return f"#{self.id} \"{value}\""
