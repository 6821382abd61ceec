"""DKIM TXT record lookup (``<selector>._domainkey.<domain>``)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional

import dns.asyncresolver
import dns.resolver

from app.models import DkimDnsRecord
from app.settings import DNS_TIMEOUT_SECONDS
from app.utils.logger import logger


def dkim_query_name(domain: str, selector: str) -> str:
    return f"{selector}._domainkey.{domain}"


def parse_dkim_tags(value: str) -> Dict[str, str]:
    """Split a DKIM key record into its ``tag=value`` pairs.

    Whitespace inside values is dropped (folded base64 in ``p=`` is common).
    Tags without ``=`` are ignored; the first occurrence of a tag wins.
    """
    tags: Dict[str, str] = {}
    for part in value.split(";"):
        name, sep, tag_value = part.partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        tags.setdefault(name, "".join(tag_value.split()))
    return tags


def _is_dkim_record(value: str) -> bool:
    return value.lstrip().startswith("v=DKIM1") or "p" in parse_dkim_tags(value)


def _txt_value(rdata) -> str:
    # A single TXT record may be split into several <=255 byte strings
    return b"".join(rdata.strings).decode("utf-8", errors="replace")


async def fetch_dkim_dns_record(domain: str, selector: str) -> Optional[DkimDnsRecord]:
    """Resolve the DKIM key record published for ``domain``/``selector``.

    Returns ``None`` when the name does not exist or carries no DKIM-shaped
    TXT record. Timeouts and resolver failures are raised to the caller.
    """
    qname = dkim_query_name(domain, selector)
    try:
        answer = await dns.asyncresolver.resolve(qname, "TXT", lifetime=DNS_TIMEOUT_SECONDS)
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
        return None

    values = [v for v in (_txt_value(rdata) for rdata in answer) if _is_dkim_record(v)]
    if not values:
        logger.info(f"no DKIM TXT record at {qname}")
        return None
    if len(values) > 1:
        logger.warning(f"{len(values)} DKIM TXT records at {qname}, using the first")

    return DkimDnsRecord(
        domain=domain,
        selector=selector,
        value=values[0],
        timestamp=datetime.now(timezone.utc),
    )
