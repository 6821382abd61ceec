from datetime import datetime, timedelta, timezone

import pytest

from app.models import DkimDnsRecord, DomainSelectorPair
from app.utils import records
from tests.supabase_stub import SupabaseStub, iso_ago, make_pair, make_record

PAIRS = "domain_selector_pairs"
RECORDS = "dkim_records"
T1 = datetime(2026, 10, 1, 8, 0, tzinfo=timezone.utc)
T2 = T1 + timedelta(days=1)

RSA_KEY = "v=DKIM1; k=rsa; p=MIIBIjANBgkqhkiG9w0BAQEFAAOC AQ8AMIIBCgKCAQEA"
ED_KEY = "v=DKIM1; k=ed25519; p=11qYAYKxCrfVS/7TyWQHOg7hcvPapiMlrwIaaPcHURo="


def _pair(stub: SupabaseStub) -> DomainSelectorPair:
    return DomainSelectorPair(**stub.rows(PAIRS)[0])


def _stub() -> SupabaseStub:
    return SupabaseStub({PAIRS: [make_pair(1, "example.com", "sel", iso_ago(days=2))]})


@pytest.mark.asyncio
async def test_create_parses_key_tags():
    stub = _stub()
    dns_record = DkimDnsRecord(domain="example.com", selector="sel", value=RSA_KEY, timestamp=T1)

    record = await records.create_dkim_record(stub, _pair(stub), dns_record)

    assert record.key_type == "rsa"
    # Folded whitespace inside p= is removed
    assert record.key_data == "MIIBIjANBgkqhkiG9w0BAQEFAAOCAQ8AMIIBCgKCAQEA"
    assert record.first_seen_at == record.last_seen_at == T1
    assert record.provenance_verified is False


@pytest.mark.asyncio
async def test_create_defaults_key_type_to_rsa():
    stub = _stub()
    dns_record = DkimDnsRecord(domain="example.com", selector="sel", value="p=abc", timestamp=T1)

    record = await records.create_dkim_record(stub, _pair(stub), dns_record)

    assert record.key_type == "rsa"


@pytest.mark.asyncio
async def test_create_duplicate_returns_none():
    stub = _stub()
    stub.seed(RECORDS, make_record(1, 1, ED_KEY, T1.isoformat()))
    dns_record = DkimDnsRecord(domain="example.com", selector="sel", value=ED_KEY, timestamp=T2)

    assert await records.create_dkim_record(stub, _pair(stub), dns_record) is None
    assert len(stub.rows(RECORDS)) == 1


@pytest.mark.asyncio
async def test_upsert_touches_existing_value():
    stub = _stub()
    pair = _pair(stub)
    first = DkimDnsRecord(domain="example.com", selector="sel", value=ED_KEY, timestamp=T1)
    again = DkimDnsRecord(domain="example.com", selector="sel", value=ED_KEY, timestamp=T2)

    created = await records.upsert_dkim_record(stub, pair, first)
    touched = await records.upsert_dkim_record(stub, pair, again)

    assert touched.id == created.id
    assert touched.first_seen_at == T1
    assert touched.last_seen_at == T2
    assert len(stub.rows(RECORDS)) == 1


@pytest.mark.asyncio
async def test_find_record_is_scoped_to_pair():
    stub = _stub()
    stub.seed(PAIRS, make_pair(2, "other.example", "sel", iso_ago(days=2)))
    stub.seed(RECORDS, make_record(1, 2, ED_KEY, T1.isoformat()))

    assert await records.find_dkim_record(stub, _pair(stub), ED_KEY) is None


@pytest.mark.asyncio
async def test_update_pair_timestamp():
    stub = _stub()

    await records.update_pair_timestamp(stub, _pair(stub), T2)

    assert datetime.fromisoformat(stub.rows(PAIRS)[0]["last_record_update"]) == T2


@pytest.mark.asyncio
async def test_mark_provenance_verified():
    stub = _stub()
    stub.seed(RECORDS, make_record(5, 1, ED_KEY, T1.isoformat()))

    await records.mark_provenance_verified(stub, 5)

    assert stub.rows(RECORDS)[0]["provenance_verified"] is True


@pytest.mark.asyncio
async def test_find_records_for_domain_newest_first():
    stub = _stub()
    stub.seed(PAIRS, make_pair(2, "example.com", "other", iso_ago(days=1)))
    stub.seed(
        RECORDS,
        make_record(1, 1, RSA_KEY, T1.isoformat()),
        make_record(2, 2, ED_KEY, T2.isoformat()),
    )

    rows = await records.find_records_for_domain(stub, "example.com")
    assert [(p.selector, r.id) for p, r in rows] == [("other", 2), ("sel", 1)]

    only_sel = await records.find_records_for_domain(stub, "example.com", "sel")
    assert [r.id for _, r in only_sel] == [1]

    assert await records.find_records_for_domain(stub, "unknown.example") == []
