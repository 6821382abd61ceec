from __future__ import annotations

"""Pytest fixtures for FastAPI integration tests.

All external services (Supabase, DNS, the witness prover) are stubbed so we
can exercise the request pipeline end-to-end without network or database
round-trips.
"""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Tuple

import pytest
from fastapi import FastAPI
from starlette.routing import Mount
from starlette.testclient import TestClient

# ---------------------------------------------------------------------------
# Runtime env for the application
# ---------------------------------------------------------------------------

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test_key")
os.environ.setdefault("FRONTEND_ORIGIN", "https://archive.test")

CRON_SECRET = "test_cron_secret"

# Ensure project root on PYTHONPATH so `import app` works when pytest is run
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Boot the app once
from app.main import create_app, limiter  # noqa: E402, WPS433
from app.models import DkimDnsRecord  # noqa: E402
from app.utils.dependencies import get_supabase_async  # noqa: E402
from tests.supabase_stub import SupabaseStub  # noqa: E402

app: FastAPI = create_app()
client = TestClient(app)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture(autouse=True)
def _job_env(monkeypatch):
    monkeypatch.setenv("CRON_SECRET", CRON_SECRET)
    monkeypatch.setenv("BATCH_UPDATE_NUM_RECORDS", "10")
    yield


@pytest.fixture()
def api_client() -> TestClient:  # noqa: D401 – simple alias
    return client


@pytest.fixture()
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {CRON_SECRET}"}


@pytest.fixture()
def supabase_stub():
    """Fresh in-memory database wired into every route."""
    stub = SupabaseStub()
    # Mounted sub-apps (/public) keep their own override maps
    targets = [app] + [r.app for r in app.routes if isinstance(r, Mount) and isinstance(r.app, FastAPI)]
    for target in targets:
        target.dependency_overrides[get_supabase_async] = lambda: stub
    yield stub
    for target in targets:
        target.dependency_overrides.pop(get_supabase_async, None)


@pytest.fixture()
def fake_dns(monkeypatch):
    """Serve DKIM lookups from a dict keyed by ``(domain, selector)``.

    Values are the TXT content, or an exception instance to raise.  Missing
    keys behave like NXDOMAIN.
    """
    answers: Dict[Tuple[str, str], Any] = {}
    lookups: List[Tuple[str, str]] = []
    observed_at = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

    async def _fetch(domain: str, selector: str):
        lookups.append((domain, selector))
        answer = answers.get((domain, selector))
        if answer is None:
            return None
        if isinstance(answer, Exception):
            raise answer
        return DkimDnsRecord(domain=domain, selector=selector, value=answer, timestamp=observed_at)

    monkeypatch.setattr("app.cron.batch_update.fetch_dkim_dns_record", _fetch, raising=True)
    return SimpleNamespace(answers=answers, lookups=lookups, observed_at=observed_at)


@pytest.fixture()
def witness_calls(monkeypatch):
    """Record witness generation requests instead of calling the prover."""
    calls: List[Tuple[Any, Any]] = []

    async def _generate(_supabase, pair, record):  # noqa: ANN001
        calls.append((pair, record))

    monkeypatch.setattr("app.cron.batch_update.generate_witness", _generate, raising=True)
    return calls
