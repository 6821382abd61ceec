"""FastAPI dependency providers for external clients."""

from __future__ import annotations

import asyncio
from typing import AsyncGenerator

from supabase import AsyncClient, acreate_client

from app import SUPABASE_URL, SUPABASE_KEY


_cached_client: AsyncClient | None = None
_cached_loop: asyncio.AbstractEventLoop | None = None


async def _get_cached_client() -> AsyncClient:
    """Return a cached Supabase async client tied to the current event loop.

    Serverless invocations (Vercel) may run each request on a fresh event loop
    inside a reused process, and an ``AsyncClient`` bound to a closed loop
    fails on its first I/O.  Cache **per-loop** rather than per-process.
    """

    global _cached_client, _cached_loop

    current_loop = asyncio.get_running_loop()

    if (
        _cached_client is None
        or _cached_loop is None
        or _cached_loop is not current_loop
        or _cached_loop.is_closed()
    ):
        _cached_client = await acreate_client(SUPABASE_URL, SUPABASE_KEY)  # type: ignore[arg-type]
        _cached_loop = current_loop

    return _cached_client


async def get_supabase_async() -> AsyncGenerator[AsyncClient, None]:
    """FastAPI dependency yielding the shared async Supabase client.

    Also usable outside FastAPI (cron scripts) via ``async for``.
    Tests replace it through ``app.dependency_overrides``.
    """
    client = await _get_cached_client()
    yield client
