# Lightweight shim for Vercel Cron (function path, no ASGI app)

from app.cron.batch_update import _run  # noqa: WPS450

# Vercel invokes the default exportable object – we expose a handler that
# runs one batch via the same coroutine the CLI uses.

def handler(_req, _res):  # type: ignore[unused-argument]
    import asyncio
    try:
        asyncio.run(_run())
    except Exception as e:  # noqa: BLE001
        return {"status": "error", "error": str(e)}
    return {"status": "ok"}
