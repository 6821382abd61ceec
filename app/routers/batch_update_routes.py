from __future__ import annotations

"""Cron-triggered batch refresh of DKIM key records."""

from fastapi import APIRouter, BackgroundTasks, Depends, Header, status
from fastapi.responses import JSONResponse, PlainTextResponse

from app.cron.batch_update import refresh_stale_pairs
from app.models import BatchUpdateResponse
from app.settings import BatchUpdateConfig, get_batch_update_config
from app.utils.auth import is_authorized_cron
from app.utils.dependencies import get_supabase_async

router = APIRouter(prefix="/api", tags=["cron"])


@router.get(
    "/batch_update",
    response_model=BatchUpdateResponse,
    responses={401: {"description": "Unauthorized"}, 500: {"description": "Batch aborted"}},
)
async def batch_update(
    background_tasks: BackgroundTasks,
    authorization: str | None = Header(None),
    config: BatchUpdateConfig = Depends(get_batch_update_config),
    supabase=Depends(get_supabase_async),
):
    """Refresh the stalest domain/selector pairs (Vercel Cron target)."""
    if not is_authorized_cron(authorization, config.secret_token):
        return PlainTextResponse("Unauthorized", status_code=status.HTTP_401_UNAUTHORIZED)

    try:
        pairs = await refresh_stale_pairs(supabase, config, background_tasks)
    except Exception as e:  # noqa: BLE001
        # Already logged per pair; report the error text to the scheduler
        return JSONResponse(str(e), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    body = BatchUpdateResponse(updated_records=pairs)
    return JSONResponse(body.model_dump(mode="json", by_alias=True), status_code=status.HTTP_200_OK)
