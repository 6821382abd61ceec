from __future__ import annotations

"""Application-level configuration helpers (env → constants).

Only generic utilities that may be imported *anywhere* in the code-base
should live in this module.  Values that operators are expected to change
between deploys without a restart (cron secret, batch size) are resolved per
invocation through :class:`BatchUpdateConfig` instead of module constants.
"""

# Standard library
import os
from typing import Optional

from pydantic import BaseModel, Field

from app.utils.logger import logger

__all__ = [
    "ALLOWED_ORIGINS",
    "DNS_TIMEOUT_SECONDS",
    "STALENESS_HOURS",
    "BatchUpdateConfig",
    "get_batch_update_config",
]

# Pairs refreshed less than this many hours ago are not re-fetched.
STALENESS_HOURS = 24


def _collect_origins() -> list[str]:
    """Collect allowed CORS origins from the environment.

    Falls back to the public archive front-end when no explicit env vars are
    set.
    """
    origins: list[str] = []
    for name in ("FRONTEND_ORIGIN", "DOCS_ORIGIN", "EXTRA_ORIGIN"):
        if (val := os.getenv(name)):
            origins.append(val)

    if not origins:
        origins.extend(
            ["https://archive.prove.email",
            # "http://localhost:3000"
            ]
        )
    return origins


def _dns_timeout() -> float:
    try:
        return float(os.getenv("DNS_TIMEOUT_SECONDS", "10"))
    except ValueError:
        return 10.0


ALLOWED_ORIGINS: list[str] = _collect_origins()
DNS_TIMEOUT_SECONDS: float = _dns_timeout()


def _batch_limit_from_env() -> int:
    take_param = os.getenv("BATCH_UPDATE_NUM_RECORDS")
    if not take_param:
        logger.info("BATCH_UPDATE_NUM_RECORDS not set, using 0")
        return 0
    logger.info(f"using BATCH_UPDATE_NUM_RECORDS: {take_param}")
    try:
        take = int(take_param.strip())
    except ValueError:
        logger.warning(f"invalid BATCH_UPDATE_NUM_RECORDS: {take_param}, using 0")
        return 0
    if take < 0:
        logger.warning(f"negative BATCH_UPDATE_NUM_RECORDS: {take_param}, using 0")
        return 0
    return take


class BatchUpdateConfig(BaseModel):
    """Per-invocation settings for the batch-update job."""

    secret_token: Optional[str] = Field(None, description="Shared secret expected in the Bearer header")
    batch_limit: int = Field(0, ge=0, description="Maximum number of pairs refreshed per run")

    @classmethod
    def from_env(cls) -> "BatchUpdateConfig":
        return cls(
            secret_token=os.getenv("CRON_SECRET") or None,
            batch_limit=_batch_limit_from_env(),
        )


def get_batch_update_config() -> BatchUpdateConfig:
    """FastAPI dependency: resolve the job configuration once per request."""
    return BatchUpdateConfig.from_env()
