"""Shared-secret authentication for cron-triggered endpoints.

Vercel Cron (and any other scheduler we point at the API) sends
``Authorization: Bearer <CRON_SECRET>``.  There are no user accounts here.
"""

from __future__ import annotations

import hmac
from typing import Optional


def is_authorized_cron(authorization: Optional[str], secret: Optional[str]) -> bool:
    """True iff ``authorization`` is exactly ``Bearer <secret>``.

    A deployment without a configured secret accepts nothing.
    """
    if not secret or not authorization:
        return False
    expected = f"Bearer {secret}"
    return hmac.compare_digest(authorization.encode(), expected.encode())
