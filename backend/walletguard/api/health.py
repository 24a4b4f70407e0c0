"""walletguard.api.health

Liveness check. Must stay fast and independent of the stores.
"""

from __future__ import annotations

import time
from typing import Any, Dict

from fastapi import APIRouter, status

from walletguard.core.config import settings

START_TIME = time.monotonic()

router = APIRouter(prefix="/health", tags=["health"])


def _uptime_seconds() -> int:
    return int(time.monotonic() - START_TIME)


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness() -> Dict[str, Any]:
    """Liveness check.

    Always returns 200 if the process is running.
    """
    return {
        "ok": True,
        "service": "walletguard",
        "version": settings.APP_VERSION,
        "uptime_seconds": _uptime_seconds(),
    }
