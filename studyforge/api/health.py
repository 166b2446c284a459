"""
Health and diagnostics API.

Provides lightweight endpoints for operational monitoring without exposing secrets.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel
import time

from fastapi import APIRouter, Depends, Query

from studyforge.api.dependencies import get_policy
from studyforge.core.logging import latency_bucket_ms, get_request_id
from studyforge.features.degraded.policy import DegradedModePolicy, StoreStatus

logger = logging.getLogger("studyforge")

router = APIRouter(prefix="/api/health", tags=["health"])
root_router = APIRouter(tags=["health"])


class DBHealth(BaseModel):
    """Database health status."""
    connected: bool
    configured: bool
    latency_ms: Optional[float] = None  # None when ?now= is given, for determinism in tests


class HealthResponse(BaseModel):
    """Health check response."""
    ok: bool
    db: DBHealth
    generation_configured: bool
    computed_at: str  # UTC ISO format


@root_router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/db", response_model=HealthResponse)
async def health_db(now: Optional[str] = Query(None), policy: DegradedModePolicy = Depends(get_policy)):
    """
    Check database reachability with the same probe the request policy uses.

    The service itself stays up when the database is down, so ``ok`` only
    reports store reachability; it is not a readiness signal.

    Args:
        now: Optional ISO timestamp for deterministic testing (overrides system time)
    """
    start = time.perf_counter()
    status = await policy.probe()
    latency_ms = (time.perf_counter() - start) * 1000
    connected = status is StoreStatus.UP

    logger.info(
        "health.db",
        extra={
            "request_id": get_request_id(),
            "ok": connected,
            "latency_bucket": latency_bucket_ms(latency_ms if now is None else None),
        },
    )

    return HealthResponse(
        ok=connected,
        db=DBHealth(
            connected=connected,
            configured=policy.store is not None,
            latency_ms=None if now else latency_ms,
        ),
        generation_configured=bool(getattr(policy.provider, "configured", True)),
        computed_at=now or datetime.now(timezone.utc).isoformat(),
    )
