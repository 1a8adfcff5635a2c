"""
api/routes/health.py
--------------------
Health-check endpoint — used by load balancers and Docker health checks.

With STORE_BACKEND=redis the store is pinged; an unreachable Redis reports
status "degraded" (still HTTP 200, so the checker can tell the two apart).
"""
from __future__ import annotations

from fastapi import APIRouter

from tripslot import __version__, config
from tripslot.db.redis_client import redis_status

router = APIRouter()


@router.get("/health", summary="Health check")
def health() -> dict:
    store = "ok"
    if config.STORE_BACKEND.strip().lower() == "redis":
        store = redis_status()
    return {
        "status":  "ok" if store == "ok" else "degraded",
        "service": "tripslot",
        "version": __version__,
        "backend": config.STORE_BACKEND,
        "store":   store,
    }
