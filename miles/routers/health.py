# miles/routers/health.py
"""
Health endpoints.
GET /healthz     — liveness for load balancers, no dependencies touched.
GET /api/health  — backend + DB + live stream status.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from miles.database import get_db
from miles.services.live_stream import registry
from miles.services.payload_normalizer import utcnow

router = APIRouter()


@router.get("/healthz", summary="Liveness check")
def liveness():
    return {"ok": True}


@router.get("/api/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    result = {
        "status": "ok",
        "timestamp": utcnow().isoformat() + "Z",
        "backend": "ok",
        "database": "unknown",
        "streamClients": len(registry),
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    return result
