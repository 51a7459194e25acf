# miles/routers/admin.py
"""Admin utilities — POST /admin/seed inserts sample alerts (bearer token required)."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from miles.config import settings
from miles.database import get_db
from miles.schemas.event import SeedResult
from miles.services.ingest_service import broadcast_stored, store_payload
from miles.services.payload_normalizer import utcnow
from miles.services.seed_samples import build_samples
from miles.services.webhook_guard import require_admin
from miles.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post("/admin/seed", response_model=SeedResult, summary="Insert sample events",
             dependencies=[Depends(require_admin)])
async def seed_sample_events(db: Session = Depends(get_db)):
    """Upserts the fixed samples, then broadcasts each stored row."""
    stored = [store_payload(db, sample) for sample in build_samples(utcnow(), settings.SHARED_SECRET)]
    for event in stored:
        broadcast_stored(event)
    logger.info(f"Seeded {len(stored)} sample events")
    return SeedResult(inserted=len(stored))
