# miles/services/ingest_service.py
"""
Normalize → upsert → broadcast, shared by the webhook receiver and the admin seed.
The broadcast runs after the commit and never affects the caller's result.
"""

import json
from typing import Optional

from sqlalchemy.orm import Session

from miles.models.event import Event
from miles.services.event_store import upsert_event
from miles.services.live_stream import SubscriberRegistry, publish_event
from miles.services.payload_normalizer import normalize_payload
from miles.utils.logger import get_logger

logger = get_logger(__name__)


def store_payload(db: Session, payload: dict, raw_body: Optional[bytes | str] = None) -> Event:
    """Persist one vendor payload. Raises on store failure."""
    if raw_body is None:
        raw_body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return upsert_event(db, normalize_payload(payload, raw_body))


def broadcast_stored(event: Event, target: Optional[SubscriberRegistry] = None) -> int:
    try:
        return publish_event(event, target)
    except Exception as e:
        logger.error(f"[SSE] Broadcast of event {event.id} failed: {e}", exc_info=True)
        return 0


def ingest_payload(db: Session, payload: dict, raw_body: bytes | str,
                   target: Optional[SubscriberRegistry] = None) -> Optional[Event]:
    """
    Webhook path. Persistence errors are logged and swallowed so the
    sender is always acknowledged. Returns the stored event or None.
    """
    try:
        stored = store_payload(db, payload, raw_body)
    except Exception as e:
        db.rollback()
        logger.error(f"Upsert failed, webhook acknowledged anyway: {e}", exc_info=True)
        return None

    broadcast_stored(stored, target)
    return stored
