# miles/routers/webhooks.py
"""
Meraki webhook receiver.
POST /webhooks/meraki — IP allowlist → content type → JSON body → secret,
then normalize, upsert and broadcast.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from miles.database import get_db
from miles.services.ingest_service import ingest_payload
from miles.services.webhook_guard import client_ips, is_ip_allowed, verify_secret
from miles.utils.json_parser import is_json_content_type, safe_parse_json
from miles.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post("/webhooks/meraki", summary="Meraki webhook — receives all alerts")
async def receive_meraki_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Rejections (403/415/400/401) never touch the store.
    Once verified, always returns 200 — Meraki retries on non-200 and a local
    store failure must not turn into a retry storm.
    """
    if not is_ip_allowed(request):
        logger.warning(f"Webhook rejected: IP not allowed {client_ips(request)}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden (IP not allowed)")

    content_type = request.headers.get("content-type", "")
    if not is_json_content_type(content_type):
        logger.warning(f"Webhook rejected: content-type {content_type!r}")
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail="Unsupported Media Type")

    raw_body = await request.body()
    payload = safe_parse_json(raw_body)
    if not isinstance(payload, dict):
        logger.warning(f"Webhook rejected: body is not a JSON object ({len(raw_body)} bytes)")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body")

    if not verify_secret(request.headers, payload):
        logger.warning("Webhook rejected: invalid secret")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid secret")

    logger.info(f"Webhook accepted | {len(raw_body)} bytes | type={payload.get('alertType')}")
    ingest_payload(db, payload, raw_body)
    return {"ok": True}
