# miles/services/payload_normalizer.py
"""
Maps an arbitrary Meraki webhook JSON object into a NormalizedEvent.
Computes the dedupe key and the one-line details summary. Missing or
oddly-typed fields become None; normalizing a dict never raises.
"""

import hashlib
import json
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Optional
from miles.utils.json_parser import get_nested, first_truthy
from miles.utils.logger import get_logger

logger = get_logger(__name__)

DETAILS_SEPARATOR = " • "

# Never persisted or echoed back to the dashboard
REDACTED_KEYS = frozenset({"sharedSecret"})


@dataclass
class NormalizedEvent:
    dedupe_key: str
    occurred_at: datetime            # naive UTC
    alert_type: str
    severity: Optional[str] = None
    organization_id: Optional[str] = None
    network_id: Optional[str] = None
    device_serial: Optional[str] = None
    device_mac: Optional[str] = None
    device_name: Optional[str] = None
    client_mac: Optional[str] = None
    image_url: Optional[str] = None
    details: Optional[str] = None
    raw: dict = field(default_factory=dict)

    def as_columns(self) -> dict:
        return asdict(self)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """ISO-8601 string or epoch milliseconds → naive UTC datetime. None if unusable."""
    if not value or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed

    return None


def as_str(value: Any) -> Optional[str]:
    """Coerce a scalar to str; falsy values map to None."""
    if not value:
        return None
    if isinstance(value, bool):
        return "true"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def build_dedupe_key(payload: dict, raw_body: bytes | str) -> str:
    """
    Vendor alert id when present, otherwise SHA-256 over raw body and send time.
    Byte-identical redeliveries collapse to the same key.
    """
    alert_id = first_truthy(payload.get("alertId"), payload.get("id"))
    if isinstance(alert_id, str):
        return alert_id

    if isinstance(raw_body, bytes):
        raw_body = raw_body.decode("utf-8", errors="replace")
    sent_at = first_truthy(payload.get("sentAt"), payload.get("occurredAt")) or ""
    return sha256_hex(f"{raw_body}|{sent_at}")


def summarize_details(payload: dict) -> Optional[str]:
    alert_type = payload.get("alertType") or "alert"
    device = first_truthy(payload.get("deviceName"), payload.get("deviceSerial"), payload.get("deviceMac"))
    network = first_truthy(payload.get("networkName"), payload.get("networkId"))
    text = first_truthy(payload.get("text"), payload.get("description"), payload.get("summary"))

    parts = [as_str(p) for p in (alert_type, device, network, text)]
    summary = DETAILS_SEPARATOR.join(p for p in parts if p)
    return summary or None


def normalize_payload(payload: dict, raw_body: bytes | str,
                      received_at: Optional[datetime] = None) -> NormalizedEvent:
    """Build the stored record for one webhook delivery."""
    dedupe_key = build_dedupe_key(payload, raw_body)

    occurred_at = (
        parse_timestamp(payload.get("occurredAt"))
        or parse_timestamp(get_nested(payload, "alertData", "occurredAt"))
        or parse_timestamp(payload.get("sentAt"))
        or received_at
        or utcnow()
    )
    image_url = first_truthy(
        payload.get("imageUrl"),
        get_nested(payload, "alertData", "imageUrl"),
        payload.get("motionRecapImage"),
        payload.get("recapImageUrl"),
    )

    event = NormalizedEvent(
        dedupe_key=dedupe_key,
        occurred_at=occurred_at,
        alert_type=as_str(payload.get("alertType")) or "unknown",
        severity=as_str(payload.get("severity")),
        organization_id=as_str(payload.get("organizationId")),
        network_id=as_str(payload.get("networkId")),
        device_serial=as_str(payload.get("deviceSerial")),
        device_mac=as_str(payload.get("deviceMac")),
        device_name=as_str(payload.get("deviceName")),
        client_mac=as_str(payload.get("clientMac")),
        image_url=as_str(image_url),
        details=summarize_details(payload),
        raw={key: value for key, value in payload.items() if key not in REDACTED_KEYS},
    )
    logger.debug(f"Normalized key={event.dedupe_key} type={event.alert_type} at={event.occurred_at}")
    return event
