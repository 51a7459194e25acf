# miles/services/webhook_guard.py
"""
Transport checks for the Meraki webhook and the admin endpoints.

- IP allowlist: empty list allows everyone.
- Shared secret: header pair OR body `sharedSecret`. With neither configured
  every webhook is rejected.
- Admin: static bearer token; unset token rejects every call.
"""

import hmac
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from miles.config import settings
from miles.utils.logger import get_logger

logger = get_logger(__name__)


def _equals(given: Optional[str], expected: str) -> bool:
    if not isinstance(given, str) or not expected:
        return False
    return hmac.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def client_ips(request: Request) -> list[str]:
    """X-Forwarded-For chain followed by the socket peer address."""
    forwarded = request.headers.get("x-forwarded-for", "")
    ips = [ip.strip() for ip in forwarded.split(",") if ip.strip()]
    if request.client and request.client.host:
        ips.append(request.client.host)
    return ips


def is_ip_allowed(request: Request, allowlist: Optional[list] = None) -> bool:
    allowlist = settings.IP_ALLOWLIST if allowlist is None else allowlist
    if not allowlist:
        return True
    return any(ip in allowlist for ip in client_ips(request))


def verify_secret(headers, payload: dict) -> bool:
    header_ok = False
    if settings.WEBHOOK_HEADER_NAME and settings.WEBHOOK_EXPECTED_HEADER_VALUE:
        header_ok = _equals(headers.get(settings.WEBHOOK_HEADER_NAME), settings.WEBHOOK_EXPECTED_HEADER_VALUE)

    body_ok = _equals(payload.get("sharedSecret"), settings.SHARED_SECRET)
    return header_ok or body_ok


async def require_admin(authorization: Optional[str] = Header(None)) -> None:
    """FastAPI dependency — `Authorization: Bearer <ADMIN_TOKEN>` or 401."""
    expected = settings.ADMIN_TOKEN
    if not expected or not _equals(authorization, f"Bearer {expected}"):
        logger.warning("Admin call rejected: missing or wrong bearer token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
