# miles/services/seed_samples.py
"""Fixed sample Meraki alerts for the admin seed endpoint and scripts/setup/seed_db.py."""

from datetime import datetime, timedelta


def _iso(value: datetime) -> str:
    return value.isoformat(timespec="milliseconds") + "Z"


def build_samples(now: datetime, shared_secret: str = "") -> list[dict]:
    """Two alerts timestamped relative to `now` (naive UTC)."""
    return [
        {
            "alertType": "MV Motion Recap",
            "severity": "Info",
            "organizationId": "org_1",
            "networkId": "N_123",
            "deviceSerial": "Q2GV-ABCD-1234",
            "deviceName": "Lobby Cam",
            "clientMac": None,
            "occurredAt": _iso(now - timedelta(minutes=1)),
            "sentAt": _iso(now),
            "sharedSecret": shared_secret,
            "imageUrl": "https://placehold.co/160x90/png",
            "text": "Motion recap available",
            "alertId": "sample-1",
        },
        {
            "alertType": "MX Offline",
            "severity": "Critical",
            "organizationId": "org_1",
            "networkId": "N_123",
            "deviceSerial": "Q2GV-WXYZ-9999",
            "deviceName": "Edge Security",
            "occurredAt": _iso(now - timedelta(minutes=5)),
            "sentAt": _iso(now),
            "sharedSecret": shared_secret,
            "text": "Security appliance went offline",
            "alertId": "sample-2",
        },
    ]
