# miles/schemas/event.py
import json
from pydantic import BaseModel, field_serializer, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Any, Optional


class EventOut(BaseModel):
    id: int
    dedupe_key: str
    occurred_at: datetime
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
    raw: Any = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("raw", mode="before")
    @classmethod
    def decode_raw(cls, value):
        # SQLite rows carry the payload as serialized text
        if isinstance(value, str):
            try:
                return json.loads(value)
            except ValueError:
                return value
        return value

    @field_serializer("occurred_at", "created_at", "updated_at")
    def serialize_utc(self, value: Optional[datetime]):
        if value is None:
            return None
        return value.isoformat(timespec="milliseconds") + "Z"

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class EventPage(BaseModel):
    items: list[EventOut]
    total: int
    next_cursor: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class AlertTypesOut(BaseModel):
    items: list[str]


class SeedResult(BaseModel):
    inserted: int
