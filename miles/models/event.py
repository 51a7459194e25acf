# miles/models/event.py
"""
Alert event table.
One row per logical Meraki alert, keyed by dedupe_key. Repeated webhook
deliveries update the row in place (last write wins).
"""

from sqlalchemy import JSON, Column, DateTime, Index, Integer, Text
from miles.database import Base

# SQLite keeps the raw payload as serialized text, PostgreSQL as native JSON
RawPayload = JSON().with_variant(Text(), "sqlite")


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        Index("ix_events_occurred_at_id", "occurred_at", "id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Vendor-supplied values are unbounded; objects arrive as JSON text
    dedupe_key = Column(Text, nullable=False, unique=True, index=True)
    occurred_at = Column(DateTime, nullable=False, index=True)
    alert_type = Column(Text, nullable=False, index=True)
    severity = Column(Text)
    organization_id = Column(Text)
    network_id = Column(Text, index=True)
    device_serial = Column(Text, index=True)
    device_mac = Column(Text)
    device_name = Column(Text)
    client_mac = Column(Text)
    image_url = Column(Text)
    details = Column(Text)
    raw = Column(RawPayload)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<Event {self.id} type={self.alert_type} key={self.dedupe_key}>"
