# miles/services/event_store.py
"""
Event store adapter.
Upsert by dedupe key, filtered keyset-paginated queries, counts and
distinct alert types on top of the `events` table.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from sqlalchemy import and_, or_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session
from miles.models.event import Event
from miles.services.payload_normalizer import NormalizedEvent, utcnow
from miles.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 200
MAX_ALERT_TYPES = 1000

# Largest integer SQLite and PostgreSQL can bind as a parameter
MAX_EVENT_ID = 2**63 - 1

# Columns the free-text query searches (OR-ed substring match)
TEXT_SEARCH_COLUMNS = (
    Event.details,
    Event.device_name,
    Event.device_serial,
    Event.network_id,
    Event.alert_type,
)

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class InvalidCursor(ValueError):
    """Cursor is not an event id or names no stored event."""


@dataclass
class EventFilters:
    alert_types: list[str] = field(default_factory=list)
    severities: list[str] = field(default_factory=list)
    network_id: Optional[str] = None
    device_serial: Optional[str] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    q: Optional[str] = None


@dataclass
class EventPageResult:
    items: list[Event]
    total: int
    next_cursor: Optional[str]


def clamp_limit(value) -> int:
    """Non-numeric → default, then clamp to [1, MAX_LIMIT]."""
    try:
        limit = int(value) if value not in (None, "") else DEFAULT_LIMIT
    except (TypeError, ValueError):
        limit = DEFAULT_LIMIT
    if limit == 0:
        limit = DEFAULT_LIMIT
    return min(max(limit, 1), MAX_LIMIT)


def _encode_raw(payload: dict, dialect: str):
    # Text column on SQLite, native JSON elsewhere
    if dialect == "sqlite":
        return json.dumps(payload, ensure_ascii=False)
    return payload


def upsert_event(db: Session, event: NormalizedEvent) -> Event:
    """
    Insert-or-update keyed on dedupe_key. The unique index serializes
    concurrent writers at the database; last write wins.
    Returns the stored row (same id on every update).
    """
    now = utcnow()
    dialect = db.get_bind().dialect.name
    values = event.as_columns()
    values["raw"] = _encode_raw(values["raw"], dialect)

    insert = _UPSERT_DIALECTS.get(dialect)
    if insert is not None:
        stmt = insert(Event).values(**values, created_at=now, updated_at=now)
        mutable = {key: stmt.excluded[key] for key in values if key != "dedupe_key"}
        mutable["updated_at"] = stmt.excluded["updated_at"]
        stmt = stmt.on_conflict_do_update(index_elements=[Event.dedupe_key], set_=mutable)
        db.execute(stmt)
    else:
        existing = db.query(Event).filter(Event.dedupe_key == event.dedupe_key).first()
        if existing is None:
            db.add(Event(**values, created_at=now, updated_at=now))
        else:
            for key, value in values.items():
                setattr(existing, key, value)
            existing.updated_at = now
    db.commit()

    stored = db.query(Event).filter(Event.dedupe_key == event.dedupe_key).one()
    logger.info(f"Upserted event id={stored.id} key={stored.dedupe_key} type={stored.alert_type}")
    return stored


def apply_filters(query, filters: EventFilters):
    """AND every supplied filter onto the query."""
    if filters.alert_types:
        query = query.filter(Event.alert_type.in_(filters.alert_types))
    if filters.severities:
        query = query.filter(Event.severity.in_(filters.severities))
    if filters.network_id:
        query = query.filter(Event.network_id == filters.network_id)
    if filters.device_serial:
        query = query.filter(Event.device_serial == filters.device_serial)
    if filters.since:
        query = query.filter(Event.occurred_at >= filters.since)
    if filters.until:
        query = query.filter(Event.occurred_at <= filters.until)
    if filters.q:
        query = query.filter(or_(*(col.contains(filters.q, autoescape=True) for col in TEXT_SEARCH_COLUMNS)))
    return query


def parse_event_id(value) -> Optional[int]:
    """ASCII decimal id within the primary key range, else None."""
    if not isinstance(value, str) or not (value.isascii() and value.isdigit()):
        return None
    event_id = int(value)
    return event_id if event_id <= MAX_EVENT_ID else None


def _resolve_cursor(db: Session, cursor: str) -> Event:
    cursor_id = parse_event_id(cursor)
    if cursor_id is None:
        raise InvalidCursor(f"Invalid cursor: {cursor!r}")
    anchor = db.get(Event, cursor_id)
    if anchor is None:
        raise InvalidCursor(f"Unknown cursor: {cursor!r}")
    return anchor


def count_events(db: Session, filters: EventFilters) -> int:
    return apply_filters(db.query(Event), filters).count()


def query_events(db: Session, filters: EventFilters, limit: int = DEFAULT_LIMIT,
                 cursor: Optional[str] = None) -> EventPageResult:
    """
    One page ordered by occurred_at DESC, id DESC.
    The page starts strictly after the cursor row; next_cursor is the id of
    the last row returned, or None when nothing follows.
    """
    query = apply_filters(db.query(Event), filters)

    if cursor:
        anchor = _resolve_cursor(db, cursor)
        query = query.filter(or_(
            Event.occurred_at < anchor.occurred_at,
            and_(Event.occurred_at == anchor.occurred_at, Event.id < anchor.id),
        ))

    rows = query.order_by(Event.occurred_at.desc(), Event.id.desc()).limit(limit + 1).all()

    next_cursor = None
    if len(rows) > limit:
        rows = rows[:limit]
        next_cursor = str(rows[-1].id)

    return EventPageResult(items=rows, total=count_events(db, filters), next_cursor=next_cursor)


def get_event(db: Session, event_id: int) -> Optional[Event]:
    return db.get(Event, event_id)


def list_alert_types(db: Session, limit: int = MAX_ALERT_TYPES) -> list[str]:
    rows = (
        db.query(Event.alert_type)
        .distinct()
        .order_by(Event.alert_type.asc())
        .limit(limit)
        .all()
    )
    return [row[0] for row in rows if row[0]]
