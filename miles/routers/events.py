# miles/routers/events.py
"""
Dashboard read API.
GET /events            — filtered, cursor-paginated event list.
GET /events/{event_id} — single event.
GET /alert-types       — distinct alert types for the filter dropdown.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from miles.database import get_db
from miles.schemas.event import AlertTypesOut, EventOut, EventPage
from miles.services.event_store import (
    EventFilters,
    InvalidCursor,
    clamp_limit,
    get_event,
    list_alert_types,
    parse_event_id,
    query_events,
)
from miles.services.payload_normalizer import parse_timestamp

router = APIRouter()


def _parse_list(request: Request, name: str) -> list[str]:
    """Accepts ?x=a&x=b, ?x[]=a and ?x=a,b."""
    values = request.query_params.getlist(name) + request.query_params.getlist(f"{name}[]")
    items = []
    for value in values:
        items.extend(part.strip() for part in value.split(",") if part.strip())
    return items


@router.get("/events", response_model=EventPage, summary="List alert events")
def list_events(
    request: Request,
    network_id: Optional[str] = Query(None, alias="networkId"),
    device_serial: Optional[str] = Query(None, alias="deviceSerial"),
    since: Optional[str] = None,
    until: Optional[str] = None,
    q: Optional[str] = None,
    limit: Optional[str] = None,
    cursor: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    `alertType` and `severity` are repeatable or comma lists. Results are
    newest first; pass `nextCursor` back as `cursor` for the next page.
    """
    filters = EventFilters(
        alert_types=_parse_list(request, "alertType"),
        severities=_parse_list(request, "severity"),
        network_id=network_id or None,
        device_serial=device_serial or None,
        since=parse_timestamp(since),
        until=parse_timestamp(until),
        q=q or None,
    )
    try:
        page = query_events(db, filters, limit=clamp_limit(limit), cursor=cursor or None)
    except InvalidCursor as e:
        raise HTTPException(status_code=400, detail=str(e))

    return EventPage(
        items=[EventOut.model_validate(item) for item in page.items],
        total=page.total,
        next_cursor=page.next_cursor,
    )


@router.get("/events/{event_id}", response_model=EventOut, summary="Single alert event")
def get_single_event(event_id: str, db: Session = Depends(get_db)):
    parsed_id = parse_event_id(event_id)
    event = get_event(db, parsed_id) if parsed_id is not None else None
    if not event:
        raise HTTPException(status_code=404, detail="Not found")
    return event


@router.get("/alert-types", response_model=AlertTypesOut, summary="Distinct alert types")
def get_alert_types(db: Session = Depends(get_db)):
    return AlertTypesOut(items=list_alert_types(db))
