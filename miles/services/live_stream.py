# miles/services/live_stream.py
"""
Live subscriber registry for the /api/stream Server-Sent Events endpoint.

Each open stream owns a bounded frame queue. broadcast() drops the frame into
every queue without awaiting; a subscriber whose queue is full or closed is
closed and unregistered without affecting the others. Nothing is replayed to
late joiners. State is process-local.
"""

import asyncio
import itertools
from dataclasses import dataclass, field
from typing import AsyncGenerator, Optional

from fastapi import Request

from miles.config import settings
from miles.models.event import Event
from miles.schemas.event import EventOut
from miles.utils.logger import get_logger

logger = get_logger(__name__)

EVENT_NAME = "event"
KEEPALIVE_FRAME = ": keepalive\n\n"


def format_sse(data: str, event: Optional[str] = None) -> str:
    lines = []
    if event:
        lines.append(f"event: {event}")
    for line in data.splitlines() or [""]:
        lines.append(f"data: {line}")
    return "\n".join(lines) + "\n\n"


@dataclass
class Subscriber:
    id: int
    queue: asyncio.Queue
    closed: bool = False

    def offer(self, frame: str) -> bool:
        if self.closed:
            return False
        try:
            self.queue.put_nowait(frame)
        except asyncio.QueueFull:
            self.closed = True
            return False
        return True


@dataclass
class SubscriberRegistry:
    queue_size: int = 100
    _subscribers: dict = field(default_factory=dict)
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    def register(self) -> Subscriber:
        subscriber = Subscriber(id=next(self._ids), queue=asyncio.Queue(maxsize=self.queue_size))
        self._subscribers[subscriber.id] = subscriber
        logger.info(f"[SSE] Client {subscriber.id} connected ({len(self._subscribers)} open)")
        return subscriber

    def unregister(self, subscriber_id: int) -> None:
        subscriber = self._subscribers.pop(subscriber_id, None)
        if subscriber is None:
            return
        subscriber.closed = True
        logger.info(f"[SSE] Client {subscriber_id} disconnected ({len(self._subscribers)} open)")

    def broadcast(self, data: str, event: str = EVENT_NAME) -> int:
        """Queue one named frame for every open subscriber. Returns deliveries."""
        frame = format_sse(data, event)
        delivered = 0
        for subscriber in list(self._subscribers.values()):
            if subscriber.offer(frame):
                delivered += 1
            else:
                logger.warning(f"[SSE] Client {subscriber.id} not keeping up — closing")
                self.unregister(subscriber.id)
        return delivered

    def __len__(self) -> int:
        return len(self._subscribers)

    def clear(self) -> None:
        for subscriber_id in list(self._subscribers):
            self.unregister(subscriber_id)


registry = SubscriberRegistry(queue_size=settings.SSE_QUEUE_SIZE)


def publish_event(event: Event, target: Optional[SubscriberRegistry] = None) -> int:
    """Serialize a stored event and fan it out to every live stream."""
    target = registry if target is None else target
    payload = EventOut.model_validate(event).model_dump_json(by_alias=True)
    delivered = target.broadcast(payload)
    logger.debug(f"[SSE] Event {event.id} sent to {delivered} client(s)")
    return delivered


async def stream_frames(request: Request, target: Optional[SubscriberRegistry] = None,
                        heartbeat: Optional[float] = None) -> AsyncGenerator[str, None]:
    """
    SSE body generator. Emits queued event frames and a keepalive comment
    after every idle heartbeat interval. Always unregisters on exit.
    """
    target = registry if target is None else target
    heartbeat = settings.SSE_HEARTBEAT_SECONDS if heartbeat is None else heartbeat
    subscriber = target.register()
    try:
        while not subscriber.closed:
            if await request.is_disconnected():
                break
            try:
                frame = await asyncio.wait_for(subscriber.queue.get(), timeout=heartbeat)
            except asyncio.TimeoutError:
                yield KEEPALIVE_FRAME
                continue
            yield frame
    finally:
        target.unregister(subscriber.id)
