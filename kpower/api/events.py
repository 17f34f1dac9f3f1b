"""
Server-Sent Events (SSE) endpoint for live domain events.

Each connection gets its own event bus subscription and receives:
- NewLogin: an existing user authenticated
- NewRegister: a new user registered
- NewReferral: a new user registered with someone's invite code

A keep-alive comment is sent on a fixed timer whether or not events flow.
"""
import asyncio
import json
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from kpower.api.auth import require_user
from kpower.api.dependencies import get_event_bus, get_settings
from kpower.config import Settings
from kpower.domain.entities import User
from kpower.domain.events import to_envelope
from kpower.services.event_bus import EventBus, EventBusClosed, Subscription, SubscriberLagged

logger = logging.getLogger(__name__)

router = APIRouter()

CONNECTED_FRAME = ": connected\n\n"
KEEPALIVE_FRAME = ": keepalive\n\n"


def format_event(envelope: dict) -> str:
    return f"data: {json.dumps(envelope)}\n\n"


async def event_stream(subscription: Subscription, keepalive_seconds: float) -> AsyncIterator[str]:
    """
    Yield SSE frames for one subscriber.

    Suspends on "next event or keep-alive deadline, whichever comes first".
    Lagging is logged and skipped; the loop ends when the bus closes.
    Peer disconnects arrive as cancellation from the transport.
    """
    loop = asyncio.get_running_loop()
    next_ping = loop.time() + keepalive_seconds

    yield CONNECTED_FRAME

    while True:
        remaining = next_ping - loop.time()
        if remaining <= 0:
            yield KEEPALIVE_FRAME
            next_ping = loop.time() + keepalive_seconds
            continue

        try:
            event = await asyncio.wait_for(subscription.recv(), timeout=remaining)
        except asyncio.TimeoutError:
            continue
        except SubscriberLagged as e:
            logger.warning(f"SSE subscriber lagging: {e.missed} event(s) dropped")
            continue
        except EventBusClosed:
            logger.info("Event bus closed, ending SSE stream")
            break

        yield format_event(to_envelope(event))


@router.get("/stream")
async def stream(
    user: User = Depends(require_user),
    bus: EventBus = Depends(get_event_bus),
    settings: Settings = Depends(get_settings),
):
    """Persistent event feed for the authenticated client"""
    logger.info(f"New SSE connection from {user.username}")
    keepalive_seconds = settings.stream_keepalive_seconds

    async def event_generator():
        async with bus.subscribe() as subscription:
            try:
                async for frame in event_stream(subscription, keepalive_seconds):
                    yield frame
            except asyncio.CancelledError:
                logger.info(f"SSE stream for {user.username} cancelled")
                raise

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        }
    )
