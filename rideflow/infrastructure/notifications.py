"""
Notification dispatch (requester / driver SMS + email fan-out).

The workflow hands over ``Notification`` objects *after* its transaction
commits.  Delivery is at-most-once: ``dispatch_all`` logs and drops any
failure, because the committed ride state is the source of truth.

Backends
--------
* ``LoggingNotificationDispatcher`` -- writes events to the log (default).
* ``RedisNotificationDispatcher``   -- publishes JSON on a Redis channel for
  the SMS / email senders to consume.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

import redis.asyncio as aioredis

from rideflow.config import settings
from rideflow.domain.enums import NotificationEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    user_id: int
    event: NotificationEvent
    payload: dict[str, Any] = field(default_factory=dict)


class NotificationDispatcher(Protocol):
    async def notify(
        self, user_id: int, event: NotificationEvent, payload: dict[str, Any]
    ) -> None: ...


class LoggingNotificationDispatcher:
    async def notify(
        self, user_id: int, event: NotificationEvent, payload: dict[str, Any]
    ) -> None:
        logger.info("Notify user %s: %s %s", user_id, event.value, payload)


class RedisNotificationDispatcher:
    def __init__(self, client: aioredis.Redis, channel: str | None = None):
        self.redis = client
        self.channel = channel or settings.notification_channel

    async def notify(
        self, user_id: int, event: NotificationEvent, payload: dict[str, Any]
    ) -> None:
        message = json.dumps(
            {"user_id": user_id, "event": event.value, "payload": payload},
            default=str,
        )
        await self.redis.publish(self.channel, message)


async def dispatch_all(
    dispatcher: NotificationDispatcher, notifications: Iterable[Notification]
) -> int:
    """Deliver each notification; returns how many went out."""
    sent = 0
    for n in notifications:
        try:
            await dispatcher.notify(n.user_id, n.event, n.payload)
            sent += 1
        except Exception:
            logger.exception(
                "Failed to notify user %s of %s", n.user_id, n.event.value
            )
    return sent
