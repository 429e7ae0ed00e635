"""
Notification Hook

Fire-and-forget publishing of domain events (override granted, role
assigned, ...) to whatever transport is registered, typically the
WebSocket server. Publishing never blocks or fails the calling request:
subscribers run in background tasks and their errors are only logged.
"""

import asyncio
import inspect
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from vetcore.utils import setup_logger

logger = setup_logger("vetcore.notifier", log_to_console=False)


@dataclass
class NotificationEvent:
    event: str
    payload: dict[str, Any]
    practice_id: int | None = None
    tenant: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


Subscriber = Callable[[NotificationEvent], Any]


class Notifier:
    """Registry of subscribers; publish() schedules them and returns at once"""

    def __init__(self):
        self._subscribers: list[Subscriber] = []
        self._tasks: set[asyncio.Task] = set()

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a sync or async subscriber; returns an unsubscribe function"""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def publish(
        self,
        event: str,
        payload: dict[str, Any],
        practice_id: int | None = None,
        tenant: str | None = None,
    ) -> None:
        if not self._subscribers:
            return

        notification = NotificationEvent(event=event, payload=payload, practice_id=practice_id, tenant=tenant)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, dropped notification '{event}'")
            return

        for subscriber in list(self._subscribers):
            task = loop.create_task(self._deliver(subscriber, notification))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _deliver(self, subscriber: Subscriber, notification: NotificationEvent) -> None:
        try:
            result = subscriber(notification)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Notification subscriber failed for '{notification.event}': {e!s}")

    async def drain(self) -> None:
        """Wait for in-flight deliveries (shutdown and tests)"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


_notifier: Notifier | None = None


def get_notifier() -> Notifier:
    """Get or create the global notifier"""
    global _notifier
    if _notifier is None:
        _notifier = Notifier()
    return _notifier
