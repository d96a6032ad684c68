from __future__ import annotations

import abc
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from warden._core._options import WorkerOptions

logger = logging.getLogger("warden.hooks")

ICON_DATA_URI = (
    'data:image/svg+xml,<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 192 192">'
    '<rect fill="%231a1a1a" width="192" height="192" rx="45"/>'
    '<text x="96" y="96" font-size="120" font-weight="bold" text-anchor="middle" '
    'dominant-baseline="middle" fill="%23fafaf8" font-family="system-ui">O</text></svg>'
)
BADGE_DATA_URI = (
    'data:image/svg+xml,<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 96 96">'
    '<rect fill="%231a1a1a" width="96" height="96"/>'
    '<text x="48" y="48" font-size="60" font-weight="bold" text-anchor="middle" '
    'dominant-baseline="middle" fill="%23fafaf8">O</text></svg>'
)

PushData = Union[bytes, str, Mapping[str, Any], None]


@dataclass(frozen=True)
class Notification:
    title: str
    body: str
    icon: str
    badge: str
    tag: str
    """Notifications sharing a tag replace each other instead of stacking."""
    require_interaction: bool = False


class BaseNotificationSink(abc.ABC):
    @abc.abstractmethod
    async def show_notification(self, notification: Notification) -> None:
        raise NotImplementedError()


class NullNotificationSink(BaseNotificationSink):
    async def show_notification(self, notification: Notification) -> None:
        logger.info(f"Notification: {notification.title}: {notification.body}")


async def sync_alerts() -> None:
    # Placeholder until alerts are synchronized with the backend
    logger.info("Syncing alerts")


class AsyncDeferredHooks:
    """
    Entry points for work triggered outside of a request: background sync
    and push messages.

    Args:
        options: Sync tag and notification settings.
        notifications: Where push notifications are displayed. Defaults to NullNotificationSink().
        sync_action: Awaited when the recognized sync tag fires. Defaults to sync_alerts.
    """

    def __init__(
        self,
        options: WorkerOptions | None = None,
        notifications: BaseNotificationSink | None = None,
        sync_action: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self.options = options if options is not None else WorkerOptions()
        self.notifications = notifications if notifications is not None else NullNotificationSink()
        self.sync_action = sync_action if sync_action is not None else sync_alerts

    async def on_sync(self, tag: str) -> bool:
        if tag != self.options.sync_tag:
            logger.debug(f"Ignoring unknown sync tag: {tag}")
            return False
        await self.sync_action()
        return True

    async def on_push(self, data: PushData) -> Optional[Notification]:
        if data is None:
            return None

        payload = data if isinstance(data, Mapping) else json.loads(data)
        body = payload.get("body") if isinstance(payload, Mapping) else None

        notification = Notification(
            title=self.options.notification_title,
            body="" if body is None else str(body),
            icon=ICON_DATA_URI,
            badge=BADGE_DATA_URI,
            tag=self.options.notification_tag,
            require_interaction=False,
        )
        await self.notifications.show_notification(notification)
        return notification
