"""Notification subscriber that forwards notifications to Amazon EventBridge."""

import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from cafe_pos_service.models.notification_models import Notification

logger = logging.getLogger(__name__)


class EventBridgePublisher:
    """Forwards each published notification to an EventBridge bus.

    Registered with NotificationHub.subscribe. Delivery is fire-and-forget:
    the put_events call runs on a background executor, so the publishing
    request never waits on EventBridge, and failures are logged there.
    """

    def __init__(
        self,
        events_client: Any,
        event_bus_name: str,
        source: str = "com.cafe.pos",
        executor: Executor | None = None,
    ) -> None:
        """Initialize the publisher.

        Args:
            events_client: Boto3 EventBridge client
            event_bus_name: Name of the target event bus
            source: Event source reported to EventBridge
            executor: Runs deliveries (defaults to a single worker thread)
        """
        self.events_client = events_client
        self.event_bus_name = event_bus_name
        self.source = source
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="eventbridge"
        )

    def __call__(self, notification: Notification) -> Future[None]:
        """Queue a notification for delivery to EventBridge.

        The detail is serialized now, so later changes to the notification
        (such as marking it read) are not sent.

        Args:
            notification: The notification to forward

        Returns:
            Future completing when the delivery attempt has finished
        """
        detail = notification.model_dump_json(by_alias=True)
        return self._executor.submit(self._send, notification.id, detail)

    def close(self) -> None:
        """Wait for queued deliveries and stop the executor."""
        self._executor.shutdown(wait=True)

    def _send(self, notification_id: str, detail: str) -> None:
        try:
            response = self.events_client.put_events(
                Entries=[
                    {
                        "Source": self.source,
                        "DetailType": "CafeNotification",
                        "Detail": detail,
                        "EventBusName": self.event_bus_name,
                    }
                ]
            )
            if response.get("FailedEntryCount", 0):
                logger.warning(f"EventBridge rejected notification {notification_id}")

        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to forward notification {notification_id}: {e}")
