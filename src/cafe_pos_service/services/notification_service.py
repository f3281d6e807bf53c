"""In-process notification hub with subscriber registration and bounded retention."""

import logging
import threading
import uuid
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from cafe_pos_service.models.notification_models import Notification, NotificationType

logger = logging.getLogger(__name__)

Subscriber = Callable[[Notification], None]


class NotificationHub:
    """Publish/subscribe channel for staff notifications.

    Published notifications are retained for polling (newest first), bounded
    both by count and by age, and pushed to every registered subscriber.
    A failing subscriber is logged and skipped; publishing never raises
    because of one.
    """

    def __init__(
        self,
        max_entries: int = 100,
        max_age_seconds: int = 3600,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the hub.

        Args:
            max_entries: Maximum number of notifications retained
            max_age_seconds: Notifications older than this are discarded
            clock: Source of the current time (defaults to UTC now)

        Raises:
            ValueError: If a retention limit is not positive
        """
        if max_entries <= 0 or max_age_seconds <= 0:
            raise ValueError("Retention limits must be positive")

        self.max_entries = max_entries
        self.max_age = timedelta(seconds=max_age_seconds)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = threading.Lock()
        self._notifications: deque[Notification] = deque(maxlen=max_entries)
        self._subscribers: dict[str, Subscriber] = {}

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a subscriber for every future notification.

        Args:
            callback: Called with each published notification

        Returns:
            A callable that removes the subscription
        """
        subscription_id = uuid.uuid4().hex
        with self._lock:
            self._subscribers[subscription_id] = callback

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(subscription_id, None)

        return unsubscribe

    def publish(
        self,
        notification_type: NotificationType,
        message: str,
        target_role: str | None = None,
        target_user: str | None = None,
    ) -> Notification:
        """Publish a notification.

        Args:
            notification_type: Severity of the notification
            message: Human readable message
            target_role: Optional role the notification is addressed to
            target_user: Optional user the notification is addressed to

        Returns:
            The published Notification
        """
        notification = Notification(
            id=f"ntf_{uuid.uuid4().hex[:12]}",
            type=notification_type,
            message=message,
            timestamp=self._clock(),
            target_role=target_role,
            target_user=target_user,
        )

        with self._lock:
            self._prune()
            self._notifications.appendleft(notification)
            subscribers = list(self._subscribers.values())

        logger.info(f"Notification published: {message} ({target_role or 'all'})")

        for subscriber in subscribers:
            try:
                subscriber(notification)
            except Exception as e:
                logger.error(f"Notification subscriber failed: {e}")

        return notification

    def list_for(
        self, role: str | None = None, user_id: str | None = None, limit: int = 10
    ) -> list[Notification]:
        """List the newest notifications visible to a principal.

        Args:
            role: Principal's role
            user_id: Principal's user identifier
            limit: Maximum number of notifications to return

        Returns:
            List of notifications, newest first
        """
        with self._lock:
            self._prune()
            visible = [n for n in self._notifications if n.is_visible_to(role, user_id)]

        return visible[:limit]

    def mark_as_read(
        self, notification_id: str, role: str | None = None, user_id: str | None = None
    ) -> bool:
        """Mark a retained notification as read on behalf of a principal.

        Args:
            notification_id: Notification identifier
            role: Principal's role
            user_id: Principal's user identifier

        Returns:
            bool: True if found and visible to the principal, False otherwise
        """
        with self._lock:
            for notification in self._notifications:
                if notification.id == notification_id and notification.is_visible_to(
                    role, user_id
                ):
                    notification.read = True
                    return True

        return False

    def _prune(self) -> None:
        """Drop notifications older than the retention age. Caller holds the lock."""
        cutoff = self._clock() - self.max_age
        while self._notifications and self._notifications[-1].timestamp <= cutoff:
            self._notifications.pop()
