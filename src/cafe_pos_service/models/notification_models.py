"""Notification models for kitchen, cashier and admin alerts."""

from datetime import datetime
from enum import Enum

from pydantic import Field

from cafe_pos_service.models.api_model import ApiModel


class NotificationType(str, Enum):
    """Enumeration of notification severities."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notification(ApiModel):
    """A notification addressed to everyone, a role, or a single user."""

    id: str = Field(..., description="Unique notification identifier")
    type: NotificationType = Field(..., description="Severity")
    message: str = Field(..., description="Human readable message")
    timestamp: datetime = Field(..., description="When the notification was published")
    target_role: str | None = Field(None, description="Role the notification is for")
    target_user: str | None = Field(None, description="User the notification is for")
    read: bool = Field(default=False, description="Whether it has been marked as read")

    def is_visible_to(self, role: str | None, user_id: str | None) -> bool:
        """Check whether a principal should see this notification."""
        if self.target_role is None and self.target_user is None:
            return True
        return (role is not None and self.target_role == role) or (
            user_id is not None and self.target_user == user_id
        )
