"""In-app notification models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class RecipientType(str, Enum):
    """Who a notification is addressed to."""

    BUYER = "BUYER"
    KITCHEN = "KITCHEN"


class NotificationType(str, Enum):
    """Notification severity shown in the inbox."""

    INFO = "INFO"
    WARNING = "WARNING"


class Notification(BaseModel):
    """An in-app notification.

    Stored in DynamoDB with ``notification_id`` as partition key and a GSI on
    ``recipient_id`` for inbox queries.
    """

    id: str = Field(..., description="Unique notification identifier")
    recipient_type: RecipientType = Field(..., description="Buyer or kitchen")
    recipient_id: str = Field(..., description="Buyer ID or kitchen ID")
    type: NotificationType = Field(default=NotificationType.INFO)
    title: str = Field(..., description="Short headline")
    message: str = Field(..., description="Body text")
    created_at: datetime = Field(..., description="Creation timestamp")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format."""
        return {
            "notification_id": self.id,
            "recipient_type": self.recipient_type.value,
            "recipient_id": self.recipient_id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
            "read": False,
        }


@dataclass
class NotificationResult:
    """Outcome of a best-effort notification.

    Attributes:
        delivered: Whether the notification was stored
        notification_id: ID of the stored notification, None if not delivered
        error: Reason delivery failed, None on success
    """

    delivered: bool
    notification_id: str | None = None
    error: str | None = None
