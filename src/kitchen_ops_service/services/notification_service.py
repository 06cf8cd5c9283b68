"""Best-effort in-app notifications.

Notifications are a non-critical side effect: a failure to store one is
returned as a NotificationResult for the caller to log, and never raised.
"""

import logging
import uuid
from datetime import UTC, date, datetime

from kitchen_ops_service.models.notification_models import (
    Notification,
    NotificationResult,
    RecipientType,
)
from kitchen_ops_service.models.subscription_models import Subscription
from kitchen_ops_service.observability.metrics import record_notification_failure
from kitchen_ops_service.repositories.marketplace_store import MarketplaceStore

logger = logging.getLogger(__name__)


class NotificationService:
    """Sends in-app notifications to buyers and kitchens."""

    def __init__(self, store: MarketplaceStore) -> None:
        """Initialize the NotificationService.

        Args:
            store: Backing store notifications are written to
        """
        self.store = store

    async def send(
        self,
        recipient_type: RecipientType,
        recipient_id: str,
        title: str,
        message: str,
    ) -> NotificationResult:
        """Store a notification, reporting rather than raising any failure.

        Args:
            recipient_type: Buyer or kitchen
            recipient_id: Buyer ID or kitchen ID
            title: Short headline
            message: Body text

        Returns:
            NotificationResult describing whether the notification was stored
        """
        notification = Notification(
            id=f"ntf_{uuid.uuid4().hex[:12]}",
            recipient_type=recipient_type,
            recipient_id=recipient_id,
            title=title,
            message=message,
            created_at=datetime.now(UTC),
        )

        try:
            self.store.create_notification(notification)
        except Exception as e:
            record_notification_failure(recipient_type.value)
            return NotificationResult(delivered=False, error=str(e))

        return NotificationResult(delivered=True, notification_id=notification.id)

    async def notify_subscription_orders_created(
        self,
        subscription: Subscription,
        delivery_date: date,
        order_count: int,
    ) -> list[NotificationResult]:
        """Tell the buyer and the kitchen that a day's subscription orders were created.

        Args:
            subscription: Subscription the orders were generated from
            delivery_date: Delivery date of the orders
            order_count: Number of orders created for that day

        Returns:
            Results for the buyer and the kitchen notification, in that order
        """
        plan_name = subscription.plan.name or "your meal plan"
        meals = "meal" if order_count == 1 else "meals"
        day = delivery_date.strftime("%A, %d %B %Y")

        results = [
            await self.send(
                RecipientType.BUYER,
                subscription.buyer_id,
                "Order Created from Subscription",
                f"{order_count} {meals} from {plan_name} scheduled for {day}.",
            ),
            await self.send(
                RecipientType.KITCHEN,
                subscription.kitchen_id,
                "New Subscription Order",
                f"{order_count} {meals} from subscription \"{plan_name}\" for "
                f"{subscription.buyer_name or 'customer'} on {day}.",
            ),
        ]

        for result in results:
            if not result.delivered:
                logger.warning(
                    f"Failed to create notification for subscription {subscription.id} "
                    f"(non-critical): {result.error}"
                )

        return results
