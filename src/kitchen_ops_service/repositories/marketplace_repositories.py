"""DynamoDB repository classes for marketplace records.

Each repository wraps one table. Lookups that find nothing return None or an
empty list; DynamoDB failures are logged and raised as StorageError so callers
never mistake an outage for "no data" (a missing review list would silently
skew a reliability score).
"""

import logging
import uuid
from collections.abc import Iterator
from datetime import UTC, date, datetime
from typing import Any

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from kitchen_ops_service.errors import DuplicateOrderError, StorageError
from kitchen_ops_service.models.kitchen_models import Kitchen, MenuItem, Review
from kitchen_ops_service.models.notification_models import Notification
from kitchen_ops_service.models.order_models import (
    DeliveryTimeSlot,
    NewOrder,
    Order,
    OrderStatus,
)
from kitchen_ops_service.models.subscription_models import (
    ActiveSubscriptions,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
    UnloadableSubscription,
)

logger = logging.getLogger(__name__)

# BatchGetItem accepts at most 100 keys per request
BATCH_GET_LIMIT = 100

# Raised by model converters on a malformed stored row (pydantic's ValidationError
# is a ValueError, decimal.InvalidOperation an ArithmeticError)
RECORD_ERRORS = (KeyError, TypeError, ValueError, ArithmeticError)


def subscription_order_id(
    subscription_id: str, delivery_date: date, slot: DeliveryTimeSlot
) -> str:
    """Deterministic order ID for a subscription's delivery date and slot.

    Writing subscription orders under this ID with a conditional put makes the
    (subscription, date, slot) triple unique even across concurrent runs.
    """
    return f"sub_{subscription_id}_{delivery_date:%Y%m%d}_{slot.value.lower()}"


def _paginate(operation: Any, **kwargs: Any) -> Iterator[dict[str, Any]]:
    """Yield every page of a query or scan, following LastEvaluatedKey."""
    while True:
        response: dict[str, Any] = operation(**kwargs)
        yield response

        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return
        kwargs["ExclusiveStartKey"] = last_key


class _TableRepository:
    """Shared table wiring for the repositories below."""

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)


class KitchenRepository(_TableRepository):
    """Repository for kitchen records (partition key ``kitchen_id``)."""

    def get_kitchen(self, kitchen_id: str) -> Kitchen | None:
        """Retrieve a kitchen.

        Args:
            kitchen_id: Kitchen identifier

        Returns:
            Kitchen if found, None otherwise

        Raises:
            StorageError: If DynamoDB fails or the stored record is invalid
        """
        try:
            response = self.table.get_item(Key={"kitchen_id": kitchen_id})
        except ClientError as e:
            logger.error(f"Failed to get kitchen {kitchen_id}: {e}")
            raise StorageError("get_kitchen", str(e)) from e

        if "Item" not in response:
            return None

        try:
            return Kitchen.from_dynamodb_item(response["Item"])
        except RECORD_ERRORS as e:
            logger.error(f"Stored kitchen {kitchen_id} is invalid: {e}")
            raise StorageError("get_kitchen", f"invalid kitchen record {kitchen_id}: {e}") from e

    def list_kitchen_ids(self) -> list[str]:
        """List the IDs of every kitchen.

        Returns:
            list: Kitchen IDs (empty list if there are none)
        """
        try:
            return [
                item["kitchen_id"]
                for page in _paginate(self.table.scan, ProjectionExpression="kitchen_id")
                for item in page.get("Items", [])
            ]
        except ClientError as e:
            logger.error(f"Failed to list kitchens: {e}")
            raise StorageError("list_kitchen_ids", str(e)) from e

    def update_reliability_score(self, kitchen_id: str, score: int) -> None:
        """Set a kitchen's reliability score.

        The write is conditional on the kitchen existing so a stale ID never
        creates a stub record.

        Args:
            kitchen_id: Kitchen identifier
            score: New score (0-100)
        """
        try:
            self.table.update_item(
                Key={"kitchen_id": kitchen_id},
                UpdateExpression="SET reliability_score = :score, score_updated_at = :now",
                ConditionExpression="attribute_exists(kitchen_id)",
                ExpressionAttributeValues={
                    ":score": score,
                    ":now": datetime.now(UTC).isoformat(),
                },
            )
        except ClientError as e:
            logger.error(f"Failed to update reliability score for kitchen {kitchen_id}: {e}")
            raise StorageError("update_kitchen_score", str(e)) from e


class OrderRepository(_TableRepository):
    """Repository for order records (partition key ``order_id``).

    Indexes:
        kitchen_id-index: kitchen_id, sorted by delivery_date
        subscription_id-index: subscription_id, sorted by delivery_date
        kitchen_slot-index: "<kitchen_id>#<slot>", sorted by delivery_date
    """

    def list_orders_by_kitchen(self, kitchen_id: str) -> list[Order]:
        """List every order placed with a kitchen.

        Args:
            kitchen_id: Kitchen identifier

        Returns:
            list: Orders (empty list if none found)
        """
        try:
            return [
                Order.from_dynamodb_item(item)
                for page in _paginate(
                    self.table.query,
                    IndexName="kitchen_id-index",
                    KeyConditionExpression=Key("kitchen_id").eq(kitchen_id),
                )
                for item in page.get("Items", [])
            ]
        except ClientError as e:
            logger.error(f"Failed to list orders for kitchen {kitchen_id}: {e}")
            raise StorageError("list_orders_by_kitchen", str(e)) from e

    def find_subscription_order(
        self,
        subscription_id: str,
        range_start: date,
        range_end: date,
        slot: DeliveryTimeSlot,
    ) -> Order | None:
        """Find an order already generated for a subscription, date range and slot.

        Args:
            subscription_id: Subscription identifier
            range_start: First delivery date (inclusive)
            range_end: Last delivery date (inclusive)
            slot: Delivery time slot

        Returns:
            The first matching Order, None if there is none
        """
        try:
            for page in _paginate(
                self.table.query,
                IndexName="subscription_id-index",
                KeyConditionExpression=Key("subscription_id").eq(subscription_id)
                & Key("delivery_date").between(range_start.isoformat(), range_end.isoformat()),
                FilterExpression=Attr("delivery_time_slot").eq(slot.value),
            ):
                items = page.get("Items", [])
                if items:
                    return Order.from_dynamodb_item(items[0])
        except ClientError as e:
            logger.error(f"Failed to look up orders for subscription {subscription_id}: {e}")
            raise StorageError("find_existing_subscription_order", str(e)) from e

        return None

    def count_non_cancelled_orders(
        self,
        kitchen_id: str,
        range_start: date,
        range_end: date,
        slot: DeliveryTimeSlot,
    ) -> int:
        """Count a kitchen's orders for a date range and slot, ignoring cancelled ones.

        Args:
            kitchen_id: Kitchen identifier
            range_start: First delivery date (inclusive)
            range_end: Last delivery date (inclusive)
            slot: Delivery time slot

        Returns:
            int: Number of orders that occupy capacity
        """
        try:
            return sum(
                int(page.get("Count", 0))
                for page in _paginate(
                    self.table.query,
                    IndexName="kitchen_slot-index",
                    KeyConditionExpression=Key("kitchen_slot").eq(f"{kitchen_id}#{slot.value}")
                    & Key("delivery_date").between(
                        range_start.isoformat(), range_end.isoformat()
                    ),
                    FilterExpression=Attr("status").ne(OrderStatus.CANCELLED.value),
                    Select="COUNT",
                )
            )
        except ClientError as e:
            logger.error(f"Failed to count orders for kitchen {kitchen_id}: {e}")
            raise StorageError("count_non_cancelled_orders", str(e)) from e

    def create_order(self, new_order: NewOrder) -> Order:
        """Persist a new order.

        Subscription orders use a deterministic ID and a conditional put, so a
        second write for the same subscription, date and slot is rejected.

        Args:
            new_order: Order data to write

        Returns:
            Order: The stored order

        Raises:
            DuplicateOrderError: If the subscription order already exists
            StorageError: If DynamoDB fails
        """
        now = datetime.now(UTC)
        if new_order.subscription_id is not None:
            order_id = subscription_order_id(
                new_order.subscription_id,
                new_order.delivery_date,
                new_order.delivery_time_slot,
            )
        else:
            order_id = f"ord_{uuid.uuid4().hex[:12]}"

        order = Order(
            id=order_id,
            created_at=now,
            updated_at=now,
            **new_order.model_dump(),
        )

        try:
            self.table.put_item(
                Item=order.to_dynamodb_item(),
                ConditionExpression="attribute_not_exists(order_id)",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise DuplicateOrderError(order_id) from e
            logger.error(f"Failed to create order {order_id}: {e}")
            raise StorageError("create_order", str(e)) from e

        return order


class ReviewRepository(_TableRepository):
    """Repository for review records, queried through ``chef_id-index``."""

    def list_reviews_by_chef(self, chef_id: str) -> list[Review]:
        """List every review of menu items owned by a chef.

        Args:
            chef_id: Seller identifier

        Returns:
            list: Reviews (empty list if none found)
        """
        try:
            return [
                Review.from_dynamodb_item(item)
                for page in _paginate(
                    self.table.query,
                    IndexName="chef_id-index",
                    KeyConditionExpression=Key("chef_id").eq(chef_id),
                )
                for item in page.get("Items", [])
            ]
        except ClientError as e:
            logger.error(f"Failed to list reviews for chef {chef_id}: {e}")
            raise StorageError("list_reviews_by_seller", str(e)) from e


class MenuItemRepository(_TableRepository):
    """Repository for menu item records (partition key ``menu_item_id``)."""

    def get_menu_items(self, menu_item_ids: list[str]) -> list[MenuItem]:
        """Fetch menu items by ID. Unknown IDs are omitted from the result.

        Args:
            menu_item_ids: Menu item identifiers (duplicates allowed)

        Returns:
            list: Found menu items, one per distinct ID
        """
        unique_ids = list(dict.fromkeys(menu_item_ids))
        items: list[MenuItem] = []

        try:
            for start in range(0, len(unique_ids), BATCH_GET_LIMIT):
                chunk = unique_ids[start : start + BATCH_GET_LIMIT]
                request: dict[str, Any] = {
                    self.table_name: {"Keys": [{"menu_item_id": item_id} for item_id in chunk]}
                }

                while request:
                    response = self.dynamodb.batch_get_item(RequestItems=request)
                    for raw in response.get("Responses", {}).get(self.table_name, []):
                        items.append(MenuItem.from_dynamodb_item(raw))
                    request = response.get("UnprocessedKeys") or {}

        except ClientError as e:
            logger.error(f"Failed to fetch menu items: {e}")
            raise StorageError("find_menu_items_by_ids_and_seller", str(e)) from e

        return items


class SubscriptionPlanRepository(_TableRepository):
    """Repository for subscription plans (partition key ``plan_id``)."""

    def get_plan(self, plan_id: str) -> SubscriptionPlan | None:
        """Retrieve a plan with its weekly schedule parsed.

        Args:
            plan_id: Plan identifier

        Returns:
            SubscriptionPlan if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"plan_id": plan_id})
        except ClientError as e:
            logger.error(f"Failed to get plan {plan_id}: {e}")
            raise StorageError("get_plan", str(e)) from e

        if "Item" not in response:
            return None

        return SubscriptionPlan.from_dynamodb_item(response["Item"])


class SubscriptionRepository(_TableRepository):
    """Repository for subscriptions (partition key ``subscription_id``)."""

    def __init__(
        self,
        dynamodb_resource: DynamoDBServiceResource,
        table_name: str,
        plan_repository: SubscriptionPlanRepository,
    ) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the subscriptions table
            plan_repository: Repository used to join each subscription to its plan
        """
        super().__init__(dynamodb_resource, table_name)
        self.plan_repository = plan_repository

    def list_active_subscriptions(self, target_date: date) -> ActiveSubscriptions:
        """List subscriptions that should receive deliveries on a date.

        Rows that reference a missing plan, or that fail to parse together with
        their plan, are returned as unloadable instead of failing the listing.

        Args:
            target_date: Delivery date

        Returns:
            ActiveSubscriptions: Parsed subscriptions joined to their plans, and
            the rows that could not be loaded

        Raises:
            StorageError: If DynamoDB fails
        """
        day = target_date.isoformat()
        filter_expression = (
            Attr("status").eq(SubscriptionStatus.ACTIVE.value)
            & Attr("start_date").lte(day)
            & (
                Attr("end_date").not_exists()
                | Attr("end_date").attribute_type("NULL")
                | Attr("end_date").gte(day)
            )
        )

        try:
            raw_items = [
                item
                for page in _paginate(self.table.scan, FilterExpression=filter_expression)
                for item in page.get("Items", [])
            ]
        except ClientError as e:
            logger.error(f"Failed to list active subscriptions: {e}")
            raise StorageError("list_active_subscriptions", str(e)) from e

        plans: dict[str, SubscriptionPlan | None] = {}
        plan_errors: dict[str, str] = {}
        result = ActiveSubscriptions()

        for item in raw_items:
            subscription_id = str(item.get("subscription_id", "unknown"))
            plan_id = item.get("plan_id")

            if plan_id is not None and plan_id not in plans and plan_id not in plan_errors:
                try:
                    plans[plan_id] = self.plan_repository.get_plan(plan_id)
                except RECORD_ERRORS as e:
                    plan_errors[plan_id] = f"plan {plan_id} is invalid: {e}"

            plan = plans.get(plan_id) if plan_id is not None else None
            if plan_id is None:
                reason = "missing plan_id"
            elif plan_id in plan_errors:
                reason = plan_errors[plan_id]
            elif plan is None:
                reason = f"plan {plan_id} not found"
            else:
                try:
                    result.subscriptions.append(Subscription.from_dynamodb_item(item, plan))
                    continue
                except RECORD_ERRORS as e:
                    reason = f"invalid subscription record: {e}"

            logger.warning(f"Cannot load subscription {subscription_id}: {reason}")
            result.unloadable.append(
                UnloadableSubscription(subscription_id=subscription_id, reason=reason)
            )

        return result


class NotificationRepository(_TableRepository):
    """Repository for in-app notifications (partition key ``notification_id``)."""

    def save_notification(self, notification: Notification) -> Notification:
        """Persist a notification.

        Args:
            notification: Notification to save

        Returns:
            Notification: The saved notification
        """
        try:
            self.table.put_item(Item=notification.to_dynamodb_item())
        except ClientError as e:
            logger.error(f"Failed to save notification {notification.id}: {e}")
            raise StorageError("create_notification", str(e)) from e

        return notification
