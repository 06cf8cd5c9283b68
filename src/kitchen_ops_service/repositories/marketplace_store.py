"""Data-access interface used by the scoring and order generation services.

The services depend only on MarketplaceStore; DynamoDBMarketplaceStore is the
production implementation assembled from the per-table repositories.
"""

import logging
import os
from abc import ABC, abstractmethod
from datetime import date

from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource

from kitchen_ops_service.models.kitchen_models import Kitchen, MenuItem, Review
from kitchen_ops_service.models.notification_models import Notification
from kitchen_ops_service.models.order_models import DeliveryTimeSlot, NewOrder, Order
from kitchen_ops_service.models.subscription_models import ActiveSubscriptions
from kitchen_ops_service.repositories.marketplace_repositories import (
    KitchenRepository,
    MenuItemRepository,
    NotificationRepository,
    OrderRepository,
    ReviewRepository,
    SubscriptionPlanRepository,
    SubscriptionRepository,
)

logger = logging.getLogger(__name__)

# Logical table -> (environment variable, default table name)
TABLE_ENV_VARS: dict[str, tuple[str, str]] = {
    "kitchens": ("DYNAMODB_KITCHENS_TABLE", "homekitchen-kitchens"),
    "orders": ("DYNAMODB_ORDERS_TABLE", "homekitchen-orders"),
    "reviews": ("DYNAMODB_REVIEWS_TABLE", "homekitchen-reviews"),
    "menu_items": ("DYNAMODB_MENU_ITEMS_TABLE", "homekitchen-menu-items"),
    "subscriptions": ("DYNAMODB_SUBSCRIPTIONS_TABLE", "homekitchen-subscriptions"),
    "plans": ("DYNAMODB_PLANS_TABLE", "homekitchen-subscription-plans"),
    "notifications": ("DYNAMODB_NOTIFICATIONS_TABLE", "homekitchen-notifications"),
}


class MarketplaceStore(ABC):
    """Abstract backing store for marketplace records.

    Implementations return None or empty lists when nothing matches and raise
    StorageError when the store itself fails. No state is cached between calls.
    """

    @abstractmethod
    def get_kitchen(self, kitchen_id: str) -> Kitchen | None:
        """Return a kitchen with its stored aggregates, or None."""

    @abstractmethod
    def list_orders_by_kitchen(self, kitchen_id: str) -> list[Order]:
        """Return every order placed with a kitchen."""

    @abstractmethod
    def list_reviews_by_seller(self, seller_id: str) -> list[Review]:
        """Return every review of menu items owned by a seller."""

    @abstractmethod
    def update_kitchen_score(self, kitchen_id: str, score: int) -> None:
        """Persist a kitchen's reliability score."""

    @abstractmethod
    def list_kitchen_ids(self) -> list[str]:
        """Return the IDs of all kitchens."""

    @abstractmethod
    def list_active_subscriptions(self, target_date: date) -> ActiveSubscriptions:
        """Return subscriptions eligible for delivery on a date, joined to their plans.

        Rows that cannot be parsed or joined are listed as unloadable rather than raised.
        """

    @abstractmethod
    def find_existing_subscription_order(
        self,
        subscription_id: str,
        range_start: date,
        range_end: date,
        slot: DeliveryTimeSlot,
    ) -> Order | None:
        """Return an order already generated for a subscription, date range and slot."""

    @abstractmethod
    def count_non_cancelled_orders(
        self,
        kitchen_id: str,
        range_start: date,
        range_end: date,
        slot: DeliveryTimeSlot,
    ) -> int:
        """Count a kitchen's non-cancelled orders for a date range and slot."""

    @abstractmethod
    def find_menu_items_by_ids_and_seller(
        self, menu_item_ids: list[str], seller_id: str
    ) -> list[MenuItem]:
        """Return the menu items with the given IDs that belong to a seller."""

    @abstractmethod
    def create_order(self, new_order: NewOrder) -> Order:
        """Persist an order. Raises DuplicateOrderError for a repeated subscription slot."""

    @abstractmethod
    def create_notification(self, notification: Notification) -> Notification:
        """Persist an in-app notification."""


class DynamoDBMarketplaceStore(MarketplaceStore):
    """MarketplaceStore backed by DynamoDB tables."""

    def __init__(
        self,
        kitchen_repository: KitchenRepository,
        order_repository: OrderRepository,
        review_repository: ReviewRepository,
        menu_item_repository: MenuItemRepository,
        subscription_repository: SubscriptionRepository,
        notification_repository: NotificationRepository,
    ) -> None:
        self.kitchen_repository = kitchen_repository
        self.order_repository = order_repository
        self.review_repository = review_repository
        self.menu_item_repository = menu_item_repository
        self.subscription_repository = subscription_repository
        self.notification_repository = notification_repository

    def get_kitchen(self, kitchen_id: str) -> Kitchen | None:
        return self.kitchen_repository.get_kitchen(kitchen_id)

    def list_orders_by_kitchen(self, kitchen_id: str) -> list[Order]:
        return self.order_repository.list_orders_by_kitchen(kitchen_id)

    def list_reviews_by_seller(self, seller_id: str) -> list[Review]:
        return self.review_repository.list_reviews_by_chef(seller_id)

    def update_kitchen_score(self, kitchen_id: str, score: int) -> None:
        self.kitchen_repository.update_reliability_score(kitchen_id, score)

    def list_kitchen_ids(self) -> list[str]:
        return self.kitchen_repository.list_kitchen_ids()

    def list_active_subscriptions(self, target_date: date) -> ActiveSubscriptions:
        active = self.subscription_repository.list_active_subscriptions(target_date)
        return ActiveSubscriptions(
            subscriptions=[s for s in active.subscriptions if s.is_active_on(target_date)],
            unloadable=active.unloadable,
        )

    def find_existing_subscription_order(
        self,
        subscription_id: str,
        range_start: date,
        range_end: date,
        slot: DeliveryTimeSlot,
    ) -> Order | None:
        return self.order_repository.find_subscription_order(
            subscription_id, range_start, range_end, slot
        )

    def count_non_cancelled_orders(
        self,
        kitchen_id: str,
        range_start: date,
        range_end: date,
        slot: DeliveryTimeSlot,
    ) -> int:
        return self.order_repository.count_non_cancelled_orders(
            kitchen_id, range_start, range_end, slot
        )

    def find_menu_items_by_ids_and_seller(
        self, menu_item_ids: list[str], seller_id: str
    ) -> list[MenuItem]:
        return [
            item
            for item in self.menu_item_repository.get_menu_items(menu_item_ids)
            if item.chef_id == seller_id
        ]

    def create_order(self, new_order: NewOrder) -> Order:
        return self.order_repository.create_order(new_order)

    def create_notification(self, notification: Notification) -> Notification:
        return self.notification_repository.save_notification(notification)


def create_dynamodb_store(dynamodb_resource: DynamoDBServiceResource) -> DynamoDBMarketplaceStore:
    """Assemble a DynamoDB-backed store using table names from the environment.

    Args:
        dynamodb_resource: Boto3 DynamoDB resource

    Returns:
        DynamoDBMarketplaceStore wired to every marketplace table
    """
    tables = {
        name: os.getenv(env_var, default) for name, (env_var, default) in TABLE_ENV_VARS.items()
    }

    plan_repository = SubscriptionPlanRepository(dynamodb_resource, tables["plans"])
    store = DynamoDBMarketplaceStore(
        kitchen_repository=KitchenRepository(dynamodb_resource, tables["kitchens"]),
        order_repository=OrderRepository(dynamodb_resource, tables["orders"]),
        review_repository=ReviewRepository(dynamodb_resource, tables["reviews"]),
        menu_item_repository=MenuItemRepository(dynamodb_resource, tables["menu_items"]),
        subscription_repository=SubscriptionRepository(
            dynamodb_resource, tables["subscriptions"], plan_repository
        ),
        notification_repository=NotificationRepository(dynamodb_resource, tables["notifications"]),
    )

    logger.info(f"Marketplace store configured with tables: {', '.join(tables.values())}")
    return store
