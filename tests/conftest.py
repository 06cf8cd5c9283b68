"""Shared pytest fixtures and configuration for all tests."""

import os

# main.py and lambda_handler.py only build real AWS clients outside test mode
os.environ.setdefault("ENVIRONMENT", "test")

from collections.abc import Callable  # noqa: E402
from datetime import UTC, date, datetime  # noqa: E402
from decimal import Decimal  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402

from kitchen_ops_service.errors import DuplicateOrderError, StorageError  # noqa: E402
from kitchen_ops_service.models.kitchen_models import Kitchen, MenuItem, Review  # noqa: E402
from kitchen_ops_service.models.notification_models import Notification  # noqa: E402
from kitchen_ops_service.models.order_models import (  # noqa: E402
    DeliveryTimeSlot,
    NewOrder,
    Order,
    OrderStatus,
)
from kitchen_ops_service.models.subscription_models import (  # noqa: E402
    ActiveSubscriptions,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
    UnloadableSubscription,
    WeeklySchedule,
)
from kitchen_ops_service.repositories.marketplace_repositories import (  # noqa: E402
    subscription_order_id,
)
from kitchen_ops_service.repositories.marketplace_store import MarketplaceStore  # noqa: E402


class InMemoryMarketplaceStore(MarketplaceStore):
    """MarketplaceStore backed by dictionaries, with the same uniqueness rules as DynamoDB."""

    def __init__(self) -> None:
        self.kitchens: dict[str, Kitchen] = {}
        self.orders: dict[str, Order] = {}
        self.reviews: list[Review] = []
        self.menu_items: dict[str, MenuItem] = {}
        self.subscriptions: list[Subscription] = []
        self.unloadable_subscriptions: list[UnloadableSubscription] = []
        self.notifications: list[Notification] = []
        self.fail_notifications = False
        self._order_sequence = 0

    def get_kitchen(self, kitchen_id: str) -> Kitchen | None:
        return self.kitchens.get(kitchen_id)

    def list_orders_by_kitchen(self, kitchen_id: str) -> list[Order]:
        return [order for order in self.orders.values() if order.kitchen_id == kitchen_id]

    def list_reviews_by_seller(self, seller_id: str) -> list[Review]:
        return [review for review in self.reviews if review.chef_id == seller_id]

    def update_kitchen_score(self, kitchen_id: str, score: int) -> None:
        if kitchen_id not in self.kitchens:
            raise StorageError("update_kitchen_score", f"kitchen {kitchen_id} does not exist")
        self.kitchens[kitchen_id] = self.kitchens[kitchen_id].model_copy(
            update={"reliability_score": score}
        )

    def list_kitchen_ids(self) -> list[str]:
        return list(self.kitchens)

    def list_active_subscriptions(self, target_date: date) -> ActiveSubscriptions:
        return ActiveSubscriptions(
            subscriptions=[s for s in self.subscriptions if s.is_active_on(target_date)],
            unloadable=list(self.unloadable_subscriptions),
        )

    def find_existing_subscription_order(
        self,
        subscription_id: str,
        range_start: date,
        range_end: date,
        slot: DeliveryTimeSlot,
    ) -> Order | None:
        for order in self.orders.values():
            if (
                order.subscription_id == subscription_id
                and range_start <= order.delivery_date <= range_end
                and order.delivery_time_slot == slot
            ):
                return order
        return None

    def count_non_cancelled_orders(
        self,
        kitchen_id: str,
        range_start: date,
        range_end: date,
        slot: DeliveryTimeSlot,
    ) -> int:
        return sum(
            1
            for order in self.orders.values()
            if order.kitchen_id == kitchen_id
            and range_start <= order.delivery_date <= range_end
            and order.delivery_time_slot == slot
            and order.status != OrderStatus.CANCELLED
        )

    def find_menu_items_by_ids_and_seller(
        self, menu_item_ids: list[str], seller_id: str
    ) -> list[MenuItem]:
        return [
            self.menu_items[item_id]
            for item_id in dict.fromkeys(menu_item_ids)
            if item_id in self.menu_items and self.menu_items[item_id].chef_id == seller_id
        ]

    def create_order(self, new_order: NewOrder) -> Order:
        if new_order.subscription_id is not None:
            order_id = subscription_order_id(
                new_order.subscription_id, new_order.delivery_date, new_order.delivery_time_slot
            )
            if order_id in self.orders:
                raise DuplicateOrderError(order_id)
        else:
            self._order_sequence += 1
            order_id = f"ord_{self._order_sequence}"

        now = datetime.now(UTC)
        order = Order(id=order_id, created_at=now, updated_at=now, **new_order.model_dump())
        self.orders[order_id] = order
        return order

    def create_notification(self, notification: Notification) -> Notification:
        if self.fail_notifications:
            raise StorageError("create_notification", "notifications table unavailable")
        self.notifications.append(notification)
        return notification

    def add_order(self, order: Order) -> Order:
        self.orders[order.id] = order
        return order


@pytest.fixture
def memory_store() -> InMemoryMarketplaceStore:
    """Fixture providing an empty in-memory marketplace store."""
    return InMemoryMarketplaceStore()


@pytest.fixture
def make_kitchen() -> Callable[..., Kitchen]:
    """Fixture providing a Kitchen builder with sensible defaults."""

    def _make(**overrides: Any) -> Kitchen:
        fields: dict[str, Any] = {
            "id": "kit_1",
            "seller_id": "chef_1",
            "name": "Amma's Kitchen",
        }
        fields.update(overrides)
        return Kitchen(**fields)

    return _make


@pytest.fixture
def make_order() -> Callable[..., Order]:
    """Fixture providing an Order builder.

    Completed orders default to being finished at noon on their delivery date.
    """
    counter = {"n": 0}

    def _make(**overrides: Any) -> Order:
        counter["n"] += 1
        delivery_date = overrides.pop("delivery_date", date(2024, 3, 4))
        fields: dict[str, Any] = {
            "id": f"ord_{counter['n']}",
            "kitchen_id": "kit_1",
            "buyer_id": "buyer_1",
            "status": OrderStatus.COMPLETED,
            "created_at": datetime(2024, 3, 1, 9, 0),
            "updated_at": datetime.combine(delivery_date, datetime.min.time()).replace(hour=12),
            "delivery_date": delivery_date,
            "delivery_time_slot": DeliveryTimeSlot.LUNCH,
            "total": Decimal("250.00"),
        }
        fields.update(overrides)
        return Order(**fields)

    return _make


@pytest.fixture
def make_review() -> Callable[..., Review]:
    """Fixture providing a Review builder."""
    counter = {"n": 0}

    def _make(rating: int, **overrides: Any) -> Review:
        counter["n"] += 1
        fields: dict[str, Any] = {
            "id": f"rev_{counter['n']}",
            "menu_item_id": "dish_1",
            "chef_id": "chef_1",
            "rating": rating,
        }
        fields.update(overrides)
        return Review(**fields)

    return _make


@pytest.fixture
def weekly_schedule_raw() -> dict[str, Any]:
    """Fixture providing a stored weekly schedule: Monday lunch and dinner, Tuesday breakfast."""
    return {
        "MONDAY": {
            "lunch": {"dishIds": ["dish_1", "dish_2"], "time": "13:00"},
            "dinner": {"dishIds": ["dish_3"], "time": "20:00"},
        },
        "TUESDAY": {
            "breakfast": {"dishIds": ["dish_1"], "time": "08:00"},
        },
    }


@pytest.fixture
def make_subscription(weekly_schedule_raw: dict[str, Any]) -> Callable[..., Subscription]:
    """Fixture providing a Subscription builder joined to a plan."""

    def _make(schedule: Any = None, servings: int | None = 2, **overrides: Any) -> Subscription:
        kitchen_id = overrides.get("kitchen_id", "kit_1")
        plan = SubscriptionPlan(
            id=overrides.pop("plan_id", "plan_1"),
            kitchen_id=kitchen_id,
            name="Weekday Thali",
            weekly_schedule=WeeklySchedule.from_raw(
                weekly_schedule_raw if schedule is None else schedule, "plan_1"
            ),
            servings_per_meal=servings,
        )
        fields: dict[str, Any] = {
            "id": "sub_1",
            "buyer_id": "buyer_1",
            "buyer_name": "Priya",
            "plan_id": plan.id,
            "kitchen_id": kitchen_id,
            "status": SubscriptionStatus.ACTIVE,
            "start_date": date(2024, 1, 1),
            "end_date": None,
            "delivery_fee": Decimal("30.00"),
            "plan": plan,
        }
        fields.update(overrides)
        return Subscription(**fields)

    return _make


@pytest.fixture
def menu_items() -> list[MenuItem]:
    """Fixture providing three dishes of chef_1 and one dish of another chef."""
    return [
        MenuItem(id="dish_1", chef_id="chef_1", name="Dal Tadka", price=Decimal("120.00")),
        MenuItem(id="dish_2", chef_id="chef_1", name="Jeera Rice", price=Decimal("80.00")),
        MenuItem(id="dish_3", chef_id="chef_1", name="Paneer Butter Masala", price=Decimal("180.00")),
        MenuItem(id="dish_x", chef_id="chef_2", name="Someone Else's Biryani", price=Decimal("200.00")),
    ]


@pytest.fixture
def mock_context() -> Any:
    """Fixture providing a minimal Lambda context object."""

    class _Context:
        request_id = "req-123"

    return _Context()
