"""Component tests for order generation and scoring wired through the HTTP and event entry points."""

from collections.abc import Callable
from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from kitchen_ops_service.handlers.api_handler import create_app
from kitchen_ops_service.handlers.event_handler import EventHandler
from kitchen_ops_service.models.kitchen_models import Kitchen, MenuItem, Review
from kitchen_ops_service.models.notification_models import RecipientType
from kitchen_ops_service.models.order_models import OrderStatus
from kitchen_ops_service.models.subscription_models import Subscription
from kitchen_ops_service.services.notification_service import NotificationService
from kitchen_ops_service.services.order_generator import SubscriptionOrderGenerator
from kitchen_ops_service.services.reliability_scorer import ReliabilityScorer

ADMIN_HEADERS = {"X-API-Key": "ops-key"}
CRON_HEADERS = {"Authorization": "Bearer tick"}
MONDAY = date(2024, 3, 4)


@pytest.mark.component
class TestSubscriptionPipeline:
    """Generate subscription orders, then score the kitchen that fulfils them."""

    @pytest.fixture
    def store(
        self,
        memory_store,
        make_kitchen: Callable[..., Kitchen],
        make_subscription: Callable[..., Subscription],
        menu_items: list[MenuItem],
    ):
        """Create a store with one kitchen, its menu and two subscribers."""
        memory_store.kitchens["kit_1"] = make_kitchen(max_capacity=10)
        memory_store.menu_items = {item.id: item for item in menu_items}
        memory_store.subscriptions = [
            make_subscription(),
            make_subscription(id="sub_2", buyer_id="buyer_2", buyer_name="Arjun", servings=1),
        ]
        return memory_store

    @pytest.fixture
    def scorer(self, store) -> ReliabilityScorer:
        return ReliabilityScorer(store=store)

    @pytest.fixture
    def generator(self, store) -> SubscriptionOrderGenerator:
        return SubscriptionOrderGenerator(
            store=store, notification_service=NotificationService(store=store)
        )

    @pytest.fixture
    def client(
        self, scorer: ReliabilityScorer, generator: SubscriptionOrderGenerator
    ) -> TestClient:
        app = create_app(
            scorer=scorer, generator=generator, api_keys=["ops-key"], cron_secret="tick"
        )
        return TestClient(app)

    def test_cron_run_creates_orders_once(self, client: TestClient, store) -> None:
        """Test that a scheduler run writes each subscription slot exactly once."""
        first = client.post(
            "/cron/generate-subscription-orders?date=2024-03-04", headers=CRON_HEADERS
        )
        second = client.post(
            "/cron/generate-subscription-orders?date=2024-03-04", headers=CRON_HEADERS
        )

        assert first.status_code == 200
        assert first.json()["created"] == 4
        assert first.json()["processed"] == 2
        assert second.json()["created"] == 0
        assert second.json()["skipped"] == 2

        assert sorted(store.orders) == [
            "sub_sub_1_20240304_dinner",
            "sub_sub_1_20240304_lunch",
            "sub_sub_2_20240304_dinner",
            "sub_sub_2_20240304_lunch",
        ]
        # 2 x (120 + 80) + 30 delivery
        assert store.orders["sub_sub_1_20240304_lunch"].total == Decimal("430.00")
        # 1 x 180 + 30 delivery
        assert store.orders["sub_sub_2_20240304_dinner"].total == Decimal("210.00")
        assert all(order.status == OrderStatus.PENDING for order in store.orders.values())

        recipients = [(n.recipient_type, n.recipient_id) for n in store.notifications]
        assert recipients == [
            (RecipientType.BUYER, "buyer_1"),
            (RecipientType.KITCHEN, "kit_1"),
            (RecipientType.BUYER, "buyer_2"),
            (RecipientType.KITCHEN, "kit_1"),
        ]

    def test_generated_orders_feed_reliability_score(
        self,
        client: TestClient,
        store,
        make_review: Callable[..., Review],
    ) -> None:
        """Test that a kitchen's score reflects the orders it has fulfilled."""
        client.get("/cron/generate-subscription-orders?date=2024-03-04", headers=CRON_HEADERS)

        before = client.get("/kitchens/kit_1/reliability", headers=ADMIN_HEADERS).json()
        assert before["is_new_chef"] is True
        assert before["score"] >= 50
        assert before["metrics"]["total_orders"] == 4
        assert before["metrics"]["completed_orders"] == 0

        for order_id, order in list(store.orders.items()):
            store.orders[order_id] = order.model_copy(update={"status": OrderStatus.COMPLETED})
        store.reviews = [make_review(rating) for rating in (5, 5, 4)]

        response = client.post("/kitchens/kit_1/reliability", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["metrics"]["completed_orders"] == 4
        assert data["metrics"]["review_count"] == 3
        assert store.kitchens["kit_1"].reliability_score == data["score"]

    @pytest.mark.asyncio
    async def test_order_activity_event_refreshes_stored_score(
        self,
        scorer: ReliabilityScorer,
        generator: SubscriptionOrderGenerator,
        store,
    ) -> None:
        """Test that scheduler and order events drive the same services."""
        handler = EventHandler(scorer=scorer, generator=generator)

        generated = await handler.handle_eventbridge_event(
            {
                "source": "com.homekitchen.scheduler",
                "detail-type": "GenerateSubscriptionOrders",
                "detail": {"target_date": MONDAY.isoformat()},
            },
            None,
        )
        refreshed = await handler.handle_eventbridge_event(
            {
                "source": "com.homekitchen.orders",
                "detail-type": "OrderCompleted",
                "detail": {"kitchen_id": "kit_1"},
            },
            None,
        )

        assert generated["statusCode"] == 200
        assert generated["body"].startswith("Generated 4 orders for 2024-03-04")
        assert refreshed["statusCode"] == 200
        assert store.kitchens["kit_1"].reliability_score is not None
        assert refreshed["body"].endswith(f": {store.kitchens['kit_1'].reliability_score}")
