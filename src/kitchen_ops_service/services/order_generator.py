"""Subscription order generation.

Runs once a day for the next delivery date. Each active subscription's weekly
plan is looked up for that day of the week and every scheduled meal slot
becomes one PENDING order, provided that:

- no order exists yet for the same subscription, date and slot (re-runs are safe)
- the kitchen still has capacity for that date and slot
- at least one scheduled dish is a current menu item of the kitchen's seller

Subscriptions are processed independently; an error in one is recorded in the
report and the run moves on to the next.
"""

import logging
import time
from datetime import date, datetime, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from kitchen_ops_service.errors import DuplicateOrderError, KitchenNotFoundError
from kitchen_ops_service.models.generation_models import (
    GenerationReport,
    OutcomeStatus,
    SubscriptionOutcome,
)
from kitchen_ops_service.models.kitchen_models import Kitchen
from kitchen_ops_service.models.order_models import (
    DeliveryTimeSlot,
    NewOrder,
    OrderItem,
    OrderStatus,
)
from kitchen_ops_service.models.subscription_models import (
    DayOfWeek,
    MealSlot,
    Subscription,
)
from kitchen_ops_service.observability import traced
from kitchen_ops_service.observability.metrics import (
    record_capacity_rejection,
    record_generation_duration,
    record_order_generated,
    record_subscription_failure,
)
from kitchen_ops_service.repositories.marketplace_store import MarketplaceStore
from kitchen_ops_service.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def next_delivery_date(now: datetime | None = None, timezone: str = "UTC") -> date:
    """Return tomorrow's date in the marketplace timezone.

    Args:
        now: Current time (naive values are taken as marketplace local time)
        timezone: IANA timezone name of the marketplace

    Returns:
        The calendar date after ``now``
    """
    tz = ZoneInfo(timezone)
    if now is None:
        current = datetime.now(tz)
    elif now.tzinfo is None:
        current = now
    else:
        current = now.astimezone(tz)
    return current.date() + timedelta(days=1)


class SubscriptionOrderGenerator:
    """Expands active subscriptions into dated orders."""

    def __init__(
        self,
        store: MarketplaceStore,
        notification_service: NotificationService,
        timezone: str = "UTC",
    ) -> None:
        """Initialize the SubscriptionOrderGenerator.

        Args:
            store: Backing store for subscriptions, kitchens, menu items and orders
            notification_service: Best-effort notifier for buyers and kitchens
            timezone: Marketplace timezone used to work out "tomorrow"
        """
        self.store = store
        self.notification_service = notification_service
        self.timezone = timezone

    async def generate_for_tomorrow(self, now: datetime | None = None) -> GenerationReport:
        """Generate orders for the next delivery date."""
        return await self.generate_for_date(next_delivery_date(now, self.timezone))

    @traced("generate_subscription_orders", service_name="kitchen-ops-svc")
    async def generate_for_date(self, target_date: date) -> GenerationReport:
        """Generate orders for every active subscription on a delivery date.

        Args:
            target_date: Delivery date to generate orders for

        Returns:
            GenerationReport with created/skipped/processed counts and errors
        """
        started = time.monotonic()
        day = DayOfWeek.from_date(target_date)
        logger.info(f"Generating subscription orders for {day.value}, {target_date.isoformat()}")

        active = self.store.list_active_subscriptions(target_date)
        subscriptions = active.subscriptions
        logger.info(
            f"Found {len(subscriptions)} active subscriptions, "
            f"{len(active.unloadable)} unloadable"
        )

        report = GenerationReport(target_date=target_date, day=day.value)

        for unloadable in active.unloadable:
            record_subscription_failure("UnloadableSubscription")
            report.record(
                SubscriptionOutcome(
                    subscription_id=unloadable.subscription_id,
                    status=OutcomeStatus.FAILED,
                    errors=[f"Subscription {unloadable.subscription_id}: {unloadable.reason}"],
                )
            )

        for subscription in subscriptions:
            outcome = SubscriptionOutcome(
                subscription_id=subscription.id, status=OutcomeStatus.SKIPPED
            )

            try:
                await self._process_subscription(subscription, target_date, day, outcome)
            except Exception as e:
                logger.exception(f"Error processing subscription {subscription.id}: {e}")
                record_subscription_failure(type(e).__name__)
                outcome.status = OutcomeStatus.FAILED
                outcome.errors.append(f"Subscription {subscription.id}: {e}")
            else:
                outcome.status = (
                    OutcomeStatus.PROCESSED
                    if outcome.created_order_ids
                    else OutcomeStatus.SKIPPED
                )

            if outcome.created_order_ids:
                await self.notification_service.notify_subscription_orders_created(
                    subscription, target_date, len(outcome.created_order_ids)
                )

            report.record(outcome)

        record_generation_duration(time.monotonic() - started)
        logger.info(
            f"Subscription order generation completed: {report.created} created, "
            f"{report.skipped} skipped, {report.processed} processed, "
            f"{len(report.errors)} errors"
        )
        return report

    async def _process_subscription(
        self,
        subscription: Subscription,
        target_date: date,
        day: DayOfWeek,
        outcome: SubscriptionOutcome,
    ) -> None:
        """Create the day's orders for one subscription, recording them on ``outcome``.

        Orders already written stay written if a later slot fails.
        """
        day_schedule = subscription.plan.weekly_schedule.for_day(day)
        scheduled_slots = day_schedule.scheduled_slots() if day_schedule else []

        if not scheduled_slots:
            logger.info(
                f"Skipping subscription {subscription.id} - no meals scheduled for {day.value}"
            )
            return

        kitchen = self.store.get_kitchen(subscription.kitchen_id)
        if kitchen is None:
            raise KitchenNotFoundError(subscription.kitchen_id)

        for slot, meal in scheduled_slots:
            await self._generate_slot_order(subscription, kitchen, target_date, slot, meal, outcome)

    async def _generate_slot_order(
        self,
        subscription: Subscription,
        kitchen: Kitchen,
        target_date: date,
        slot: DeliveryTimeSlot,
        meal: MealSlot,
        outcome: SubscriptionOutcome,
    ) -> None:
        """Create the order for one meal slot unless it exists, is full, or has no dishes."""
        existing = self.store.find_existing_subscription_order(
            subscription.id, target_date, target_date, slot
        )
        if existing is not None:
            logger.info(
                f"Order {existing.id} already exists for subscription {subscription.id} "
                f"{slot.value} on {target_date.isoformat()}"
            )
            return

        if kitchen.max_capacity is not None:
            booked = self.store.count_non_cancelled_orders(
                kitchen.id, target_date, target_date, slot
            )
            if booked >= kitchen.max_capacity:
                logger.warning(
                    f"Kitchen {kitchen.id} at capacity for {slot.value} on "
                    f"{target_date.isoformat()} ({booked}/{kitchen.max_capacity})"
                )
                record_capacity_rejection(slot.value)
                outcome.errors.append(
                    f"Subscription {subscription.id}: kitchen {kitchen.id} at capacity for "
                    f"{slot.value} on {target_date.isoformat()} "
                    f"({booked}/{kitchen.max_capacity})"
                )
                return

        menu_items = self.store.find_menu_items_by_ids_and_seller(meal.dish_ids, kitchen.seller_id)
        prices = {item.id: item.price for item in menu_items}

        unknown = [dish_id for dish_id in meal.dish_ids if dish_id not in prices]
        if unknown:
            logger.warning(
                f"Ignoring dishes {', '.join(unknown)} for subscription {subscription.id} - "
                f"not on the menu of seller {kitchen.seller_id}"
            )

        quantity = subscription.plan.quantity_per_dish
        lines = [
            OrderItem(menu_item_id=dish_id, quantity=quantity, unit_price=prices[dish_id])
            for dish_id in meal.dish_ids
            if dish_id in prices
        ]

        if not lines:
            outcome.errors.append(
                f"Subscription {subscription.id}: no valid menu items for {slot.value}"
            )
            return

        items_subtotal = sum((line.line_total for line in lines), Decimal("0"))
        plan_name = subscription.plan.name or subscription.plan.id

        try:
            order = self.store.create_order(
                NewOrder(
                    kitchen_id=kitchen.id,
                    buyer_id=subscription.buyer_id,
                    subscription_id=subscription.id,
                    status=OrderStatus.PENDING,
                    delivery_date=target_date,
                    delivery_time_slot=slot,
                    total=items_subtotal + subscription.delivery_fee,
                    items=lines,
                    notes=(
                        f"Subscription order for {plan_name} - {slot.value.lower()} "
                        f"on {target_date.isoformat()}"
                    ),
                )
            )
        except DuplicateOrderError as e:
            # Another run created this slot between the existence check and the write
            logger.info(f"Skipping subscription {subscription.id} {slot.value}: {e}")
            return

        logger.info(
            f"Created order {order.id} for subscription {subscription.id} ({slot.value})"
        )
        record_order_generated(slot.value)
        outcome.created_order_ids.append(order.id)
