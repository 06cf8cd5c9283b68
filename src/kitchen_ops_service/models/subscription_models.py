"""Subscription and meal plan models.

A plan's weekly schedule is stored as a loosely shaped JSON document. It is
parsed into typed models exactly once, when the plan is read from storage, so
the order generator never has to second-guess its shape.
"""

import json
import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from kitchen_ops_service.models.order_models import DeliveryTimeSlot

logger = logging.getLogger(__name__)


class DayOfWeek(str, Enum):
    """Day names as used in stored weekly schedules."""

    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def from_date(cls, value: date) -> "DayOfWeek":
        """Return the day of week for a calendar date."""
        return list(cls)[value.weekday()]


class SubscriptionStatus(str, Enum):
    """Enumeration of subscription states. Only ACTIVE subscriptions generate orders."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class MealSlot(BaseModel):
    """Dishes scheduled for one meal period."""

    model_config = ConfigDict(populate_by_name=True)

    dish_ids: list[str] = Field(default_factory=list, alias="dishIds")
    time: str | None = Field(None, description="Delivery time shown to the buyer, e.g. '13:00'")


class DaySchedule(BaseModel):
    """Meals scheduled for a single day of the week."""

    breakfast: MealSlot | None = None
    lunch: MealSlot | None = None
    snacks: MealSlot | None = None
    dinner: MealSlot | None = None

    def scheduled_slots(self) -> list[tuple[DeliveryTimeSlot, MealSlot]]:
        """Return the meal slots that have at least one dish, in serving order."""
        slots = [
            (DeliveryTimeSlot.BREAKFAST, self.breakfast),
            (DeliveryTimeSlot.LUNCH, self.lunch),
            (DeliveryTimeSlot.SNACKS, self.snacks),
            (DeliveryTimeSlot.DINNER, self.dinner),
        ]
        return [(slot, meal) for slot, meal in slots if meal is not None and meal.dish_ids]


class WeeklySchedule(BaseModel):
    """A plan's meals keyed by day of week. Missing days have no deliveries."""

    days: dict[DayOfWeek, DaySchedule] = Field(default_factory=dict)

    def for_day(self, day: DayOfWeek) -> DaySchedule | None:
        """Return the schedule for a day, or None if nothing is scheduled."""
        return self.days.get(day)

    @classmethod
    def from_raw(cls, raw: Any, plan_id: str = "") -> "WeeklySchedule":
        """Parse a stored weekly schedule document.

        Unknown day names and days whose value is not a valid meal-slot mapping
        are dropped with a warning, which makes them equivalent to a day with
        nothing scheduled.

        Args:
            raw: Stored schedule (a mapping, or a JSON string of one)
            plan_id: Plan identifier used in log messages

        Returns:
            WeeklySchedule: Parsed schedule, empty if the document is unusable
        """
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f"Weekly schedule for plan {plan_id} is not valid JSON")
                return cls()

        if not isinstance(raw, dict):
            logger.warning(f"Weekly schedule for plan {plan_id} is not a mapping")
            return cls()

        days: dict[DayOfWeek, DaySchedule] = {}
        for key, value in raw.items():
            try:
                day = DayOfWeek(str(key).upper())
            except ValueError:
                logger.warning(f"Ignoring unknown day '{key}' in schedule for plan {plan_id}")
                continue

            if not isinstance(value, dict):
                logger.warning(f"Ignoring malformed {day.value} schedule for plan {plan_id}")
                continue

            try:
                days[day] = DaySchedule.model_validate(value)
            except ValidationError as e:
                logger.warning(f"Ignoring invalid {day.value} schedule for plan {plan_id}: {e}")

        return cls(days=days)


class SubscriptionPlan(BaseModel):
    """A kitchen's recurring meal plan."""

    id: str = Field(..., description="Unique plan identifier")
    kitchen_id: str = Field(..., description="Kitchen offering the plan")
    name: str = Field(default="", description="Plan display name")
    weekly_schedule: WeeklySchedule = Field(default_factory=WeeklySchedule)
    servings_per_meal: int | None = Field(None, description="Servings per dish", gt=0)

    @property
    def quantity_per_dish(self) -> int:
        """Servings ordered for each scheduled dish (1 when the plan leaves it unset)."""
        return self.servings_per_meal or 1

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "SubscriptionPlan":
        """Create SubscriptionPlan from DynamoDB item, parsing the weekly schedule."""
        servings = item.get("servings_per_meal")
        return cls(
            id=item["plan_id"],
            kitchen_id=item["kitchen_id"],
            name=item.get("name", ""),
            weekly_schedule=WeeklySchedule.from_raw(item.get("weekly_schedule"), item["plan_id"]),
            servings_per_meal=int(servings) if servings else None,
        )


class Subscription(BaseModel):
    """A buyer's enrollment in a plan, joined to the plan it references."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    id: str = Field(..., description="Unique subscription identifier")
    buyer_id: str = Field(..., description="Subscribed buyer")
    buyer_name: str | None = Field(None, description="Buyer display name")
    plan_id: str = Field(..., description="Referenced plan")
    kitchen_id: str = Field(..., description="Kitchen fulfilling the subscription")
    status: SubscriptionStatus = Field(..., description="Current subscription status")
    start_date: date = Field(..., description="First eligible delivery date")
    end_date: date | None = Field(None, description="Last eligible delivery date")
    delivery_fee: Decimal = Field(default=Decimal("0"), description="Fee per delivery", ge=0)
    plan: SubscriptionPlan = Field(..., description="The referenced plan")

    def is_active_on(self, target_date: date) -> bool:
        """Whether the subscription should receive deliveries on a date."""
        return (
            self.status == SubscriptionStatus.ACTIVE
            and self.start_date <= target_date
            and (self.end_date is None or self.end_date >= target_date)
        )

    @classmethod
    def from_dynamodb_item(
        cls, item: dict[str, Any], plan: SubscriptionPlan
    ) -> "Subscription":
        """Create Subscription from DynamoDB item and its already-loaded plan."""
        end_date = item.get("end_date")
        return cls(
            id=item["subscription_id"],
            buyer_id=item["buyer_id"],
            buyer_name=item.get("buyer_name"),
            plan_id=item["plan_id"],
            kitchen_id=item["kitchen_id"],
            status=SubscriptionStatus(item["status"]),
            start_date=date.fromisoformat(item["start_date"]),
            end_date=date.fromisoformat(end_date) if end_date else None,
            delivery_fee=Decimal(str(item.get("delivery_fee", "0"))),
            plan=plan,
        )


class UnloadableSubscription(BaseModel):
    """A stored subscription row that could not be turned into a Subscription.

    Attributes:
        subscription_id: ID from the row, or "unknown" when the row has none
        reason: What was wrong with the row or its plan
    """

    subscription_id: str
    reason: str


class ActiveSubscriptions(BaseModel):
    """Subscriptions due for delivery on a date, plus rows that failed to load."""

    subscriptions: list[Subscription] = Field(default_factory=list)
    unloadable: list[UnloadableSubscription] = Field(default_factory=list)
