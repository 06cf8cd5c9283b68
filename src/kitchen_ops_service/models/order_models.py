"""Order models.

Orders are both an input to the reliability score (status and delivery
timestamps) and the output of subscription order generation.
Stored in DynamoDB with ``order_id`` as partition key.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    """Enumeration of order lifecycle states."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    DELIVERING = "DELIVERING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class DeliveryTimeSlot(str, Enum):
    """The four daily meal periods used for scheduling and capacity."""

    BREAKFAST = "BREAKFAST"
    LUNCH = "LUNCH"
    SNACKS = "SNACKS"
    DINNER = "DINNER"


class OrderItem(BaseModel):
    """A single line of an order, priced at the time the order was created."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    menu_item_id: str = Field(..., description="Ordered menu item")
    quantity: int = Field(..., description="Number of servings", gt=0)
    unit_price: Decimal = Field(..., description="Unit price at time of order", ge=0)

    @property
    def line_total(self) -> Decimal:
        """Price of the line (unit price times quantity)."""
        return self.unit_price * self.quantity

    def to_dynamodb_item(self) -> dict[str, Any]:
        return {
            "menu_item_id": self.menu_item_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "OrderItem":
        return cls(
            menu_item_id=item["menu_item_id"],
            quantity=int(item["quantity"]),
            unit_price=Decimal(str(item["unit_price"])),
        )


class NewOrder(BaseModel):
    """Order data to be written by the generator, before the store assigns timestamps."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    kitchen_id: str = Field(..., description="Kitchen fulfilling the order")
    buyer_id: str = Field(..., description="Buyer receiving the order")
    subscription_id: str | None = Field(None, description="Originating subscription")
    status: OrderStatus = Field(default=OrderStatus.PENDING, description="Initial status")
    delivery_date: date = Field(..., description="Scheduled delivery date")
    delivery_time_slot: DeliveryTimeSlot = Field(..., description="Scheduled meal slot")
    total: Decimal = Field(..., description="Order total including delivery fee", ge=0)
    items: list[OrderItem] = Field(..., description="Order lines", min_length=1)
    notes: str | None = Field(None, description="Free-text note shown to the chef")


class Order(BaseModel):
    """A persisted order."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    id: str = Field(..., description="Unique order identifier")
    kitchen_id: str = Field(..., description="Kitchen fulfilling the order")
    buyer_id: str = Field(..., description="Buyer receiving the order")
    subscription_id: str | None = Field(None, description="Originating subscription")
    status: OrderStatus = Field(..., description="Current order status")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last status change timestamp")
    delivery_date: date = Field(..., description="Scheduled delivery date")
    delivery_time_slot: DeliveryTimeSlot = Field(..., description="Scheduled meal slot")
    total: Decimal = Field(default=Decimal("0"), description="Order total", ge=0)
    items: list[OrderItem] = Field(default_factory=list, description="Order lines")
    notes: str | None = Field(None, description="Free-text note shown to the chef")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        The ``kitchen_slot`` attribute is the partition key of the capacity index
        (kitchen and time slot), sorted by delivery date.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "order_id": self.id,
            "kitchen_id": self.kitchen_id,
            "buyer_id": self.buyer_id,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "delivery_date": self.delivery_date.isoformat(),
            "delivery_time_slot": self.delivery_time_slot.value,
            "kitchen_slot": f"{self.kitchen_id}#{self.delivery_time_slot.value}",
            "total": self.total,
            "items": [line.to_dynamodb_item() for line in self.items],
        }

        if self.subscription_id is not None:
            item["subscription_id"] = self.subscription_id

        if self.notes is not None:
            item["notes"] = self.notes

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Order":
        """Create Order from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Order: Parsed model instance
        """
        return cls(
            id=item["order_id"],
            kitchen_id=item["kitchen_id"],
            buyer_id=item["buyer_id"],
            subscription_id=item.get("subscription_id"),
            status=OrderStatus(item["status"]),
            created_at=datetime.fromisoformat(item["created_at"]),
            updated_at=datetime.fromisoformat(item["updated_at"]),
            delivery_date=date.fromisoformat(item["delivery_date"]),
            delivery_time_slot=DeliveryTimeSlot(item["delivery_time_slot"]),
            total=Decimal(str(item.get("total", "0"))),
            items=[OrderItem.from_dynamodb_item(line) for line in item.get("items", [])],
            notes=item.get("notes"),
        )
