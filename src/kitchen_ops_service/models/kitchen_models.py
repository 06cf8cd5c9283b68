"""Kitchen, menu item and review models.

These are the read shapes the reliability scorer and the order generator need.
Stored aggregates on the kitchen (rating, counts, response time) are maintained
by other marketplace workflows; only ``reliability_score`` is written here.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    return float(value)


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    return int(value)


class Kitchen(BaseModel):
    """A seller's kitchen, the subject of the reliability score.

    Stored in DynamoDB with ``kitchen_id`` as partition key.
    """

    model_config = ConfigDict(json_encoders={Decimal: str})

    id: str = Field(..., description="Unique kitchen identifier")
    seller_id: str = Field(..., description="User ID of the owning seller (chef)")
    name: str | None = Field(None, description="Display name of the kitchen")
    rating: Decimal | None = Field(None, description="Stored average rating", ge=0, le=5)
    review_count: int | None = Field(None, description="Stored review count", ge=0)
    total_orders: int | None = Field(None, description="Stored historical order count", ge=0)
    response_time_minutes: float | None = Field(
        None, description="Stored average response time in minutes", ge=0
    )
    delivery_rate_percent: float | None = Field(
        None, description="Stored delivery-rate percentage", ge=0, le=100
    )
    reliability_score: int | None = Field(
        None, description="Current Kitchen Reliability Index", ge=0, le=100
    )
    max_capacity: int | None = Field(
        None, description="Maximum orders per delivery date and time slot", ge=0
    )

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "kitchen_id": self.id,
            "seller_id": self.seller_id,
        }

        optional_fields: dict[str, Any] = {
            "name": self.name,
            "rating": self.rating,
            "review_count": self.review_count,
            "total_orders": self.total_orders,
            "response_time_minutes": (
                Decimal(str(self.response_time_minutes))
                if self.response_time_minutes is not None
                else None
            ),
            "delivery_rate_percent": (
                Decimal(str(self.delivery_rate_percent))
                if self.delivery_rate_percent is not None
                else None
            ),
            "reliability_score": self.reliability_score,
            "max_capacity": self.max_capacity,
        }
        item.update({key: value for key, value in optional_fields.items() if value is not None})

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Kitchen":
        """Create Kitchen from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Kitchen: Parsed model instance
        """
        return cls(
            id=item["kitchen_id"],
            seller_id=item["seller_id"],
            name=item.get("name"),
            rating=Decimal(str(item["rating"])) if item.get("rating") is not None else None,
            review_count=_optional_int(item.get("review_count")),
            total_orders=_optional_int(item.get("total_orders")),
            response_time_minutes=_optional_float(item.get("response_time_minutes")),
            delivery_rate_percent=_optional_float(item.get("delivery_rate_percent")),
            reliability_score=_optional_int(item.get("reliability_score")),
            max_capacity=_optional_int(item.get("max_capacity")),
        )


class MenuItem(BaseModel):
    """Menu item offered by a chef."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    id: str = Field(..., description="Unique identifier for the menu item")
    chef_id: str = Field(..., description="Seller (chef) this item belongs to")
    name: str | None = Field(None, description="Item name")
    price: Decimal = Field(..., description="Current unit price", ge=0)

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "MenuItem":
        """Create MenuItem from DynamoDB item."""
        return cls(
            id=item["menu_item_id"],
            chef_id=item["chef_id"],
            name=item.get("name"),
            price=Decimal(str(item["price"])),
        )


class Review(BaseModel):
    """Buyer review of a menu item."""

    id: str = Field(..., description="Unique review identifier")
    menu_item_id: str = Field(..., description="Reviewed menu item")
    chef_id: str = Field(..., description="Seller owning the reviewed menu item")
    rating: int = Field(..., description="Star rating", ge=1, le=5)
    comment: str | None = Field(None, description="Optional review text")

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Review":
        """Create Review from DynamoDB item."""
        return cls(
            id=item["review_id"],
            menu_item_id=item["menu_item_id"],
            chef_id=item["chef_id"],
            rating=int(item["rating"]),
            comment=item.get("comment"),
        )
