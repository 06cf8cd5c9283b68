"""Subscription order generation report models."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field


class OutcomeStatus(str, Enum):
    """How a single subscription fared in a generation run."""

    PROCESSED = "processed"
    SKIPPED = "skipped"
    FAILED = "failed"


class SubscriptionOutcome(BaseModel):
    """Result of expanding one subscription for the target date.

    Attributes:
        subscription_id: The subscription that was expanded
        status: PROCESSED if at least one order was created, SKIPPED if none
            was, FAILED if processing raised
        created_order_ids: Orders written during this run
        errors: Per-slot problems (capacity, missing dishes) or the failure reason
    """

    subscription_id: str
    status: OutcomeStatus
    created_order_ids: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class GenerationReport(BaseModel):
    """Summary of a generation run across all active subscriptions."""

    target_date: date
    day: str
    created: int = 0
    skipped: int = 0
    processed: int = 0
    errors: list[str] = Field(default_factory=list)
    outcomes: list[SubscriptionOutcome] = Field(default_factory=list)

    def record(self, outcome: SubscriptionOutcome) -> None:
        """Fold a subscription outcome into the totals."""
        self.outcomes.append(outcome)
        self.created += len(outcome.created_order_ids)
        self.errors.extend(outcome.errors)

        if outcome.status == OutcomeStatus.SKIPPED:
            self.skipped += 1
        else:
            self.processed += 1
