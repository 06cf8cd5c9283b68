"""Business metrics for order generation and reliability scoring."""

from opentelemetry import metrics

meter = metrics.get_meter("kitchen-ops-svc")

orders_generated_counter = meter.create_counter(
    name="subscription_orders_generated_total",
    description="Orders created from subscriptions, by delivery time slot",
    unit="1",
)

capacity_rejection_counter = meter.create_counter(
    name="subscription_capacity_rejections_total",
    description="Subscription slots not generated because the kitchen was full",
    unit="1",
)

subscription_failure_counter = meter.create_counter(
    name="subscription_generation_failures_total",
    description="Subscriptions that failed during order generation",
    unit="1",
)

generation_duration_histogram = meter.create_histogram(
    name="subscription_generation_duration_seconds",
    description="Duration of a full subscription order generation run",
    unit="s",
)

scores_computed_counter = meter.create_counter(
    name="reliability_scores_computed_total",
    description="Kitchen reliability scores computed",
    unit="1",
)

score_histogram = meter.create_histogram(
    name="reliability_score",
    description="Distribution of computed kitchen reliability scores",
    unit="1",
)

score_update_failure_counter = meter.create_counter(
    name="reliability_score_update_failures_total",
    description="Kitchens whose score could not be recomputed during a sweep",
    unit="1",
)

notification_failure_counter = meter.create_counter(
    name="notification_failures_total",
    description="In-app notifications that could not be stored",
    unit="1",
)


def record_order_generated(slot: str) -> None:
    """Record one order created from a subscription.

    Args:
        slot: Delivery time slot of the order (e.g., "LUNCH")
    """
    orders_generated_counter.add(1, {"slot": slot})


def record_capacity_rejection(slot: str) -> None:
    """Record a slot skipped because the kitchen was at capacity."""
    capacity_rejection_counter.add(1, {"slot": slot})


def record_subscription_failure(error_type: str) -> None:
    """Record a subscription that raised during generation.

    Args:
        error_type: Exception class name
    """
    subscription_failure_counter.add(1, {"error_type": error_type})


def record_generation_duration(duration_seconds: float) -> None:
    generation_duration_histogram.record(duration_seconds)


def record_score_computed(score: int, is_new_chef: bool) -> None:
    """Record a computed reliability score.

    Args:
        score: Score in [0, 100]
        is_new_chef: Whether the neutral cold-start baseline was used
    """
    attributes = {"new_chef": is_new_chef}
    scores_computed_counter.add(1, attributes)
    score_histogram.record(score, attributes)


def record_score_update_failure(error_type: str) -> None:
    score_update_failure_counter.add(1, {"error_type": error_type})


def record_notification_failure(recipient_type: str) -> None:
    """Record a notification that could not be stored.

    Args:
        recipient_type: "BUYER" or "KITCHEN"
    """
    notification_failure_counter.add(1, {"recipient_type": recipient_type})
