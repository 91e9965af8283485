from __future__ import annotations

from decimal import Decimal

from .models import PlanDefinition


# Ordered (marker, plan) pairs; the marker is a substring of the balance row label on the account
# page. First match wins, so keep the order stable when adding plans.
KNOWN_PLANS: tuple[tuple[str, PlanDefinition], ...] = (
    (
        "MPA 14 Weekly Meals",
        PlanDefinition(
            code="MPA",
            name="Meal Plan A",
            total_meals=14,
            total_dining_dollars=Decimal("175"),
            total_guest_swipes=5,
        ),
    ),
    (
        "MPB 10 Weekly Meals",
        PlanDefinition(
            code="MPB",
            name="Meal Plan B",
            total_meals=10,
            total_dining_dollars=Decimal("275"),
            total_guest_swipes=10,
        ),
    ),
    (
        "MPC 80 Meals",
        PlanDefinition(
            code="MPC",
            name="Meal Plan C",
            total_meals=80,
            total_dining_dollars=Decimal("125"),
            total_guest_swipes=5,
        ),
    ),
    (
        "MPU 19 Meals",
        PlanDefinition(
            code="MPU",
            name="Meal Plan U",
            total_meals=19,
            total_dining_dollars=Decimal("300"),
            total_guest_swipes=15,
        ),
    ),
)
