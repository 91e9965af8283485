from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PageLayout:
    """
    The campus-card account page is old server-rendered HTML; class names are not stable.
    Keep all structural hooks (selectors, cell positions, label markers) here for easy maintenance.
    """

    # Balance rows: the only stable signal is a right-aligned amount cell (a <div align="right">
    # inside one of the row's own <td> cells).
    balance_value_align: str = "right"
    # Unrelated right-aligned content can appear further down the page.
    max_balance_rows: int = 4
    label_cell_index: int = 1
    value_cell_index: int = 3

    # Label markers, checked in this order (case-sensitive substring). Plan markers live in
    # `mealswipe_sync.plans` and are checked after these three.
    lion_bucks_marker: str = "Lion Bucks"
    guest_meals_marker: str = "Guest Meals"
    dining_dollars_marker: str = "DD"
    # Last resort for a meal plan row whose code is not in the plan table ("MPD 12 Weekly Meals").
    # Only fills meal swipes when no plan row matched.
    unknown_plan_pattern: str = r"\bMP[A-Z]\b.*Meals"

    # Transactions
    transaction_row_selector: str = "tr#EntryRow"
    transaction_date_index: int = 0
    transaction_time_index: int = 1
    transaction_description_index: int = 2
    transaction_account_index: int = 3
    # Column 4 is an unused spacer on the page.
    transaction_amount_index: int = 5
